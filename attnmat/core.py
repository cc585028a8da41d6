"""Matrix input, arithmetic and output shared by the attention commands."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from itertools import accumulate

Matrix = list[list[int]]

_INT = re.compile(r"[+-]?\d+")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class InputError(ValueError):
    """Raised when input data or command-line arguments cannot be used."""


def _check_rows(matrix: Matrix, cols: int, name: str) -> None:
    for index, row in enumerate(matrix):
        if len(row) != cols:
            raise InputError(
                f"{name} row {index} has {len(row)} values, expected {cols}."
            )


@dataclass
class AttentionProblem:
    """The Q, K and V matrices of one attention computation."""

    q: Matrix
    k: Matrix
    v: Matrix
    q_cols: int | None = None
    v_cols: int | None = None

    def __post_init__(self) -> None:
        if self.q_cols is None:
            source = self.q or self.k
            self.q_cols = len(source[0]) if source else 0
        if self.v_cols is None:
            self.v_cols = len(self.v[0]) if self.v else 0
        _check_rows(self.q, self.q_cols, "Q")
        for row in self.k:
            if len(row) != self.q_cols:
                raise InputError(
                    f"Dimension mismatch: Q columns ({self.q_cols}) "
                    f"must equal K columns ({len(row)})."
                )
        if len(self.v) != len(self.k):
            raise InputError(
                f"Dimension mismatch: V rows ({len(self.v)}) "
                f"must equal K rows ({len(self.k)})."
            )
        _check_rows(self.v, self.v_cols, "V")

    def to_text(self) -> str:
        """Render the problem in the whitespace-separated input format."""
        return "".join(
            f"{len(matrix)} {cols}\n{format_matrix(matrix)}"
            for matrix, cols in (
                (self.q, self.q_cols),
                (self.k, self.q_cols),
                (self.v, self.v_cols),
            )
        )


def _next_int(tokens: Iterator[str], message: str) -> int:
    token = next(tokens, None)
    if token is None or not _INT.fullmatch(token):
        raise InputError(message)
    return int(token)


def _read_shape(tokens: Iterator[str], name: str) -> tuple[int, int]:
    message = f"Failed to read dimensions for {name}."
    rows = _next_int(tokens, message)
    cols = _next_int(tokens, message)
    if rows < 0 or cols < 0:
        raise InputError(f"Invalid dimensions for {name}: {rows} x {cols}.")
    return rows, cols


def _read_body(tokens: Iterator[str], name: str, rows: int, cols: int) -> Matrix:
    return [
        [_next_int(tokens, f"Failed to read {name}[{i}][{j}].") for j in range(cols)]
        for i in range(rows)
    ]


def read_matrix(tokens: Iterable[str], name: str) -> Matrix:
    """Read a 'rows cols' header followed by the values, row by row."""
    it = iter(tokens)
    rows, cols = _read_shape(it, name)
    return _read_body(it, name, rows, cols)


def read_problem(tokens: Iterable[str]) -> AttentionProblem:
    """Read Q, K and V from a stream of tokens, checking their shapes."""
    it = iter(tokens)
    q_rows, q_cols = _read_shape(it, "Q")
    q = _read_body(it, "Q", q_rows, q_cols)

    k_rows, k_cols = _read_shape(it, "K")
    if q_cols != k_cols:
        raise InputError(
            f"Dimension mismatch: Q columns ({q_cols}) must equal K columns ({k_cols})."
        )
    k = _read_body(it, "K", k_rows, k_cols)

    v_rows, v_cols = _read_shape(it, "V")
    if v_rows != k_rows:
        raise InputError(
            f"Dimension mismatch: V rows ({v_rows}) must equal K rows ({k_rows})."
        )
    v = _read_body(it, "V", v_rows, v_cols)

    return AttentionProblem(q, k, v, q_cols=q_cols, v_cols=v_cols)


def parse_problem(text: str) -> AttentionProblem:
    """Parse a problem from its text form."""
    return read_problem(text.split())


def split_rows(total: int, parts: int) -> list[tuple[int, int]]:
    """Split ``total`` rows into ``parts`` contiguous half-open ranges.

    The remainder goes one row each to the first ranges.
    """
    if parts < 1:
        raise ValueError(f"worker count must be at least 1, got {parts}")
    base, extra = divmod(total, parts)
    sizes = (base + (1 if index < extra else 0) for index in range(parts))
    bounds = [0, *accumulate(sizes)]
    return list(zip(bounds, bounds[1:]))


def score_rows(q: Sequence[Sequence[int]], k: Sequence[Sequence[int]],
               start: int, end: int) -> Matrix:
    """Rows ``start`` to ``end`` of Q times K transposed."""
    return [
        [sum(a * b for a, b in zip(row, key)) for key in k]
        for row in q[start:end]
    ]


def matmul(a: Sequence[Sequence[int]], b: Sequence[Sequence[int]]) -> Matrix:
    """Multiply two integer matrices."""
    for index, row in enumerate(a):
        if len(row) != len(b):
            raise ValueError(
                f"row {index} has {len(row)} values but the right operand has {len(b)} rows"
            )
    columns = list(zip(*b))
    return [
        [sum(x * y for x, y in zip(row, column)) for column in columns]
        for row in a
    ]


def format_matrix(matrix: Iterable[Iterable[int]]) -> str:
    """Each row as values followed by a space, ending in a newline."""
    return "".join("".join(f"{value} " for value in row) + "\n" for row in matrix)


def format_output(elapsed_ms: int, matrix: Iterable[Iterable[int]]) -> str:
    """The latency line followed by the result matrix."""
    return f"{elapsed_ms}\n{format_matrix(matrix)}"


def parse_worker_count(argv: Sequence[str], prog: str, label: str) -> int:
    """Read the worker count from the first argument, as a leading integer."""
    if not argv:
        raise InputError(f"Usage: {prog} {label}")
    match = _LEADING_INT.match(argv[0])
    count = int(match.group(1)) if match else 0
    if count < 1:
        raise InputError(f"{label} must be a positive integer, got {argv[0]!r}.")
    return count