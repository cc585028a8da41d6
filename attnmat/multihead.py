"""Multi-head attention: each head runs in a worker command, results are summed."""

from __future__ import annotations

import re
import subprocess
import sys
from collections.abc import Iterable, Iterator, Sequence

from .core import (
    AttentionProblem,
    InputError,
    Matrix,
    format_matrix,
    parse_worker_count,
)

_INT = re.compile(r"[+-]?\d+")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _next_int(tokens: Iterator[str], message: str) -> int:
    token = next(tokens, None)
    if token is None or not _INT.fullmatch(token):
        raise InputError(message)
    return int(token)


def _read_shape(tokens: Iterator[str], name: str, head: int) -> tuple[int, int]:
    message = f"Error reading {name} dimensions for head {head}"
    rows = _next_int(tokens, message)
    cols = _next_int(tokens, message)
    if rows < 0 or cols < 0:
        raise InputError(
            f"Invalid {name} dimensions for head {head}: {rows} x {cols}"
        )
    return rows, cols


def _read_body(tokens: Iterator[str], name: str, head: int,
               rows: int, cols: int) -> Matrix:
    return [
        [
            _next_int(tokens, f"Error reading {name}[{i}][{j}] for head {head}")
            for j in range(cols)
        ]
        for i in range(rows)
    ]


def _read_head(tokens: Iterator[str], head: int) -> AttentionProblem:
    q_rows, q_cols = _read_shape(tokens, "Q", head)
    q = _read_body(tokens, "Q", head, q_rows, q_cols)

    k_rows, k_cols = _read_shape(tokens, "K", head)
    if q_cols != k_cols:
        raise InputError(
            f"Dimension mismatch for head {head}: "
            f"Q columns ({q_cols}) != K columns ({k_cols})"
        )
    k = _read_body(tokens, "K", head, k_rows, k_cols)

    v_rows, v_cols = _read_shape(tokens, "V", head)
    if v_rows != k_rows:
        raise InputError(
            f"Dimension mismatch for head {head}: "
            f"V rows ({v_rows}) != K rows ({k_rows})"
        )
    v = _read_body(tokens, "V", head, v_rows, v_cols)

    return AttentionProblem(q, k, v, q_cols=q_cols, v_cols=v_cols)


def parse_heads(text: str) -> list[AttentionProblem]:
    """Parse a head count followed by the Q, K and V matrices of every head."""
    tokens = iter(text.split())
    count = _next_int(tokens, "Failed to read total_heads from input.")
    return [_read_head(tokens, head) for head in range(count)]


def _atoi(token: str) -> int:
    match = _LEADING_INT.match(token)
    return int(match.group(1)) if match else 0


def parse_worker_output(output: str, rows: int, cols: int) -> Matrix:
    """Read a worker's result, skipping its latency line.

    Blank lines are ignored, surplus rows and values are dropped and
    anything missing counts as zero.
    """
    lines = [line for line in output.split("\n") if line]
    result = [[0] * cols for _ in range(rows)]
    for target, line in zip(result, lines[1:rows + 1]):
        values = [token for token in line.split(" ") if token][:cols]
        for j, token in enumerate(values):
            target[j] = _atoi(token)
    return result


def default_command(processes: int) -> list[str]:
    """The command that computes one head with ``processes`` worker processes."""
    return [sys.executable, "-m", "attnmat.multiprocess", str(processes)]


def run_head(problem: AttentionProblem, processes: int,
             command: Sequence[str] | None = None) -> Matrix:
    """Feed one head to the worker command and return the matrix it prints."""
    argv = list(command) if command is not None else default_command(processes)
    completed = subprocess.run(
        argv,
        input=problem.to_text(),
        stdout=subprocess.PIPE,
        text=True,
        check=False,
    )
    return parse_worker_output(completed.stdout, len(problem.q), problem.v_cols)


def multi_head_attention(heads: Iterable[AttentionProblem], processes: int,
                         command: Sequence[str] | None = None) -> Matrix:
    """Run every head in turn and add their results element by element.

    The shape of the sum is that of the first head's result.
    """
    final: Matrix | None = None
    for head in heads:
        if final is None:
            final = [[0] * head.v_cols for _ in head.q]
        partial = run_head(head, processes, command)
        for target, row in zip(final, partial):
            for j, value in enumerate(row[:len(target)]):
                target[j] += value
    return final if final is not None else []


def main(argv=None) -> int:
    """Read all heads from standard input and print the summed result."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        processes = parse_worker_count(args, "multiHeadAttention", "total_process_num")
        heads = parse_heads(sys.stdin.read())
        result = multi_head_attention(heads, processes)
    except InputError as exc:
        print(exc, file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Failed to start worker: {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(format_matrix(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())