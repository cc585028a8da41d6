"""Attention with the score rows computed by a pool of threads."""

from __future__ import annotations

import sys
import time
from concurrent.futures import ThreadPoolExecutor

from .core import (
    AttentionProblem,
    InputError,
    Matrix,
    format_output,
    matmul,
    parse_problem,
    parse_worker_count,
    score_rows,
    split_rows,
)


def attention_threaded(problem: AttentionProblem, threads: int) -> Matrix:
    """Compute (Q x K^T) x V, splitting the Q rows among ``threads`` threads."""
    ranges = split_rows(len(problem.q), threads)
    with ThreadPoolExecutor(max_workers=threads) as pool:
        blocks = pool.map(lambda span: score_rows(problem.q, problem.k, *span), ranges)
        scores = [row for block in blocks for row in block]
    if not problem.k:
        return [[0] * problem.v_cols for _ in problem.q]
    return matmul(scores, problem.v)


def main(argv=None) -> int:
    """Read a problem from standard input and print latency and result."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        threads = parse_worker_count(args, "attention", "total_thread_num")
        problem = parse_problem(sys.stdin.read())
    except InputError as exc:
        print(exc, file=sys.stderr)
        return 1
    start = time.perf_counter()
    result = attention_threaded(problem, threads)
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    sys.stdout.write(format_output(elapsed_ms, result))
    return 0


if __name__ == "__main__":
    sys.exit(main())