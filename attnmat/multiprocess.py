"""Attention with the score rows computed by a pool of worker processes."""

from __future__ import annotations

import sys
import time
from concurrent.futures import ProcessPoolExecutor

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


def attention_processes(problem: AttentionProblem, processes: int) -> Matrix:
    """Compute (Q x K^T) x V, splitting the Q rows among ``processes`` workers."""
    ranges = split_rows(len(problem.q), processes)
    with ProcessPoolExecutor(max_workers=processes) as pool:
        futures = [
            pool.submit(score_rows, problem.q[start:end], problem.k, 0, end - start)
            for start, end in ranges
        ]
        scores = []
        for (start, end), future in zip(ranges, futures):
            block = future.result()
            if len(block) != end - start:
                raise RuntimeError(f"Error reading results for row {start + len(block)}")
            scores.extend(block)
    if not problem.k:
        return [[0] * problem.v_cols for _ in problem.q]
    return matmul(scores, problem.v)


def main(argv=None) -> int:
    """Read a problem from standard input and print latency and result."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        processes = parse_worker_count(args, "attention_mp", "total_process_num")
        problem = parse_problem(sys.stdin.read())
    except InputError as exc:
        print(exc, file=sys.stderr)
        return 1
    start = time.perf_counter()
    result = attention_processes(problem, processes)
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    sys.stdout.write(format_output(elapsed_ms, result))
    return 0


if __name__ == "__main__":
    sys.exit(main())