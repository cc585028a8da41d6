import io
import sys

import pytest

from attnmat.core import AttentionProblem, InputError
from attnmat.multihead import (
    default_command,
    main,
    multi_head_attention,
    parse_heads,
    parse_worker_output,
    run_head,
)
from attnmat.threaded import attention_threaded

FAKE_OUTPUT = "5\n1 2 \n3 4 \n"
FAKE_COMMAND = [
    sys.executable,
    "-c",
    "import sys; sys.stdin.read(); sys.stdout.write('5\\n1 2 \\n3 4 \\n')",
]


def _problem():
    return AttentionProblem(
        q=[[1, 0], [0, 1]],
        k=[[1, 2], [3, 4]],
        v=[[1, 1], [2, 0]],
    )


def _heads_text(*problems):
    return f"{len(problems)}\n" + "".join(p.to_text() for p in problems)


def test_parse_heads_round_trip():
    first = _problem()
    second = AttentionProblem(q=[[2, 3]], k=[[1, 1]], v=[[4, 5, 6]])
    heads = parse_heads(_heads_text(first, second))
    assert heads == [first, second]


def test_parse_heads_zero_heads():
    assert parse_heads("0\n") == []


def test_parse_heads_missing_count():
    with pytest.raises(InputError, match="total_heads"):
        parse_heads("")


def test_parse_heads_column_mismatch_names_head():
    text = _heads_text(_problem()).replace("2 2\n", "9 9\n", 0)
    text += "2 2\n1 2\n3 4\n2 3\n1 2 3\n4 5 6\n"
    text = "2" + text[1:]
    with pytest.raises(InputError, match="head 1"):
        parse_heads(text)


def test_parse_heads_row_mismatch():
    text = "1\n1 1\n5\n1 1\n6\n2 1\n7\n8\n"
    with pytest.raises(InputError, match=r"V rows \(2\) != K rows \(1\)"):
        parse_heads(text)


def test_parse_heads_missing_value():
    with pytest.raises(InputError, match=r"Error reading Q\[0\]\[1\] for head 0"):
        parse_heads("1\n1 2\n5\n")


def test_parse_worker_output_skips_latency():
    assert parse_worker_output(FAKE_OUTPUT, 2, 2) == [[1, 2], [3, 4]]


def test_parse_worker_output_truncates_and_fills():
    result = parse_worker_output("9\n1 2 3 \n", 2, 2)
    assert result == [[1, 2], [0, 0]]


def test_parse_worker_output_ignores_blank_lines():
    assert parse_worker_output("9\n\n\n7 8 \n", 1, 2) == [[7, 8]]


def test_default_command_passes_process_count():
    command = default_command(3)
    assert command[0] == sys.executable
    assert command[-2:] == ["attnmat.multiprocess", "3"]


def test_run_head_uses_given_command():
    assert run_head(_problem(), 2, FAKE_COMMAND) == [[1, 2], [3, 4]]


def test_multi_head_attention_sums_heads():
    single = multi_head_attention([_problem()], 1, FAKE_COMMAND)
    double = multi_head_attention([_problem(), _problem()], 1, FAKE_COMMAND)
    assert double == [[2 * value for value in row] for row in single]


def test_multi_head_attention_shape_from_first_head():
    small = AttentionProblem(q=[[1]], k=[[1]], v=[[1]])
    result = multi_head_attention([small, _problem()], 1, FAKE_COMMAND)
    assert len(result) == 1
    assert len(result[0]) == 1


def test_multi_head_attention_no_heads():
    assert multi_head_attention([], 2, FAKE_COMMAND) == []


def test_multi_head_default_command_matches_single_attention():
    problem = _problem()
    assert multi_head_attention([problem], 2) == attention_threaded(problem, 1)


def test_main_prints_summed_matrix(monkeypatch, capsys):
    problem = _problem()
    monkeypatch.setattr(sys, "stdin", io.StringIO(_heads_text(problem, problem)))
    assert main(["2"]) == 0
    expected = attention_threaded(problem, 1)
    lines = capsys.readouterr().out.splitlines()
    parsed = [[int(x) for x in line.split()] for line in lines]
    assert parsed == [[2 * value for value in row] for row in expected]


def test_main_requires_argument(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().err


def test_main_reports_bad_input(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO("x"))
    assert main(["1"]) == 1
    assert "total_heads" in capsys.readouterr().err