import pytest

from leavetest.core.exceptions import JudgeError
from leavetest.schemas.assessment import TestCase
from leavetest.services import code_judge
from leavetest.services.code_judge import CodeJudge, outputs_match

SUM_PROGRAM = "a, b = map(int, input().split())\nprint(a + b)\n"

CASES = [
    TestCase(input="1 2", expected_output="3"),
    TestCase(input="10 -4", expected_output="6\n"),
    TestCase(input="2 2", expected_output="4", is_hidden=True),
]


def test_outputs_match_ignores_trailing_whitespace():
    assert outputs_match("3  \r\n", "3")
    assert outputs_match("1\n2\n", "1\n2")
    assert not outputs_match("1\n2\n3", "1\n2")


async def test_correct_program_passes_every_case():
    result = await CodeJudge(timeout=10).evaluate(SUM_PROGRAM, "python", CASES)
    assert result.all_passed is True
    assert (result.passed_count, result.total_count) == (3, 3)
    assert result.score == 10
    assert result.per_case[0].actual_output == "3"
    assert result.per_case[2].actual_output is None


async def test_partial_credit():
    program = "a, b = map(int, input().split())\nprint(a + b if a < 5 else 0)\n"
    result = await CodeJudge(timeout=10).evaluate(program, "python", CASES)
    assert result.passed_count == 2
    assert result.all_passed is False
    assert result.score == 7


async def test_runtime_error_fails_the_case():
    result = await CodeJudge(timeout=10).evaluate("raise ValueError('boom')\n", "python", CASES[:1])
    assert result.passed_count == 0
    assert "ValueError" in result.per_case[0].error


async def test_slow_program_times_out():
    program = "import time\ntime.sleep(5)\n"
    result = await CodeJudge(timeout=0.5).evaluate(program, "python", CASES[:1])
    assert result.score == 0
    assert result.per_case[0].error == "Time limit exceeded"


@pytest.mark.parametrize("code,language,cases", [
    (SUM_PROGRAM, "javascript", CASES),
    (SUM_PROGRAM, "cpp", CASES),
    ("   ", "python", CASES),
    (SUM_PROGRAM, "python", []),
])
async def test_unusable_submissions_raise(code, language, cases):
    with pytest.raises(JudgeError):
        await CodeJudge(timeout=10).evaluate(code, language, cases)


async def test_interpreter_failure_raises_after_all_cases(tmp_path):
    judge = CodeJudge(timeout=10, python_executable=str(tmp_path / "no-such-python"))
    with pytest.raises(JudgeError):
        await judge.evaluate(SUM_PROGRAM, "python", CASES)


async def test_output_is_capped(monkeypatch):
    monkeypatch.setattr(code_judge, "MAX_OUTPUT_BYTES", 1000)
    program = "print('x' * 100000)\n"
    result = await CodeJudge(timeout=10).evaluate(program, "python", CASES[:1])
    assert result.passed_count == 0
    assert "Output limit" in result.per_case[0].error


async def test_program_ignoring_input_is_still_judged():
    result = await CodeJudge(timeout=10).evaluate("print(3)\n", "python", CASES[:1])
    assert result.all_passed is True
