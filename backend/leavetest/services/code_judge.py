"""Runs coding submissions against a question's test cases.

Only Python is executed here. The process runs in a throwaway directory with a
wall-clock timeout; it is not a security sandbox.
"""
import asyncio
import logging
import os
import sys
import tempfile
from itertools import zip_longest
from typing import List, Optional, Sequence

from ..core.config import settings
from ..core.exceptions import JudgeError
from ..schemas.assessment import JudgeCaseResult, JudgeResult, TestCase

logger = logging.getLogger(__name__)

# Judge scores live on a fixed 0..JUDGE_SCALE scale regardless of question points
JUDGE_SCALE = 10
SUPPORTED_LANGUAGES = ("python",)
MAX_PARALLEL_CASES = 5
MAX_OUTPUT_BYTES = 1024 * 1024
READ_CHUNK_BYTES = 64 * 1024


class RunTimeout(Exception):
    pass


class RunFailed(Exception):
    pass


class OutputLimitExceeded(Exception):
    pass


def normalize_output(output: str) -> str:
    return output.replace("\r\n", "\n").strip()


def outputs_match(actual: str, expected: str) -> bool:
    """Line-by-line comparison ignoring surrounding whitespace on each line."""
    actual_lines = (line.strip() for line in normalize_output(actual).split("\n"))
    expected_lines = (line.strip() for line in normalize_output(expected).split("\n"))
    for got, want in zip_longest(actual_lines, expected_lines):
        if got != want:
            return False
    return True


class CodeJudge:
    def __init__(
        self,
        timeout: Optional[float] = None,
        python_executable: Optional[str] = None,
    ):
        self.timeout = timeout or settings.judge_timeout_seconds
        self.python_executable = python_executable or settings.judge_python_executable or sys.executable

    async def evaluate(self, code: str, language: str, test_cases: Sequence[TestCase]) -> JudgeResult:
        if language not in SUPPORTED_LANGUAGES:
            raise JudgeError(
                f"Language {language} is not supported by the code judge",
                language=language,
            )
        if not code or not code.strip():
            raise JudgeError("Empty submission", language=language)
        if not test_cases:
            raise JudgeError("Question has no test cases", language=language)

        with tempfile.TemporaryDirectory(prefix="leavetest-judge-") as folder:
            program_path = os.path.join(folder, "solution.py")
            with open(program_path, "w", encoding="utf8") as file:
                file.write(code)

            semaphore = asyncio.Semaphore(MAX_PARALLEL_CASES)

            async def run_case(case: TestCase) -> JudgeCaseResult:
                async with semaphore:
                    return await self._run_case(program_path, folder, case)

            # Every case finishes before the folder is removed, even when one fails
            per_case = await asyncio.gather(*(run_case(case) for case in test_cases), return_exceptions=True)

        failures = [result for result in per_case if isinstance(result, BaseException)]
        if failures:
            raise failures[0]

        passed_count = sum(1 for case in per_case if case.passed)
        total_count = len(per_case)
        return JudgeResult(
            all_passed=passed_count == total_count,
            passed_count=passed_count,
            total_count=total_count,
            score=round(passed_count / total_count * JUDGE_SCALE),
            per_case=list(per_case),
        )

    async def _run_case(self, program_path: str, folder: str, case: TestCase) -> JudgeCaseResult:
        try:
            output = await self._run(program_path, folder, case.input)
        except RunTimeout:
            return JudgeCaseResult(passed=False, error="Time limit exceeded")
        except RunFailed as e:
            return JudgeCaseResult(passed=False, error=None if case.is_hidden else str(e))

        passed = outputs_match(output, case.expected_output)
        return JudgeCaseResult(
            passed=passed,
            actual_output=None if case.is_hidden else normalize_output(output),
        )

    async def _run(self, program_path: str, folder: str, input_data: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self.python_executable, "-I", program_path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=folder,
            )
        except OSError as e:
            raise JudgeError(f"Failed to start interpreter: {e}", language="python") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                self._communicate(process, input_data or ""),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            raise RunTimeout()
        except OutputLimitExceeded:
            await self._kill(process)
            raise RunFailed(f"Output limit of {MAX_OUTPUT_BYTES} bytes exceeded")

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip().splitlines()
            raise RunFailed(message[-1] if message else f"Exited with code {process.returncode}")
        return stdout.decode("utf-8", errors="replace")

    async def _communicate(self, process, input_data: str):
        if input_data:
            try:
                process.stdin.write(input_data.encode("utf-8"))
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                # The program exited without reading its input; its output still counts
                logger.debug("Judged program closed stdin early")
        process.stdin.close()

        stdout, stderr = await asyncio.gather(
            _read_limited(process.stdout, MAX_OUTPUT_BYTES),
            _read_limited(process.stderr, MAX_OUTPUT_BYTES, truncate=True),
        )
        await process.wait()
        return stdout, stderr

    @staticmethod
    async def _kill(process):
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()


async def _read_limited(stream, limit: int, truncate: bool = False) -> bytes:
    """Read a pipe to EOF, keeping at most `limit` bytes.

    Past the limit the stream is either drained and cut (`truncate`) or
    rejected with OutputLimitExceeded.
    """
    chunks = []
    size = 0
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        if size + len(chunk) > limit:
            if not truncate:
                raise OutputLimitExceeded()
            chunk = chunk[:max(0, limit - size)]
        chunks.append(chunk)
        size += len(chunk)
    return b"".join(chunks)


def to_test_cases(raw_cases: Optional[List[dict]]) -> List[TestCase]:
    return [TestCase(**case) for case in (raw_cases or [])]
