"""Asynchronous process monitoring for external tools.

run_process() collects stdout and stderr of a tool such as MP4Box and decides
whether it failed. Some tools print real errors to stderr but still exit 0,
and some print harmless chatter to stderr and exit non-zero only for real
problems, so the decision combines the exit code with a text heuristic.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

_ANSI_ESCAPE = re.compile(r"\x1B\[[\d;]*[A-Za-z]")

_ERROR_WORDS = re.compile(
    r"\b(exception|operation not permitted|not a valid|isn't a valid|"
    r"cannot resolve|must be specified|must implement|need to install|"
    r"doesn't exist|are required|should be strings?)\b",
    re.IGNORECASE,
)
_ERROR_IDENTIFIER = re.compile(r"[_\da-z](Error|Exception|Invalid)\b")
_ERROR_CODE = re.compile(r"\[ERR_|code: 'ERR")

# Progress chatter that tools write to stderr and that never signals failure
_BENIGN_STDERR = re.compile(r"Warning\b")


class ProcessError(Exception):
    """External process reported a failure.

    Attributes:
        code: Exit code, or -1 if the process could not be started.
        output: Captured output, stdout followed by stderr.
    """

    def __init__(self, message: str, code: int, output: str = "") -> None:
        self.code = code
        self.output = output
        super().__init__(message)


def strip_formatting(text: str) -> str:
    """Remove ANSI terminal escape sequences."""
    return _ANSI_ESCAPE.sub("", text)


def looks_like_error(text: str) -> bool:
    """Heuristically decide whether a chunk of tool output reports an error."""
    text = strip_formatting(text)
    return bool(
        _ERROR_WORDS.search(text)
        or _ERROR_IDENTIFIER.search(text)
        or _ERROR_CODE.search(text)
    )


async def run_process(
    args: Sequence[str | Path],
    strict_exit: bool = False,
) -> str:
    """Run a process to completion and return its standard output.

    By default the process fails when it exits non-zero AND error-looking
    text was seen, or when it cannot be started at all.

    Args:
        args: Command and arguments.
        strict_exit: Fail on any non-zero exit, even without error text.

    Returns:
        Captured standard output.

    Raises:
        ProcessError: If the process failed (code -1 if it never started).
    """
    str_args = [str(arg) for arg in args]

    logger.debug("Running process: %s", " ".join(str_args))

    try:
        process = await asyncio.create_subprocess_exec(
            *str_args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProcessError(f"Could not start {str_args[0]}: {e}", -1) from e

    stdout_bytes, stderr_bytes = await process.communicate()
    output = stdout_bytes.decode("utf-8", errors="replace")
    stderr = strip_formatting(stderr_bytes.decode("utf-8", errors="replace"))

    errors: list[str] = []
    for line in stderr.splitlines():
        if not line.strip() or _BENIGN_STDERR.search(line):
            continue
        if looks_like_error(line):
            errors.append(line)
    for line in output.splitlines():
        if looks_like_error(line):
            errors.append(line)

    code = process.returncode if process.returncode is not None else -1
    if code != 0 and errors:
        raise ProcessError("\n".join(errors), code, output + stderr)
    if code != 0 and strict_exit:
        tail = "\n".join(stderr.strip().splitlines()[-10:])
        raise ProcessError(
            tail or f"{Path(str_args[0]).name} exited with code {code}",
            code,
            output + stderr,
        )
    if code != 0:
        logger.debug(
            "%s exited with code %d without error output",
            Path(str_args[0]).name,
            code,
        )

    return output
