"""Async file and subprocess helpers.

Both the pipeline and the installer take these as injectable callables so tests
can swap in fakes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from .errors import CommandError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ExecResult:
    """Outcome of one subprocess run.

    ``error`` is set when the process exited non-zero; it is never raised.
    """

    error: Optional[CommandError]
    stdout: str
    stderr: str


ExecCommand = Callable[[str, Optional[PathLike]], Awaitable[ExecResult]]
ReadJson = Callable[[PathLike], Awaitable[Any]]


def _read_json_sync(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


async def read_json(path: PathLike) -> Any:
    """Read and parse a JSON file without blocking the event loop.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON.
    """
    return await asyncio.to_thread(_read_json_sync, Path(path))


async def exec_command(command: str, cwd: Optional[PathLike] = None) -> ExecResult:
    """Run a shell command and capture its output.

    Args:
        command: The command line to run.
        cwd: Working directory for the process.

    Returns:
        Trimmed stdout and stderr, plus a CommandError when the exit status is non-zero.
    """
    logger.debug(f"Running `{command}` in {cwd or '.'}")
    process = await asyncio.create_subprocess_shell(
        command,
        cwd=str(cwd) if cwd is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    raw_stdout, raw_stderr = await process.communicate()
    stdout = raw_stdout.decode("utf-8", errors="replace").strip()
    stderr = raw_stderr.decode("utf-8", errors="replace").strip()

    error = None
    if process.returncode != 0:
        error = CommandError(command, process.returncode, stdout, stderr)
    return ExecResult(error=error, stdout=stdout, stderr=stderr)


async def exec_and_raise(command: str, cwd: Optional[PathLike] = None) -> str:
    """Run a shell command and return its stdout.

    Raises:
        CommandError: If the process exits non-zero.
    """
    result = await exec_command(command, cwd)
    if result.error is not None:
        raise result.error
    return result.stdout
