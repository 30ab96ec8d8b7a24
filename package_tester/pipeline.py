"""Per-package validation pipeline.

A package runs through four ordered stages: config, manifest, compile and lint.
The first stage that fails decides the outcome and the rest are skipped.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

from . import io_utils
from .checks import check_package_json, check_tsconfig
from .config import TesterConfig, TesterOptions
from .constants import LATEST_VERSION, TSCONFIG_FILENAME
from .errors import TesterError, ValidationError
from .io_utils import ExecCommand, PathLike, ReadJson
from .logging_utils import TaskLog
from .packages import Package

logger = logging.getLogger(__name__)

Stage = Callable[[], Awaitable[Optional[TesterError]]]
PathToCompiler = Callable[[str], PathLike]


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating one package: success, or failure with a message."""

    error: Optional[TesterError] = None

    @property
    def passed(self) -> bool:
        return self.error is None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @classmethod
    def success(cls) -> "ValidationOutcome":
        return cls()

    @classmethod
    def failure(cls, error: TesterError) -> "ValidationOutcome":
        return cls(error=error)


async def catch_errors(log: TaskLog, action: Callable[[], Awaitable[None]]) -> Optional[TesterError]:
    """Run a check, turning a validation, I/O or parse error into a TesterError."""
    try:
        await action()
    except (ValidationError, OSError, ValueError) as e:
        message = getattr(e, "message", None) or str(e)
        log.error(message)
        return TesterError(message)
    return None


async def run_command(
    exec_command: ExecCommand, log: TaskLog, cwd: Optional[PathLike], script: PathLike, *args: str
) -> Optional[TesterError]:
    """Run a node script, logging its output.

    Returns:
        None on success, otherwise a TesterError holding the process error,
        stdout and stderr.
    """
    command = " ".join(["node", shlex.quote(str(script)), *args])
    log.info(f"Running: {command}")
    result = await exec_command(command, cwd)
    if result.stdout:
        log.info(result.stdout)
    if result.stderr:
        log.error(result.stderr)

    if result.error is None:
        return None
    return TesterError(f"{result.error.message}\n{result.stdout}\n{result.stderr}")


class CompilerFallbackResolver:
    """Compiles a package and, on failure, checks whether a newer compiler would succeed.

    The retry at the latest version only changes the wording of the failure:
    if the latest compiler accepts the package, the original error is reported
    with a note asking for a version bump; if it fails too, its output is
    dropped and the declared-version error is reported alone.
    """

    def __init__(self, config: TesterConfig, path_to_tsc: PathToCompiler, exec_command: ExecCommand):
        self.config = config
        self.path_to_tsc = path_to_tsc
        self.exec_command = exec_command

    async def _compile_with(self, version: str, cwd: Path, log: TaskLog) -> Optional[TesterError]:
        return await run_command(self.exec_command, log, cwd, self.path_to_tsc(version))

    async def compile(self, package: Package, cwd: Path, log: TaskLog) -> Optional[TesterError]:
        declared = package.compiler_version
        error = await self._compile_with(declared, cwd, log)
        if error is None or self.config.is_latest(declared):
            return error

        latest = self.config.latest_version
        if await self._compile_with(LATEST_VERSION, cwd, log) is None:
            message = (
                f"{error.message}\n"
                f"Package compiles in TypeScript {latest} but not in {declared}.\n"
                f"You can add a line '// TypeScript Version: {latest}' to the end of the header "
                f"to specify a new compiler version."
            )
            return TesterError(message)
        return error


class ValidationPipeline:
    """Runs the ordered validation stages for one package at a time.

    Holds no per-package state, so one instance serves every concurrent task.
    """

    def __init__(
        self,
        options: TesterOptions,
        config: TesterConfig,
        path_to_tsc: PathToCompiler,
        exec_command: ExecCommand = io_utils.exec_command,
        read_json: ReadJson = io_utils.read_json,
    ):
        """Initialize the pipeline.

        Args:
            options: Run options locating the package directories.
            config: Tester configuration (versions, manifest allow-list, linter).
            path_to_tsc: Returns the compiler entry point for a version token.
            exec_command: Subprocess runner.
            read_json: JSON file reader.
        """
        self.options = options
        self.config = config
        self.exec_command = exec_command
        self.read_json = read_json
        self.resolver = CompilerFallbackResolver(config, path_to_tsc, exec_command)

    def stages(self, package: Package, log: TaskLog) -> List[Tuple[str, Stage]]:
        cwd = package.directory_path(self.options)
        return [
            ("config", lambda: self.check_config(cwd, log)),
            ("manifest", lambda: self.check_manifest(package, log)),
            ("compile", lambda: self.resolver.compile(package, cwd, log)),
            ("lint", lambda: self.check_lint(package, cwd, log)),
        ]

    async def run(self, package: Package, log: TaskLog) -> ValidationOutcome:
        for name, stage in self.stages(package, log):
            error = await stage()
            if error is not None:
                logger.debug(f"{package.desc} failed the {name} stage")
                return ValidationOutcome.failure(error)
        return ValidationOutcome.success()

    async def check_config(self, cwd: Path, log: TaskLog) -> Optional[TesterError]:
        async def action() -> None:
            check_tsconfig(await self.read_json(cwd / TSCONFIG_FILENAME))

        return await catch_errors(log, action)

    async def check_manifest(self, package: Package, log: TaskLog) -> Optional[TesterError]:
        return await catch_errors(
            log,
            lambda: check_package_json(
                package, self.options, self.read_json, self.config.allowed_package_json_fields
            ),
        )

    async def check_lint(self, package: Package, cwd: Path, log: TaskLog) -> Optional[TesterError]:
        if not package.has_lint_config:
            return None
        files = [shlex.quote(f) for f in (*package.files, *package.test_files)]
        return await run_command(self.exec_command, log, cwd, self.config.lint_script, "--format stylish", *files)
