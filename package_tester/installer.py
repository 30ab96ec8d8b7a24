"""Compiler version installs and per-package dependency installation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from . import io_utils
from .config import TesterConfig, TesterOptions
from .packages import Package

logger = logging.getLogger(__name__)

ExecAndRaise = Callable[[str, Optional[io_utils.PathLike]], Awaitable[str]]


class CompilerInstaller:
    """Keeps one TypeScript install per supported version under ``config.install_root``."""

    def __init__(self, config: TesterConfig, exec_and_raise: ExecAndRaise = io_utils.exec_and_raise):
        self.config = config
        self.exec_and_raise = exec_and_raise

    def install_dir(self, version: str) -> Path:
        return self.config.install_root / self.config.resolve_version(version)

    def path_to_tsc(self, version: str) -> Path:
        """Path to the compiler entry point for a version token (``latest`` included)."""
        return self.install_dir(version) / "node_modules" / "typescript" / "lib" / "tsc.js"

    def is_installed(self, version: str) -> bool:
        return (self.install_dir(version) / "node_modules" / "typescript").is_dir()

    async def install(self, version: str) -> None:
        """Install one compiler version unless it is already present.

        Raises:
            CommandError: If ``npm install`` fails.
        """
        if self.is_installed(version):
            return
        directory = self.install_dir(version)
        directory.mkdir(parents=True, exist_ok=True)
        resolved = self.config.resolve_version(version)
        logger.info(f"Installing TypeScript {resolved} to {directory}")
        await self.exec_and_raise(f"npm install typescript@{resolved} --no-save --no-package-lock", directory)

    async def install_all(self) -> None:
        for version in self.config.supported_versions:
            await self.install(version)


def strip_benign_warnings(stdout: str, config: TesterConfig) -> str:
    for pattern in config.benign_npm_warnings:
        stdout = pattern.sub("", stdout)
    return stdout.strip()


async def install_dependencies(
    package: Package,
    options: TesterOptions,
    config: TesterConfig,
    exec_and_raise: ExecAndRaise = io_utils.exec_and_raise,
) -> None:
    """Run ``npm install`` for a package that ships its own package.json.

    Failures are not caught and abort the whole batch.

    Raises:
        CommandError: If ``npm install`` fails.
    """
    if not package.has_package_json:
        return
    cwd = package.directory_path(options)
    stdout = strip_benign_warnings(await exec_and_raise("npm install", cwd), config)
    if stdout:
        logger.info(stdout)
