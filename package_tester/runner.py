"""Drives a full batch: install compilers, install dependencies, validate, report."""

from __future__ import annotations

import itertools
import logging
from typing import List, Optional, Pattern

from . import io_utils
from .affected import get_affected_packages
from .config import TesterConfig, TesterOptions, get_config
from .executor import BoundedExecutor
from .installer import CompilerInstaller, ExecAndRaise, install_dependencies
from .logging_utils import TaskLog
from .packages import Package, PackageCatalog
from .pipeline import ValidationOutcome, ValidationPipeline
from .report import ErrorAggregator

logger = logging.getLogger(__name__)


class BatchRunner:
    """Runs the install and test phases for a set of packages.

    The same executor is used for both phases. Everything that touches the
    outside world (subprocesses, file reads) comes in through the pipeline and
    ``exec_and_raise``.
    """

    def __init__(
        self,
        options: TesterOptions,
        config: TesterConfig,
        executor: BoundedExecutor,
        pipeline: ValidationPipeline,
        exec_and_raise: ExecAndRaise = io_utils.exec_and_raise,
    ):
        self.options = options
        self.config = config
        self.executor = executor
        self.pipeline = pipeline
        self.exec_and_raise = exec_and_raise

    async def install_dependencies(self, packages: List[Package]) -> None:
        """Install dependencies for every package; the first failure aborts the batch."""
        logger.info("Installing dependencies...")
        await self.executor.map(
            packages,
            lambda pkg: install_dependencies(pkg, self.options, self.config, self.exec_and_raise),
        )

    async def test_package(self, package: Package, aggregator: ErrorAggregator) -> ValidationOutcome:
        log = TaskLog(package.desc)
        try:
            outcome = await self.pipeline.run(package, log)
        finally:
            logger.info(f"Testing {package.desc}")
            log.flush_to(logger)
        if not outcome.passed:
            aggregator.add(package, outcome.error)
        return outcome

    async def test_packages(self, packages: List[Package]) -> ErrorAggregator:
        """Validate every package, logging a progress line per finished package when enabled."""
        logger.info("Testing...")
        aggregator = ErrorAggregator()
        finished = itertools.count(1)

        async def test_one(package: Package) -> ValidationOutcome:
            outcome = await self.test_package(package, aggregator)
            if self.options.progress:
                logger.info(f"Progress: {next(finished)}/{len(packages)} ({package.desc})")
            return outcome

        await self.executor.map(packages, test_one)
        return aggregator

    async def run(self, catalog: PackageCatalog, typings: List[Package]) -> ErrorAggregator:
        """Test ``typings`` after installing the dependencies of their full closure.

        Raises:
            CommandError: If a dependency install fails.
            BatchFailedError: If any package failed validation, after the report is logged.
        """
        logger.info(f"Testing {len(typings)} packages: {', '.join(p.desc for p in typings)}")
        logger.info(f"Running with {self.executor.n_processes} processes.")

        # Dependencies' own dependencies must be installed too.
        await self.install_dependencies(catalog.all_dependencies(typings))
        aggregator = await self.test_packages(typings)
        aggregator.raise_if_failed()
        return aggregator


def select_packages(
    catalog: PackageCatalog, options: TesterOptions, pattern: Optional[Pattern[str]] = None
) -> List[Package]:
    """Packages matching ``pattern``, or the packages affected by recent changes when there is none."""
    if pattern is not None:
        return catalog.filter_by_pattern(pattern)
    return get_affected_packages(catalog, logger, options)


async def main(
    options: TesterOptions,
    n_processes: Optional[int] = None,
    pattern: Optional[Pattern[str]] = None,
    config: Optional[TesterConfig] = None,
) -> ErrorAggregator:
    """Run a full batch.

    Args:
        options: Where the definitions live.
        n_processes: Concurrency cap (defaults to the CPU count).
        pattern: Name pattern selecting packages; ``None`` tests affected packages.
        config: Tester configuration (defaults to the bundled YAML).

    Returns:
        The (empty) aggregator when every package passed.

    Raises:
        BatchFailedError: If any package failed.
        CommandError: If a compiler or dependency install failed.
        ConfigError: If the configuration or definitions data is malformed.
    """
    config = config or get_config()
    installer = CompilerInstaller(config)
    await installer.install_all()

    catalog = PackageCatalog.read(options, config)
    typings = select_packages(catalog, options, pattern)

    runner = BatchRunner(
        options=options,
        config=config,
        executor=BoundedExecutor(n_processes),
        pipeline=ValidationPipeline(options, config, installer.path_to_tsc),
    )
    return await runner.run(catalog, typings)
