"""Collects per-package failures and renders the batch report."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader

from .constants import REPORT_TEMPLATE
from .errors import BatchFailedError, TesterError
from .packages import Package

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchFailure:
    """A failed package and the message of the stage that failed it."""

    package: Package
    error: TesterError


class ErrorAggregator:
    """Append-only collection of failures from concurrently running tasks.

    Failures may arrive in any order; the report is sorted by package.
    """

    def __init__(self) -> None:
        self._failures: List[BatchFailure] = []
        template_dir = Path(__file__).parent
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.template = self.env.get_template(REPORT_TEMPLATE)

    def add(self, package: Package, error: TesterError) -> None:
        self._failures.append(BatchFailure(package=package, error=error))

    def __len__(self) -> int:
        return len(self._failures)

    @property
    def has_failures(self) -> bool:
        return bool(self._failures)

    def sorted_failures(self) -> List[BatchFailure]:
        return sorted(self._failures, key=lambda f: f.package.sort_key)

    def render(self) -> str:
        """Render the sorted failures; an empty string when nothing failed."""
        if not self._failures:
            return ""
        return self.template.render(failures=self.sorted_failures())

    def raise_if_failed(self) -> None:
        """Log the full report, then fail the batch if any package failed.

        Raises:
            BatchFailedError: If at least one failure was collected.
        """
        if not self._failures:
            return
        logger.error(self.render())
        raise BatchFailedError(failure_count=len(self._failures))
