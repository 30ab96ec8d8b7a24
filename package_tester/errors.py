"""Exception and failure types shared by the package tester."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TesterError:
    """A per-package validation failure.

    Stages return one of these (or ``None`` when they pass) instead of raising,
    so a failing package never interrupts its siblings.
    """

    message: str


class ValidationError(Exception):
    """Raised by a configuration or manifest check when a package is invalid.

    The pipeline converts it into a :class:`TesterError`.
    """

    def __init__(self, message: str = "A validation error occurred."):
        """Initialize the ValidationError with a custom message.

        Args:
            message: The error message to display.
        """
        super().__init__(message)
        self.message = message


class CommandError(Exception):
    """A subprocess exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, stdout: str = "", stderr: str = ""):
        """Initialize the CommandError.

        Args:
            command: The command line that was run.
            returncode: Exit status of the process.
            stdout: Captured standard output.
            stderr: Captured standard error.
        """
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.message = f"Command failed: {command} (exit code {returncode})"
        super().__init__(self.message)


class ConfigError(ValueError):
    """Malformed tester configuration or command-line value."""


class BatchFailedError(Exception):
    """Raised once, after the report is rendered, when any package failed."""

    def __init__(self, message: str = "There was a test failure.", failure_count: int = 0):
        super().__init__(message)
        self.message = message
        self.failure_count = failure_count
