"""Per-task log buffering.

Concurrent tasks each write into their own buffer; the buffer is released to the
console as one contiguous block when the task finishes.
"""

from __future__ import annotations

import logging
import logging.handlers
from typing import List


class TaskLogBuffer(logging.handlers.BufferingHandler):
    """Holds every record until explicitly flushed."""

    def __init__(self) -> None:
        super().__init__(capacity=0)

    def shouldFlush(self, record: logging.LogRecord) -> bool:  # noqa: N802
        return False


class TaskLog:
    """A logger whose output is held back until the owning task completes."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.handler = TaskLogBuffer()
        self.logger = logging.Logger(f"{__name__}.task", logging.DEBUG)
        self.logger.propagate = False
        self.logger.addHandler(self.handler)

    def info(self, msg: str, *args) -> None:
        self.logger.info(msg, *args)

    def error(self, msg: str, *args) -> None:
        self.logger.error(msg, *args)

    def messages(self) -> List[str]:
        return [record.getMessage() for record in self.handler.buffer]

    def has_errors(self) -> bool:
        return any(record.levelno >= logging.ERROR for record in self.handler.buffer)

    def flush_to(self, target: logging.Logger, indent: str = "\t") -> None:
        """Re-emit buffered records through ``target`` and release this log.

        Each line of each message is prefixed with ``indent``. Flushing runs
        without yielding to the event loop, so the block is never interleaved
        with another task's output.
        """
        for record in self.handler.buffer:
            text = "\n".join(indent + line for line in record.getMessage().splitlines())
            target.log(record.levelno, "%s", text)
        self.handler.flush()
        self.close()

    def close(self) -> None:
        self.logger.removeHandler(self.handler)
        self.handler.close()
