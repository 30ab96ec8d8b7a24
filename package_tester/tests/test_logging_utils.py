"""Tests for per-task log buffering."""

import logging

from ..logging_utils import TaskLog


def test_records_are_held_until_flushed(caplog):
    """Nothing reaches the console before the task flushes."""
    task_log = TaskLog("foo")

    with caplog.at_level(logging.DEBUG):
        task_log.info("Running: node tsc.js")
        task_log.error("index.d.ts(1,1): error")
        assert caplog.records == []
        assert task_log.messages() == ["Running: node tsc.js", "index.d.ts(1,1): error"]
        assert task_log.has_errors()

        task_log.flush_to(logging.getLogger("package_tester.test"))

    assert [r.getMessage() for r in caplog.records] == ["\tRunning: node tsc.js", "\tindex.d.ts(1,1): error"]
    assert [r.levelno for r in caplog.records] == [logging.INFO, logging.ERROR]
    assert task_log.messages() == []


def test_multiline_messages_indented_per_line(caplog):
    """Every line of a multi-line message gets the indent."""
    task_log = TaskLog("foo")
    task_log.info("line one\nline two")

    with caplog.at_level(logging.INFO):
        task_log.flush_to(logging.getLogger("package_tester.test"), indent="  ")

    assert caplog.records[0].getMessage() == "  line one\n  line two"


def test_percent_signs_are_not_formatted(caplog):
    """Compiler output containing % is logged verbatim."""
    task_log = TaskLog("foo")
    task_log.info("100% done %s")

    with caplog.at_level(logging.INFO):
        task_log.flush_to(logging.getLogger("package_tester.test"))

    assert caplog.records[0].getMessage() == "\t100% done %s"


def test_task_logs_are_independent():
    """Two tasks never see each other's records."""
    first, second = TaskLog("a"), TaskLog("b")
    first.info("from a")
    second.info("from b")

    assert first.messages() == ["from a"]
    assert second.messages() == ["from b"]
    assert not first.has_errors()
    first.close()
    second.close()


def test_task_logs_are_not_registered_globally():
    """Task loggers are not kept alive by the logging module after the task ends."""
    known = set(logging.Logger.manager.loggerDict)

    for i in range(50):
        task_log = TaskLog(f"pkg{i}")
        task_log.info("compiled")
        task_log.flush_to(logging.getLogger("package_tester.test"))

    assert set(logging.Logger.manager.loggerDict) - known <= {"package_tester.test"}
