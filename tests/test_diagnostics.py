"""Tests for picobuild.diagnostics sinks."""

from __future__ import annotations

import logging

from picobuild.diagnostics import CollectingSink, FanoutSink, LoggingSink, QueueSink
from picobuild.models import Diagnostic, Severity


def _event(code: str, severity: Severity = Severity.WARNING) -> Diagnostic:
    return Diagnostic(severity=severity, code=code, message=f"{code} happened")


def test_diagnostic_format_names_severity_and_code() -> None:
    assert _event("binary-file").format() == "warning: [binary-file] binary-file happened"


def test_queue_sink_drains_in_order_and_keeps_bounded_history() -> None:
    sink = QueueSink(history=2)
    for code in ("a", "b", "c"):
        sink(_event(code))

    assert [event.code for event in sink.drain()] == ["a", "b", "c"]
    assert sink.drain() == []
    assert [event.code for event in sink.history] == ["b", "c"]


def test_logging_sink_maps_severity_to_level(caplog) -> None:
    logger = logging.getLogger("tests.sink")
    sink = LoggingSink(logger)

    with caplog.at_level(logging.DEBUG, logger="tests.sink"):
        sink(_event("note", Severity.INFO))
        sink(_event("odd", Severity.WARNING))
        sink(_event("bad", Severity.ERROR))

    assert [record.levelno for record in caplog.records] == [logging.INFO, logging.WARNING, logging.ERROR]
    assert "[bad]" in caplog.records[-1].getMessage()


def test_logging_sink_with_fixed_level(caplog) -> None:
    logger = logging.getLogger("tests.fixed")
    sink = LoggingSink(logger, level=logging.DEBUG)

    with caplog.at_level(logging.DEBUG, logger="tests.fixed"):
        sink(_event("bad", Severity.ERROR))

    assert [record.levelno for record in caplog.records] == [logging.DEBUG]


def test_fanout_sink_skips_missing_sinks() -> None:
    first = CollectingSink()
    second = CollectingSink()
    fanout = FanoutSink([first, None, second])

    fanout(_event("x"))

    assert first.codes() == ["x"]
    assert second.codes() == ["x"]
