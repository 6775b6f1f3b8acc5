"""Tests for LogScanner window fetching and failure absorption."""

import threading

import httpx
import pytest

from completion_watcher.adapters.log_scanner import LogScanner, ScanReport
from completion_watcher.domain.exceptions import LogSourceError, RateLimitError
from completion_watcher.domain.models import ConfirmationLevel
from tests.conftest import UNRELATED_LINES, StubLogSource, event_line


def _source() -> StubLogSource:
    return StubLogSource(
        {
            "sig-3": [event_line()],
            "sig-2": UNRELATED_LINES,
            "sig-1": ["Program log: oldest"],
        }
    )


def test_fetch_recent_returns_containers_in_listing_order() -> None:
    source = _source()
    scanner = LogScanner(source)

    containers = scanner.fetch_recent(
        "Emitter111", window_size=50, confirmation_level=ConfirmationLevel.FINALIZED
    )

    assert [c.container_id for c in containers] == ["sig-3", "sig-2", "sig-1"]
    assert containers[1].log_lines == UNRELATED_LINES
    assert source.list_calls == [("Emitter111", 50)]
    assert source.fetch_calls == [
        ("sig-3", ConfirmationLevel.FINALIZED),
        ("sig-2", ConfirmationLevel.FINALIZED),
        ("sig-1", ConfirmationLevel.FINALIZED),
    ]


def test_window_size_bounds_the_scan() -> None:
    source = _source()

    containers = LogScanner(source).fetch_recent("addr", window_size=2)

    assert [c.container_id for c in containers] == ["sig-3", "sig-2"]
    assert source.list_calls == [("addr", 2)]


def test_missing_containers_are_skipped() -> None:
    source = _source()
    source.missing.add("sig-2")
    report = ScanReport()

    containers = LogScanner(source).fetch_recent("addr", window_size=10, report=report)

    assert [c.container_id for c in containers] == ["sig-3", "sig-1"]
    assert report.missing == 1
    assert report.fetched == 2
    assert not report.failed


@pytest.mark.parametrize(
    "error",
    [LogSourceError("node unavailable"), httpx.ConnectError("refused"), KeyError("signature")],
)
def test_listing_failure_degrades_to_empty_scan(error: Exception) -> None:
    source = _source()
    source.list_errors.append(error)
    report = ScanReport()

    containers = LogScanner(source).fetch_recent("addr", window_size=10, report=report)

    assert containers == []
    assert report.failed
    assert type(error).__name__ in (report.error or "")
    assert source.fetch_calls == []


def test_fetch_failure_degrades_to_empty_scan() -> None:
    source = _source()
    source.fetch_errors["sig-2"] = LogSourceError("timeout")
    report = ScanReport()

    containers = LogScanner(source).fetch_recent("addr", window_size=10, report=report)

    assert containers == []
    assert report.failed
    assert [call[0] for call in source.fetch_calls] == ["sig-3", "sig-2"]


def test_lazy_scan_yields_containers_before_a_failure() -> None:
    source = _source()
    source.fetch_errors["sig-2"] = LogSourceError("timeout")
    report = ScanReport()

    seen = [
        c.container_id
        for c in LogScanner(source).iter_recent(
            "addr",
            window_size=10,
            confirmation_level=ConfirmationLevel.CONFIRMED,
            report=report,
        )
    ]

    assert seen == ["sig-3"]
    assert report.failed


def test_rate_limit_hint_is_recorded() -> None:
    source = _source()
    source.list_errors.append(RateLimitError(retry_after=7.0))
    report = ScanReport()

    LogScanner(source).fetch_recent("addr", window_size=10, report=report)

    assert report.retry_after == 7.0


def test_cancellation_stops_network_calls() -> None:
    source = _source()
    cancel = threading.Event()
    report = ScanReport()
    scanner = LogScanner(source)

    iterator = scanner.iter_recent(
        "addr",
        window_size=10,
        confirmation_level=ConfirmationLevel.CONFIRMED,
        report=report,
        cancel_event=cancel,
    )
    first = next(iterator)
    cancel.set()
    remaining = list(iterator)

    assert first.container_id == "sig-3"
    assert remaining == []
    assert report.cancelled
    assert len(source.fetch_calls) == 1


def test_cancelled_before_start_issues_no_calls() -> None:
    source = _source()
    cancel = threading.Event()
    cancel.set()

    containers = LogScanner(source).fetch_recent(
        "addr", window_size=10, cancel_event=cancel
    )

    assert containers == []
    assert source.list_calls == []


def test_per_container_line_ceiling() -> None:
    lines = [f"Program log: line {i}" for i in range(10)] + ["x" * 100]
    source = StubLogSource({"sig-big": lines})
    report = ScanReport()

    containers = LogScanner(
        source, max_lines_per_container=4, max_line_length=50
    ).fetch_recent("addr", window_size=1, report=report)

    assert containers[0].log_lines == lines[:4]
    assert containers[0].lines_truncated == 7
    assert report.lines_truncated == 7


def test_invalid_construction_is_rejected() -> None:
    with pytest.raises(ValueError):
        LogScanner(StubLogSource(), max_lines_per_container=0)
    with pytest.raises(ValueError):
        LogScanner(StubLogSource(), max_line_length=0)
