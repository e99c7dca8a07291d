"""Tests for progress reporting and the retry helper."""

from unittest.mock import AsyncMock, Mock, call, patch

import pytest

from sectioncapture.capture.progress import ProgressHub, ProgressReporter
from sectioncapture.capture.retry import with_retry
from sectioncapture.models.capture_result import CapturePhase, CaptureProgress


class TestProgressReporter:
    """Tests for ProgressReporter."""

    def test_emit_notifies_callback(self):
        """Test the constructor callback receives events."""
        received = []
        reporter = ProgressReporter(received.append)
        reporter.emit(CapturePhase.SCROLLING, 20, "Scrolling")
        assert len(received) == 1
        assert received[0].phase == CapturePhase.SCROLLING
        assert received[0].percent == 20
        assert received[0].message == "Scrolling"

    def test_percent_monotonic(self):
        """Test a lower percent is reported at the previous value."""
        reporter = ProgressReporter()
        reporter.emit(CapturePhase.CAPTURING, 60)
        event = reporter.emit(CapturePhase.SECTIONS, 40)
        assert event.percent == 60
        assert reporter.percent == 60

    def test_percent_clamped(self):
        """Test percentages are clamped to 0-100."""
        reporter = ProgressReporter()
        assert reporter.emit(CapturePhase.INITIALIZING, -5).percent == 0
        assert reporter.emit(CapturePhase.COMPLETE, 140).percent == 100

    def test_failed_exempt_from_monotonic(self):
        """Test the failed phase can report a lower percent."""
        reporter = ProgressReporter()
        reporter.emit(CapturePhase.CAPTURING, 60)
        event = reporter.emit(CapturePhase.FAILED, 0, "boom")
        assert event.percent == 0
        assert reporter.percent == 60

    def test_section_counters(self):
        """Test section counters are carried on the event."""
        reporter = ProgressReporter()
        event = reporter.emit(CapturePhase.SECTIONS, 70, current_section=2, total_sections=5)
        assert (event.current_section, event.total_sections) == (2, 5)

    def test_history(self):
        """Test every event is kept in order."""
        reporter = ProgressReporter()
        for percent in (10, 20, 30):
            reporter.emit(CapturePhase.SCROLLING, percent)
        assert [e.percent for e in reporter.history] == [10, 20, 30]

    def test_subscriber_error_ignored(self):
        """Test a raising subscriber does not stop later ones."""
        reporter = ProgressReporter(Mock(side_effect=RuntimeError("bad listener")))
        received = []
        reporter.subscribe(received.append)
        reporter.emit(CapturePhase.SCROLLING, 20)
        assert len(received) == 1

    def test_unsubscribe(self):
        """Test unsubscribed callbacks stop receiving events."""
        reporter = ProgressReporter()
        received = []
        unsubscribe = reporter.subscribe(received.append)
        reporter.emit(CapturePhase.SCROLLING, 20)
        unsubscribe()
        unsubscribe()
        reporter.emit(CapturePhase.SCROLLING, 30)
        assert len(received) == 1


class TestProgressHub:
    """Tests for ProgressHub."""

    def _event(self, percent: int) -> CaptureProgress:
        return CaptureProgress(phase=CapturePhase.CAPTURING, percent=percent)

    def test_publish_per_website(self):
        """Test events only reach the website's subscribers."""
        hub = ProgressHub()
        acme, other = [], []
        hub.subscribe("acme", acme.append)
        hub.subscribe("other", other.append)
        hub.publish("acme", self._event(40))
        assert [e.percent for e in acme] == [40]
        assert other == []

    def test_late_subscriber_gets_latest(self):
        """Test subscribing replays the latest event."""
        hub = ProgressHub()
        hub.publish("acme", self._event(40))
        hub.publish("acme", self._event(65))
        received = []
        hub.subscribe("acme", received.append)
        assert [e.percent for e in received] == [65]
        assert hub.latest("acme").percent == 65

    def test_clear(self):
        """Test clear drops the latest event and subscribers."""
        hub = ProgressHub()
        received = []
        hub.subscribe("acme", received.append)
        hub.publish("acme", self._event(10))
        hub.clear("acme")
        hub.publish("acme", self._event(20))
        assert len(received) == 1
        assert hub.latest("acme").percent == 20

    def test_unsubscribe(self):
        """Test unsubscribe detaches the callback."""
        hub = ProgressHub()
        received = []
        unsubscribe = hub.subscribe("acme", received.append)
        unsubscribe()
        hub.publish("acme", self._event(10))
        assert received == []

    def test_publisher_feeds_reporter(self):
        """Test a hub publisher works as a reporter callback."""
        hub = ProgressHub()
        reporter = ProgressReporter(hub.publisher("acme"))
        reporter.emit(CapturePhase.COMPLETE, 100, "done")
        assert hub.latest("acme").phase == CapturePhase.COMPLETE


class TestWithRetry:
    """Tests for the retry helper."""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        """Test a successful operation runs once."""
        operation = AsyncMock(return_value="ok")
        result = await with_retry(operation, 3, "Navigation")
        assert result.success is True
        assert result.value == "ok"
        assert result.attempts == 1
        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retries_with_linear_backoff(self):
        """Test failures back off 1s, then 2s, before succeeding."""
        operation = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])
        with patch("sectioncapture.capture.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await with_retry(operation, 3, "Navigation")
        assert result.success is True
        assert result.attempts == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_exhausted_retries(self):
        """Test the final error message after every attempt fails."""
        operation = AsyncMock(side_effect=TimeoutError("net::ERR_TIMED_OUT"))
        with patch("sectioncapture.capture.retry.asyncio.sleep", new_callable=AsyncMock):
            result = await with_retry(operation, 3, "Page navigation")
        assert result.success is False
        assert result.value is None
        assert result.error == "Page navigation failed after 3 attempts: net::ERR_TIMED_OUT"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_zero_retries_still_attempts_once(self):
        """Test max_retries below one still makes a single attempt."""
        operation = AsyncMock(side_effect=RuntimeError("down"))
        result = await with_retry(operation, 0, "Launch")
        assert result.attempts == 1
        assert result.error == "Launch failed after 1 attempts: down"
