"""Capture progress events — observer list with monotonic percentages."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Optional

from sectioncapture.models.capture_result import CapturePhase, CaptureProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[CaptureProgress], None]


class ProgressReporter:
    """Fans progress events out to subscribers.

    Percentages are clamped to 0-100 and never move backwards: an event with a
    lower percent than the last one is reported at the last percent. The
    terminal ``failed`` phase is exempt so it can be reported at any point.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._subscribers: list[ProgressCallback] = []
        self.history: list[CaptureProgress] = []
        self._last_percent = 0
        if callback is not None:
            self.subscribe(callback)

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def percent(self) -> int:
        return self._last_percent

    def emit(
        self,
        phase: CapturePhase,
        percent: float,
        message: str = "",
        current_section: Optional[int] = None,
        total_sections: Optional[int] = None,
    ) -> CaptureProgress:
        value = max(0, min(100, round(percent)))
        if phase != CapturePhase.FAILED:
            value = max(value, self._last_percent)
            self._last_percent = value

        event = CaptureProgress(
            phase=phase,
            percent=value,
            message=message,
            current_section=current_section,
            total_sections=total_sections,
        )
        self.history.append(event)
        logger.debug("[%s %d%%] %s", phase.value, value, message)

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                logger.warning("Progress subscriber raised: %s", e)
        return event


class ProgressHub:
    """Per-website publish/subscribe registry of capture progress."""

    def __init__(self):
        self._subscribers: dict[str, list[ProgressCallback]] = defaultdict(list)
        self._latest: dict[str, CaptureProgress] = {}

    def subscribe(self, website_id: str, callback: ProgressCallback) -> Callable[[], None]:
        self._subscribers[website_id].append(callback)
        # Late subscribers immediately see where the capture is
        if website_id in self._latest:
            callback(self._latest[website_id])

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(website_id, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(website_id, None)

        return unsubscribe

    def publish(self, website_id: str, progress: CaptureProgress) -> None:
        self._latest[website_id] = progress
        for callback in list(self._subscribers.get(website_id, [])):
            try:
                callback(progress)
            except Exception as e:
                logger.warning("Progress subscriber for %s raised: %s", website_id, e)

    def latest(self, website_id: str) -> CaptureProgress | None:
        return self._latest.get(website_id)

    def clear(self, website_id: str) -> None:
        self._latest.pop(website_id, None)
        self._subscribers.pop(website_id, None)

    def publisher(self, website_id: str) -> ProgressCallback:
        """Callback suitable for ``on_progress`` that publishes to this hub."""
        return lambda progress: self.publish(website_id, progress)
