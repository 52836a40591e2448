"""Liveness detection for an embedded, uncooperative video surface.

The hosted conversation runs inside a surface we do not control. It offers no
reliable lifecycle callbacks, so start and end are inferred from untrusted
signals: provider-posted messages, polled media-element state, and the
surface closing. The detector turns them into two latched edge events,
``started`` then ``ended``, each fired at most once.

Usage::

    detector = LivenessDetector(surface, on_started, on_ended, AsyncioScheduler())
    detector.surface_loaded()
    ...
    detector.handle_message({"type": "conversation_started"})
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from mock_interview.core.config import settings

logger = logging.getLogger(__name__)

# HTMLMediaElement.HAVE_CURRENT_DATA
HAVE_CURRENT_DATA = 2

START_MESSAGES = {
    ("type", "conversation_started"),
    ("event", "conversation_started"),
    ("action", "session_started"),
}

END_MESSAGES = {
    ("type", "conversation_ended"),
    ("type", "call_ended"),
    ("event", "conversation_ended"),
    ("action", "session_ended"),
}


@dataclass
class MediaSnapshot:
    """State of one media element inside the surface at poll time."""

    ready_state: int
    paused: bool
    current_time: float

    @property
    def is_live(self) -> bool:
        return (
            self.ready_state >= HAVE_CURRENT_DATA
            and not self.paused
            and self.current_time > 0
        )


class VideoSurface(Protocol):
    def media_snapshots(self) -> list[MediaSnapshot]:
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Runs detector timers on the current event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)


def classify_message(data) -> str | None:
    if not isinstance(data, dict):
        return None
    pairs = {(key, data.get(key)) for key in ("type", "event", "action")}
    if pairs & START_MESSAGES:
        return "started"
    if pairs & END_MESSAGES:
        return "ended"
    return None


class LivenessDetector:
    """Infers conversation start and end from untrusted surface signals.

    Rules:
        - Signals before the surface loads, or within ``grace_period`` after
          it loads, are discarded.
        - ``started`` comes from an explicit provider message or from
          ``poll_confirmations`` consecutive polls that saw a live media
          element.
        - ``ended`` without a prior ``started`` is discarded.
        - ``ended`` sooner than ``min_session_duration`` after ``started`` is
          deferred until the guard elapses.
        - Both events latch; repeats are no-ops.

    There is no timeout. If nothing is ever detected the user ends the
    session by hand.
    """

    def __init__(
        self,
        surface: VideoSurface,
        on_started: Callable[[], None],
        on_ended: Callable[[str], None],
        scheduler: Scheduler,
        grace_period: float | None = None,
        poll_interval: float | None = None,
        poll_confirmations: int | None = None,
        min_session_duration: float | None = None,
    ):
        self.surface = surface
        self.on_started = on_started
        self.on_ended = on_ended
        self.scheduler = scheduler
        self.grace_period = settings.LIVENESS_GRACE_PERIOD if grace_period is None else grace_period
        self.poll_interval = settings.LIVENESS_POLL_INTERVAL if poll_interval is None else poll_interval
        self.poll_confirmations = max(
            1,
            settings.LIVENESS_POLL_CONFIRMATIONS if poll_confirmations is None else poll_confirmations,
        )
        self.min_session_duration = (
            settings.MIN_SESSION_DURATION if min_session_duration is None else min_session_duration
        )

        self.loaded_at: float | None = None
        self.started_at: float | None = None
        self.started = False
        self.ended = False
        self.end_reason: str | None = None

        self._attached = False
        self._positive_polls = 0
        self._poll_timer: TimerHandle | None = None
        self._end_timer: TimerHandle | None = None

    @property
    def end_pending(self) -> bool:
        return self._end_timer is not None

    def surface_loaded(self):
        """Start the grace period and begin polling. Reloads are ignored."""
        if self.loaded_at is not None:
            return
        self.loaded_at = self.scheduler.now()
        self._attached = True
        self._schedule_poll()
        logger.debug("Surface loaded at %.2f", self.loaded_at)

    def detach(self):
        self._attached = False
        for timer in (self._poll_timer, self._end_timer):
            if timer is not None:
                timer.cancel()
        self._poll_timer = None
        self._end_timer = None

    def in_grace_period(self) -> bool:
        if self.loaded_at is None:
            return True
        return self.scheduler.now() - self.loaded_at < self.grace_period

    # Signals

    def handle_message(self, data):
        kind = classify_message(data)
        if kind is None:
            return
        if self.in_grace_period():
            logger.debug("Discarding %s message inside grace period", kind)
            return
        if kind == "started":
            self._confirm_started("provider_event")
        else:
            self._signal_ended(data.get("reason") or "provider_event")

    def handle_surface_closed(self):
        self._signal_ended("surface_closed")

    def handle_leave_confirmation(self):
        self._signal_ended("user_leave")

    # Internals

    def _schedule_poll(self):
        self._poll_timer = self.scheduler.call_later(self.poll_interval, self._poll)

    def _poll(self):
        self._poll_timer = None
        if not self._attached or self.started or self.ended:
            return

        if not self.in_grace_period():
            if any(snapshot.is_live for snapshot in self.surface.media_snapshots()):
                self._positive_polls += 1
            else:
                self._positive_polls = 0

            if self._positive_polls >= self.poll_confirmations:
                self._confirm_started("media_playback")
                return

        self._schedule_poll()

    def _confirm_started(self, source: str):
        if self.started or not self._attached:
            return
        self.started = True
        self.started_at = self.scheduler.now()
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None
        logger.info("Conversation started (%s)", source)
        self.on_started()

    def _signal_ended(self, reason: str):
        if not self._attached or self.in_grace_period():
            return
        if not self.started:
            logger.debug("Discarding end signal %s before start", reason)
            return
        if self.ended or self.end_pending:
            return

        remaining = self.started_at + self.min_session_duration - self.scheduler.now()
        if remaining > 0:
            logger.debug("Deferring end signal %s by %.2fs", reason, remaining)
            self._end_timer = self.scheduler.call_later(remaining, lambda: self._fire_ended(reason))
            return
        self._fire_ended(reason)

    def _fire_ended(self, reason: str):
        self._end_timer = None
        if self.ended:
            return
        self.ended = True
        self.end_reason = reason
        logger.info("Conversation ended (%s)", reason)
        self.on_ended(reason)
