import asyncio
import logging
import time
from contextlib import contextmanager
from enum import Enum
from uuid import uuid4

from mock_interview.client.liveness import AsyncioScheduler, LivenessDetector, Scheduler, VideoSurface
from mock_interview.core.errors import InterviewError, ProviderError, SessionStoreError

logger = logging.getLogger(__name__)


class ControllerState(str, Enum):
    IDLE = "idle"
    CREATED = "created"
    ACTIVE = "active"
    ENDING = "ending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


TRANSITIONS = {
    ControllerState.IDLE: {ControllerState.CREATED, ControllerState.CANCELLED, ControllerState.ERROR},
    ControllerState.CREATED: {ControllerState.ACTIVE, ControllerState.CANCELLED, ControllerState.ERROR},
    ControllerState.ACTIVE: {ControllerState.ENDING, ControllerState.ERROR},
    ControllerState.ENDING: {ControllerState.COMPLETED, ControllerState.ERROR},
    ControllerState.COMPLETED: set(),
    ControllerState.CANCELLED: set(),
    ControllerState.ERROR: set(),
}

TERMINAL_STATES = {ControllerState.COMPLETED, ControllerState.CANCELLED, ControllerState.ERROR}


class InvalidTransition(RuntimeError):
    pass


class SessionController:
    """Client-side owner of one interview attempt.

    Drives the provider conversation and the session row through
    idle -> created -> active -> ending -> completed. ``cancelled`` is only
    reachable before the conversation is confirmed live; ``error`` from any
    non-terminal state. Each transition type has an in-flight guard, so a
    button press racing a detector event collapses to one effect.

    A controller is single-use. Retrying after an error means building a new
    controller, which gets a fresh session id.
    """

    def __init__(
        self,
        provider,
        store,
        category: str,
        session_name: str,
        expected_duration_minutes: int,
        cv_context: str | None = None,
        clock=time.monotonic,
    ):
        self.provider = provider
        self.store = store
        self.category = category
        self.session_name = session_name
        self.expected_duration_minutes = expected_duration_minutes
        self.cv_context = cv_context
        self.clock = clock

        # Generated before any network call
        self.session_id = str(uuid4())
        self.state = ControllerState.IDLE
        self.history = [ControllerState.IDLE]

        self.conversation_id: str | None = None
        self.conversation_url: str | None = None
        self.started_at: float | None = None
        self.actual_duration_minutes: int | None = None
        self.end_reason: str | None = None
        self.error_message: str | None = None
        self.retryable = False

        self.detector: LivenessDetector | None = None

        self._in_flight: set[str] = set()
        self._cancel_requested = False
        self._row_written = False
        self._active_persisted = False
        self._tasks: set[asyncio.Task] = set()

    # State handling

    def is_in_flight(self, kind: str) -> bool:
        return kind in self._in_flight

    @contextmanager
    def _guard(self, kind: str):
        if kind in self._in_flight:
            yield False
            return
        self._in_flight.add(kind)
        try:
            yield True
        finally:
            self._in_flight.discard(kind)

    def _move(self, target: ControllerState):
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {target.value}")
        logger.info("Session %s: %s -> %s", self.session_id, self.state.value, target.value)
        self.state = target
        self.history.append(target)
        if target in TERMINAL_STATES and self.detector is not None:
            self.detector.detach()

    def _fail(self, message: str, retryable: bool = False):
        self.error_message = message
        self.retryable = retryable
        self._move(ControllerState.ERROR)

    async def _end_provider_conversation(self, reason: str):
        """Advisory: a failure here never blocks local finalisation."""
        if not self.conversation_id:
            return
        try:
            await asyncio.to_thread(self.provider.end_conversation, self.conversation_id, reason)
        except ProviderError as e:
            logger.warning("Could not end conversation %s: %s", self.conversation_id, e.message)

    async def _finish_cancel(self):
        self._move(ControllerState.CANCELLED)
        await self._end_provider_conversation("cancelled")
        try:
            await asyncio.to_thread(self.store.cancel_session, self.session_id)
        except SessionStoreError as e:
            logger.warning("Could not mark session %s cancelled: %s", self.session_id, e.message)

    async def _persist_active(self):
        try:
            await asyncio.to_thread(self.store.mark_active, self.session_id)
            self._active_persisted = True
        except SessionStoreError as e:
            logger.warning("Could not mark session %s active: %s", self.session_id, e.message)

    # Transitions

    async def start(self) -> bool:
        """idle -> created: create the conversation, then the session row."""
        with self._guard("create") as acquired:
            if not acquired or self.state != ControllerState.IDLE:
                return False

            self.error_message = None
            name = self.session_name.strip()
            if not name:
                self._fail("Please enter a session name.")
                return False

            try:
                conversation = await asyncio.to_thread(
                    self.provider.create_conversation,
                    self.category,
                    name,
                    self.expected_duration_minutes,
                    self.cv_context,
                )
            except InterviewError as e:
                logger.warning("Conversation creation failed: %s", e)
                self._fail(e.message, retryable=getattr(e, "retryable", False))
                return False

            self.conversation_id = conversation.conversation_id
            self.conversation_url = conversation.conversation_url

            if self.state != ControllerState.IDLE:
                # failed from outside while the provider was answering
                await self._end_provider_conversation("aborted")
                return False

            if self._cancel_requested:
                await self._end_provider_conversation("cancelled")
                self._move(ControllerState.CANCELLED)
                return False

            try:
                await asyncio.to_thread(
                    self.store.create_session,
                    self.session_id,
                    self.conversation_id,
                    self.category,
                    name,
                    self.expected_duration_minutes,
                )
            except SessionStoreError as e:
                logger.warning("Session row write failed: %s", e)
                await self._end_provider_conversation("session_store_failure")
                self._fail("Failed to save interview session. Please try again.", retryable=True)
                return False

            self._row_written = True
            if self.state != ControllerState.IDLE:
                return False
            if self._cancel_requested:
                # cancel() arrived while the row was being written
                await self._finish_cancel()
                return False
            self._move(ControllerState.CREATED)
            return True

    async def mark_started(self) -> bool:
        """created -> active, on a confirmed liveness start."""
        with self._guard("start") as acquired:
            if not acquired or self.state != ControllerState.CREATED:
                return False
            self.started_at = self.clock()
            self._move(ControllerState.ACTIVE)
            await self._persist_active()
            return True

    async def end(self, reason: str = "manual") -> bool:
        """active -> ending -> completed. Before start this is a cancel."""
        if self.state == ControllerState.CREATED:
            return await self.cancel()

        with self._guard("end") as acquired:
            if not acquired or self.state != ControllerState.ACTIVE:
                return False
            self._move(ControllerState.ENDING)

            await self._end_provider_conversation(reason)

            elapsed_minutes = int((self.clock() - self.started_at) // 60)
            minutes = max(1, elapsed_minutes)

            if not self._active_persisted:
                await self._persist_active()
            try:
                await asyncio.to_thread(
                    self.store.complete_session, self.session_id, minutes, reason
                )
            except SessionStoreError as e:
                logger.error("Could not save results for session %s: %s", self.session_id, e)
                self._fail("Failed to save interview results.", retryable=True)
                return False

            if self.state != ControllerState.ENDING:
                return False
            self.actual_duration_minutes = minutes
            self.end_reason = reason
            self._move(ControllerState.COMPLETED)
            return True

    async def cancel(self) -> bool:
        """idle|created -> cancelled. Nothing is written for the duration."""
        with self._guard("cancel") as acquired:
            if not acquired:
                return False

            if self.state == ControllerState.IDLE:
                if self.is_in_flight("create"):
                    # start() finishes the cancel at its next checkpoint
                    self._cancel_requested = True
                    return True
                self._move(ControllerState.CANCELLED)
                return True

            if self.state != ControllerState.CREATED:
                return False

            await self._finish_cancel()
            return True

    async def fail(self, message: str) -> bool:
        """Any non-terminal state -> error, for failures outside the controller."""
        if self.state in TERMINAL_STATES:
            return False
        self._fail(message)
        if self._row_written:
            try:
                await asyncio.to_thread(self.store.mark_error, self.session_id, message)
            except SessionStoreError as e:
                logger.warning("Could not mark session %s as error: %s", self.session_id, e.message)
        return True

    # Liveness wiring

    def attach_detector(
        self,
        surface: VideoSurface,
        scheduler: Scheduler | None = None,
        **timings,
    ) -> LivenessDetector:
        self.detector = LivenessDetector(
            surface,
            on_started=self._on_liveness_started,
            on_ended=self._on_liveness_ended,
            scheduler=scheduler or AsyncioScheduler(),
            **timings,
        )
        return self.detector

    def _on_liveness_started(self):
        self._spawn(self.mark_started())

    def _on_liveness_ended(self, reason: str):
        self._spawn(self.end(reason))

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self):
        """Wait for transitions triggered by the detector."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
