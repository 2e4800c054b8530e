"""Focus timer state machine with session persistence."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from focusflow.core.config import TimerConfig
from focusflow.core.errors import FocusFlowError, NotFound, StorageError, ValidationError
from focusflow.habits.models import FocusSession
from focusflow.storage.repository import HabitRepository

logger = logging.getLogger(__name__)

UNSAVED_SESSION_WARNING = "Focus session could not be saved; it will not count toward today's total"


class TimerState(str, Enum):
    """Current state of the focus timer."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    BREAK = "break"


TickCallback = Callable[[], Awaitable[None]]


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    """Creates cancelable repeating callbacks."""

    def every(self, interval: float, callback: TickCallback) -> TickHandle: ...


class RepeatingTask:
    """Runs ``callback`` every ``interval`` seconds on the event loop until cancelled.

    Cancelling from inside the callback only stops further ticks; the
    callback in progress is allowed to finish its own awaits.
    """

    def __init__(self, interval: float, callback: TickCallback):
        self.interval = interval
        self.callback = callback
        self._cancelled = False
        self._task = asyncio.create_task(self._run())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not asyncio.current_task():
            self._task.cancel()

    async def _run(self) -> None:
        try:
            while not self._cancelled:
                await asyncio.sleep(self.interval)
                if self._cancelled:
                    break
                await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in timer tick loop: {e}")


class AsyncioTickScheduler:
    """Default scheduler backed by ``asyncio`` tasks."""

    def every(self, interval: float, callback: TickCallback) -> RepeatingTask:
        return RepeatingTask(interval, callback)


@dataclass(frozen=True)
class TimerStatus:
    """Read-only view of the timer."""
    state: TimerState
    minutes: int
    seconds: int
    duration_minutes: int
    break_minutes: int
    session_id: str | None = None
    warning: str | None = None

    @property
    def time_display(self) -> str:
        """Format time remaining as MM:SS."""
        return f"{self.minutes:02d}:{self.seconds:02d}"


class FocusTimer:
    """Countdown timer with idle, running, paused and break states.

    Usage:
        timer = FocusTimer(repository, TimerConfig(focus_minutes=25))
        timer.on_tick = lambda status: print(status.time_display)
        timer.on_focus_minutes = lambda total: print(f"{total} min today")

        await timer.start()
        await timer.pause()
        await timer.resume()
        await timer.reset()       # abandon, deletes the session
        await timer.skip_break()
    """

    def __init__(
        self,
        repository: HabitRepository,
        config: TimerConfig | None = None,
        scheduler: TickScheduler | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.config = config or TimerConfig()
        self.breaks_enabled = self.config.breaks_enabled
        self._scheduler = scheduler or AsyncioTickScheduler()
        self._clock = clock

        self._state = TimerState.IDLE
        self._duration = self.config.focus_minutes
        self._break_duration = self.config.break_minutes
        self._minutes = self._duration
        self._seconds = 0
        self._phase_seconds = self._duration * 60
        self._handle: TickHandle | None = None

        # Session bookkeeping for the current run
        self._run = 0
        self._session_id: str | None = None
        self._session_minutes = self._duration
        self._pending_create: asyncio.Task | None = None
        self.warning: str | None = None

        self._today_sessions: list[FocusSession] = []

        # Callbacks
        self.on_tick: Callable[[TimerStatus], Awaitable[None] | None] | None = None
        self.on_state_change: Callable[[TimerState], None] | None = None
        self.on_complete: Callable[[int], Awaitable[None] | None] | None = None
        self.on_focus_minutes: Callable[[int], Awaitable[None] | None] | None = None

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def minutes(self) -> int:
        return self._minutes

    @property
    def seconds(self) -> int:
        return self._seconds

    @property
    def duration_minutes(self) -> int:
        return self._duration

    @property
    def break_duration_minutes(self) -> int:
        return self._break_duration

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def time_display(self) -> str:
        return self.status.time_display

    @property
    def progress_percent(self) -> float:
        """Progress through the current countdown (0-100)."""
        remaining = self._minutes * 60 + self._seconds
        elapsed = self._phase_seconds - remaining
        return min(100.0, max(0.0, elapsed / self._phase_seconds * 100))

    @property
    def today_sessions(self) -> list[FocusSession]:
        """Completed sessions started today, newest first."""
        return list(self._today_sessions)

    @property
    def focus_minutes_today(self) -> int:
        return sum(s.duration_minutes for s in self._today_sessions)

    @property
    def status(self) -> TimerStatus:
        return TimerStatus(
            state=self._state,
            minutes=self._minutes,
            seconds=self._seconds,
            duration_minutes=self._duration,
            break_minutes=self._break_duration,
            session_id=self._session_id,
            warning=self.warning,
        )

    # Configuration, accepted only while idle

    def set_duration(self, minutes: int) -> bool:
        """Change the focus duration. Returns False when not idle."""
        if minutes < 1:
            raise ValidationError(f"Focus duration must be at least 1 minute, got {minutes}")
        if self._state is not TimerState.IDLE:
            logger.debug(f"Ignoring duration change while {self._state.value}")
            return False

        self._duration = minutes
        self._load_countdown(minutes)
        return True

    def set_break_duration(self, minutes: int) -> bool:
        """Change the break duration. Returns False when not idle."""
        if minutes < 1:
            raise ValidationError(f"Break duration must be at least 1 minute, got {minutes}")
        if self._state is not TimerState.IDLE:
            logger.debug(f"Ignoring break duration change while {self._state.value}")
            return False

        self._break_duration = minutes
        return True

    # Transitions

    async def start(self) -> None:
        """Start a new focus session from idle.

        If the session cannot be saved the timer still runs; ``warning`` is
        set and the completed session will not be recorded.
        """
        if self._state is not TimerState.IDLE:
            logger.debug(f"Ignoring start while {self._state.value}")
            return

        self._run += 1
        self.warning = None
        self._session_id = None
        self._session_minutes = self._duration
        self._load_countdown(self._duration)

        self._pending_create = asyncio.create_task(self._create_session(self._run, self._duration))
        self._transition(TimerState.RUNNING)
        logger.info(f"Focus session started: {self._duration} min")

        await asyncio.shield(self._pending_create)

    async def pause(self) -> None:
        """Freeze the countdown."""
        if self._state is not TimerState.RUNNING:
            return
        self._transition(TimerState.PAUSED)
        logger.info("Focus timer paused")

    async def resume(self) -> None:
        """Continue a paused countdown."""
        if self._state is not TimerState.PAUSED:
            return
        self._transition(TimerState.RUNNING)
        logger.info("Focus timer resumed")

    async def reset(self) -> None:
        """Abandon the current session and return to idle.

        The in-progress session is deleted once any in-flight creation has
        finished. From a break this behaves like ``skip_break``.
        """
        if self._state is TimerState.IDLE:
            return
        if self._state is TimerState.BREAK:
            await self.skip_break()
            return

        self._transition(TimerState.IDLE)
        self._load_countdown(self._duration)

        session_id = await self._take_session_id()
        if session_id:
            await self.repository.delete_focus_session(session_id)
        logger.info("Focus session abandoned")

    async def skip_break(self) -> None:
        """End the break early."""
        if self._state is not TimerState.BREAK:
            return
        self._transition(TimerState.IDLE)
        self._load_countdown(self._duration)
        logger.info("Break skipped")

    async def shutdown(self) -> None:
        """Stop ticking without touching the session."""
        if self._handle:
            self._handle.cancel()
            self._handle = None

    async def tick(self) -> None:
        """Advance the countdown by one second.

        Reaching 00:00 completes the focus session or ends the break within
        this same tick.
        """
        if self._state not in (TimerState.RUNNING, TimerState.BREAK):
            return

        if self._seconds == 0:
            if self._minutes > 0:
                self._minutes -= 1
                self._seconds = 59
        else:
            self._seconds -= 1

        await self._emit(self.on_tick, self.status)

        if self._minutes == 0 and self._seconds == 0:
            if self._state is TimerState.RUNNING:
                await self._complete_session()
            else:
                self._transition(TimerState.IDLE)
                self._load_countdown(self._duration)
                logger.info("Break complete")

    async def refresh_today(self) -> int:
        """Reload today's completed sessions and return the focus-minute total."""
        sessions = await self.repository.list_today_focus_sessions(self._clock())
        self._today_sessions = [s for s in sessions if s.completed]
        total = self.focus_minutes_today
        await self._emit(self.on_focus_minutes, total)
        return total

    # Internals

    def _load_countdown(self, minutes: int) -> None:
        self._minutes = minutes
        self._seconds = 0
        self._phase_seconds = minutes * 60

    def _transition(self, new_state: TimerState) -> None:
        # Every transition tears down the current tick handle
        if self._handle:
            self._handle.cancel()
            self._handle = None

        previous = self._state
        self._state = new_state

        if new_state in (TimerState.RUNNING, TimerState.BREAK):
            self._handle = self._scheduler.every(self.config.tick_seconds, self.tick)

        if previous is not new_state and self.on_state_change:
            try:
                self.on_state_change(new_state)
            except Exception as e:
                logger.error(f"Error in on_state_change callback: {e}")

    async def _create_session(self, run: int, minutes: int) -> str | None:
        try:
            session_id = await self.repository.create_focus_session(minutes)
        except FocusFlowError as e:
            logger.warning(f"Failed to create focus session: {e}")
            if run == self._run:
                self.warning = UNSAVED_SESSION_WARNING
            return None

        if run == self._run and self._state in (TimerState.RUNNING, TimerState.PAUSED):
            self._session_id = session_id
        return session_id

    async def _take_session_id(self) -> str | None:
        """Detach the current session id, waiting for an in-flight creation."""
        pending, self._pending_create = self._pending_create, None
        session_id, self._session_id = self._session_id, None
        if pending is not None:
            session_id = await asyncio.shield(pending)
        return session_id

    async def _complete_session(self) -> None:
        minutes = self._session_minutes

        if self.breaks_enabled:
            self._transition(TimerState.BREAK)
            self._load_countdown(self._break_duration)
        else:
            self._transition(TimerState.IDLE)
            self._load_countdown(self._duration)

        session_id = await self._take_session_id()
        if session_id:
            try:
                await self.repository.complete_focus_session(session_id)
                logger.info(f"Focus session complete: {minutes} min")
            except (StorageError, NotFound) as e:
                logger.error(f"Failed to record completed focus session: {e}")
                self.warning = UNSAVED_SESSION_WARNING
        else:
            logger.warning("Focus session finished without a saved record")

        try:
            await self.refresh_today()
        except StorageError as e:
            logger.error(f"Failed to refresh today's focus sessions: {e}")

        await self._emit(self.on_complete, minutes)

    async def _emit(self, callback: Callable[..., Any] | None, *args: Any) -> None:
        if not callback:
            return
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Error in timer callback: {e}")
