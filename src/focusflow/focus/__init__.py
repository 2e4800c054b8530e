"""Focus timer and daily reminders."""

from focusflow.focus.timer import (
    AsyncioTickScheduler,
    FocusTimer,
    RepeatingTask,
    TickScheduler,
    TimerState,
    TimerStatus,
)
from focusflow.focus.history import FocusHistory, focus_history
from focusflow.focus.reminders import ReminderScheduler

__all__ = [
    "AsyncioTickScheduler",
    "FocusTimer",
    "RepeatingTask",
    "TickScheduler",
    "TimerState",
    "TimerStatus",
    "ReminderScheduler",
    "FocusHistory",
    "focus_history",
]
