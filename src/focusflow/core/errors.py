"""Error taxonomy shared by the engines and the repository adapters."""

from __future__ import annotations


class FocusFlowError(Exception):
    """Base class for all FocusFlow errors."""


class NotFound(FocusFlowError):
    """A referenced habit, completion or session does not exist."""


class StorageError(FocusFlowError):
    """A repository or local-state call failed."""


class Busy(FocusFlowError):
    """A toggle for the same habit is already in flight."""

    def __init__(self, habit_id: str):
        super().__init__(f"Toggle already in progress for habit {habit_id}")
        self.habit_id = habit_id


class ValidationError(FocusFlowError):
    """Input rejected before reaching storage (e.g. non-positive target)."""
