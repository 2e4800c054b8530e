"""FocusFlow - habits, streaks, achievements and a focus timer."""

__version__ = "0.3.0"
