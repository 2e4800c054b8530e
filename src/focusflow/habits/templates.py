"""Ready-made habit presets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from focusflow.core.errors import NotFound
from focusflow.habits.models import HabitCategory


@dataclass(frozen=True)
class HabitTemplate:
    """A preset title, description, category and color for a new habit."""
    id: str
    title: str
    description: str
    category: HabitCategory
    color: str

    def habit_fields(self) -> dict[str, Any]:
        """Keyword arguments for creating a habit from this template."""
        return {
            "description": self.description,
            "category": self.category,
            "color": self.color,
        }


_FITNESS = "#4ADE80"
_MINDFULNESS = "#38BDF8"
_LEARNING = "#FB923C"
_HEALTH = "#F472B6"
_WORK = "#8B5CF6"
_PERSONAL = "#A855F7"

HABIT_TEMPLATES: tuple[HabitTemplate, ...] = (
    HabitTemplate("1", "Morning Exercise", "30 minutes of physical activity", HabitCategory.FITNESS, _FITNESS),
    HabitTemplate("2", "Take 10,000 Steps", "Walk throughout the day", HabitCategory.FITNESS, _FITNESS),
    HabitTemplate("3", "Stretch Routine", "10 minutes of stretching", HabitCategory.FITNESS, _FITNESS),
    HabitTemplate("4", "Meditation", "10 minutes of mindful breathing", HabitCategory.MINDFULNESS, _MINDFULNESS),
    HabitTemplate("5", "Gratitude Journal", "Write 3 things you're grateful for", HabitCategory.MINDFULNESS, _MINDFULNESS),
    HabitTemplate("6", "No Phone Before Bed", "Stop using phone 1 hour before sleep", HabitCategory.MINDFULNESS, _MINDFULNESS),
    HabitTemplate("7", "Read for 30 Minutes", "Read books or articles daily", HabitCategory.LEARNING, _LEARNING),
    HabitTemplate("8", "Learn a New Word", "Expand your vocabulary", HabitCategory.LEARNING, _LEARNING),
    HabitTemplate("9", "Practice a Skill", "30 minutes of deliberate practice", HabitCategory.LEARNING, _LEARNING),
    HabitTemplate("10", "Drink 8 Glasses of Water", "Stay hydrated throughout the day", HabitCategory.HEALTH, _HEALTH),
    HabitTemplate("11", "Healthy Meal Prep", "Prepare nutritious meals", HabitCategory.HEALTH, _HEALTH),
    HabitTemplate("12", "Sleep 8 Hours", "Get enough rest each night", HabitCategory.HEALTH, _HEALTH),
    HabitTemplate("13", "Plan Tomorrow", "Review and plan next day tasks", HabitCategory.WORK, _WORK),
    HabitTemplate("14", "Inbox Zero", "Clear your email inbox", HabitCategory.WORK, _WORK),
    HabitTemplate("15", "Deep Work Session", "2 hours of focused work", HabitCategory.WORK, _WORK),
    HabitTemplate("16", "Call a Friend", "Stay connected with loved ones", HabitCategory.PERSONAL, _PERSONAL),
    HabitTemplate("17", "Creative Time", "30 minutes on a hobby", HabitCategory.PERSONAL, _PERSONAL),
    HabitTemplate("18", "Digital Declutter", "Organize files and apps", HabitCategory.PERSONAL, _PERSONAL),
)


def templates_for(category: HabitCategory | None = None) -> list[HabitTemplate]:
    """Templates in catalog order, optionally limited to one category."""
    if category is None:
        return list(HABIT_TEMPLATES)
    return [t for t in HABIT_TEMPLATES if t.category is category]


def get_template(ref: str) -> HabitTemplate:
    """Look a template up by id or case-insensitive title."""
    for template in HABIT_TEMPLATES:
        if template.id == ref or template.title.lower() == ref.strip().lower():
            return template
    raise NotFound(f"No habit template matches '{ref}'")
