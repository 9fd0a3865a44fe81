"""
Validation utilities
"""
from goalify.domain.errors import (
    TaskValidationError, EMPTY_NAME, NAME_TOO_LONG, NOTE_TOO_LONG, INVALID_COLOR, INVALID_ORDER,
    INVALID_ENABLED,
)
from goalify.domain.task import TASK_COLORS, MAX_TASK_NAME_LENGTH, MAX_NOTE_LENGTH


def validate_task_name(value: str) -> str:
    """
    Validate a task name and return it trimmed

    Raises:
        TaskValidationError: EMPTY_NAME / NAME_TOO_LONG

    Example:
        >>> validate_task_name("  Corsa ")
        "Corsa"
    """
    name = (value or "").strip()
    if not name:
        raise TaskValidationError(EMPTY_NAME, "Task name cannot be empty")
    if len(name) > MAX_TASK_NAME_LENGTH:
        raise TaskValidationError(
            NAME_TOO_LONG,
            f"Task name cannot exceed {MAX_TASK_NAME_LENGTH} characters",
        )
    return name


def validate_note(value: str | None) -> str | None:
    """
    Validate a completion note

    Absent or blank notes become None, never an empty string.

    Raises:
        TaskValidationError: NOTE_TOO_LONG
    """
    if value is None:
        return None
    note = value.strip()
    if len(note) > MAX_NOTE_LENGTH:
        raise TaskValidationError(
            NOTE_TOO_LONG,
            f"Note cannot exceed {MAX_NOTE_LENGTH} characters",
        )
    return note or None


def validate_color(value: str) -> str:
    if value not in TASK_COLORS:
        raise TaskValidationError(INVALID_COLOR, f"Color {value!r} is not in the palette")
    return value


def validate_order(value: int) -> int:
    """Position in a list, 1-based. bool is rejected although it subclasses int."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise TaskValidationError(INVALID_ORDER, f"Order must be a positive integer, got {value!r}")
    return value


def validate_enabled(value: bool) -> bool:
    if not isinstance(value, bool):
        raise TaskValidationError(INVALID_ENABLED, f"Enabled must be true or false, got {value!r}")
    return value
