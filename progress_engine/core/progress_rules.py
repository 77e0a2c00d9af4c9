"""Progress Rules — validation and normalization of partial progress updates.

Invariants:
    - All functions are PURE: the clock is an argument
    - Only supplied fields appear in the output (PATCH semantics)
    - is_completed=True stamps completed_at; is_completed=False clears completed_at AND time_spent
    - Resource and Section rows share one field set and one contract
    - Any violation raises ProgressValidationError before a single column is written

Design Decisions:
    - Raise instead of returning error dicts: the store aborts the whole write on the first
      violation, so there is never a partial write
    - bool is rejected where an int is expected (Python's bool is an int subclass)
    - time_spent is capped at the 32-bit column maximum so an oversized value is a 400,
      not a storage error
"""

from datetime import datetime

from progress_engine.core.domain_types import PERSONAL_NOTE_MAX_LENGTH, TIME_SPENT_MAX
from progress_engine.core.errors import ProgressValidationError

PROGRESS_FIELDS = frozenset({
    "is_completed", "time_spent", "personal_note", "marked_for_revision",
})


def _check_bool(changes: dict, name: str) -> None:
    if name in changes and not isinstance(changes[name], bool):
        raise ProgressValidationError(f"{name} must be a boolean", name)


def check_time_spent(value: object) -> None:
    """time_spent: None, or an integer number of seconds in [0, TIME_SPENT_MAX]."""
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProgressValidationError(
            "Time spent must be a non-negative integer (seconds)", "time_spent",
        )
    if not 0 <= value <= TIME_SPENT_MAX:
        raise ProgressValidationError(
            f"Time spent must be between 0 and {TIME_SPENT_MAX} seconds", "time_spent",
        )


def check_personal_note(value: object) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise ProgressValidationError("personal_note must be a string", "personal_note")
    if len(value) > PERSONAL_NOTE_MAX_LENGTH:
        raise ProgressValidationError(
            f"Personal note must be {PERSONAL_NOTE_MAX_LENGTH} characters or less",
            "personal_note",
        )


def normalize_progress_changes(changes: dict, now: datetime) -> dict:
    """Validate a partial update and translate it into column values.

    Returns only the columns that must be written. completed_at is included
    whenever is_completed is supplied.
    """
    unknown = set(changes) - PROGRESS_FIELDS
    if unknown:
        name = sorted(unknown)[0]
        raise ProgressValidationError(f"Unknown progress field '{name}'", name)

    _check_bool(changes, "is_completed")
    _check_bool(changes, "marked_for_revision")
    if "time_spent" in changes:
        check_time_spent(changes["time_spent"])
    if "personal_note" in changes:
        check_personal_note(changes["personal_note"])

    values = dict(changes)
    if values.get("is_completed") is True:
        values["completed_at"] = now
    elif values.get("is_completed") is False:
        values["completed_at"] = None
        values["time_spent"] = None
    return values


def reset_values() -> dict:
    """Column values for a reset: back to 'not completed', notes untouched."""
    return {"is_completed": False, "completed_at": None, "time_spent": None}


def sets_completed(changes: dict) -> bool:
    """Whether a partial update marks the item complete (the trigger's cue)."""
    return changes.get("is_completed") is True
