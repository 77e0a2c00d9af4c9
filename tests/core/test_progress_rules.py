"""Progress Rules — validation and normalization of partial updates.

Invariants:
    - Only supplied fields are returned
    - is_completed=True stamps completed_at; False clears completed_at and time_spent
    - Violations raise ProgressValidationError naming the field
"""

from datetime import datetime, timezone

import pytest

from progress_engine.core.errors import ProgressValidationError
from progress_engine.core.domain_types import TIME_SPENT_MAX
from progress_engine.core.progress_rules import (
    normalize_progress_changes, reset_values, sets_completed,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_completion_stamps_completed_at():
    values = normalize_progress_changes({"is_completed": True}, NOW)
    assert values == {"is_completed": True, "completed_at": NOW}


def test_uncompleting_clears_completed_at_and_time_spent():
    values = normalize_progress_changes({"is_completed": False, "time_spent": 300}, NOW)
    assert values == {"is_completed": False, "completed_at": None, "time_spent": None}


def test_uncompleting_clears_time_spent_even_when_not_sent():
    values = normalize_progress_changes({"is_completed": False}, NOW)
    assert values == {"is_completed": False, "completed_at": None, "time_spent": None}


def test_only_supplied_fields_are_returned():
    values = normalize_progress_changes({"personal_note": "revisit"}, NOW)
    assert values == {"personal_note": "revisit"}


def test_empty_update_is_allowed():
    assert normalize_progress_changes({}, NOW) == {}


@pytest.mark.parametrize("value", [-1, 1.5, "60", True])
def test_time_spent_must_be_non_negative_int(value):
    with pytest.raises(ProgressValidationError) as exc:
        normalize_progress_changes({"time_spent": value}, NOW)
    assert exc.value.field == "time_spent"


def test_time_spent_zero_and_none_are_valid():
    assert normalize_progress_changes({"time_spent": 0}, NOW) == {"time_spent": 0}
    assert normalize_progress_changes({"time_spent": None}, NOW) == {"time_spent": None}


def test_personal_note_length_limit():
    assert normalize_progress_changes({"personal_note": "x" * 1000}, NOW)
    with pytest.raises(ProgressValidationError) as exc:
        normalize_progress_changes({"personal_note": "x" * 1001}, NOW)
    assert exc.value.field == "personal_note"


@pytest.mark.parametrize("field", ["is_completed", "marked_for_revision"])
def test_flags_must_be_booleans(field):
    with pytest.raises(ProgressValidationError):
        normalize_progress_changes({field: "true"}, NOW)


def test_unknown_field_rejected():
    with pytest.raises(ProgressValidationError) as exc:
        normalize_progress_changes({"completed_at": NOW}, NOW)
    assert exc.value.field == "completed_at"


def test_time_spent_capped_at_column_maximum():
    assert normalize_progress_changes({"time_spent": TIME_SPENT_MAX}, NOW)
    with pytest.raises(ProgressValidationError) as exc:
        normalize_progress_changes({"time_spent": TIME_SPENT_MAX + 1}, NOW)
    assert exc.value.field == "time_spent"


def test_reset_values_keep_notes():
    assert reset_values() == {
        "is_completed": False, "completed_at": None, "time_spent": None,
    }


def test_sets_completed_only_for_true():
    assert sets_completed({"is_completed": True})
    assert not sets_completed({"is_completed": False})
    assert not sets_completed({"personal_note": "x"})
