"""Progress schemas — strict request bodies with PATCH semantics.

Invariants:
    - Unknown fields rejected
    - No string/number coercion into booleans or ints
    - to_changes() returns only what the client sent
"""

import pytest
from pydantic import ValidationError

from progress_engine.core.domain_types import TIME_SPENT_MAX
from progress_engine.schemas.progress import (
    ResourceProgressUpdate, SectionProgressUpdate,
)


def test_to_changes_keeps_only_sent_fields():
    body = ResourceProgressUpdate(is_completed=True)
    assert body.to_changes() == {"is_completed": True}


def test_explicit_null_is_kept():
    body = ResourceProgressUpdate.model_validate({"time_spent": None})
    assert body.to_changes() == {"time_spent": None}


def test_unknown_field_rejected():
    with pytest.raises(ValidationError):
        ResourceProgressUpdate.model_validate({"is_completed": True, "score": 3})


def test_strict_types():
    with pytest.raises(ValidationError):
        ResourceProgressUpdate.model_validate({"is_completed": "true"})
    with pytest.raises(ValidationError):
        ResourceProgressUpdate.model_validate({"time_spent": "60"})


def test_negative_time_spent_rejected():
    with pytest.raises(ValidationError):
        ResourceProgressUpdate(time_spent=-1)


def test_note_limit():
    ResourceProgressUpdate(personal_note="x" * 1000)
    with pytest.raises(ValidationError):
        ResourceProgressUpdate(personal_note="x" * 1001)


def test_section_update_accepts_time_spent():
    body = SectionProgressUpdate.model_validate({"is_completed": True, "time_spent": 5})
    assert body.to_changes() == {"is_completed": True, "time_spent": 5}


def test_time_spent_above_integer_column_rejected():
    ResourceProgressUpdate(time_spent=TIME_SPENT_MAX)
    with pytest.raises(ValidationError):
        ResourceProgressUpdate(time_spent=TIME_SPENT_MAX + 1)
