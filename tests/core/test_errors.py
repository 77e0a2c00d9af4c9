"""Error Hierarchy — HTTP status, codes and the REST envelope.

Invariants:
    - Each error kind maps to one HTTP status
    - Only TransientStorageError is retryable
"""

from progress_engine.core.errors import (
    ConflictError, ErrorContext, ForbiddenError, NotFoundError,
    ProgressEngineError, ProgressValidationError, TransientStorageError,
)


def test_status_codes():
    assert NotFoundError("League", "x").http_status == 404
    assert ForbiddenError("no").http_status == 403
    assert ProgressValidationError("bad", "time_spent").http_status == 400
    assert ConflictError("dup").http_status == 409
    assert TransientStorageError("down", "execute").http_status == 503


def test_all_share_base():
    for err in (
        NotFoundError("League", "x"), ForbiddenError("no"),
        ProgressValidationError("bad", "f"), TransientStorageError("down", "q"),
    ):
        assert isinstance(err, ProgressEngineError)


def test_only_transient_errors_are_retryable():
    assert TransientStorageError("down", "execute").retryable is True
    assert ConflictError("dup").retryable is False


def test_to_response_envelope():
    err = ForbiddenError("not enrolled", ErrorContext(user_id="u1", league_id="l1"))
    body = err.to_response()["error"]
    assert body["code"] == "FORBIDDEN"
    assert body["category"] == "authorization"
    assert body["context"] == {"user_id": "u1", "league_id": "l1", "field": None}


def test_validation_error_records_field():
    body = ProgressValidationError("too long", "personal_note").to_response()
    assert body["error"]["context"]["field"] == "personal_note"
