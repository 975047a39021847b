"""
Unit Tests for the storage error translation
"""
import pytest
from sqlalchemy.exc import OperationalError

from classresponse.app.core.errors import (
    CollaboratorUnavailable,
    StateConflictError,
    ValidationError,
    reject_nulls,
    storage_call,
)
from classresponse.db.models import Course, University


class TestStorageCall:
    """Tests for mapping SQLAlchemy failures to domain errors"""

    def test_duplicate_unique_key_is_a_conflict(self, db, make_university):
        make_university("First", code="DUP")

        with pytest.raises(StateConflictError):
            with storage_call(db, "university creation"):
                db.add(University(name="Second", code="DUP"))
                db.commit()

    def test_missing_required_column_is_a_validation_error(self, db, university):
        with pytest.raises(ValidationError):
            with storage_call(db, "course creation"):
                db.add(Course(university_id=university.university_id, name=None))
                db.flush()

    def test_operational_failure_is_unavailable(self, db):
        with pytest.raises(CollaboratorUnavailable) as exc_info:
            with storage_call(db, "session read"):
                raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        assert exc_info.value.detail == "Storage failure during session read"

    def test_session_is_usable_after_failure(self, db, make_university):
        make_university("First", code="DUP")
        with pytest.raises(StateConflictError):
            with storage_call(db, "university creation"):
                db.add(University(name="Second", code="DUP"))
                db.commit()

        assert make_university("Third", code="OK").code == "OK"


class TestRejectNulls:
    def test_explicit_null_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            reject_nulls({"name": None, "description": None}, ("name",))

        assert "name" in exc_info.value.detail

    def test_absent_and_nullable_fields_pass(self):
        reject_nulls({"description": None}, ("name",))
