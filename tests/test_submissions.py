"""
Unit Tests for the anonymous student path: key lookup and response submission
"""
from datetime import datetime

import pytest

from classresponse.app.core.clock import canonical_zone
from classresponse.app.core.errors import NotFoundError, StateConflictError, ValidationError
from classresponse.app.services import session_lifecycle as lifecycle
from classresponse.app.services.submissions import get_session_by_key, submit_response
from classresponse.db.models import QuestionType, ResponseStatus


def _at(hour, minute):
    return datetime(2026, 3, 2, hour, minute, tzinfo=canonical_zone())


@pytest.fixture
def pending_session(db, course, make_template, session_date):
    _, created = make_template(None, "Default", [
        {"question_text": "Rate the lecture", "is_required": True},
        {"question_text": "Did you follow along?", "question_type": QuestionType.yes_no},
        {"question_text": "Pace", "question_type": QuestionType.multiple_choice,
         "options": ["Slow", "Right", "Fast"]},
        {"question_text": "Comments", "question_type": QuestionType.text},
    ])
    return lifecycle.create_session(
        db, course.course_id, "A", session_date, 60, [q.question_id for q in created]
    )


@pytest.fixture
def active_session(db, pending_session):
    return lifecycle.start_session(db, pending_session.session_id, now=_at(10, 0))


def _ids(session):
    """Snapshot ids in position order: rating, yes/no, choice, text"""
    return [q.session_question_id for q in session.questions]


class TestGetSessionByKey:
    """Tests for resolving an access key to a session"""

    def test_active_session_is_returned(self, db, active_session):
        session = get_session_by_key(db, active_session.access_key, now=_at(10, 30))

        assert session.session_id == active_session.session_id

    def test_key_is_case_and_dash_insensitive(self, db, active_session):
        key = active_session.access_key
        typed = f"{key[:4].lower()}-{key[4:].lower()}"

        assert get_session_by_key(db, typed, now=_at(10, 30)).session_id == active_session.session_id

    def test_unknown_key_is_not_found(self, db, active_session):
        with pytest.raises(NotFoundError):
            get_session_by_key(db, "NOPE0000", now=_at(10, 30))

    def test_pending_session_is_not_started(self, db, pending_session):
        with pytest.raises(StateConflictError) as exc_info:
            get_session_by_key(db, pending_session.access_key, now=_at(10, 30))

        assert exc_info.value.current_status == "not_started"

    def test_cancelled_session(self, db, pending_session):
        lifecycle.cancel_session(db, pending_session.session_id)

        with pytest.raises(StateConflictError) as exc_info:
            get_session_by_key(db, pending_session.access_key, now=_at(10, 30))

        assert exc_info.value.current_status == "cancelled"

    def test_completed_session_is_expired(self, db, active_session):
        lifecycle.end_session(db, active_session.session_id)

        with pytest.raises(StateConflictError) as exc_info:
            get_session_by_key(db, active_session.access_key, now=_at(10, 30))

        assert exc_info.value.current_status == "expired"

    def test_elapsed_but_unswept_session_is_expired(self, db, active_session):
        with pytest.raises(StateConflictError) as exc_info:
            get_session_by_key(db, active_session.access_key, now=_at(11, 0))

        assert exc_info.value.current_status == "expired"


class TestSubmitResponse:
    """Tests for storing responses and refreshing counters"""

    def test_valid_submission_is_stored(self, db, active_session):
        rating, yes_no, choice, text = _ids(active_session)

        response = submit_response(
            db, active_session.access_key,
            {rating: "4", yes_no: "yes", choice: "Right", text: "  Clear examples  "},
            completion_time_seconds=90,
            now=_at(10, 30),
        )

        assert response.status == ResponseStatus.submitted
        assert response.anonymous_id.startswith("anon_")
        assert response.answers == {rating: 4, yes_no: True, choice: "Right", text: "Clear examples"}

    def test_counters_are_refreshed(self, db, active_session):
        rating = _ids(active_session)[0]

        submit_response(db, active_session.access_key, {rating: 5}, completion_time_seconds=60, now=_at(10, 30))
        submit_response(db, active_session.access_key, {rating: 3}, completion_time_seconds=120, now=_at(10, 31))

        session = lifecycle.get_session(db, active_session.session_id)
        assert session.total_responses == 2
        assert session.average_time_seconds == 90.0
        assert session.completion_rate == 10.0  # 2 of 20 expected students

    def test_submitter_id_is_kept(self, db, active_session):
        rating = _ids(active_session)[0]

        response = submit_response(db, active_session.access_key, {rating: 5},
                                   anonymous_id="device-123", now=_at(10, 30))

        assert response.anonymous_id == "device-123"

    def test_missing_required_answer_is_rejected(self, db, active_session):
        _, yes_no, _, _ = _ids(active_session)

        with pytest.raises(ValidationError) as exc_info:
            submit_response(db, active_session.access_key, {yes_no: True}, now=_at(10, 30))

        assert exc_info.value.missing_count == 1

    def test_blank_required_answer_counts_as_missing(self, db, active_session):
        rating = _ids(active_session)[0]

        with pytest.raises(ValidationError):
            submit_response(db, active_session.access_key, {rating: "  "}, now=_at(10, 30))

    def test_unknown_question_is_rejected(self, db, active_session):
        rating = _ids(active_session)[0]

        with pytest.raises(ValidationError):
            submit_response(db, active_session.access_key, {rating: 5, "other": 1}, now=_at(10, 30))

    @pytest.mark.parametrize("index,value", [(0, 6), (0, "great"), (1, "maybe"), (2, "Very fast"), (3, 42)])
    def test_invalid_values_are_rejected(self, db, active_session, index, value):
        ids = _ids(active_session)
        answers = {ids[0]: 5, ids[index]: value}

        with pytest.raises(ValidationError):
            submit_response(db, active_session.access_key, answers, now=_at(10, 30))

    def test_rejected_submission_leaves_counters_alone(self, db, active_session):
        _, yes_no, _, _ = _ids(active_session)

        with pytest.raises(ValidationError):
            submit_response(db, active_session.access_key, {yes_no: True}, now=_at(10, 30))

        assert lifecycle.get_session(db, active_session.session_id).total_responses == 0

    def test_submission_after_end_is_rejected(self, db, active_session):
        rating = _ids(active_session)[0]
        lifecycle.end_session(db, active_session.session_id)

        with pytest.raises(StateConflictError):
            submit_response(db, active_session.access_key, {rating: 5}, now=_at(10, 30))
