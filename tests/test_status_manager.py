"""
Unit Tests for the expiry sweep and its scheduler tick
"""
from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from classresponse.app.core.clock import canonical_zone
from classresponse.app.core.errors import CollaboratorUnavailable
from classresponse.app.services import session_lifecycle as lifecycle
from classresponse.app.services import status_manager
from classresponse.app.services.status_manager import process_tick, sweep_expired
from classresponse.db.models import SessionStatus


def _at(hour, minute, day=2):
    return datetime(2026, 3, day, hour, minute, tzinfo=canonical_zone())


@pytest.fixture
def question_ids(university, make_template):
    _, created = make_template(None, "Default", [{"question_text": "Rate the lecture"}])
    return [q.question_id for q in created]


@pytest.fixture
def make_session(db, course, question_ids, session_date):
    def _make(duration=60, started_at=None, day=None):
        session = lifecycle.create_session(
            db, course.course_id, "A", day or session_date, duration, question_ids
        )
        if started_at is not None:
            session = lifecycle.start_session(db, session.session_id, now=started_at)
        return session
    return _make


def _status(db, session_id):
    db.expire_all()
    return lifecycle.get_session(db, session_id).status


class TestSweep:
    """Tests for moving elapsed active sessions to completed"""

    def test_elapsed_session_is_completed(self, db, make_session):
        session = make_session(started_at=_at(10, 0))

        stats = sweep_expired(db, now=_at(11, 1))

        assert stats["sessions_completed"] == 1
        assert stats["failures"] == 0
        assert _status(db, session.session_id) == SessionStatus.completed

    def test_session_still_running_is_untouched(self, db, make_session):
        session = make_session(started_at=_at(10, 0))

        stats = sweep_expired(db, now=_at(10, 59))

        assert stats["sessions_completed"] == 0
        assert _status(db, session.session_id) == SessionStatus.active

    def test_window_boundary_is_inclusive(self, db, make_session):
        session = make_session(started_at=_at(10, 0))

        sweep_expired(db, now=_at(11, 0))

        assert _status(db, session.session_id) == SessionStatus.completed

    def test_second_sweep_changes_nothing(self, db, make_session):
        session = make_session(started_at=_at(10, 0))
        sweep_expired(db, now=_at(11, 1))

        stats = sweep_expired(db, now=_at(11, 2))

        assert stats["sessions_completed"] == 0
        assert stats["sessions_expired"] == 0
        assert _status(db, session.session_id) == SessionStatus.completed

    def test_pending_sessions_are_left_alone_by_default(self, db, make_session):
        session = make_session(day=date(2026, 3, 1))

        stats = sweep_expired(db, now=_at(9, 0, day=5))

        assert stats["sessions_expired"] == 0
        assert _status(db, session.session_id) == SessionStatus.pending

    # Known ambiguity: whether never-started sessions should ever reach `expired`
    # is still open, so that rule stays behind EXPIRE_UNSTARTED_SESSIONS.
    def test_unstarted_sessions_expire_when_enabled(self, db, make_session):
        past = make_session(day=date(2026, 3, 1))
        today = make_session(day=date(2026, 3, 5))

        stats = sweep_expired(db, now=_at(9, 0, day=5), expire_unstarted=True)

        assert stats["sessions_expired"] == 1
        assert _status(db, past.session_id) == SessionStatus.expired
        assert _status(db, today.session_id) == SessionStatus.pending

    def test_sweep_scoped_to_one_university(self, db, make_session, make_university, make_course,
                                            question_ids, session_date):
        ours = make_session(started_at=_at(10, 0))
        other_course = make_course(make_university("Elsewhere"), name="History", code="HI100")
        theirs = lifecycle.create_session(db, other_course.course_id, "B", session_date, 60, [])
        lifecycle.start_session(db, theirs.session_id, now=_at(10, 0))

        stats = sweep_expired(db, university_id=ours.university_id, now=_at(11, 1))

        assert stats["sessions_completed"] == 1
        assert _status(db, theirs.session_id) == SessionStatus.active

    def test_one_failure_does_not_stop_the_sweep(self, db, make_session, monkeypatch):
        broken = make_session(started_at=_at(10, 0))
        healthy = make_session(started_at=_at(10, 0))
        real_end = status_manager.end_session

        def flaky_end(session_db, session_id):
            if session_id == broken.session_id:
                raise CollaboratorUnavailable("Storage failure during end")
            return real_end(session_db, session_id)

        monkeypatch.setattr(status_manager, "end_session", flaky_end)

        stats = sweep_expired(db, now=_at(11, 1))

        assert stats["sessions_completed"] == 1
        assert stats["failures"] == 1
        assert _status(db, broken.session_id) == SessionStatus.active
        assert _status(db, healthy.session_id) == SessionStatus.completed

    def test_failed_session_read_does_not_stop_the_sweep(self, db, make_session, monkeypatch):
        broken = make_session(started_at=_at(10, 0))
        healthy = make_session(started_at=_at(10, 0))
        real_get = db.get

        def flaky_get(entity, ident, **kwargs):
            if ident == broken.session_id:
                raise OperationalError("SELECT", {}, Exception("disk I/O error"))
            return real_get(entity, ident, **kwargs)

        monkeypatch.setattr(db, "get", flaky_get)
        stats = sweep_expired(db, now=_at(11, 1))
        monkeypatch.undo()

        assert stats["sessions_completed"] == 1
        assert stats["failures"] == 1
        assert _status(db, broken.session_id) == SessionStatus.active
        assert _status(db, healthy.session_id) == SessionStatus.completed

    def test_raw_storage_error_is_counted_as_failure(self, db, make_session, monkeypatch):
        broken = make_session(started_at=_at(10, 0))
        healthy = make_session(started_at=_at(10, 0))
        real_end = status_manager.end_session

        def flaky_end(session_db, session_id):
            if session_id == broken.session_id:
                raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return real_end(session_db, session_id)

        monkeypatch.setattr(status_manager, "end_session", flaky_end)

        stats = sweep_expired(db, now=_at(11, 1))

        assert stats["sessions_completed"] == 1
        assert stats["failures"] == 1
        assert _status(db, healthy.session_id) == SessionStatus.completed


class TestProcessTick:
    """Tests for the scheduler entry point"""

    async def test_tick_sweeps_with_its_own_session(self, db, make_session):
        session = make_session(started_at=_at(10, 0))

        stats = await process_tick(now=_at(11, 1))

        assert stats["sessions_completed"] == 1
        assert _status(db, session.session_id) == SessionStatus.completed

    async def test_tick_reports_timestamp_in_canonical_zone(self, db):
        stats = await process_tick(now=_at(11, 1))

        assert stats["timestamp"] == _at(11, 1).isoformat()
