"""Lifecycle of a response session: pending -> active -> completed.

pending   -- start  --> active
pending   -- cancel --> cancelled
pending   -- sweep (opt-in, date passed) --> expired
active    -- end / sweep --> completed

Every state-changing write is conditioned on the status the transition starts
from, so two writers racing on one session cannot both succeed: the loser gets
`StateConflictError` instead of silently overwriting the winner.
"""
# app/services/session_lifecycle.py
from datetime import date, datetime, timedelta

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from classresponse.app.core.clock import as_local, local_now, placeholder_window
from classresponse.app.core.errors import NotFoundError, StateConflictError, ValidationError, reject_nulls, storage_call
from classresponse.app.core.logging import get_logs_writer_logger
from classresponse.app.services.access_keys import issue_access_key
from classresponse.app.services.template_resolver import resolve
from classresponse.db.models import (
    Course,
    Question,
    QuestionTemplate,
    TemplateQuestion,
    ResponseSession,
    SessionQuestion,
    SessionResponse,
    SessionStatus,
)

logger = get_logs_writer_logger()

MAX_DURATION_MINUTES = 24 * 60

EDITABLE_FIELDS = ("section", "room", "session_date", "duration_minutes")


def get_session(db: Session, session_id: str) -> ResponseSession:
    with storage_call(db, "session read"):
        session = db.get(ResponseSession, session_id)
    if not session:
        raise NotFoundError(f"Session not found: {session_id}")
    return session


def list_sessions(db: Session, course_id: str | None = None, university_id: str | None = None,
                  status: SessionStatus | None = None) -> list[ResponseSession]:
    q = select(ResponseSession)
    if course_id is not None:
        q = q.where(ResponseSession.course_id == course_id)
    if university_id is not None:
        q = q.where(ResponseSession.university_id == university_id)
    if status is not None:
        q = q.where(ResponseSession.status == status)
    with storage_call(db, "session listing"):
        return list(db.scalars(q.order_by(ResponseSession.session_date.desc(), ResponseSession.created_at.desc())).all())


def _validate_schedule(session_date, duration_minutes) -> None:
    if not isinstance(session_date, date):
        raise ValidationError("session_date must be a calendar date")
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("duration_minutes must be a whole number of minutes")
    if duration_minutes <= 0 or duration_minutes > MAX_DURATION_MINUTES:
        raise ValidationError(f"duration_minutes must be between 1 and {MAX_DURATION_MINUTES}, got {duration_minutes}")


def _select_questions(db: Session, university_id: str, question_ids: list[str]) -> tuple[list[Question], list[str]]:
    """Pick the requested questions out of the university's resolvable set.

    Returns:
        tuple: Selected questions in resolved order, and the ids of the candidate
        templates that supplied them.

    Raises:
        ValidationError: Unknown ids, or required questions left out.
    """
    resolution = resolve(db, university_id)
    resolved_ids = {q.question_id for q in resolution.questions}
    requested = set(question_ids)

    unknown = requested - resolved_ids
    if unknown:
        raise ValidationError(f"{len(unknown)} question(s) are not available for this university")

    missing = [q for q in resolution.questions if q.is_required and q.question_id not in requested]
    if missing:
        raise ValidationError(
            f"{len(missing)} required question(s) missing from the selection",
            missing_count=len(missing),
        )

    selected = [q for q in resolution.questions if q.question_id in requested]
    if not selected:
        return [], []

    with storage_call(db, "question selection"):
        contributing = db.scalars(
            select(TemplateQuestion.template_id)
            .where(
                TemplateQuestion.template_id.in_(resolution.template_ids),
                TemplateQuestion.question_id.in_(requested),
            )
            .distinct()
        ).all()
    return selected, list(contributing)


def _snapshot(session_id: str, questions: list[Question]) -> list[SessionQuestion]:
    return [
        SessionQuestion(
            session_id=session_id,
            original_question_id=q.question_id,
            question_text=q.question_text,
            question_type=q.question_type,
            category=q.category,
            scale=q.scale,
            meta_json=q.meta_json,
            is_required=q.is_required,
            position=idx,
        )
        for idx, q in enumerate(questions)
    ]


def _bump_usage(db: Session, template_ids: list[str]) -> None:
    if template_ids:
        db.execute(
            update(QuestionTemplate)
            .where(QuestionTemplate.template_id.in_(template_ids))
            .values(usage_count=QuestionTemplate.usage_count + 1)
            .execution_options(synchronize_session=False)
        )


def _conflict(db: Session, session_id: str, expected: SessionStatus, action: str) -> Exception:
    with storage_call(db, f"{action} status check"):
        current = db.scalar(select(ResponseSession.status).where(ResponseSession.session_id == session_id))
    if current is None:
        return NotFoundError(f"Session not found: {session_id}")
    current = SessionStatus(current)
    if current == expected:
        # status matched, so an extra guard (e.g. the duration read by start) failed
        logger.warning("Rejected %s of session %s: it was modified concurrently", action, session_id)
        return StateConflictError(
            f"Cannot {action} the session: it was modified concurrently; reload and retry",
            current_status=current.value,
        )
    logger.warning("Rejected %s of session %s: status is %s, expected %s", action, session_id, current.value, expected.value)
    return StateConflictError(
        f"Cannot {action} a session that is {current.value}; it must be {expected.value}",
        current_status=current.value,
    )


def _guarded_update(db: Session, session_id: str, expected: SessionStatus, action: str,
                    values: dict, extra_criteria=()) -> None:
    """Compare-and-swap on status. Does not commit."""
    with storage_call(db, action):
        result = db.execute(
            update(ResponseSession)
            .where(
                ResponseSession.session_id == session_id,
                ResponseSession.status == expected,
                *extra_criteria,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
    if result.rowcount != 1:
        db.rollback()
        raise _conflict(db, session_id, expected, action)


def _reload(db: Session, session_id: str) -> ResponseSession:
    db.expire_all()
    return get_session(db, session_id)


def create_session(db: Session, course_id: str, section: str, session_date: date, duration_minutes: int,
                   question_ids: list[str] | None = None, room: str | None = None) -> ResponseSession:
    """Create a pending session with a frozen question snapshot and a fresh access key.

    Args:
        db: The DB session.
        course_id: The owning course; the university is taken from it.
        section: Course section label.
        session_date: Calendar date of the class meeting.
        duration_minutes: Length of the feedback window once started.
        question_ids: Ids picked from the university's resolved question set.
        room: Optional room label.

    Returns:
        ResponseSession: The created session, status `pending`.

    Raises:
        NotFoundError: The course does not exist.
        ValidationError: Bad schedule, unknown question ids, or missing required questions.
    """
    with storage_call(db, "course read"):
        course = db.get(Course, course_id)
    if not course:
        raise NotFoundError(f"Course not found: {course_id}")
    _validate_schedule(session_date, duration_minutes)

    selected, template_ids = _select_questions(db, course.university_id, list(question_ids or []))
    start_placeholder, end_placeholder = placeholder_window(session_date, duration_minutes)

    with storage_call(db, "session creation"):
        session = ResponseSession(
            course_id=course.course_id,
            university_id=course.university_id,
            section=section,
            room=room,
            session_date=session_date,
            duration_minutes=duration_minutes,
            start_time=start_placeholder,
            end_time=end_placeholder,
            status=SessionStatus.pending,
            access_key=issue_access_key(db),
            target_responses=course.expected_students or 0,
        )
        db.add(session)
        db.flush()  # to get session.session_id
        db.add_all(_snapshot(session.session_id, selected))
        _bump_usage(db, template_ids)
        db.commit()

    logger.info("Created session %s for course %s with %d question(s)", session.session_id, course_id, len(selected))
    return _reload(db, session.session_id)


def start_session(db: Session, session_id: str, now: datetime | None = None) -> ResponseSession:
    """Open the feedback window: stamp real start/end times and move to `active`."""
    session = get_session(db, session_id)
    duration = session.duration_minutes
    started_at = as_local(now) if now is not None else local_now()

    _guarded_update(
        db, session_id, SessionStatus.pending, "start",
        values={
            "status": SessionStatus.active,
            "start_time": started_at,
            "end_time": started_at + timedelta(minutes=duration),
        },
        # a concurrent edit of the duration must not be stamped with the old value
        extra_criteria=(ResponseSession.duration_minutes == duration,),
    )
    with storage_call(db, "start"):
        db.commit()

    logger.info("Started session %s at %s for %d minute(s)", session_id, started_at.isoformat(), duration)
    return _reload(db, session_id)


def end_session(db: Session, session_id: str) -> ResponseSession:
    """Close an active session (user-initiated or by the sweep)."""
    get_session(db, session_id)
    _guarded_update(db, session_id, SessionStatus.active, "end", values={"status": SessionStatus.completed})
    with storage_call(db, "end"):
        db.commit()

    logger.info("Completed session %s", session_id)
    return _reload(db, session_id)


def expire_session(db: Session, session_id: str) -> ResponseSession:
    """Mark a never-started session as expired."""
    get_session(db, session_id)
    _guarded_update(db, session_id, SessionStatus.pending, "expire", values={"status": SessionStatus.expired})
    with storage_call(db, "expire"):
        db.commit()

    logger.info("Expired unstarted session %s", session_id)
    return _reload(db, session_id)


def cancel_session(db: Session, session_id: str) -> ResponseSession:
    get_session(db, session_id)
    _guarded_update(db, session_id, SessionStatus.pending, "cancel", values={"status": SessionStatus.cancelled})
    with storage_call(db, "cancel"):
        db.commit()

    logger.info("Cancelled session %s", session_id)
    return _reload(db, session_id)


def delete_session(db: Session, session_id: str) -> None:
    get_session(db, session_id)

    with storage_call(db, "delete"):
        result = db.execute(
            delete(ResponseSession)
            .where(
                ResponseSession.session_id == session_id,
                ResponseSession.status == SessionStatus.pending,
            )
            .execution_options(synchronize_session=False)
        )
    if result.rowcount != 1:
        db.rollback()
        raise _conflict(db, session_id, SessionStatus.pending, "delete")

    with storage_call(db, "delete"):
        db.execute(delete(SessionQuestion).where(SessionQuestion.session_id == session_id))
        db.execute(delete(SessionResponse).where(SessionResponse.session_id == session_id))
        db.commit()
    db.expire_all()
    logger.info("Deleted session %s", session_id)


def update_session(db: Session, session_id: str, fields: dict) -> ResponseSession:
    """Edit a pending session.

    Accepts `section`, `room`, `session_date`, `duration_minutes` and
    `question_ids`; a new question set replaces the snapshot and is re-checked
    for required-question coverage.
    """
    session = get_session(db, session_id)

    reject_nulls(fields, ("section", "session_date", "duration_minutes"))
    values = {k: fields[k] for k in EDITABLE_FIELDS if k in fields}
    session_date = values.get("session_date", session.session_date)
    duration = values.get("duration_minutes", session.duration_minutes)
    _validate_schedule(session_date, duration)
    if "session_date" in values or "duration_minutes" in values:
        values["start_time"], values["end_time"] = placeholder_window(session_date, duration)

    selected = None
    if fields.get("question_ids") is not None:
        selected, _ = _select_questions(db, session.university_id, list(fields["question_ids"]))

    # touch updated_at so an empty patch still goes through the status guard
    values["updated_at"] = local_now()
    _guarded_update(db, session_id, SessionStatus.pending, "update", values=values)

    with storage_call(db, "update"):
        if selected is not None:
            db.execute(delete(SessionQuestion).where(SessionQuestion.session_id == session_id))
            db.add_all(_snapshot(session_id, selected))
        db.commit()

    logger.info("Updated session %s (%s)", session_id, ", ".join(sorted(fields)) or "no fields")
    return _reload(db, session_id)
