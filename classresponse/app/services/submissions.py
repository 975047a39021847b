"""Anonymous student access: session lookup by key and response submission.
"""
# app/services/submissions.py
import json
import uuid

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from classresponse.app.core.clock import as_local, local_now
from classresponse.app.core.errors import NotFoundError, StateConflictError, ValidationError, storage_call
from classresponse.app.core.logging import get_logs_writer_logger
from classresponse.app.services.access_keys import normalize_access_key
from classresponse.app.services.aggregator import rating_value, yes_no_bucket
from classresponse.db.models import (
    QuestionType,
    ResponseSession,
    SessionQuestion,
    SessionResponse,
    SessionStatus,
    ResponseStatus,
)

logger = get_logs_writer_logger()

# what a student is told when the session cannot take feedback
UNAVAILABLE_REASONS = {
    SessionStatus.pending: "not_started",
    SessionStatus.completed: "expired",
    SessionStatus.expired: "expired",
    SessionStatus.cancelled: "cancelled",
}


def get_session_by_key(db: Session, access_key: str, now=None) -> ResponseSession:
    """Find the session a student may answer through its access key.

    Raises:
        NotFoundError: No session has this key.
        StateConflictError: The session is not taking feedback; `current_status`
            is one of `not_started`, `expired`, `cancelled`.
    """
    key = normalize_access_key(access_key)
    with storage_call(db, "access key lookup"):
        session = db.execute(
            select(ResponseSession).where(ResponseSession.access_key == key)
        ).scalar_one_or_none()
    if not session:
        raise NotFoundError("Session not found")

    if session.status != SessionStatus.active:
        reason = UNAVAILABLE_REASONS[session.status]
        raise StateConflictError(f"Session is {reason}", current_status=reason)

    now = as_local(now) if now is not None else local_now()
    if as_local(session.end_time) <= now:
        # elapsed but not yet swept
        raise StateConflictError("Session is expired", current_status="expired")
    return session


def _clean_answer(question: SessionQuestion, value):
    qtype = QuestionType(question.question_type)

    if qtype == QuestionType.rating:
        number = rating_value(value, question.scale or 5)
        if number is None:
            raise ValidationError(f"Rating must be between 1 and {question.scale or 5}")
        return int(number) if number.is_integer() else number

    if qtype == QuestionType.yes_no:
        bucket = yes_no_bucket(value)
        if bucket is None:
            raise ValidationError("Yes/no questions take true/false or \"yes\"/\"no\"")
        return bucket == "Yes"

    if qtype == QuestionType.multiple_choice:
        if not isinstance(value, str) or value not in question.options:
            raise ValidationError(f"Choice must be one of: {', '.join(question.options)}")
        return value

    if not isinstance(value, str):
        raise ValidationError("Text questions take a string answer")
    return value.strip()


def validate_answers(questions: list[SessionQuestion], answers: dict) -> dict:
    """Check submitted answers against the session snapshot.

    Blank values are dropped before checking.

    Returns:
        dict: Cleaned answers keyed by session question id.
    """
    by_id = {q.session_question_id: q for q in questions}
    provided = {
        qid: value for qid, value in answers.items()
        if value is not None and not (isinstance(value, str) and not value.strip())
    }

    unknown = set(provided) - set(by_id)
    if unknown:
        raise ValidationError(f"{len(unknown)} answer(s) reference questions that are not part of this session")

    missing = [q for q in questions if q.is_required and q.session_question_id not in provided]
    if missing:
        raise ValidationError(f"{len(missing)} required question(s) unanswered", missing_count=len(missing))

    return {qid: _clean_answer(by_id[qid], value) for qid, value in provided.items()}


def submit_response(db: Session, access_key: str, answers: dict, completion_time_seconds: int = 0,
                    anonymous_id: str | None = None, now=None) -> SessionResponse:
    """Store one anonymous response and refresh the session's counters.

    Args:
        db: The DB session.
        access_key: The key the student used.
        answers: session_question_id -> value.
        completion_time_seconds: Time the student spent on the form.
        anonymous_id: Submitter id; generated when absent.
        now: Submission time (defaults to the current civil time).

    Returns:
        SessionResponse: The stored response, status `submitted`.
    """
    session = get_session_by_key(db, access_key, now=now)
    with storage_call(db, "snapshot read"):
        questions = db.scalars(
            select(SessionQuestion)
            .where(SessionQuestion.session_id == session.session_id)
            .order_by(SessionQuestion.position)
        ).all()
    cleaned = validate_answers(list(questions), answers)

    response = SessionResponse(
        session_id=session.session_id,
        anonymous_id=anonymous_id or f"anon_{uuid.uuid4().hex[:16]}",
        answers_json=json.dumps(cleaned, ensure_ascii=False),
        completion_time_seconds=completion_time_seconds,
        status=ResponseStatus.submitted,
    )

    with storage_call(db, "response submission"):
        result = db.execute(
            update(ResponseSession)
            .where(
                ResponseSession.session_id == session.session_id,
                ResponseSession.status == SessionStatus.active,
            )
            .values(total_responses=ResponseSession.total_responses + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise StateConflictError("Session is expired", current_status="expired")

        db.add(response)
        db.flush()

        db.refresh(session)
        total = session.total_responses
        previous_avg = session.average_time_seconds or 0.0
        session.average_time_seconds = round(previous_avg + (completion_time_seconds - previous_avg) / total, 2)
        session.completion_rate = round(total / session.target_responses * 100, 2) if session.target_responses else 0.0
        db.commit()

    db.refresh(response)
    logger.info("Stored response %s for session %s", response.response_id, session.session_id)
    return response
