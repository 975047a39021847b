"""Public endpoints students reach with a session access key.

No authentication: the key itself is the only credential, and responses are
stored against a generated anonymous id.
"""
# app/routers/feedback.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classresponse.app.schemas.feedback import PublicSessionOut, SubmitResponseIn, SubmitResponseOut
from classresponse.app.schemas.session import SessionQuestionOut
from classresponse.app.services.submissions import get_session_by_key, submit_response
from classresponse.db.models import ResponseStatus, SessionStatus
from classresponse.db.session import get_db

router = APIRouter()


@router.get("/api/feedback/{access_key}", response_model=PublicSessionOut)
def open_feedback_form(access_key: str, db: Session = Depends(get_db)):
    """Return the questions of an active session for the student form.

    Args:
        access_key: Key as typed by the student (case and dash are ignored).
        db: The DB session.

    Errors:
        404: Unknown key.
        409: The session has not started, has expired or was cancelled;
            `current_status` tells which.
    """
    session = get_session_by_key(db, access_key)
    return PublicSessionOut(
        session_id=session.session_id,
        course_name=session.course.name,
        course_code=session.course.code,
        section=session.section,
        room=session.room,
        status=SessionStatus(session.status).value,
        questions=[SessionQuestionOut.model_validate(q) for q in session.questions],
    )


@router.post("/api/feedback/{access_key}/responses", response_model=SubmitResponseOut,
             status_code=status.HTTP_201_CREATED)
def post_feedback(access_key: str, payload: SubmitResponseIn, db: Session = Depends(get_db)):
    """Store one anonymous response.

    Errors:
        404: Unknown key.
        409: The session is not accepting responses.
        422: Unknown question ids, invalid values or unanswered required questions.
    """
    response = submit_response(
        db,
        access_key,
        payload.answers,
        completion_time_seconds=payload.completion_time_seconds,
        anonymous_id=payload.anonymous_id,
    )
    return SubmitResponseOut(
        response_id=response.response_id,
        session_id=response.session_id,
        anonymous_id=response.anonymous_id,
        status=ResponseStatus(response.status).value,
    )
