"""REST API endpoints for response sessions.

Provides the session lifecycle (create, edit, start, end, cancel, delete),
listings by course or university, on-demand analytics and a manual sweep.
"""
# app/routers/sessions.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from classresponse.app.core.clock import as_local
from classresponse.app.schemas.analytics import SessionAnalytics
from classresponse.app.schemas.session import (
    CreateSessionIn,
    UpdateSessionIn,
    SessionOut,
    SessionQuestionOut,
    SweepOut,
)
from classresponse.app.services import session_lifecycle as lifecycle
from classresponse.app.services.aggregator import aggregate_session
from classresponse.app.services.status_manager import sweep_expired
from classresponse.db.models import ResponseSession, SessionStatus
from classresponse.db.session import get_db

router = APIRouter()


def session_out(session: ResponseSession) -> SessionOut:
    return SessionOut(
        session_id=session.session_id,
        course_id=session.course_id,
        university_id=session.university_id,
        section=session.section,
        room=session.room,
        session_date=session.session_date,
        duration_minutes=session.duration_minutes,
        start_time=as_local(session.start_time),
        end_time=as_local(session.end_time),
        status=SessionStatus(session.status).value,
        access_key=session.access_key,
        total_responses=session.total_responses,
        target_responses=session.target_responses,
        completion_rate=session.completion_rate,
        average_time_seconds=session.average_time_seconds,
        questions=[SessionQuestionOut.model_validate(q) for q in session.questions],
    )


@router.post("/api/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_session(payload: CreateSessionIn, db: Session = Depends(get_db)):
    """Create a pending session with its question snapshot and access key.

    Errors:
        404: Course not found.
        422: Bad schedule, unknown questions, or required questions missing.
    """
    session = lifecycle.create_session(
        db,
        course_id=payload.course_id,
        section=payload.section,
        room=payload.room,
        session_date=payload.session_date,
        duration_minutes=payload.duration_minutes,
        question_ids=payload.question_ids,
    )
    return session_out(session)


@router.post("/api/sessions/sweep", response_model=SweepOut)
def run_sweep(university_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Run the expiry sweep now, for one university or globally."""
    return sweep_expired(db, university_id=university_id)


@router.get("/api/sessions/{session_id}", response_model=SessionOut)
def get_session(session_id: str, db: Session = Depends(get_db)):
    return session_out(lifecycle.get_session(db, session_id))


@router.patch("/api/sessions/{session_id}", response_model=SessionOut)
def update_session(session_id: str, payload: UpdateSessionIn, db: Session = Depends(get_db)):
    """Edit a pending session.

    Errors:
        404: Session not found.
        409: The session is no longer pending.
        422: Invalid fields or required questions missing.
    """
    session = lifecycle.update_session(db, session_id, payload.model_dump(exclude_unset=True))
    return session_out(session)


@router.delete("/api/sessions/{session_id}")
def delete_session(session_id: str, db: Session = Depends(get_db)):
    lifecycle.delete_session(db, session_id)
    return {"ok": True, "message": "Session deleted successfully"}


@router.post("/api/sessions/{session_id}/start", response_model=SessionOut)
def start_session(session_id: str, db: Session = Depends(get_db)):
    return session_out(lifecycle.start_session(db, session_id))


@router.post("/api/sessions/{session_id}/end", response_model=SessionOut)
def end_session(session_id: str, db: Session = Depends(get_db)):
    return session_out(lifecycle.end_session(db, session_id))


@router.post("/api/sessions/{session_id}/cancel", response_model=SessionOut)
def cancel_session(session_id: str, db: Session = Depends(get_db)):
    return session_out(lifecycle.cancel_session(db, session_id))


@router.get("/api/sessions/{session_id}/analytics", response_model=SessionAnalytics)
def get_session_analytics(session_id: str, preview: bool = Query(False), db: Session = Depends(get_db)):
    """Aggregate the session's responses.

    Args:
        session_id: The session ID.
        preview: Truncate text answers for a dashboard preview.
        db: The DB session.
    """
    return aggregate_session(db, session_id, preview=preview)


@router.get("/api/courses/{course_id}/sessions", response_model=List[SessionOut])
def list_course_sessions(course_id: str, status_filter: Optional[SessionStatus] = Query(None, alias="status"),
                         db: Session = Depends(get_db)):
    return [session_out(s) for s in lifecycle.list_sessions(db, course_id=course_id, status=status_filter)]


@router.get("/api/universities/{university_id}/sessions", response_model=List[SessionOut])
def list_university_sessions(university_id: str, status_filter: Optional[SessionStatus] = Query(None, alias="status"),
                             db: Session = Depends(get_db)):
    return [session_out(s) for s in lifecycle.list_sessions(db, university_id=university_id, status=status_filter)]
