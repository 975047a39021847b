# app/services/status_manager.py
import asyncio
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from classresponse.app.core.clock import as_local, local_now
from classresponse.app.core.config import settings
from classresponse.app.core.errors import CollaboratorUnavailable, NotFoundError, StateConflictError, storage_call
from classresponse.app.core.logging import get_logs_writer_logger
from classresponse.app.services.session_lifecycle import end_session, expire_session
from classresponse.db.models import ResponseSession, SessionStatus
from classresponse.db.session import LocalSession

logger = get_logs_writer_logger()


def _find_elapsed_sessions(db: Session, now: datetime, university_id: Optional[str]) -> list[str]:
    conditions = [
        ResponseSession.status == SessionStatus.active,
        ResponseSession.end_time <= now,
    ]
    if university_id is not None:
        conditions.append(ResponseSession.university_id == university_id)
    with storage_call(db, "sweep scan"):
        return list(db.scalars(select(ResponseSession.session_id).where(and_(*conditions))).all())


def _find_unstarted_sessions(db: Session, now: datetime, university_id: Optional[str]) -> list[str]:
    conditions = [
        ResponseSession.status == SessionStatus.pending,
        ResponseSession.session_date < now.date(),
    ]
    if university_id is not None:
        conditions.append(ResponseSession.university_id == university_id)
    with storage_call(db, "sweep scan"):
        return list(db.scalars(select(ResponseSession.session_id).where(and_(*conditions))).all())


def _transition_each(db: Session, session_ids: list[str], transition, label: str) -> tuple[int, int]:
    """Apply `transition` to every session, isolating failures per session.

    A session another writer already moved on is skipped, not counted as a failure.
    """
    done = failed = 0
    for session_id in session_ids:
        try:
            transition(db, session_id)
            done += 1
        except (StateConflictError, NotFoundError) as e:
            logger.info("Sweep skipped session %s (%s): %s", session_id, label, e.detail)
        except CollaboratorUnavailable as e:
            failed += 1
            logger.error("Sweep could not %s session %s: %s", label, session_id, e.detail)
        except SQLAlchemyError as e:
            db.rollback()
            failed += 1
            logger.error("Sweep could not %s session %s: %s", label, session_id, e)
    return done, failed


def sweep_expired(db: Session, university_id: Optional[str] = None, now: Optional[datetime] = None,
                  expire_unstarted: Optional[bool] = None) -> dict:
    """
    Move every active session whose window has elapsed to `completed`.
    With `expire_unstarted`, pending sessions dated before today become `expired`.
    Running it again on the same data changes nothing.
    """
    now = as_local(now) if now is not None else local_now()
    if expire_unstarted is None:
        expire_unstarted = settings.EXPIRE_UNSTARTED_SESSIONS

    completed, failures = _transition_each(
        db, _find_elapsed_sessions(db, now, university_id), end_session, "end"
    )

    expired = 0
    if expire_unstarted:
        expired, expire_failures = _transition_each(
            db, _find_unstarted_sessions(db, now, university_id), expire_session, "expire"
        )
        failures += expire_failures

    if completed or expired:
        logger.info("Sweep at %s: %d completed, %d expired", now.isoformat(), completed, expired)

    return {
        "sessions_completed": completed,
        "sessions_expired": expired,
        "failures": failures,
        "timestamp": now.isoformat(),
    }


def _sweep_with_new_session(now: Optional[datetime], university_id: Optional[str]) -> dict:
    with LocalSession() as db:
        return sweep_expired(db, university_id=university_id, now=now)


async def process_tick(now: Optional[datetime] = None, university_id: Optional[str] = None) -> dict:
    """
    One scheduler tick. The storage work is blocking, so it runs in a worker thread.
    """
    return await asyncio.to_thread(_sweep_with_new_session, now, university_id)


async def run_status_manager_loop():
    """
    Background task: tick immediately, then every `SWEEP_INTERVAL` seconds.
    """
    logger.info("Status manager loop started (every %ss)", settings.SWEEP_INTERVAL)

    while True:
        try:
            stats = await process_tick()
            if stats["failures"]:
                logger.warning("StatusManager stats: %s", stats)
        except Exception as e:
            logger.exception("StatusManager tick failed: %s", e)

        await asyncio.sleep(max(1, settings.SWEEP_INTERVAL))
