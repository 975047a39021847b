"""Domain errors raised by the session engine and their storage wrapper.

Every failure path raises one of these; an empty result (for example, no
questions resolved) is a normal return value, never an error.
"""
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session


class FeedbackError(Exception):
    """Base class for errors surfaced to callers of the engine."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(FeedbackError):
    """Input rejected synchronously; never retried automatically."""

    def __init__(self, detail: str, missing_count: int | None = None):
        super().__init__(detail)
        self.missing_count = missing_count


class StateConflictError(FeedbackError):
    """The record is not in a state that allows the operation (or a guarded write lost a race)."""

    def __init__(self, detail: str, current_status: str | None = None):
        super().__init__(detail)
        self.current_status = current_status


class NotFoundError(FeedbackError):
    pass


class CollaboratorUnavailable(FeedbackError):
    """Storage read/write failure."""


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(orig).lower()


def reject_nulls(fields: dict, names) -> None:
    """Raise ValidationError when a non-nullable field is explicitly set to None."""
    nulls = [name for name in names if name in fields and fields[name] is None]
    if nulls:
        raise ValidationError(f"{', '.join(nulls)} cannot be null")


@contextmanager
def storage_call(db: Session, action: str):
    """Run a block of storage work, translating driver errors into domain errors.

    Unique-key violations become StateConflictError; other integrity failures
    are rejected input. The session is rolled back before the domain error is
    raised.
    """
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        if _is_unique_violation(exc):
            raise StateConflictError(f"Conflicting write during {action}") from exc
        raise ValidationError(f"Invalid data during {action}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise CollaboratorUnavailable(f"Storage failure during {action}") from exc
