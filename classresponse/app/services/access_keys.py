"""Anonymous access keys students type to reach a session.

Keys come from a non-cryptographic random source; they are short shareable
codes, not secrets.
"""
# app/services/access_keys.py
import random

from sqlalchemy import select
from sqlalchemy.orm import Session

from classresponse.app.core.config import settings
from classresponse.app.core.errors import StateConflictError
from classresponse.app.core.logging import get_logs_writer_logger
from classresponse.db.models import ResponseSession

logger = get_logs_writer_logger()


def generate_access_key(alphabet: str = settings.ACCESS_KEY_ALPHABET,
                        length: int = settings.ACCESS_KEY_LENGTH,
                        rng: random.Random | None = None) -> str:
    rng = rng or random
    return "".join(rng.choice(alphabet) for _ in range(length))


def normalize_access_key(key: str, alphabet: str = settings.ACCESS_KEY_ALPHABET) -> str:
    """Students may type the `XXXX-XXXX` display form, or lower case when the alphabet has none."""
    key = key.replace("-", "").replace(" ", "")
    if not any(c.islower() for c in alphabet):
        key = key.upper()
    return key


def issue_access_key(db: Session, max_attempts: int = settings.ACCESS_KEY_MAX_ATTEMPTS,
                     rng: random.Random | None = None) -> str:
    """Generate a key not yet used by any stored session.

    Raises:
        StateConflictError: Every attempt collided with an existing key.
    """
    for attempt in range(1, max_attempts + 1):
        key = generate_access_key(rng=rng)
        taken = db.scalar(select(ResponseSession.session_id).where(ResponseSession.access_key == key))
        if not taken:
            return key
        logger.warning("Access key collision on attempt %d/%d", attempt, max_attempts)
    raise StateConflictError(f"Could not issue a unique access key after {max_attempts} attempts")
