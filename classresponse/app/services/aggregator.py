"""Aggregation of submitted responses into per-question and per-session statistics.

The session-level average pools every valid rating answer across all rating
questions, unweighted. The completion rate here is 100 whenever at least one
response exists; target-based completion lives in the session's stored counters.
"""
# app/services/aggregator.py
import math
from typing import Any, Iterable

import numpy as np
from sqlalchemy import select
from sqlalchemy.orm import Session

from classresponse.app.core.config import settings
from classresponse.app.core.errors import storage_call
from classresponse.app.schemas.analytics import QuestionAnalytics, SessionAnalytics
from classresponse.app.services.session_lifecycle import get_session
from classresponse.db.models import QuestionType, SessionQuestion, SessionResponse, ResponseStatus

UNCATEGORIZED = "uncategorized"


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return round(float(np.mean(values)), 2)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def rating_value(value: Any, scale: int) -> float | None:
    """Numeric rating in `[1, scale]`, or None when the answer is not a usable rating."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number < 1 or number > scale:
        return None
    return number


def yes_no_bucket(value: Any) -> str | None:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "yes":
            return "Yes"
        if lowered == "no":
            return "No"
    return None


def aggregate_question(question: SessionQuestion, answers: Iterable[Any],
                       text_preview_limit: int | None = None) -> tuple[QuestionAnalytics, list[float]]:
    """Summarize the answers given to one question.

    Returns:
        tuple: The question analytics and the valid rating values (empty for
        non-rating questions), so callers can pool them.
    """
    answers = [a for a in answers if not _is_blank(a)]
    out = QuestionAnalytics(
        question_id=question.session_question_id,
        question_text=question.question_text,
        question_type=QuestionType(question.question_type).value,
        category=question.category,
    )
    ratings: list[float] = []
    qtype = QuestionType(question.question_type)

    if qtype == QuestionType.rating:
        scale = question.scale or 5
        distribution = {str(i): 0 for i in range(1, scale + 1)}
        for answer in answers:
            number = rating_value(answer, scale)
            if number is None:
                continue
            ratings.append(number)
            distribution[str(int(round(number)))] += 1
        out.response_count = len(ratings)
        out.average = _mean(ratings)
        out.distribution = distribution

    elif qtype == QuestionType.yes_no:
        distribution = {"Yes": 0, "No": 0}
        for answer in answers:
            bucket = yes_no_bucket(answer)
            if bucket is not None:
                distribution[bucket] += 1
        out.response_count = distribution["Yes"] + distribution["No"]
        out.distribution = distribution

    elif qtype == QuestionType.multiple_choice:
        distribution = {option: 0 for option in question.options}
        for answer in answers:
            if not isinstance(answer, str):
                continue
            distribution[answer] = distribution.get(answer, 0) + 1
            out.response_count += 1
        out.distribution = distribution

    else:
        texts = [a.strip() for a in answers if isinstance(a, str)]
        out.response_count = len(texts)
        out.text_responses = texts[:text_preview_limit] if text_preview_limit is not None else texts

    return out, ratings


def aggregate_responses(session_id: str, questions: list[SessionQuestion], responses: list[SessionResponse],
                        text_preview_limit: int | None = None) -> SessionAnalytics:
    counted = [r for r in responses if r.status != ResponseStatus.draft]
    answer_maps = [r.answers for r in counted]

    pooled: list[float] = []
    by_category: dict[str, list[float]] = {}
    per_question: list[QuestionAnalytics] = []

    for question in questions:
        answers = [m.get(question.session_question_id) for m in answer_maps]
        stats, ratings = aggregate_question(question, answers, text_preview_limit)
        per_question.append(stats)
        if ratings:
            pooled.extend(ratings)
            by_category.setdefault(question.category or UNCATEGORIZED, []).extend(ratings)

    return SessionAnalytics(
        session_id=session_id,
        total_responses=len(counted),
        average_rating=_mean(pooled),
        completion_rate=100.0 if counted else 0.0,
        category_averages={category: _mean(values) for category, values in by_category.items()},
        per_question=per_question,
    )


def aggregate_session(db: Session, session_id: str, preview: bool = False) -> SessionAnalytics:
    """Analytics for one session, computed on demand from its stored responses.

    Args:
        db: The DB session.
        session_id: The session ID.
        preview: Truncate text answers to `TEXT_PREVIEW_LIMIT`.

    Raises:
        NotFoundError: The session does not exist.
    """
    session = get_session(db, session_id)
    with storage_call(db, "analytics read"):
        questions = db.scalars(
            select(SessionQuestion)
            .where(SessionQuestion.session_id == session.session_id)
            .order_by(SessionQuestion.position)
        ).all()
        responses = db.scalars(
            select(SessionResponse).where(SessionResponse.session_id == session.session_id)
        ).all()
    limit = settings.TEXT_PREVIEW_LIMIT if preview else None
    return aggregate_responses(session.session_id, list(questions), list(responses), limit)
