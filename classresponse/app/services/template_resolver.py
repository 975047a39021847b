"""Resolution of the question set that applies to new sessions of a university.

Custom templates owned by the university take strict precedence over the shared
defaults; the two are never blended. A shared default is active for a
university unless a `TemplateActivation` row switches it off.
"""
# app/services/template_resolver.py
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from classresponse.app.core.errors import NotFoundError, storage_call
from classresponse.db.models import (
    University,
    Question,
    QuestionTemplate,
    TemplateQuestion,
    TemplateActivation,
)


@dataclass
class Resolution:
    questions: list[Question] = field(default_factory=list)
    template_ids: list[str] = field(default_factory=list)
    source: str = "none"  # custom | default | none


def active_custom_template_ids(db: Session, university_id: str) -> list[str]:
    return list(db.scalars(
        select(QuestionTemplate.template_id)
        .where(
            QuestionTemplate.university_id == university_id,
            QuestionTemplate.is_active.is_(True),
        )
        .order_by(QuestionTemplate.created_at, QuestionTemplate.template_id)
    ).all())


def default_activation_map(db: Session, university_id: str) -> dict[str, bool]:
    """Effective activation of every shared default for one university."""
    default_ids = db.scalars(
        select(QuestionTemplate.template_id)
        .where(QuestionTemplate.university_id.is_(None))
        .order_by(QuestionTemplate.created_at, QuestionTemplate.template_id)
    ).all()
    overrides = dict(db.execute(
        select(TemplateActivation.template_id, TemplateActivation.is_active)
        .where(TemplateActivation.university_id == university_id)
    ).all())
    return {template_id: overrides.get(template_id, True) for template_id in default_ids}


def active_default_template_ids(db: Session, university_id: str) -> list[str]:
    return [tid for tid, active in default_activation_map(db, university_id).items() if active]


def questions_for_templates(db: Session, template_ids: list[str]) -> list[Question]:
    """Active questions attached to the given templates, ordered and de-duplicated.

    Ordering uses the per-template position, falling back to the question's own
    priority; ties keep the order of `template_ids`. The first occurrence of a
    question shared by several templates wins.
    """
    if not template_ids:
        return []

    rank = {template_id: idx for idx, template_id in enumerate(template_ids)}
    rows = db.execute(
        select(Question, TemplateQuestion.template_id, TemplateQuestion.position)
        .join(TemplateQuestion, TemplateQuestion.question_id == Question.question_id)
        .where(
            TemplateQuestion.template_id.in_(template_ids),
            Question.is_active.is_(True),
        )
    ).all()

    def _order(row):
        question, template_id, position = row
        order_index = position if position is not None else question.priority
        return (order_index, rank[template_id], question.priority, question.question_id)

    seen: set[str] = set()
    ordered: list[Question] = []
    for question, _, _ in sorted(rows, key=_order):
        if question.question_id in seen:
            continue
        seen.add(question.question_id)
        ordered.append(question)
    return ordered


def _resolve(db: Session, university_id: str) -> Resolution:
    if db.get(University, university_id) is None:
        raise NotFoundError(f"University not found: {university_id}")

    custom_ids = active_custom_template_ids(db, university_id)
    default_ids = active_default_template_ids(db, university_id)

    if custom_ids:
        questions = questions_for_templates(db, custom_ids)
        if questions:
            return Resolution(questions=questions, template_ids=custom_ids, source="custom")
        # active custom templates without any content must not starve the tenant
        if not default_ids:
            return Resolution()
        return Resolution(
            questions=questions_for_templates(db, default_ids),
            template_ids=default_ids,
            source="default",
        )

    if default_ids:
        return Resolution(
            questions=questions_for_templates(db, default_ids),
            template_ids=default_ids,
            source="default",
        )

    return Resolution()


def resolve(db: Session, university_id: str) -> Resolution:
    with storage_call(db, "question resolution"):
        return _resolve(db, university_id)


def resolve_questions(db: Session, university_id: str) -> list[Question]:
    """Ordered list of questions that apply to new sessions of the university.

    Args:
        db: The DB session.
        university_id: The tenant to resolve for.

    Returns:
        list[Question]: Possibly empty; an empty result is not an error.

    Raises:
        NotFoundError: If the university does not exist.
    """
    return resolve(db, university_id).questions
