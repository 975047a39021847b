"""Management of question templates, their questions and per-university activation.

Custom templates belong to one university; shared defaults (no university)
are visible to every university and switched on or off per university through
`TemplateActivation` rows.
"""
# app/services/templates.py
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from classresponse.app.core.errors import NotFoundError, ValidationError, reject_nulls, storage_call
from classresponse.app.core.logging import get_logs_writer_logger
from classresponse.app.services.template_resolver import default_activation_map
from classresponse.db.models import (
    University,
    Question,
    QuestionType,
    QuestionTemplate,
    TemplateQuestion,
    TemplateActivation,
)

logger = get_logs_writer_logger()

DEFAULT_RATING_SCALE = 5


def normalize_question_params(question_type: QuestionType, scale: int | None, options: list[str] | None) -> tuple[int | None, list[str] | None]:
    """Check the type-specific parameters of a question.

    Returns:
        tuple: The `(scale, options)` pair to store; parameters that do not apply
        to the type are dropped.

    Raises:
        ValidationError: A rating scale below 2, or fewer than two non-empty
            multiple-choice options.
    """
    if question_type == QuestionType.rating:
        if scale is None:
            scale = DEFAULT_RATING_SCALE
        if scale < 2:
            raise ValidationError(f"Rating questions need a scale of at least 2, got {scale}")
        return scale, None

    if question_type == QuestionType.multiple_choice:
        cleaned = [o.strip() for o in (options or []) if o and o.strip()]
        if len(cleaned) < 2:
            raise ValidationError("Multiple-choice questions need at least 2 non-empty options")
        return None, cleaned

    return None, None


def get_template(db: Session, template_id: str) -> QuestionTemplate:
    with storage_call(db, "template read"):
        template = db.get(QuestionTemplate, template_id)
    if not template:
        raise NotFoundError(f"Template not found: {template_id}")
    return template


def _require_university(db: Session, university_id: str) -> University:
    with storage_call(db, "university read"):
        university = db.get(University, university_id)
    if not university:
        raise NotFoundError(f"University not found: {university_id}")
    return university


def create_template(db: Session, university_id: str | None, name: str, description: str | None = None,
                    is_active: bool = True) -> QuestionTemplate:
    """Create a custom template for a university, or a shared default when `university_id` is None."""
    if university_id is not None:
        _require_university(db, university_id)

    template = QuestionTemplate(
        university_id=university_id,
        name=name,
        description=description,
        is_active=is_active,
    )
    with storage_call(db, "template creation"):
        db.add(template)
        db.commit()
    db.refresh(template)
    logger.info("Created %s template %s", "default" if template.is_default else "custom", template.template_id)
    return template


def update_template(db: Session, template_id: str, fields: dict) -> QuestionTemplate:
    reject_nulls(fields, ("name", "is_active"))
    template = get_template(db, template_id)
    if template.is_default and "is_active" in fields:
        raise ValidationError("Shared default templates are switched per university through activation")

    for key, value in fields.items():
        setattr(template, key, value)

    with storage_call(db, "template update"):
        db.commit()
    db.refresh(template)
    return template


def delete_template(db: Session, template_id: str) -> None:
    template = get_template(db, template_id)
    if template.is_default:
        raise ValidationError("Shared default templates cannot be deleted")

    with storage_call(db, "template deletion"):
        db.delete(template)
        db.commit()
    logger.info("Deleted template %s", template_id)


def _next_position(db: Session, template_id: str) -> int:
    with storage_call(db, "question position read"):
        current_max = db.scalar(
            select(func.coalesce(func.max(TemplateQuestion.position), -1))
            .where(TemplateQuestion.template_id == template_id)
        )
    return (current_max if current_max is not None else -1) + 1


def add_question(db: Session, template_id: str, question_text: str, question_type: QuestionType,
                 category: str | None = None, scale: int | None = None, options: list[str] | None = None,
                 is_required: bool = False, priority: int = 0, position: int | None = None) -> Question:
    """Create a question and attach it to the end of a template (or at `position`)."""
    template = get_template(db, template_id)
    scale, options = normalize_question_params(question_type, scale, options)

    if position is None:
        position = _next_position(db, template_id)

    question = Question(
        question_text=question_text,
        question_type=question_type,
        category=category,
        scale=scale,
        is_required=is_required,
        priority=priority,
    )
    question.options = options

    with storage_call(db, "question creation"):
        db.add(question)
        db.flush()  # to get question.question_id
        db.add(TemplateQuestion(
            template_id=template.template_id,
            question_id=question.question_id,
            position=position,
        ))
        db.commit()
    db.refresh(question)
    return question


def duplicate_template(db: Session, template_id: str, university_id: str) -> QuestionTemplate:
    """Copy a template and its questions into a new custom template of `university_id`.

    The copy is named "<name> (Copy)", starts inactive with a zero usage count,
    and owns fresh question rows, so editing it never touches the source.

    Raises:
        NotFoundError: Unknown university or template, or a custom template of
            another university.
    """
    _require_university(db, university_id)
    source = get_template(db, template_id)
    if not source.is_default and source.university_id != university_id:
        raise NotFoundError(f"Template not found: {template_id}")

    copy = QuestionTemplate(
        university_id=university_id,
        name=f"{source.name} (Copy)",
        description=source.description,
        is_active=False,
        usage_count=0,
    )
    with storage_call(db, "template duplication"):
        db.add(copy)
        db.flush()  # to get copy.template_id
        for item in source.items:
            original = item.question
            question = Question(
                question_text=original.question_text,
                question_type=original.question_type,
                category=original.category,
                scale=original.scale,
                meta_json=original.meta_json,
                is_required=original.is_required,
                is_active=original.is_active,
                priority=original.priority,
            )
            db.add(question)
            db.flush()
            db.add(TemplateQuestion(
                template_id=copy.template_id,
                question_id=question.question_id,
                position=item.position,
            ))
        db.commit()
    db.refresh(copy)
    logger.info("Duplicated template %s into %s for university %s", template_id, copy.template_id, university_id)
    return copy


def edit_question(db: Session, question_id: str, fields: dict) -> Question:
    """Apply a partial update to a question, re-checking its type invariants.

    Sessions created earlier keep their own snapshot and are not affected.
    """
    reject_nulls(fields, ("question_text", "question_type", "is_required", "is_active", "priority"))
    with storage_call(db, "question read"):
        question = db.get(Question, question_id)
    if not question:
        raise NotFoundError(f"Question not found: {question_id}")

    question_type = fields.get("question_type", question.question_type)
    scale = fields["scale"] if "scale" in fields else question.scale
    options = fields["options"] if "options" in fields else question.options
    scale, options = normalize_question_params(question_type, scale, options)

    for key in ("question_text", "category", "is_required", "is_active", "priority"):
        if key in fields:
            setattr(question, key, fields[key])
    question.question_type = question_type
    question.scale = scale
    question.options = options

    with storage_call(db, "question update"):
        db.commit()
    db.refresh(question)
    return question


def remove_question(db: Session, template_id: str, question_id: str) -> None:
    """Detach a question from a template; the question is deleted once no template references it."""
    with storage_call(db, "template question read"):
        link = db.get(TemplateQuestion, (template_id, question_id))
    if not link:
        raise NotFoundError("Question not found in this template")

    with storage_call(db, "question removal"):
        db.delete(link)
        db.flush()
        still_used = db.scalar(
            select(func.count()).select_from(TemplateQuestion)
            .where(TemplateQuestion.question_id == question_id)
        )
        if not still_used:
            question = db.get(Question, question_id)
            if question:
                db.delete(question)
        db.commit()


def set_template_activation(db: Session, university_id: str, template_id: str, is_active: bool) -> bool:
    """Switch a template on or off for one university.

    A shared default gets an activation row for this university only; a custom
    template owned by the university has its own flag flipped.

    Returns:
        bool: The effective activation after the write.

    Raises:
        NotFoundError: Unknown university, or a custom template of another university.
    """
    _require_university(db, university_id)
    template = get_template(db, template_id)

    if not template.is_default:
        if template.university_id != university_id:
            raise NotFoundError(f"Template not found: {template_id}")
        template.is_active = is_active
        with storage_call(db, "template activation"):
            db.commit()
        return is_active

    with storage_call(db, "template activation"):
        activation = db.get(TemplateActivation, (university_id, template_id))
        if activation is None:
            db.add(TemplateActivation(university_id=university_id, template_id=template_id, is_active=is_active))
        else:
            activation.is_active = is_active
        db.commit()
    logger.info("University %s set default template %s active=%s", university_id, template_id, is_active)
    return is_active


def list_templates(db: Session, university_id: str) -> list[tuple[QuestionTemplate, bool]]:
    """Custom templates of the university followed by shared defaults, each with its effective activation."""
    _require_university(db, university_id)

    with storage_call(db, "template listing"):
        custom = db.scalars(
            select(QuestionTemplate)
            .where(QuestionTemplate.university_id == university_id)
            .order_by(QuestionTemplate.created_at, QuestionTemplate.template_id)
        ).all()
        activation = default_activation_map(db, university_id)
    defaults = [get_template(db, template_id) for template_id in activation]

    return [(t, t.is_active) for t in custom] + [(t, activation[t.template_id]) for t in defaults]
