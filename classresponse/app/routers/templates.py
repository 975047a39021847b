"""REST API endpoints for question templates.

Custom templates per university, shared defaults, their questions,
per-university activation of defaults, and the resolved question set.
"""
# app/routers/templates.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classresponse.app.schemas.question import QuestionCreate, QuestionUpdate, QuestionOut
from classresponse.app.schemas.template import (
    ActivationIn,
    DuplicateTemplateIn,
    TemplateCreate,
    TemplateUpdate,
    TemplateOut,
    TemplateWithQuestions,
)
from classresponse.app.services import templates as template_service
from classresponse.app.services.template_resolver import resolve_questions
from classresponse.db.models import QuestionTemplate
from classresponse.db.session import get_db

router = APIRouter()


def template_out(template: QuestionTemplate, is_active: bool | None = None) -> TemplateOut:
    return TemplateOut(
        template_id=template.template_id,
        university_id=template.university_id,
        name=template.name,
        description=template.description,
        is_default=template.is_default,
        is_active=template.is_active if is_active is None else is_active,
        usage_count=template.usage_count,
        created_at=template.created_at,
        questions_count=len(template.items),
    )


def template_with_questions(template: QuestionTemplate, is_active: bool | None = None) -> TemplateWithQuestions:
    base = template_out(template, is_active)
    return TemplateWithQuestions(
        **base.model_dump(),
        questions=[QuestionOut.model_validate(item.question) for item in template.items],
    )


@router.get("/api/universities/{university_id}/templates", response_model=List[TemplateWithQuestions])
def list_templates(university_id: str, db: Session = Depends(get_db)):
    """List the university's custom templates and the shared defaults.

    `is_active` is the effective activation for this university.

    Errors:
        404: University not found.
    """
    return [template_with_questions(t, active) for t, active in template_service.list_templates(db, university_id)]


@router.post("/api/universities/{university_id}/templates", response_model=TemplateOut,
             status_code=status.HTTP_201_CREATED)
def create_custom_template(university_id: str, payload: TemplateCreate, db: Session = Depends(get_db)):
    template = template_service.create_template(
        db, university_id, payload.name, payload.description, payload.is_active
    )
    return template_out(template)


@router.post("/api/templates/defaults", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
def create_default_template(payload: TemplateCreate, db: Session = Depends(get_db)):
    """Create a shared default template visible to every university."""
    template = template_service.create_template(db, None, payload.name, payload.description)
    return template_out(template)


@router.patch("/api/templates/{template_id}", response_model=TemplateOut)
def update_template(template_id: str, payload: TemplateUpdate, db: Session = Depends(get_db)):
    template = template_service.update_template(db, template_id, payload.model_dump(exclude_unset=True))
    return template_out(template)


@router.post("/api/templates/{template_id}/duplicate", response_model=TemplateOut,
             status_code=status.HTTP_201_CREATED)
def duplicate_template(template_id: str, payload: DuplicateTemplateIn, db: Session = Depends(get_db)):
    """Copy a template and its questions into a new, inactive custom template.

    Errors:
        404: University or template not found, or the template belongs to another university.
    """
    template = template_service.duplicate_template(db, template_id, payload.university_id)
    return template_out(template)


@router.delete("/api/templates/{template_id}")
def delete_template(template_id: str, db: Session = Depends(get_db)):
    """Delete a custom template.

    Errors:
        404: Template not found.
        422: The template is a shared default.
    """
    template_service.delete_template(db, template_id)
    return {"ok": True}


@router.post("/api/templates/{template_id}/questions", response_model=QuestionOut,
             status_code=status.HTTP_201_CREATED)
def add_template_question(template_id: str, payload: QuestionCreate, db: Session = Depends(get_db)):
    return template_service.add_question(db, template_id, **payload.model_dump())


@router.delete("/api/templates/{template_id}/questions/{question_id}")
def remove_template_question(template_id: str, question_id: str, db: Session = Depends(get_db)):
    template_service.remove_question(db, template_id, question_id)
    return {"ok": True}


@router.patch("/api/questions/{question_id}", response_model=QuestionOut)
def edit_question(question_id: str, payload: QuestionUpdate, db: Session = Depends(get_db)):
    return template_service.edit_question(db, question_id, payload.model_dump(exclude_unset=True))


@router.put("/api/universities/{university_id}/templates/{template_id}/activation")
def set_activation(university_id: str, template_id: str, payload: ActivationIn, db: Session = Depends(get_db)):
    """Switch a template on or off for one university.

    Returns:
        dict: {"template_id": ..., "university_id": ..., "is_active": bool}.
    """
    active = template_service.set_template_activation(db, university_id, template_id, payload.is_active)
    return {"template_id": template_id, "university_id": university_id, "is_active": active}


@router.get("/api/universities/{university_id}/questions/resolved", response_model=List[QuestionOut])
def get_resolved_questions(university_id: str, db: Session = Depends(get_db)):
    """Questions that apply to new sessions of this university, in order."""
    return resolve_questions(db, university_id)
