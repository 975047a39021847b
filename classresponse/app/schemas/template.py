"""Pydantic-schemes for question templates and their per-university activation.
"""
# app/schemas/template.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from classresponse.app.schemas.question import QuestionOut


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Template name cannot be empty")
    description: Optional[str] = None
    is_active: bool = True


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, description="Template name cannot be empty")
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ActivationIn(BaseModel):
    is_active: bool


class DuplicateTemplateIn(BaseModel):
    university_id: str = Field(..., min_length=1, description="University that will own the copy")


class TemplateOut(BaseModel):
    template_id: str
    university_id: str | None = None
    name: str
    description: str | None = None
    is_default: bool
    is_active: bool
    usage_count: int
    created_at: datetime | None = None
    questions_count: int = 0


class TemplateWithQuestions(TemplateOut):
    questions: List[QuestionOut] = Field(default_factory=list)
