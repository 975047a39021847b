"""Pydantic-schemes for questions.
"""
# app/schemas/question.py
from typing import Optional, List
from pydantic import BaseModel, Field
from classresponse.db.models.question import QuestionType


class QuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType
    category: Optional[str] = None
    scale: Optional[int] = None
    options: Optional[List[str]] = None
    is_required: bool = False
    priority: int = Field(default=0, ge=0)
    position: Optional[int] = Field(default=None, ge=0)


class QuestionUpdate(BaseModel):
    question_text: Optional[str] = Field(None, min_length=1)
    question_type: Optional[QuestionType] = None
    category: Optional[str] = None
    scale: Optional[int] = None
    options: Optional[List[str]] = None
    is_required: Optional[bool] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = Field(None, ge=0)


class QuestionOut(BaseModel):
    question_id: str
    question_text: str
    question_type: QuestionType
    category: str | None = None
    scale: int | None = None
    options: List[str] = Field(default_factory=list)
    is_required: bool
    is_active: bool
    priority: int

    class Config:
        from_attributes = True
