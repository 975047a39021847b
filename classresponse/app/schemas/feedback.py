"""Pydantic schemes for the anonymous student feedback path.
"""
# app/schemas/feedback.py
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Union

from classresponse.app.schemas.session import SessionQuestionOut


AnswerValue = Union[bool, int, float, str, None]


class SubmitResponseIn(BaseModel):
    answers: Dict[str, AnswerValue] = Field(default_factory=dict, description="session_question_id -> value")
    completion_time_seconds: int = Field(default=0, ge=0)
    anonymous_id: Optional[str] = None


class SubmitResponseOut(BaseModel):
    response_id: str
    session_id: str
    anonymous_id: str
    status: str


class PublicSessionOut(BaseModel):
    session_id: str
    course_name: str
    course_code: str | None = None
    section: str
    room: str | None = None
    status: str
    questions: List[SessionQuestionOut] = Field(default_factory=list)
