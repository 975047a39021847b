"""Pydantic schemes for response sessions.
"""
# app/schemas/session.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from classresponse.db.models.question import QuestionType


class CreateSessionIn(BaseModel):
    course_id: str
    section: str = Field(..., min_length=1)
    room: Optional[str] = None
    session_date: date
    duration_minutes: int
    question_ids: List[str] = Field(default_factory=list)


class UpdateSessionIn(BaseModel):
    section: Optional[str] = Field(None, min_length=1)
    room: Optional[str] = None
    session_date: Optional[date] = None
    duration_minutes: Optional[int] = None
    question_ids: Optional[List[str]] = None


class SessionQuestionOut(BaseModel):
    session_question_id: str
    original_question_id: str | None = None
    question_text: str
    question_type: QuestionType
    category: str | None = None
    scale: int | None = None
    options: List[str] = Field(default_factory=list)
    is_required: bool
    position: int

    class Config:
        from_attributes = True


class SessionOut(BaseModel):
    session_id: str
    course_id: str
    university_id: str
    section: str
    room: str | None = None
    session_date: date
    duration_minutes: int
    start_time: datetime
    end_time: datetime
    status: str
    access_key: str
    total_responses: int
    target_responses: int
    completion_rate: float
    average_time_seconds: float
    questions: List[SessionQuestionOut] = Field(default_factory=list)


class SweepOut(BaseModel):
    sessions_completed: int
    sessions_expired: int
    failures: int
    timestamp: str
