"""Pydantic-schemas for aggregated session analytics.
"""
# app/schemas/analytics.py
from pydantic import BaseModel, Field
from typing import Dict, List


class QuestionAnalytics(BaseModel):
    question_id: str
    question_text: str
    question_type: str
    category: str | None = None
    response_count: int = 0
    average: float | None = None
    distribution: Dict[str, int] = Field(default_factory=dict)
    text_responses: List[str] = Field(default_factory=list)


class SessionAnalytics(BaseModel):
    session_id: str
    total_responses: int = 0
    average_rating: float = 0.0
    completion_rate: float = 0.0
    category_averages: Dict[str, float] = Field(default_factory=dict)
    per_question: List[QuestionAnalytics] = Field(default_factory=list)
