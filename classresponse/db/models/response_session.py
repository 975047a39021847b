# db/models/response_session.py
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Float, Date, DateTime, Enum, Boolean, ForeignKey, func
from classresponse.db import Base
from classresponse.db.models.question import QuestionType
import enum
import json
import uuid


class SessionStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    completed = "completed"
    expired = "expired"
    cancelled = "cancelled"


class ResponseSession(Base):
    __tablename__ = "response_sessions"

    session_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id: Mapped[str] = mapped_column(String, ForeignKey("courses.course_id"), nullable=False, index=True)
    university_id: Mapped[str] = mapped_column(String, ForeignKey("universities.university_id"), nullable=False, index=True)

    section: Mapped[str] = mapped_column(String, nullable=False)
    room: Mapped[str | None] = mapped_column(String, nullable=True)
    session_date: Mapped["Date"] = mapped_column(Date, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    # placeholders (session_date at midnight) until the session is started
    start_time: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[SessionStatus] = mapped_column(Enum(SessionStatus), default=SessionStatus.pending, nullable=False, index=True)
    access_key: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    total_responses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    target_responses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completion_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    average_time_seconds: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="sessions")
    questions = relationship("SessionQuestion", back_populates="session", cascade="all, delete-orphan",
                             order_by="SessionQuestion.position")
    responses = relationship("SessionResponse", back_populates="session", cascade="all, delete-orphan")


class SessionQuestion(Base):
    """Frozen copy of a question taken when the session was created."""
    __tablename__ = "session_questions"

    session_question_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id: Mapped[str] = mapped_column(String, ForeignKey("response_sessions.session_id", ondelete="CASCADE"), nullable=False, index=True)
    original_question_id: Mapped[str | None] = mapped_column(String, nullable=True)

    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[QuestionType] = mapped_column(Enum(QuestionType), nullable=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    scale: Mapped[int | None] = mapped_column(Integer, nullable=True)
    meta_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    session = relationship("ResponseSession", back_populates="questions")

    @property
    def options(self) -> list[str]:
        if not self.meta_json:
            return []
        return json.loads(self.meta_json).get("options", [])
