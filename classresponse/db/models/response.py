# db/models/response.py
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, DateTime, Enum, ForeignKey, func
from classresponse.db import Base
import enum
import json
import uuid


class ResponseStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    validated = "validated"
    flagged = "flagged"


class SessionResponse(Base):
    __tablename__ = "session_responses"

    response_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id: Mapped[str] = mapped_column(String, ForeignKey("response_sessions.session_id", ondelete="CASCADE"), nullable=False, index=True)
    anonymous_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    # {session_question_id: value}
    answers_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    completion_time_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ResponseStatus] = mapped_column(Enum(ResponseStatus), default=ResponseStatus.submitted, nullable=False)
    submitted_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    session = relationship("ResponseSession", back_populates="responses")

    @property
    def answers(self) -> dict:
        return json.loads(self.answers_json or "{}")
