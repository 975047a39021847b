# db/models/question.py
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, Enum, Boolean, DateTime, func
from classresponse.db import Base
import enum
import json
import uuid


class QuestionType(str, enum.Enum):
    rating = "rating"
    multiple_choice = "multiple_choice"
    text = "text"
    yes_no = "yes_no"


class Question(Base):
    __tablename__ = "questions"

    question_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[QuestionType] = mapped_column(Enum(QuestionType), nullable=False)
    category: Mapped[str | None] = mapped_column(String, index=True, nullable=True)
    scale: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # {"options": [...]} for multiple_choice
    meta_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def options(self) -> list[str]:
        if not self.meta_json:
            return []
        return json.loads(self.meta_json).get("options", [])

    @options.setter
    def options(self, value: list[str] | None):
        self.meta_json = json.dumps({"options": list(value)}, ensure_ascii=False) if value else None
