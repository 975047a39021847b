# db/models/template.py
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Boolean, ForeignKey, DateTime, UniqueConstraint, func
from classresponse.db import Base
import uuid


class QuestionTemplate(Base):
    """A named, ordered set of questions.

    `university_id` is NULL for shared defaults. `is_active` only applies to
    custom templates; shared defaults are switched per tenant through
    `TemplateActivation`.
    """
    __tablename__ = "question_templates"

    template_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    university_id: Mapped[str | None] = mapped_column(String, ForeignKey("universities.university_id"), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    university = relationship("University", back_populates="templates")
    items = relationship("TemplateQuestion", back_populates="template", cascade="all, delete-orphan",
                         order_by="TemplateQuestion.position")
    activations = relationship("TemplateActivation", back_populates="template", cascade="all, delete-orphan")

    @property
    def is_default(self) -> bool:
        return self.university_id is None


class TemplateQuestion(Base):
    __tablename__ = "template_questions"

    template_id: Mapped[str] = mapped_column(String, ForeignKey("question_templates.template_id", ondelete="CASCADE"), primary_key=True)
    question_id: Mapped[str] = mapped_column(String, ForeignKey("questions.question_id", ondelete="CASCADE"), primary_key=True)

    position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    template = relationship("QuestionTemplate", back_populates="items")
    question = relationship("Question")


class TemplateActivation(Base):
    __tablename__ = "template_activations"

    university_id: Mapped[str] = mapped_column(String, ForeignKey("universities.university_id", ondelete="CASCADE"), primary_key=True)
    template_id: Mapped[str] = mapped_column(String, ForeignKey("question_templates.template_id", ondelete="CASCADE"), primary_key=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    updated_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    template = relationship("QuestionTemplate", back_populates="activations")

    __table_args__ = (
        UniqueConstraint("university_id", "template_id", name="uq_activation_tenant_template"),
    )
