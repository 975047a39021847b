# db/models/university.py
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, ForeignKey, func
from classresponse.db import Base
import uuid


class University(Base):
    __tablename__ = "universities"

    university_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    courses = relationship("Course", back_populates="university", cascade="all, delete-orphan")
    templates = relationship("QuestionTemplate", back_populates="university")


class Course(Base):
    __tablename__ = "courses"

    course_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    university_id: Mapped[str] = mapped_column(String, ForeignKey("universities.university_id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str | None] = mapped_column(String, nullable=True)
    expected_students: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    university = relationship("University", back_populates="courses")
    sessions = relationship("ResponseSession", back_populates="course")
