# app/schemas/university.py
from pydantic import BaseModel, Field
from typing import Optional


class UniversityCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None


class UniversityOut(BaseModel):
    university_id: str
    name: str
    code: str | None = None

    class Config:
        from_attributes = True


class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    expected_students: int = Field(default=0, ge=0)


class CourseOut(BaseModel):
    course_id: str
    university_id: str
    name: str
    code: str | None = None
    expected_students: int

    class Config:
        from_attributes = True
