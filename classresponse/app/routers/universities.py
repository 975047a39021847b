# app/routers/universities.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from classresponse.app.core.errors import storage_call
from classresponse.app.schemas.university import UniversityCreate, UniversityOut, CourseCreate, CourseOut
from classresponse.db.models import University, Course
from classresponse.db.session import get_db

router = APIRouter()


def _get_university_or_404(db: Session, university_id: str) -> University:
    with storage_call(db, "university read"):
        university = db.get(University, university_id)
    if not university:
        raise HTTPException(status_code=404, detail="University not found")
    return university


@router.post("/api/universities", response_model=UniversityOut, status_code=status.HTTP_201_CREATED)
def create_university(payload: UniversityCreate, db: Session = Depends(get_db)):
    """Register a tenant.

    Errors:
        409: The university code is already taken.
    """
    university = University(name=payload.name, code=payload.code)
    with storage_call(db, "university creation"):
        db.add(university)
        db.commit()
    db.refresh(university)
    return university


@router.get("/api/universities/{university_id}", response_model=UniversityOut)
def get_university(university_id: str, db: Session = Depends(get_db)):
    return _get_university_or_404(db, university_id)


@router.post("/api/universities/{university_id}/courses", response_model=CourseOut,
             status_code=status.HTTP_201_CREATED)
def create_course(university_id: str, payload: CourseCreate, db: Session = Depends(get_db)):
    _get_university_or_404(db, university_id)

    course = Course(
        university_id=university_id,
        name=payload.name,
        code=payload.code,
        expected_students=payload.expected_students,
    )
    with storage_call(db, "course creation"):
        db.add(course)
        db.commit()
    db.refresh(course)
    return course


@router.get("/api/universities/{university_id}/courses", response_model=List[CourseOut])
def list_courses(university_id: str, db: Session = Depends(get_db)):
    _get_university_or_404(db, university_id)
    with storage_call(db, "course listing"):
        return db.scalars(
            select(Course).where(Course.university_id == university_id).order_by(Course.name)
        ).all()
