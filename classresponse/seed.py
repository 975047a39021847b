#!/usr/bin/env python
"""Seed the shared default template and a demo tenant.

Run with `python -m classresponse.seed`. Safe to run more than once.
"""
from sqlalchemy import select

from classresponse.app.services.templates import add_question, create_template
from classresponse.db import Base
from classresponse.db.models import Course, QuestionTemplate, QuestionType, University
from classresponse.db.session import LocalSession, engine

DEFAULT_TEMPLATE_NAME = "Standard Course Evaluation"

DEFAULT_QUESTIONS = [
    dict(question_text="How clearly did the instructor explain the material?",
         question_type=QuestionType.rating, category="instructor", is_required=True),
    dict(question_text="Was the instructor available to answer questions?",
         question_type=QuestionType.yes_no, category="instructor"),
    dict(question_text="How relevant was today's content to the course objectives?",
         question_type=QuestionType.rating, category="content", is_required=True),
    dict(question_text="How was the pace of the session?",
         question_type=QuestionType.multiple_choice, category="delivery",
         options=["Too slow", "About right", "Too fast"]),
    dict(question_text="How engaging was the delivery of the session?",
         question_type=QuestionType.rating, category="delivery"),
    dict(question_text="Did the activities help you prepare for assessments?",
         question_type=QuestionType.yes_no, category="assessment"),
    dict(question_text="Overall, how would you rate this session?",
         question_type=QuestionType.rating, category="overall", is_required=True),
    dict(question_text="What could be improved?",
         question_type=QuestionType.text, category="overall"),
]


def get_or_create_default_template(db) -> QuestionTemplate:
    template = db.scalars(
        select(QuestionTemplate).where(
            QuestionTemplate.university_id.is_(None),
            QuestionTemplate.name == DEFAULT_TEMPLATE_NAME,
        )
    ).first()
    if template:
        return template

    template = create_template(db, None, DEFAULT_TEMPLATE_NAME, "Default questions for every university")
    for params in DEFAULT_QUESTIONS:
        add_question(db, template.template_id, **params)
    db.refresh(template)
    return template


def get_or_create_university(db, code, **kwargs) -> University:
    obj = db.scalars(select(University).where(University.code == code)).first()
    if obj:
        return obj
    obj = University(code=code, **kwargs)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def get_or_create_course(db, university_id, code, **kwargs) -> Course:
    obj = db.scalars(
        select(Course).where(Course.university_id == university_id, Course.code == code)
    ).first()
    if obj:
        return obj
    obj = Course(university_id=university_id, code=code, **kwargs)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def seed_defaults(db) -> tuple[QuestionTemplate, University, Course]:
    template = get_or_create_default_template(db)
    university = get_or_create_university(db, "DEMO", name="Demo University")
    course = get_or_create_course(db, university.university_id, "CS101",
                                  name="Introduction to Computer Science", expected_students=30)
    return template, university, course


def main():
    Base.metadata.create_all(bind=engine)
    db = LocalSession()
    try:
        template, university, course = seed_defaults(db)

        print("Seeded defaults:")
        print(f"Template id:   {template.template_id} ({len(template.items)} questions)")
        print(f"University id: {university.university_id}")
        print(f"Course id:     {course.course_id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
