"""Seed a development database with demo categories, an instructor and a small catalog.

Usage:
  Run from the project root with the virtual environment activated, e.g.:
    python scripts/seed_marketplace.py

Safe to run repeatedly: rows are matched on their unique names and only
missing ones are inserted.
"""

import os
import sys
from typing import Dict

# Ensure project root is on the import path when running as a script
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from sqlalchemy.orm import Session

from db import SessionLocal, engine
from models import Base, Category, Course, Lesson, ProfileRole, User, UserProfile

INSTRUCTOR = {
    "id": "user_demo_instructor",
    "name": "Dana Whitfield",
    "email": "dana.whitfield@example.com",
}

CATEGORIES = [
    ("Web Development", "HTML, CSS, JavaScript and modern frameworks for building web applications."),
    ("Data Science", "Python, statistics, machine learning and data visualization."),
    ("Design", "UI/UX principles, typography, color theory and design tooling."),
]

COURSES = [
    {
        "title": "Complete Web Development Bootcamp",
        "description": "Build full-stack web applications from scratch with HTML, CSS, JavaScript and Node.js.",
        "category": "Web Development",
        "price": 99.0,
        "duration": "80 hours",
        "published": True,
        "lessons": [
            ("Getting Started", "Welcome and course overview", "5:30"),
            ("Getting Started", "Setting up your editor", "12:10"),
            ("HTML Basics", "Document structure", "18:45"),
        ],
    },
    {
        "title": "Python Data Science Complete Course",
        "description": "NumPy, Pandas, Matplotlib and Scikit-learn applied to real datasets.",
        "category": "Data Science",
        "price": 149.0,
        "duration": "100 hours",
        "published": True,
        "lessons": [
            ("Foundations", "Why Python for data", "7:05"),
            ("Foundations", "Working with DataFrames", "21:40"),
        ],
    },
    {
        "title": "UI Design Fundamentals",
        "description": "Layout, hierarchy and prototyping for product interfaces.",
        "category": "Design",
        "price": 0.0,
        "duration": "12 hours",
        "published": False,
        "lessons": [("Principles", "Visual hierarchy", "14:00")],
    },
]


def seed_instructor(db: Session) -> User:
    user = db.query(User).filter(User.id == INSTRUCTOR["id"]).first()
    if user is None:
        user = User(email_verified=True, **INSTRUCTOR)
        db.add(user)
        print(f"Created instructor {INSTRUCTOR['id']}.")

    profile = db.query(UserProfile).filter(UserProfile.user_id == INSTRUCTOR["id"]).first()
    if profile is None:
        db.add(UserProfile(user_id=INSTRUCTOR["id"], role=ProfileRole.INSTRUCTOR, bio="Demo instructor"))
    elif profile.role != ProfileRole.INSTRUCTOR:
        profile.role = ProfileRole.INSTRUCTOR
    return user


def seed_categories(db: Session) -> Dict[str, Category]:
    categories = {}
    for name, description in CATEGORIES:
        category = db.query(Category).filter(Category.name == name).first()
        if category is None:
            category = Category(name=name, description=description)
            db.add(category)
            db.flush()
            print(f"Created category '{name}'.")
        categories[name] = category
    return categories


def seed_courses(db: Session, instructor: User, categories: Dict[str, Category]) -> int:
    created = 0
    for entry in COURSES:
        if db.query(Course).filter(Course.title == entry["title"]).first() is not None:
            print(f"Course '{entry['title']}' already exists; skipping.")
            continue

        course = Course(
            title=entry["title"],
            description=entry["description"],
            instructor_id=instructor.id,
            category_id=categories[entry["category"]].id,
            price=entry["price"],
            duration=entry["duration"],
            published=entry["published"],
        )
        db.add(course)
        db.flush()
        for position, (section, title, duration) in enumerate(entry["lessons"], start=1):
            db.add(
                Lesson(course_id=course.id, section_title=section, title=title, duration=duration, order_index=position)
            )
        created += 1
        print(f"Created course '{entry['title']}' with {len(entry['lessons'])} lessons.")
    return created


def seed(db: Session) -> Dict[str, int]:
    instructor = seed_instructor(db)
    db.flush()
    categories = seed_categories(db)
    created = seed_courses(db, instructor, categories)
    db.commit()
    return {"categories": len(categories), "courses_created": created}


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        summary = seed(db)
        print(f"Seed complete: {summary}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
