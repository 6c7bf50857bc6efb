from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Boolean, Float, Text
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import declarative_base, relationship
import enum
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime is UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ProfileRole(str, enum.Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"


class User(Base):
    """Identity mirrored from the external auth provider."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    image = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    profile = relationship("UserProfile", back_populates="user", uselist=False)


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    role = Column(Enum(ProfileRole), default=ProfileRole.STUDENT, nullable=False, index=True)
    bio = Column(Text, nullable=True)
    website = Column(String, nullable=True)
    # Denormalized, not maintained on enrollment writes
    total_students = Column(Integer, default=0, nullable=False)
    total_courses = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="profile")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    courses = relationship("Course", back_populates="category")


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=False)
    instructor_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    price = Column(Float, default=0, nullable=False)
    duration = Column(String, nullable=True)
    image = Column(String, nullable=True)
    # Catalog display fields; dashboards recompute enrollment counts from rows
    students_count = Column(Integer, default=0, nullable=False)
    rating = Column(Float, default=0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)
    published = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    instructor = relationship("User")
    category = relationship("Category", back_populates="courses")
    lessons = relationship(
        "Lesson", order_by="Lesson.order_index", back_populates="course", cascade="all, delete-orphan"
    )
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="course", cascade="all, delete-orphan")
    certificates = relationship("Certificate", back_populates="course", cascade="all, delete-orphan")


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    section_title = Column(String, nullable=False)
    title = Column(String, nullable=False)
    duration = Column(String, nullable=True)
    video_url = Column(String, nullable=True)
    transcript = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False)
    locked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    course = relationship("Course", back_populates="lessons")
    progress_records = relationship("LessonProgress", back_populates="lesson", cascade="all, delete-orphan")
    notes = relationship("LessonNote", back_populates="lesson", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_lessons_course_order", "course_id", "order_index"),)


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    last_accessed = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    enrolled_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User")
    course = relationship("Course", back_populates="enrollments")

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="unique_user_course_enrollment"),)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User")
    course = relationship("Course", back_populates="reviews")

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="unique_user_course_review"),)


class Certificate(Base):
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    issued_date = Column(DateTime, default=utcnow, nullable=False)
    certificate_url = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User")
    course = relationship("Course", back_populates="certificates")

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="unique_user_course_certificate"),)


class LessonProgress(Base):
    __tablename__ = "lesson_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    last_position = Column(Integer, default=0, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    lesson = relationship("Lesson", back_populates="progress_records")

    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="unique_user_lesson_progress"),)


class LessonNote(Base):
    __tablename__ = "lesson_notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    lesson = relationship("Lesson", back_populates="notes")

    __table_args__ = (Index("idx_lesson_notes_user_lesson", "user_id", "lesson_id"),)
