"""
Dashboard Aggregations

Read-only summaries for the instructor and student dashboards. Enrollment
counts and revenue are recomputed from enrollment rows on every read; the
stored ``students_count``/``rating`` catalog fields are reported as stored.
"""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session, joinedload

from models import Certificate, Course, Enrollment, Lesson, LessonProgress, Review, utcnow
from schemas.api_models import (
    CertificateResponse,
    CourseDetailResponse,
    CourseResponse,
    CourseSummary,
    InstructorCourse,
    InstructorDashboard,
    InstructorStats,
    LessonActivity,
    MonthlyStat,
    PersonSummary,
    RecentEnrollment,
    RecentReview,
    StudentDashboard,
    StudentEnrollment,
    StudentStats,
)

RECENT_LIMIT = 10
TOP_COURSES_LIMIT = 5
RECOMMENDATION_LIMIT = 6
TRAILING_MONTHS = 12


def trailing_months(now: datetime, count: int = TRAILING_MONTHS) -> List[str]:
    """``YYYY-MM`` keys for the ``count`` months ending with ``now``'s month, oldest first."""
    year, month = now.year, now.month
    months = []
    for _ in range(count):
        months.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(months))


def round_half_up(value: float) -> int:
    return int(value + 0.5)


# ===============================================================================
# Instructor
# ===============================================================================


def _instructor_courses(db: Session, instructor_id: str) -> List[InstructorCourse]:
    rows = (
        db.query(Course, func.count(Enrollment.id).label("enrollment_count"))
        .outerjoin(Enrollment, Enrollment.course_id == Course.id)
        .filter(Course.instructor_id == instructor_id)
        .group_by(Course.id)
        .order_by(Course.created_at.desc(), Course.id.desc())
        .all()
    )
    return [
        InstructorCourse(
            **CourseResponse.model_validate(course).model_dump(),
            enrollment_count=count,
            revenue=count * course.price,
        )
        for course, count in rows
    ]


def _monthly_stats(db: Session, instructor_id: str, now: datetime) -> List[MonthlyStat]:
    months = trailing_months(now)
    oldest_year, oldest_month = (int(part) for part in months[0].split("-"))
    window_start = datetime(oldest_year, oldest_month, 1)

    buckets: Dict[str, Dict[str, float]] = {month: {"enrollments": 0, "revenue": 0.0} for month in months}
    rows = (
        db.query(Enrollment.enrolled_at, Course.price)
        .join(Course, Enrollment.course_id == Course.id)
        .filter(Course.instructor_id == instructor_id, Enrollment.enrolled_at >= window_start)
        .all()
    )
    for enrolled_at, price in rows:
        key = enrolled_at.strftime("%Y-%m")
        if key in buckets:
            buckets[key]["enrollments"] += 1
            buckets[key]["revenue"] += price

    return [
        MonthlyStat(month=month, enrollments=int(values["enrollments"]), revenue=values["revenue"])
        for month, values in buckets.items()
    ]


def build_instructor_dashboard(db: Session, instructor_id: str, now: Optional[datetime] = None) -> InstructorDashboard:
    now = now or utcnow()
    courses = _instructor_courses(db, instructor_id)

    total_students = (
        db.query(func.count(func.distinct(Enrollment.user_id)))
        .join(Course, Enrollment.course_id == Course.id)
        .filter(Course.instructor_id == instructor_id)
        .scalar()
    )

    recent_enrollments = (
        db.query(Enrollment)
        .join(Course, Enrollment.course_id == Course.id)
        .filter(Course.instructor_id == instructor_id)
        .options(joinedload(Enrollment.user), joinedload(Enrollment.course))
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    top_courses = sorted(
        (course for course in courses if course.published),
        key=lambda course: (-course.enrollment_count, -course.rating),
    )[:TOP_COURSES_LIMIT]

    recent_reviews = (
        db.query(Review)
        .join(Course, Review.course_id == Course.id)
        .filter(Course.instructor_id == instructor_id)
        .options(joinedload(Review.user), joinedload(Review.course))
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    return InstructorDashboard(
        courses=courses,
        stats=InstructorStats(
            total_courses=len(courses),
            total_students=total_students or 0,
            total_revenue=sum(course.revenue for course in courses),
            published_courses=sum(1 for course in courses if course.published),
        ),
        recent_enrollments=[
            RecentEnrollment(
                id=enrollment.id,
                enrolled_at=enrollment.enrolled_at,
                progress=enrollment.progress,
                course=CourseSummary.model_validate(enrollment.course),
                student=PersonSummary.model_validate(enrollment.user),
            )
            for enrollment in recent_enrollments
        ],
        top_courses=top_courses,
        monthly_stats=_monthly_stats(db, instructor_id, now),
        recent_reviews=[
            RecentReview(
                id=review.id,
                rating=review.rating,
                comment=review.comment,
                created_at=review.created_at,
                course_id=review.course_id,
                course_title=review.course.title,
                user_name=review.user.name,
            )
            for review in recent_reviews
        ],
    )


# ===============================================================================
# Student
# ===============================================================================


def recommend_courses(db: Session, enrollments: List[Enrollment]) -> List[Course]:
    """
    Published courses in categories the student already studies, excluding
    courses they are enrolled in. No category history means no recommendations.
    """
    category_ids = {e.course.category_id for e in enrollments if e.course.category_id is not None}
    if not category_ids:
        return []

    enrolled_ids = {e.course_id for e in enrollments}
    return (
        db.query(Course)
        .options(joinedload(Course.instructor), joinedload(Course.category))
        .filter(Course.published.is_(True), Course.category_id.in_(category_ids), Course.id.notin_(enrolled_ids))
        .order_by(Course.rating.desc(), Course.students_count.desc(), Course.id)
        .limit(RECOMMENDATION_LIMIT)
        .all()
    )


def build_student_dashboard(db: Session, user_id: str) -> StudentDashboard:
    enrollments = (
        db.query(Enrollment)
        .filter(Enrollment.user_id == user_id)
        .options(
            joinedload(Enrollment.course).joinedload(Course.category),
            joinedload(Enrollment.course).joinedload(Course.instructor),
        )
        .order_by(Enrollment.last_accessed.desc().nulls_last(), Enrollment.enrolled_at.desc())
        .all()
    )

    activity = (
        db.query(LessonProgress, Lesson, Course)
        .join(Lesson, LessonProgress.lesson_id == Lesson.id)
        .join(Course, Lesson.course_id == Course.id)
        .join(Enrollment, and_(Enrollment.course_id == Course.id, Enrollment.user_id == user_id))
        .filter(LessonProgress.user_id == user_id)
        .order_by(LessonProgress.updated_at.desc(), LessonProgress.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    certificates = (
        db.query(Certificate)
        .filter(Certificate.user_id == user_id)
        .options(joinedload(Certificate.course))
        .order_by(Certificate.issued_date.desc())
        .all()
    )

    total = len(enrollments)
    stats = StudentStats(
        total_enrollments=total,
        completed_courses=sum(1 for e in enrollments if e.completed_at is not None),
        average_progress=round_half_up(sum(e.progress for e in enrollments) / total) if total else 0,
        total_certificates=len(certificates),
    )

    return StudentDashboard(
        enrollments=[StudentEnrollment.from_enrollment(e) for e in enrollments],
        recent_activity=[
            LessonActivity(
                lesson_id=lesson.id,
                lesson_title=lesson.title,
                course_id=course.id,
                course_title=course.title,
                completed=progress.completed,
                last_position=progress.last_position,
                completed_at=progress.completed_at,
                updated_at=progress.updated_at,
            )
            for progress, lesson, course in activity
        ],
        certificates=[CertificateResponse.model_validate(c) for c in certificates],
        stats=stats,
        recommendations=[CourseDetailResponse.from_course(c) for c in recommend_courses(db, enrollments)],
    )
