"""
Response schemas for the marketplace API.
Attribute names are snake_case; the wire format is camelCase.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models import ProfileRole


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ErrorResponse(ApiModel):
    error: str
    code: Optional[str] = None


# Documented on every API router; bodies come from the ApiError handlers
COMMON_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input, identity field in body or business rule violation"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Caller lacks the required role or course relationship"},
    404: {"model": ErrorResponse, "description": "Resource missing or not owned by the caller"},
}


class MessageResponse(ApiModel):
    message: str


# ============================================================================
# CATALOG
# ============================================================================


class CategoryResponse(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime


class CategoryDeleted(MessageResponse):
    deleted: CategoryResponse


class CourseResponse(ApiModel):
    id: int
    title: str
    description: str
    instructor_id: str
    category_id: Optional[int] = None
    price: float
    duration: Optional[str] = None
    image: Optional[str] = None
    students_count: int
    rating: float
    total_ratings: int
    published: bool
    created_at: datetime
    updated_at: datetime


class CourseDetailResponse(CourseResponse):
    instructor_name: Optional[str] = None
    category_name: Optional[str] = None

    @classmethod
    def from_course(cls, course) -> "CourseDetailResponse":
        return cls(
            **CourseResponse.model_validate(course).model_dump(),
            instructor_name=course.instructor.name if course.instructor else None,
            category_name=course.category.name if course.category else None,
        )


class CourseDeleted(MessageResponse):
    course: CourseResponse


class LessonResponse(ApiModel):
    id: int
    course_id: int
    section_title: str
    title: str
    duration: Optional[str] = None
    video_url: Optional[str] = None
    transcript: Optional[str] = None
    order_index: int
    locked: bool
    created_at: datetime
    updated_at: datetime


class LessonSection(ApiModel):
    section_title: str
    lessons: List[LessonResponse]


class LessonDeleted(MessageResponse):
    lesson: LessonResponse


# ============================================================================
# LEARNER RECORDS
# ============================================================================


class EnrollmentResponse(ApiModel):
    id: int
    user_id: str
    course_id: int
    progress: int
    last_accessed: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    enrolled_at: datetime
    course: Optional[CourseResponse] = None


class EnrollmentDeleted(MessageResponse):
    enrollment: EnrollmentResponse


class ReviewResponse(ApiModel):
    id: int
    user_id: str
    course_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    course_title: Optional[str] = None
    course_image: Optional[str] = None

    @classmethod
    def from_review(cls, review) -> "ReviewResponse":
        return cls(
            id=review.id,
            user_id=review.user_id,
            course_id=review.course_id,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
            user_name=review.user.name,
            user_email=review.user.email,
            course_title=review.course.title,
            course_image=review.course.image,
        )


class ReviewDeleted(MessageResponse):
    review: ReviewResponse


class CertificateResponse(ApiModel):
    id: int
    user_id: str
    course_id: int
    issued_date: datetime
    certificate_url: str
    created_at: datetime
    course: Optional[CourseResponse] = None


class CertificateDeleted(MessageResponse):
    certificate: CertificateResponse


class NoteResponse(ApiModel):
    id: int
    user_id: str
    lesson_id: int
    content: str
    created_at: datetime
    updated_at: datetime


class NoteDeleted(MessageResponse):
    deleted_note: NoteResponse


class ProgressResponse(ApiModel):
    id: Optional[int] = None
    user_id: str
    lesson_id: int
    completed: bool = False
    last_position: int = 0
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileResponse(ApiModel):
    id: int
    user_id: str
    role: ProfileRole
    bio: Optional[str] = None
    website: Optional[str] = None
    total_students: int
    total_courses: int
    created_at: datetime
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_image: Optional[str] = None

    @classmethod
    def from_profile(cls, profile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            role=profile.role,
            bio=profile.bio,
            website=profile.website,
            total_students=profile.total_students,
            total_courses=profile.total_courses,
            created_at=profile.created_at,
            user_name=profile.user.name,
            user_email=profile.user.email,
            user_image=profile.user.image,
        )


# ============================================================================
# DASHBOARDS
# ============================================================================


class CourseSummary(ApiModel):
    id: int
    title: str
    image: Optional[str] = None
    price: float


class PersonSummary(ApiModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None


class InstructorCourse(CourseResponse):
    enrollment_count: int
    revenue: float


class InstructorStats(ApiModel):
    total_courses: int
    total_students: int
    total_revenue: float
    published_courses: int


class RecentEnrollment(ApiModel):
    id: int
    enrolled_at: datetime
    progress: int
    course: CourseSummary
    student: PersonSummary


class MonthlyStat(ApiModel):
    month: str
    enrollments: int
    revenue: float


class RecentReview(ApiModel):
    id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    course_id: int
    course_title: str
    user_name: str


class InstructorDashboard(ApiModel):
    courses: List[InstructorCourse]
    stats: InstructorStats
    recent_enrollments: List[RecentEnrollment]
    top_courses: List[InstructorCourse]
    monthly_stats: List[MonthlyStat]
    recent_reviews: List[RecentReview]


class StudentEnrollment(EnrollmentResponse):
    course: CourseDetailResponse

    @classmethod
    def from_enrollment(cls, enrollment) -> "StudentEnrollment":
        data = EnrollmentResponse.model_validate(enrollment).model_dump(exclude={"course"})
        return cls(**data, course=CourseDetailResponse.from_course(enrollment.course))


class LessonActivity(ApiModel):
    lesson_id: int
    lesson_title: str
    course_id: int
    course_title: str
    completed: bool
    last_position: int
    completed_at: Optional[datetime] = None
    updated_at: datetime


class StudentStats(ApiModel):
    total_enrollments: int
    completed_courses: int
    average_progress: int
    total_certificates: int


class StudentDashboard(ApiModel):
    enrollments: List[StudentEnrollment]
    recent_activity: List[LessonActivity]
    certificates: List[CertificateResponse]
    stats: StudentStats
    recommendations: List[CourseDetailResponse]
