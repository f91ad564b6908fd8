from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from catalog.schemas.course import CourseResponse
from catalog.schemas.rating import CourseAggregate


class EnrollmentResponse(BaseModel):
    id: int
    user_id: int
    course_id: int
    status: str
    personal_rating: Optional[int] = None
    review: Optional[str] = None
    rated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EnrollmentWithCourse(EnrollmentResponse):
    course: CourseResponse


class EnrollResponse(BaseModel):
    message: str
    enrollment: EnrollmentResponse


class EnrollmentStatusResponse(BaseModel):
    enrolled: bool
    enrollment: Optional[EnrollmentResponse] = None


class DropResponse(CourseAggregate):
    message: str
