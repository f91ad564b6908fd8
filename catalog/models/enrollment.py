from datetime import datetime
from enum import Enum
from typing import Optional

import sqlalchemy
from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.models.basemodel import BaseModel


class EnrollmentStatus(str, Enum):
    ENROLLED = "enrolled"
    DROPPED = "dropped"
    COMPLETED = "completed"


# Statuses that hold a seat and may rate the course
ACTIVE_STATUSES = (EnrollmentStatus.ENROLLED.value, EnrollmentStatus.COMPLETED.value)


class Enrollment(BaseModel):
    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=EnrollmentStatus.ENROLLED.value
    )

    # Kept on dropped records as history, only counted while enrolled
    personal_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    review: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    rated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    ### Preventing Duplicate Course Enrollment ###
    __table_args__ = (
        sqlalchemy.UniqueConstraint("user_id", "course_id", name="_user_course_uc"),
        sqlalchemy.CheckConstraint(
            "personal_rating IS NULL OR personal_rating BETWEEN 1 AND 5",
            name="_personal_rating_range",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "status": self.status,
            "personal_rating": self.personal_rating,
            "review": self.review,
            "rated_at": self.rated_at,
        }
