"""
Module for handling student enrollment: enroll, drop and enrollment lookups.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload
from starlette import status

from catalog.database import get_db
from catalog.exceptions import CourseNotFound
from catalog.models import Course, Enrollment, EnrollmentStatus
from catalog.oauth2 import get_current_user_jwt
from catalog.schemas.enrollment import (
    DropResponse,
    EnrollmentResponse,
    EnrollmentStatusResponse,
    EnrollmentWithCourse,
    EnrollResponse,
)
from catalog.services import rating_aggregator

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post(
    "/courses/{course_id}",
    response_model=EnrollResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    enrollment = rating_aggregator.enroll(db, current_user["user_id"], course_id)
    return EnrollResponse(
        message="Successfully enrolled in course",
        enrollment=EnrollmentResponse.model_validate(enrollment),
    )


@router.delete("/courses/{course_id}", response_model=DropResponse)
async def drop_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    """Drop a course, the enrollment is kept with status 'dropped'"""
    aggregate = rating_aggregator.drop_course(db, current_user["user_id"], course_id)
    return DropResponse(
        message="Successfully dropped the course", **aggregate.model_dump()
    )


@router.post("/courses/{course_id}/complete", response_model=EnrollResponse)
async def complete_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    enrollment = rating_aggregator.complete_course(
        db, current_user["user_id"], course_id
    )
    return EnrollResponse(
        message="Course marked as completed",
        enrollment=EnrollmentResponse.model_validate(enrollment),
    )


@router.get("/courses/{course_id}", response_model=EnrollmentStatusResponse)
async def check_enrollment_status(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    """Check if the current user is enrolled in a specific course"""
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise CourseNotFound()

    enrollment = rating_aggregator.find_enrollment(
        db, current_user["user_id"], course_id
    )
    if enrollment is None:
        return EnrollmentStatusResponse(enrolled=False)

    return EnrollmentStatusResponse(
        enrolled=enrollment.is_active,
        enrollment=EnrollmentResponse.model_validate(enrollment),
    )


@router.get("/courses", response_model=List[EnrollmentWithCourse])
async def get_my_enrollments(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    """Get all active enrollments of the current user, dropped ones excluded"""
    enrollments = (
        db.query(Enrollment)
        .options(joinedload(Enrollment.course))
        .filter(
            Enrollment.user_id == current_user["user_id"],
            Enrollment.status != EnrollmentStatus.DROPPED.value,
        )
        .order_by(Enrollment.id)
        .all()
    )
    return enrollments
