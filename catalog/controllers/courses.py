import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette import status

from catalog.database import get_db
from catalog.exceptions import CourseNotFound
from catalog.models import Course
from catalog.oauth2 import get_current_user_jwt
from catalog.roles import UserRole
from catalog.schemas.course import CourseCreate, CourseInfo, CourseResponse

logger = logging.getLogger("catalog")

router = APIRouter(prefix="/courses", tags=["courses"])


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    create_course_request: CourseCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    if current_user.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized"
        )

    course = Course(**create_course_request.model_dump())
    db.add(course)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A course with this title or course code already exists",
        )
    db.refresh(course)
    logger.info("Created course %s (%s)", course.id, course.course_code)

    return CourseResponse.model_validate(course.to_dict())


@router.get("", response_model=List[CourseInfo])
async def get_all_courses(db: Session = Depends(get_db)):
    courses = db.query(Course).order_by(Course.id).all()
    return [CourseInfo.model_validate(course) for course in courses]


@router.get("/search/{title}", response_model=List[CourseInfo])
async def search_courses(title: str, db: Session = Depends(get_db)):
    """Case-insensitive substring match on the course title"""
    courses = (
        db.query(Course)
        .filter(Course.title.ilike(f"%{title}%"))
        .order_by(Course.id)
        .all()
    )
    return [CourseInfo.model_validate(course) for course in courses]


@router.get(
    "/{course_id}", response_model=CourseResponse, status_code=status.HTTP_200_OK
)
async def get_course_by_id(course_id: int, db: Session = Depends(get_db)):
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise CourseNotFound()

    return CourseResponse.model_validate(course.to_dict())
