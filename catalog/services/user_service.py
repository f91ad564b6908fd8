import time

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from catalog.models import User
from catalog.oauth2 import hash_password
from catalog.roles import UserRole
from catalog.schemas.user import CreateUserRequest


def check_if_user_exists(db: Session, email: str):
    existing_email = db.query(User).filter(User.email == email).first()
    if existing_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists"
        )


def generate_student_id() -> str:
    return "S{}".format(time.time_ns() // 1_000_000)


def create_student(db: Session, request: CreateUserRequest) -> User:
    check_if_user_exists(db, request.email)

    student_id = generate_student_id()
    # Two registrations within the same millisecond would collide
    while db.query(User).filter(User.student_id == student_id).first():
        student_id = "S{}".format(int(student_id[1:]) + 1)

    user = User(
        name=request.name,
        email=request.email,
        hashed_password=hash_password(request.password),
        role=UserRole.STUDENT.value,
        student_id=student_id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
