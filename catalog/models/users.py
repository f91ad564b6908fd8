from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.models.basemodel import BaseModel
from catalog.roles import UserRole


class User(BaseModel):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        index=True,
        autoincrement=True,
    )
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default=UserRole.STUDENT.value)
    student_id = Column(String, unique=True, nullable=True)
    is_active = Column(Boolean, default=True)

    enrollments = relationship("Enrollment", back_populates="user")
