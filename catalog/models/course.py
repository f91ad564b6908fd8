from sqlalchemy import Column, Float, Integer, String
from sqlalchemy.orm import relationship, Mapped, mapped_column

from catalog.models.basemodel import BaseModel


class Course(BaseModel):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    title = Column(String, unique=True, nullable=False)
    course_code = Column(String, unique=True, nullable=False)  # e.g. "CS 101"
    description = Column(String, nullable=False)
    instructor = Column(String, nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)

    # Running mean of the ratings on active enrollments
    rating_mean: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=40)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Bumped on every UPDATE, a concurrent writer fails with StaleDataError
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    enrollments = relationship("Enrollment", back_populates="course")

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "course_code": self.course_code,
            "description": self.description,
            "instructor": self.instructor,
            "credits": self.credits,
            "rating_mean": self.rating_mean,
            "rating_count": self.rating_count,
            "max_capacity": self.max_capacity,
            "enrolled_count": self.enrolled_count,
        }
