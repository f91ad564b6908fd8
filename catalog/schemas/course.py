from typing import Optional

from pydantic import ConfigDict, BaseModel, Field


class CourseBase(BaseModel):
    title: str
    course_code: str
    description: str
    instructor: str
    credits: int = Field(gt=0)
    max_capacity: int = Field(default=40, gt=0)


class CourseCreate(CourseBase):
    pass


class CourseResponse(BaseModel):
    id: int
    title: str
    course_code: str
    description: str
    instructor: str
    credits: int
    rating_mean: float
    rating_count: int
    max_capacity: int
    enrolled_count: int

    model_config = ConfigDict(from_attributes=True)


class CourseInfo(BaseModel):
    id: int
    title: str
    course_code: str
    instructor: str
    rating_mean: float
    rating_count: int

    model_config = ConfigDict(from_attributes=True)
