from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RatingCreate(BaseModel):
    # Type and range are checked by the aggregator so it answers with InvalidRating
    rating: Any
    review: Optional[str] = Field(None, max_length=1000)

    model_config = ConfigDict(
        json_schema_extra={"example": {"rating": 5, "review": "Clear and well paced"}}
    )


class CourseAggregate(BaseModel):
    course_id: int
    rating_mean: float
    rating_count: int


class RatingResult(CourseAggregate):
    rating: int
    review: Optional[str] = None
    updated: bool = False


class RatingResponse(RatingResult):
    message: str


class MyRating(BaseModel):
    rated: bool
    rating: Optional[int] = None
    review: Optional[str] = None
