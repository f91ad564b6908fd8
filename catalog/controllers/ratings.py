from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from catalog.database import get_db
from catalog.oauth2 import get_current_user_jwt
from catalog.schemas.rating import MyRating, RatingCreate, RatingResponse
from catalog.services import rating_aggregator

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post("/courses/{course_id}", response_model=RatingResponse)
async def rate_course(
    course_id: int,
    rating_data: RatingCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    result = rating_aggregator.submit_rating(
        db,
        current_user["user_id"],
        course_id,
        rating_data.rating,
        review=rating_data.review,
    )
    message = (
        "Rating updated successfully" if result.updated else "Rating added successfully"
    )
    return RatingResponse(message=message, **result.model_dump())


@router.get("/courses/{course_id}/me", response_model=MyRating)
async def get_my_rating(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user_jwt),
):
    return rating_aggregator.get_my_rating(db, current_user["user_id"], course_id)
