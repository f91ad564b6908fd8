"""
Domain errors raised by the catalog services and their HTTP rendering.
"""
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("catalog")


class CatalogError(Exception):
    """Base class for recoverable domain errors, each maps to a 4xx response"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidRating(CatalogError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "Rating must be an integer between 1 and 5"


class NotEnrolled(CatalogError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You must be enrolled in this course"


class AlreadyEnrolled(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Already enrolled in this course"


class AlreadyRated(CatalogError):
    status_code = status.HTTP_409_CONFLICT
    detail = "User already rated this course"


class CourseNotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Course not found"


class UserNotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "User not found"


class CourseFull(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Course has reached its maximum capacity"


class AggregationConflict(CatalogError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Course rating is being updated concurrently, try again"


async def catalog_exception_handler(request: Request, exc: CatalogError):
    """
    Render a domain error as JSON.

    Args:
        request: FastAPI request
        exc: the raised CatalogError

    Returns:
        JSONResponse with the error's status code
    """
    logger.info(
        "%s %s -> %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
    )
