"""
Rating aggregation and enrollment-state reconciliation.

Every course stores a running mean and count of the ratings held by its
active enrollments. Enrolling, dropping and rating each touch one enrollment
and the course row, and both changes are committed in a single transaction
while the course is locked. Updates to different courses never contend.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from catalog.config import config
from catalog.exceptions import (
    AggregationConflict,
    AlreadyEnrolled,
    AlreadyRated,
    CourseFull,
    CourseNotFound,
    InvalidRating,
    NotEnrolled,
    UserNotFound,
)
from catalog.models import Course, Enrollment, EnrollmentStatus, User
from catalog.schemas.rating import CourseAggregate, MyRating, RatingResult

logger = logging.getLogger("catalog")

MIN_RATING = 1
MAX_RATING = 5

# Store conflicts worth another attempt after a rollback
RETRYABLE_ERRORS = (StaleDataError, IntegrityError)

# OperationalError is only retried for lock contention, not for a missing
# table or a dropped connection
TRANSIENT_OPERATIONAL_ERRORS = (
    "database is locked",
    "could not serialize access",
    "deadlock detected",
)

T = TypeVar("T")


### Running mean arithmetic ###
def add_rating(mean: float, count: int, value: int) -> Tuple[float, int]:
    new_count = count + 1
    return (mean * count + value) / new_count, new_count


def remove_rating(mean: float, count: int, value: int) -> Tuple[float, int]:
    new_count = count - 1
    if new_count <= 0:
        return 0.0, 0
    return (mean * count - value) / new_count, new_count


def replace_rating(
    mean: float, count: int, old_value: int, new_value: int
) -> Tuple[float, int]:
    return (mean * count - old_value + new_value) / count, count


def validate_rating(value) -> int:
    """Return value if it is an integer star rating, raise InvalidRating otherwise"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRating()
    if value < MIN_RATING or value > MAX_RATING:
        raise InvalidRating()
    return value


def is_retryable(error: Exception) -> bool:
    if isinstance(error, RETRYABLE_ERRORS):
        return True
    if isinstance(error, OperationalError):
        message = str(error).lower()
        return any(marker in message for marker in TRANSIENT_OPERATIONAL_ERRORS)
    return False


### Per-course serialization ###
_course_locks: Dict[int, threading.Lock] = {}
_course_locks_guard = threading.Lock()


def course_lock(course_id: int) -> threading.Lock:
    with _course_locks_guard:
        lock = _course_locks.get(course_id)
        if lock is None:
            lock = threading.Lock()
            _course_locks[course_id] = lock
        return lock


def run_serialized(
    db: Session,
    course_id: int,
    operation: Callable[[], T],
    max_attempts: Optional[int] = None,
) -> T:
    """
    Run operation and commit it while holding the course lock.

    Domain errors roll back and propagate untouched. Store conflicts roll
    back and are retried; once the attempts are used up the caller gets
    AggregationConflict.

    Args:
        db: Database session
        course_id: ID of the course whose aggregate the operation touches
        operation: callable doing the reads and mutations, returns the result
        max_attempts: defaults to RATING_MAX_RETRIES

    Returns:
        Whatever operation returned
    """
    if max_attempts is None:
        max_attempts = config.RATING_MAX_RETRIES

    for attempt in range(1, max_attempts + 1):
        with course_lock(course_id):
            try:
                result = operation()
                db.commit()
                return result
            except Exception as e:
                db.rollback()
                if not is_retryable(e):
                    raise
                logger.warning(
                    "Conflict on course %s (attempt %d/%d): %s",
                    course_id,
                    attempt,
                    max_attempts,
                    e,
                )

    logger.error(
        "Giving up on course %s after %d attempts", course_id, max_attempts
    )
    raise AggregationConflict()


### Store access ###
def _load_course(db: Session, course_id: int) -> Course:
    course = (
        db.query(Course)
        .filter(Course.id == course_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if course is None:
        raise CourseNotFound()
    return course


def find_enrollment(db: Session, user_id: int, course_id: int) -> Optional[Enrollment]:
    return (
        db.query(Enrollment)
        .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
        .populate_existing()
        .first()
    )


def _aggregate(course: Course) -> CourseAggregate:
    return CourseAggregate(
        course_id=course.id,
        rating_mean=course.rating_mean,
        rating_count=course.rating_count,
    )


### Operations ###
def enroll(db: Session, user_id: int, course_id: int) -> Enrollment:
    """
    Enroll a user in a course.

    A dropped enrollment is reactivated in place with its rating cleared,
    so the (user, course) pair keeps a single record.
    """

    def operation() -> Enrollment:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise UserNotFound()

        course = _load_course(db, course_id)
        enrollment = find_enrollment(db, user_id, course_id)
        if enrollment is not None and enrollment.is_active:
            raise AlreadyEnrolled()
        if course.enrolled_count >= course.max_capacity:
            raise CourseFull()

        if enrollment is None:
            enrollment = Enrollment(user_id=user_id, course_id=course_id)
            db.add(enrollment)
        else:
            enrollment.personal_rating = None
            enrollment.review = None
            enrollment.rated_at = None
        enrollment.status = EnrollmentStatus.ENROLLED.value
        course.enrolled_count += 1
        db.flush()
        return enrollment

    enrollment = run_serialized(db, course_id, operation)
    logger.info("User %s enrolled in course %s", user_id, course_id)
    return enrollment


def drop_course(db: Session, user_id: int, course_id: int) -> CourseAggregate:
    """Tombstone the user's enrollment and take its rating out of the aggregate"""

    def operation() -> CourseAggregate:
        course = _load_course(db, course_id)
        enrollment = find_enrollment(db, user_id, course_id)
        if enrollment is None or not enrollment.is_active:
            raise NotEnrolled("Not enrolled in this course")

        enrollment.status = EnrollmentStatus.DROPPED.value
        course.enrolled_count = max(course.enrolled_count - 1, 0)
        if enrollment.personal_rating is not None:
            course.rating_mean, course.rating_count = remove_rating(
                course.rating_mean, course.rating_count, enrollment.personal_rating
            )
        db.flush()
        return _aggregate(course)

    aggregate = run_serialized(db, course_id, operation)
    logger.info(
        "User %s dropped course %s, rating %.4f over %d",
        user_id,
        course_id,
        aggregate.rating_mean,
        aggregate.rating_count,
    )
    return aggregate


def complete_course(db: Session, user_id: int, course_id: int) -> Enrollment:
    """Mark an enrolled course as completed, the user keeps their seat and rating"""

    def operation() -> Enrollment:
        _load_course(db, course_id)
        enrollment = find_enrollment(db, user_id, course_id)
        if enrollment is None or not enrollment.is_active:
            raise NotEnrolled("Not enrolled in this course")

        enrollment.status = EnrollmentStatus.COMPLETED.value
        db.flush()
        return enrollment

    enrollment = run_serialized(db, course_id, operation)
    logger.info("User %s completed course %s", user_id, course_id)
    return enrollment


def submit_rating(
    db: Session,
    user_id: int,
    course_id: int,
    value: int,
    review: Optional[str] = None,
    allow_update: Optional[bool] = None,
) -> RatingResult:
    """
    Record the user's rating of a course they are actively enrolled in.

    Args:
        db: Database session
        user_id: ID of the rating user
        course_id: ID of the rated course
        value: star rating, 1 to 5
        review: optional free text, replaces any previous review
        allow_update: whether an existing rating may be replaced,
            defaults to ALLOW_RATING_UPDATE

    Returns:
        RatingResult with the new course aggregate and the stored rating
    """
    validate_rating(value)
    if allow_update is None:
        allow_update = config.ALLOW_RATING_UPDATE

    def operation() -> RatingResult:
        course = _load_course(db, course_id)
        enrollment = find_enrollment(db, user_id, course_id)
        if enrollment is None or not enrollment.is_active:
            raise NotEnrolled("You must be enrolled in this course to rate it")

        old_value = enrollment.personal_rating
        if old_value is None:
            course.rating_mean, course.rating_count = add_rating(
                course.rating_mean, course.rating_count, value
            )
        elif not allow_update:
            raise AlreadyRated()
        else:
            course.rating_mean, course.rating_count = replace_rating(
                course.rating_mean, course.rating_count, old_value, value
            )

        enrollment.personal_rating = value
        enrollment.review = review
        enrollment.rated_at = datetime.now(timezone.utc)
        db.flush()

        return RatingResult(
            course_id=course.id,
            rating_mean=course.rating_mean,
            rating_count=course.rating_count,
            rating=value,
            review=review,
            updated=old_value is not None,
        )

    result = run_serialized(db, course_id, operation)
    logger.info(
        "User %s rated course %s with %d, rating %.4f over %d",
        user_id,
        course_id,
        value,
        result.rating_mean,
        result.rating_count,
    )
    return result


def get_my_rating(db: Session, user_id: int, course_id: int) -> MyRating:
    enrollment = find_enrollment(db, user_id, course_id)
    if (
        enrollment is None
        or not enrollment.is_active
        or enrollment.personal_rating is None
    ):
        return MyRating(rated=False)
    return MyRating(
        rated=True, rating=enrollment.personal_rating, review=enrollment.review
    )
