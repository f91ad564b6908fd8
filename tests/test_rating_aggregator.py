"""
Tests of the rating aggregator against a real SQLite store
"""
import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from catalog.database import SessionLocal
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
from catalog.models import Course, Enrollment, EnrollmentStatus
from catalog.services.rating_aggregator import (
    complete_course,
    drop_course,
    enroll,
    get_my_rating,
    run_serialized,
    submit_rating,
)


def reload_course(db, course_id):
    db.expire_all()
    return db.query(Course).filter(Course.id == course_id).one()


def test_mean_of_submitted_ratings(db, make_user, make_course):
    course_id = make_course().id
    values = [5, 3, 4, 1, 2, 5, 5]
    for value in values:
        user_id = make_user().id
        enroll(db, user_id, course_id)
        result = submit_rating(db, user_id, course_id, value)

    assert result.rating_count == len(values)
    assert result.rating_mean == pytest.approx(sum(values) / len(values), abs=1e-6)

    course = reload_course(db, course_id)
    assert course.rating_count == len(values)
    assert course.rating_mean == pytest.approx(sum(values) / len(values), abs=1e-6)


def test_enroll_then_drop_without_rating_keeps_aggregate(db, make_user, make_course):
    course_id = make_course(rating_mean=3.5, rating_count=2).id
    user_id = make_user().id

    enroll(db, user_id, course_id)
    aggregate = drop_course(db, user_id, course_id)

    assert aggregate.rating_mean == pytest.approx(3.5)
    assert aggregate.rating_count == 2
    course = reload_course(db, course_id)
    assert course.enrolled_count == 0


def test_dropping_the_only_rating_resets_aggregate(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id

    enroll(db, user_id, course_id)
    submit_rating(db, user_id, course_id, 4)
    aggregate = drop_course(db, user_id, course_id)

    assert aggregate.rating_mean == 0
    assert aggregate.rating_count == 0


def test_rating_five_on_four_over_three(db, make_user, make_course):
    course_id = make_course(rating_mean=4.0, rating_count=3).id
    user_id = make_user().id
    enroll(db, user_id, course_id)

    result = submit_rating(db, user_id, course_id, 5)

    assert result.rating_mean == pytest.approx(4.25, abs=1e-6)
    assert result.rating_count == 4
    assert result.rating == 5
    assert result.updated is False


def test_dropping_a_two_from_four_and_a_quarter(db, make_user, make_course):
    course_id = make_course(rating_mean=5.0, rating_count=3).id
    user_id = make_user().id
    enroll(db, user_id, course_id)

    rated = submit_rating(db, user_id, course_id, 2)
    assert rated.rating_mean == pytest.approx(4.25, abs=1e-6)
    assert rated.rating_count == 4

    aggregate = drop_course(db, user_id, course_id)
    assert aggregate.rating_mean == pytest.approx(5.0, abs=1e-6)
    assert aggregate.rating_count == 3


@pytest.mark.parametrize("value", [0, 6, -1, 10, 2.5, "3", True, None])
def test_out_of_range_rating_fails_in_any_state(db, make_user, make_course, value):
    course_id = make_course().id
    user_id = make_user().id

    with pytest.raises(InvalidRating):
        submit_rating(db, user_id, course_id, value)

    with pytest.raises(InvalidRating):
        submit_rating(db, user_id, 9999, value)

    enroll(db, user_id, course_id)
    with pytest.raises(InvalidRating):
        submit_rating(db, user_id, course_id, value)

    drop_course(db, user_id, course_id)
    with pytest.raises(InvalidRating):
        submit_rating(db, user_id, course_id, value)

    assert reload_course(db, course_id).rating_count == 0


def test_rating_without_enrollment_fails(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id

    with pytest.raises(NotEnrolled):
        submit_rating(db, user_id, course_id, 4)


def test_rating_after_drop_fails_even_with_rating_history(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    enroll(db, user_id, course_id)
    submit_rating(db, user_id, course_id, 5)
    drop_course(db, user_id, course_id)

    with pytest.raises(NotEnrolled):
        submit_rating(db, user_id, course_id, 3)

    course = reload_course(db, course_id)
    assert course.rating_count == 0
    assert course.rating_mean == 0


def test_rating_unknown_course(db, make_user):
    with pytest.raises(CourseNotFound):
        submit_rating(db, make_user().id, 9999, 3)


def test_updating_a_rating_replaces_it(db, make_user, make_course):
    course_id = make_course().id
    first, second = make_user().id, make_user().id
    for user_id in (first, second):
        enroll(db, user_id, course_id)
    submit_rating(db, first, course_id, 5)
    submit_rating(db, second, course_id, 3)

    result = submit_rating(db, first, course_id, 1, review="Changed my mind")

    assert result.updated is True
    assert result.rating_count == 2
    assert result.rating_mean == pytest.approx(2.0, abs=1e-6)
    assert result.review == "Changed my mind"


def test_update_rejected_when_updates_disabled(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    enroll(db, user_id, course_id)
    submit_rating(db, user_id, course_id, 4)

    with pytest.raises(AlreadyRated):
        submit_rating(db, user_id, course_id, 2, allow_update=False)

    course = reload_course(db, course_id)
    assert course.rating_mean == pytest.approx(4.0)
    assert course.rating_count == 1
    assert get_my_rating(db, user_id, course_id).rating == 4


def test_update_policy_follows_config(db, make_user, make_course, monkeypatch):
    from catalog.config import config

    monkeypatch.setattr(config, "ALLOW_RATING_UPDATE", False)
    course_id = make_course().id
    user_id = make_user().id
    enroll(db, user_id, course_id)
    submit_rating(db, user_id, course_id, 4)

    with pytest.raises(AlreadyRated):
        submit_rating(db, user_id, course_id, 5)


def test_second_drop_fails(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    enroll(db, user_id, course_id)
    submit_rating(db, user_id, course_id, 3)
    drop_course(db, user_id, course_id)

    with pytest.raises(NotEnrolled):
        drop_course(db, user_id, course_id)

    course = reload_course(db, course_id)
    assert course.rating_count == 0
    assert course.enrolled_count == 0


def test_drop_without_enrollment(db, make_user, make_course):
    with pytest.raises(NotEnrolled):
        drop_course(db, make_user().id, make_course().id)


def test_drop_unknown_course(db, make_user):
    with pytest.raises(CourseNotFound):
        drop_course(db, make_user().id, 9999)


def test_drop_keeps_tombstone_with_rating(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    enroll(db, user_id, course_id)
    submit_rating(db, user_id, course_id, 2, review="Too fast")
    drop_course(db, user_id, course_id)

    db.expire_all()
    enrollment = db.query(Enrollment).filter_by(user_id=user_id, course_id=course_id).one()
    assert enrollment.status == EnrollmentStatus.DROPPED.value
    assert enrollment.personal_rating == 2
    assert enrollment.review == "Too fast"
    assert get_my_rating(db, user_id, course_id).rated is False


def test_enroll_twice_fails(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    enroll(db, user_id, course_id)

    with pytest.raises(AlreadyEnrolled):
        enroll(db, user_id, course_id)

    assert reload_course(db, course_id).enrolled_count == 1


def test_enroll_unknown_course_or_user(db, make_user, make_course):
    with pytest.raises(CourseNotFound):
        enroll(db, make_user().id, 9999)
    with pytest.raises(UserNotFound):
        enroll(db, 9999, make_course().id)


def test_enroll_full_course(db, make_user, make_course):
    course_id = make_course(max_capacity=1).id
    enroll(db, make_user().id, course_id)

    with pytest.raises(CourseFull):
        enroll(db, make_user().id, course_id)


def test_reenroll_reuses_record_without_rating(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    first = enroll(db, user_id, course_id)
    first_id = first.id
    submit_rating(db, user_id, course_id, 5)
    drop_course(db, user_id, course_id)

    again = enroll(db, user_id, course_id)

    assert again.id == first_id
    assert again.status == EnrollmentStatus.ENROLLED.value
    assert again.personal_rating is None
    assert db.query(Enrollment).filter_by(user_id=user_id, course_id=course_id).count() == 1
    course = reload_course(db, course_id)
    assert course.rating_count == 0
    assert course.enrolled_count == 1

    result = submit_rating(db, user_id, course_id, 3)
    assert result.updated is False
    assert result.rating_count == 1


def test_get_my_rating(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    assert get_my_rating(db, user_id, course_id).rated is False

    enroll(db, user_id, course_id)
    assert get_my_rating(db, user_id, course_id).rated is False

    submit_rating(db, user_id, course_id, 4, review="Solid")
    my_rating = get_my_rating(db, user_id, course_id)
    assert my_rating.rated is True
    assert my_rating.rating == 4
    assert my_rating.review == "Solid"


def test_failed_precondition_leaves_no_mutation(db, make_user, make_course):
    course_id = make_course(max_capacity=1).id
    enroll(db, make_user().id, course_id)
    before = reload_course(db, course_id)
    version = before.version_id

    with pytest.raises(CourseFull):
        enroll(db, make_user().id, course_id)

    after = reload_course(db, course_id)
    assert after.version_id == version
    assert after.enrolled_count == 1
    assert db.query(Enrollment).count() == 1


def test_add_remove_cycles_stay_consistent(db, make_user, make_course):
    course_id = make_course().id
    users = [make_user().id for _ in range(6)]
    values = [1, 5, 2, 4, 3, 5]
    for user_id, value in zip(users, values):
        enroll(db, user_id, course_id)
        submit_rating(db, user_id, course_id, value)

    for _ in range(5):
        for user_id, value in zip(users[:3], values[:3]):
            drop_course(db, user_id, course_id)
        for user_id, value in zip(users[:3], values[:3]):
            enroll(db, user_id, course_id)
            submit_rating(db, user_id, course_id, value)

    course = reload_course(db, course_id)
    assert course.rating_count == len(values)
    assert course.rating_mean == pytest.approx(sum(values) / len(values), abs=1e-6)


def test_run_serialized_retries_conflicts(db):
    calls = []

    def operation():
        calls.append(1)
        if len(calls) == 1:
            raise StaleDataError("simulated conflict")
        return "done"

    assert run_serialized(db, 1, operation, max_attempts=3) == "done"
    assert len(calls) == 2


def test_run_serialized_gives_up(db):
    calls = []

    def operation():
        calls.append(1)
        raise StaleDataError("simulated conflict")

    with pytest.raises(AggregationConflict):
        run_serialized(db, 1, operation, max_attempts=3)
    assert len(calls) == 3


def test_stale_course_write_is_retried(db, make_course):
    course_id = make_course().id
    interfered = []

    def operation():
        course = (
            db.query(Course).filter(Course.id == course_id).populate_existing().one()
        )
        if not interfered:
            # Another writer commits between our read and our write
            other = SessionLocal()
            try:
                other_course = other.query(Course).filter(Course.id == course_id).one()
                other_course.enrolled_count += 1
                other.commit()
            finally:
                other.close()
            interfered.append(True)
        course.rating_count += 1
        db.flush()
        return course.rating_count

    assert run_serialized(db, course_id, operation, max_attempts=3) == 1
    course = reload_course(db, course_id)
    assert course.rating_count == 1
    assert course.enrolled_count == 1
    assert course.version_id == 3


def test_concurrent_ratings_lose_no_update(db, make_user, make_course):
    course_id = make_course(max_capacity=100).id
    user_ids = [make_user().id for _ in range(12)]
    for user_id in user_ids:
        enroll(db, user_id, course_id)
    values = [(i % 5) + 1 for i in range(len(user_ids))]

    barrier = threading.Barrier(len(user_ids))
    errors = []

    def worker(user_id, value):
        session = SessionLocal()
        try:
            barrier.wait()
            submit_rating(session, user_id, course_id, value)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [
        threading.Thread(target=worker, args=(user_id, value))
        for user_id, value in zip(user_ids, values)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    course = reload_course(db, course_id)
    assert course.rating_count == len(values)
    assert course.rating_mean == pytest.approx(sum(values) / len(values), abs=1e-6)


def test_run_serialized_retries_locked_database(db):
    calls = []

    def operation():
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("UPDATE courses", {}, Exception("database is locked"))
        return "done"

    assert run_serialized(db, 1, operation, max_attempts=3) == "done"
    assert len(calls) == 2


def test_run_serialized_does_not_retry_permanent_errors(db):
    calls = []

    def operation():
        calls.append(1)
        raise OperationalError("SELECT", {}, Exception("no such table: courses"))

    with pytest.raises(OperationalError):
        run_serialized(db, 1, operation, max_attempts=3)
    assert len(calls) == 1


def test_completed_enrollment_can_rate_and_drop(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id
    enroll(db, user_id, course_id)

    completed = complete_course(db, user_id, course_id)
    assert completed.status == EnrollmentStatus.COMPLETED.value

    with pytest.raises(AlreadyEnrolled):
        enroll(db, user_id, course_id)

    result = submit_rating(db, user_id, course_id, 5)
    assert result.rating_count == 1
    assert get_my_rating(db, user_id, course_id).rated is True

    aggregate = drop_course(db, user_id, course_id)
    assert aggregate.rating_count == 0
    assert aggregate.rating_mean == 0
    assert reload_course(db, course_id).enrolled_count == 0


def test_complete_requires_active_enrollment(db, make_user, make_course):
    course_id = make_course().id
    user_id = make_user().id

    with pytest.raises(NotEnrolled):
        complete_course(db, user_id, course_id)

    enroll(db, user_id, course_id)
    drop_course(db, user_id, course_id)
    with pytest.raises(NotEnrolled):
        complete_course(db, user_id, course_id)
