"""Tests for interval scheduling and learning record updates."""
from datetime import UTC, datetime, timedelta

import pytest
from faker import Faker

from wordreview.exceptions import ValidationError
from wordreview.models.learning_models import LearningRecord
from wordreview.services.interval_scheduler import (
    MAX_INTERVAL_DAYS,
    MIN_INTERVAL_DAYS,
    calculate_consecutive_adjustment,
    calculate_efficiency_adjustment,
    calculate_next_interval,
    calculate_stability_adjustment,
    calculate_time_adjustment,
    get_base_interval,
    new_learning_record,
    update_learning_record,
)

fake = Faker()
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def test_base_interval_table():
    assert get_base_interval(0) == 1
    assert get_base_interval(30) == 2
    assert get_base_interval(50) == 4
    assert get_base_interval(70) == 7
    assert get_base_interval(85) == 14
    assert get_base_interval(92) == 30
    assert get_base_interval(100) == 60


def test_adjustments():
    assert calculate_consecutive_adjustment(True, 1, 0) == 0.1
    assert calculate_consecutive_adjustment(True, 5, 0) == 0.5
    assert calculate_consecutive_adjustment(False, 0, 1) == -0.2
    assert calculate_consecutive_adjustment(False, 0, 3) == -0.5
    assert calculate_efficiency_adjustment(85) == 0.2
    assert calculate_efficiency_adjustment(10) == -0.2
    assert calculate_time_adjustment(None) == 0.0
    assert calculate_time_adjustment(1000) == 0.1
    assert calculate_time_adjustment(60000) == -0.2


def test_stability_needs_five_reviews():
    record = LearningRecord(word_id="w", word="w", review_count=4, correct_count=4)
    assert calculate_stability_adjustment(record) == 0.0
    record = LearningRecord(word_id="w", word="w", review_count=10, correct_count=10)
    assert calculate_stability_adjustment(record) == 0.1
    record = LearningRecord(
        word_id="w", word="w", review_count=10, correct_count=5, incorrect_count=5
    )
    assert calculate_stability_adjustment(record) == -0.1


def test_interval_is_clamped():
    record = LearningRecord(
        word_id="w",
        word="w",
        review_count=3,
        incorrect_count=3,
        consecutive_incorrect=3,
        mastery_level=0,
        learning_efficiency=0,
    )
    assert calculate_next_interval(record, False, response_time_ms=60000) == MIN_INTERVAL_DAYS
    record = LearningRecord(word_id="w", word="w", mastery_level=100, learning_efficiency=100)
    assert calculate_next_interval(record, True) <= MAX_INTERVAL_DAYS


def test_new_learning_record():
    record = new_learning_record("42", "hello", NOW)
    assert record.review_count == 0
    assert record.mastery_level == 0
    assert record.interval_days == 1
    assert record.next_review_date == NOW
    assert record.last_reviewed == NOW


def test_first_correct_answer_schedules_66_days():
    record = new_learning_record("1", "apple", NOW)

    updated = update_learning_record(record, True, review_date=NOW)

    assert updated.review_count == 1
    assert updated.correct_count == 1
    assert updated.consecutive_correct == 1
    assert updated.consecutive_incorrect == 0
    assert updated.learning_efficiency == 53
    assert updated.mastery_level == 100
    assert updated.interval_days == 66
    assert updated.next_review_date == NOW + timedelta(days=66)
    assert updated.last_reviewed == NOW


def test_mastery_uses_efficiency_from_before_the_answer():
    record = LearningRecord(
        word_id="1",
        word="apple",
        review_count=2,
        correct_count=1,
        incorrect_count=1,
        consecutive_incorrect=1,
        learning_efficiency=0,
    )

    updated = update_learning_record(record, True, review_date=NOW)

    # 2/3 accuracy plus the one-answer streak bonus; no efficiency bonus yet
    assert updated.mastery_level == 72
    assert updated.learning_efficiency == 39
    assert updated.interval_days == 7


def test_first_incorrect_answer_schedules_one_day():
    record = new_learning_record("1", "apple", NOW)

    updated = update_learning_record(record, False, review_date=NOW)

    assert updated.incorrect_count == 1
    assert updated.consecutive_incorrect == 1
    assert updated.consecutive_correct == 0
    assert updated.mastery_level == 0
    assert updated.interval_days == 1
    assert updated.next_review_date == NOW + timedelta(days=1)


def test_update_does_not_modify_input():
    record = new_learning_record("1", "apple", NOW)
    update_learning_record(record, True, review_date=NOW)
    assert record.review_count == 0
    assert record.mastery_level == 0


def test_update_clamps_confidence_and_tracks_time():
    record = new_learning_record("1", "apple", NOW)
    updated = update_learning_record(
        record, True, review_date=NOW, response_time_ms=2500, confidence_level=150
    )
    assert updated.confidence_level == 100
    assert updated.time_spent == pytest.approx(2.5)


def test_update_rejects_inconsistent_record():
    record = LearningRecord(word_id="1", word="apple", review_count=3, correct_count=1)
    with pytest.raises(ValidationError):
        update_learning_record(record, True)


def test_update_rejects_record_without_id():
    with pytest.raises(ValidationError):
        update_learning_record(LearningRecord(word_id="", word="apple"), True)


def test_invariants_hold_over_random_histories():
    for _ in range(20):
        record = new_learning_record(str(fake.random_int()), fake.word(), NOW)
        review_date = NOW
        for _ in range(fake.random_int(min=1, max=30)):
            was_correct = fake.boolean()
            response_time = fake.random_int(min=0, max=15000)
            record = update_learning_record(
                record,
                was_correct,
                review_date=review_date,
                response_time_ms=response_time,
                confidence_level=fake.random_int(min=-20, max=120),
            )
            assert record.correct_count + record.incorrect_count == record.review_count
            assert 0 <= record.mastery_level <= 100
            assert 0 <= record.learning_efficiency <= 100
            assert MIN_INTERVAL_DAYS <= record.interval_days <= MAX_INTERVAL_DAYS
            if was_correct:
                assert record.consecutive_incorrect == 0
            else:
                assert record.consecutive_correct == 0
            assert record.next_review_date == review_date + timedelta(days=record.interval_days)
            review_date = record.next_review_date
