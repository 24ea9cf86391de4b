"""Spaced-repetition interval scheduling."""
import logging
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Optional

from wordreview.config import BASELINE_RESPONSE_TIME_MS
from wordreview.models.learning_models import Difficulty, LearningRecord
from wordreview.services.mastery_engine import (
    calculate_learning_efficiency,
    calculate_mastery_level,
    clamp,
    has_response_time,
    round_half_up,
)

logger = logging.getLogger(__name__)

MIN_INTERVAL_DAYS = 1
MAX_INTERVAL_DAYS = 365


def get_base_interval(mastery_level: float) -> int:
    """Base number of days between reviews for a mastery level."""
    if mastery_level < 25:
        return 1
    if mastery_level < 40:
        return 2
    if mastery_level < 60:
        return 4
    if mastery_level < 80:
        return 7
    if mastery_level < 90:
        return 14
    if mastery_level < 95:
        return 30
    return 60


def calculate_consecutive_adjustment(
    was_correct: bool, consecutive_correct: int, consecutive_incorrect: int
) -> float:
    if was_correct:
        if consecutive_correct >= 5:
            return 0.5
        if consecutive_correct >= 3:
            return 0.3
        if consecutive_correct >= 2:
            return 0.2
        return 0.1
    if consecutive_incorrect >= 3:
        return -0.5
    if consecutive_incorrect >= 2:
        return -0.3
    return -0.2


def calculate_efficiency_adjustment(learning_efficiency: float) -> float:
    if learning_efficiency >= 80:
        return 0.2
    if learning_efficiency >= 60:
        return 0.1
    if learning_efficiency >= 40:
        return 0.0
    if learning_efficiency >= 20:
        return -0.1
    return -0.2


def calculate_time_adjustment(
    response_time_ms: Optional[float], baseline_ms: float = BASELINE_RESPONSE_TIME_MS
) -> float:
    if not has_response_time(response_time_ms):
        return 0.0
    if response_time_ms <= baseline_ms * 0.5:
        return 0.1
    if response_time_ms <= baseline_ms:
        return 0.0
    if response_time_ms <= baseline_ms * 1.5:
        return -0.1
    return -0.2


def calculate_stability_adjustment(record: LearningRecord) -> float:
    """Reward answers that are consistently right (or consistently wrong)."""
    if record.review_count < 5:
        return 0.0
    accuracy = record.correct_count / record.review_count
    stability = abs(accuracy - 0.5) * 2
    if stability >= 0.8:
        return 0.1
    if stability >= 0.6:
        return 0.0
    return -0.1


def calculate_next_interval(
    record: LearningRecord,
    was_correct: bool,
    response_time_ms: Optional[float] = None,
    baseline_ms: float = BASELINE_RESPONSE_TIME_MS,
) -> int:
    """Days until the word is due again, between 1 and 365."""
    base_interval = get_base_interval(record.mastery_level)
    adjustment = (
        calculate_consecutive_adjustment(
            was_correct, record.consecutive_correct, record.consecutive_incorrect
        )
        + calculate_efficiency_adjustment(record.learning_efficiency)
        + calculate_time_adjustment(response_time_ms, baseline_ms)
        + calculate_stability_adjustment(record)
    )
    interval = base_interval * (1 + adjustment)
    return int(clamp(round_half_up(interval), MIN_INTERVAL_DAYS, MAX_INTERVAL_DAYS))


def new_learning_record(word_id: str, word: str, now: Optional[datetime] = None) -> LearningRecord:
    """Record for a word met for the first time."""
    now = now or datetime.now(UTC)
    return LearningRecord(
        word_id=word_id,
        word=word,
        last_reviewed=now,
        next_review_date=now,
        difficulty=Difficulty.MEDIUM,
        interval_days=1,
    )


def update_learning_record(
    record: LearningRecord,
    was_correct: bool,
    review_date: Optional[datetime] = None,
    response_time_ms: Optional[float] = None,
    confidence_level: Optional[int] = None,
    baseline_ms: float = BASELINE_RESPONSE_TIME_MS,
) -> LearningRecord:
    """Return a new record reflecting one more review of the word.

    The input record is left untouched. Mastery is computed from the counters
    after this answer and the efficiency from before it. The new efficiency,
    scored against the history before this answer, drives the interval.

    Raises:
        ValidationError: If the record is malformed.
    """
    record.validate()
    review_date = review_date or datetime.now(UTC)

    confidence = record.confidence_level if confidence_level is None else confidence_level
    confidence = int(clamp(confidence, 0, 100))

    answered = replace(
        record,
        review_count=record.review_count + 1,
        correct_count=record.correct_count + (1 if was_correct else 0),
        incorrect_count=record.incorrect_count + (0 if was_correct else 1),
        consecutive_correct=record.consecutive_correct + 1 if was_correct else 0,
        consecutive_incorrect=0 if was_correct else record.consecutive_incorrect + 1,
        confidence_level=confidence,
        last_reviewed=review_date,
    )
    mastery = calculate_mastery_level(answered)
    efficiency = calculate_learning_efficiency(record, was_correct, response_time_ms, baseline_ms)
    updated = replace(answered, mastery_level=mastery, learning_efficiency=efficiency)

    interval = calculate_next_interval(updated, was_correct, response_time_ms, baseline_ms)
    time_spent = record.time_spent
    if has_response_time(response_time_ms):
        time_spent += response_time_ms / 1000

    logger.debug(
        "Updated %s: correct=%s mastery %d -> %d, interval %d days",
        record.word,
        was_correct,
        record.mastery_level,
        mastery,
        interval,
    )
    return replace(
        updated,
        interval_days=interval,
        next_review_date=review_date + timedelta(days=interval),
        time_spent=time_spent,
    )
