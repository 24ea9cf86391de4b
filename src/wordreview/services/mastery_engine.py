"""Mastery and learning-efficiency scores computed from review history."""
import math
from typing import Optional

from wordreview.config import BASELINE_RESPONSE_TIME_MS
from wordreview.models.learning_models import LearningRecord

# Weights of the learning-efficiency blend
EFFICIENCY_WEIGHTS = {
    "accuracy": 0.4,
    "consistency": 0.25,
    "speed": 0.15,
    "confidence": 0.2,
}


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive scores."""
    return int(math.floor(value + 0.5))


def has_response_time(response_time_ms: Optional[float]) -> bool:
    """A missing or non-positive time means the answer was not timed."""
    return response_time_ms is not None and response_time_ms > 0


def calculate_consistency_bonus(consecutive_correct: int, consecutive_incorrect: int) -> int:
    """Bonus for a correct streak, penalty for an incorrect one."""
    if consecutive_correct >= 5:
        return 20
    if consecutive_correct >= 3:
        return 15
    if consecutive_correct >= 2:
        return 10
    if consecutive_correct == 1:
        return 5

    if consecutive_incorrect >= 3:
        return -15
    if consecutive_incorrect >= 2:
        return -10
    if consecutive_incorrect == 1:
        return -5

    return 0


def calculate_frequency_adjustment(total_reviews: int) -> int:
    """Moderate review counts help retention; the first three are neutral."""
    if total_reviews <= 3:
        return 0
    if total_reviews <= 10:
        return 5
    if total_reviews <= 20:
        return 3
    return 1


def calculate_mastery_level(record: LearningRecord) -> int:
    """Estimate retention strength of a word as a 0-100 score.

    The score is the answer accuracy plus adjustments for the current streak,
    the learning efficiency, the self-reported confidence and how often the
    word has been reviewed.
    """
    total_reviews = record.correct_count + record.incorrect_count
    if total_reviews <= 0:
        return 0

    base_mastery = record.correct_count / total_reviews * 100
    consistency_bonus = calculate_consistency_bonus(
        record.consecutive_correct, record.consecutive_incorrect
    )
    efficiency_bonus = min(record.learning_efficiency * 0.15, 15)
    confidence_bonus = min(record.confidence_level * 0.2, 20)
    frequency_adjustment = calculate_frequency_adjustment(total_reviews)

    mastery = (
        base_mastery
        + consistency_bonus
        + efficiency_bonus
        + confidence_bonus
        + frequency_adjustment
    )
    return round_half_up(clamp(mastery, 0, 100))


def calculate_speed_score(
    response_time_ms: Optional[float],
    baseline_ms: float = BASELINE_RESPONSE_TIME_MS,
) -> float:
    """Score answer speed against the baseline; untimed answers score 0.5."""
    if not has_response_time(response_time_ms):
        return 0.5
    if response_time_ms <= baseline_ms * 0.5:
        return 1.0
    if response_time_ms <= baseline_ms:
        return 0.8
    if response_time_ms <= baseline_ms * 1.5:
        return 0.6
    return 0.4


def calculate_learning_efficiency(
    record: LearningRecord,
    was_correct: bool,
    response_time_ms: Optional[float] = None,
    baseline_ms: float = BASELINE_RESPONSE_TIME_MS,
) -> int:
    """Blend accuracy, consistency, speed and confidence into a 0-100 score.

    Accuracy and consistency already count the answer being recorded, so the
    record passed in is the one from before the review.
    """
    answered = 1 if was_correct else 0
    accuracy = (record.correct_count + answered) / (record.review_count + 1)
    consistency = min(record.consecutive_correct + answered, 5) / 5
    speed = calculate_speed_score(response_time_ms, baseline_ms)
    confidence = clamp(record.confidence_level, 0, 100) / 100

    blend = (
        accuracy * EFFICIENCY_WEIGHTS["accuracy"]
        + consistency * EFFICIENCY_WEIGHTS["consistency"]
        + speed * EFFICIENCY_WEIGHTS["speed"]
        + confidence * EFFICIENCY_WEIGHTS["confidence"]
    )
    return round_half_up(clamp(blend * 100, 0, 100))
