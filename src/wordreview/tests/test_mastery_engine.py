"""Tests for mastery and learning-efficiency scoring."""
import pytest

from wordreview.models.learning_models import LearningRecord
from wordreview.services.mastery_engine import (
    calculate_consistency_bonus,
    calculate_frequency_adjustment,
    calculate_learning_efficiency,
    calculate_mastery_level,
    calculate_speed_score,
    clamp,
    round_half_up,
)


def make_record(**kwargs) -> LearningRecord:
    defaults = {"word_id": "w1", "word": "apple"}
    defaults.update(kwargs)
    return LearningRecord(**defaults)


def test_round_half_up():
    assert round_half_up(52.5) == 53
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1
    assert round_half_up(66.00000000000001) == 66


def test_clamp():
    assert clamp(120, 0, 100) == 100
    assert clamp(-3, 0, 100) == 0
    assert clamp(42, 0, 100) == 42


@pytest.mark.parametrize(
    "correct,incorrect,expected",
    [(0, 0, 0), (1, 0, 5), (2, 0, 10), (3, 0, 15), (6, 0, 20), (0, 1, -5), (0, 2, -10), (0, 4, -15)],
)
def test_consistency_bonus(correct, incorrect, expected):
    assert calculate_consistency_bonus(correct, incorrect) == expected


def test_frequency_adjustment():
    assert calculate_frequency_adjustment(3) == 0
    assert calculate_frequency_adjustment(4) == 5
    assert calculate_frequency_adjustment(15) == 3
    assert calculate_frequency_adjustment(50) == 1


def test_mastery_is_zero_without_reviews():
    assert calculate_mastery_level(make_record(learning_efficiency=90, confidence_level=90)) == 0


def test_mastery_is_capped_at_100():
    record = make_record(
        review_count=10,
        correct_count=10,
        consecutive_correct=10,
        learning_efficiency=100,
        confidence_level=100,
    )
    assert calculate_mastery_level(record) == 100


def test_mastery_is_never_negative():
    record = make_record(review_count=5, incorrect_count=5, consecutive_incorrect=5)
    assert calculate_mastery_level(record) == 0


def test_mastery_combines_accuracy_and_bonuses():
    # 50% accuracy, one correct in a row, efficiency 40 -> +6, confidence 50 -> +10, 4 reviews -> +5
    record = make_record(
        review_count=4,
        correct_count=2,
        incorrect_count=2,
        consecutive_correct=1,
        learning_efficiency=40,
        confidence_level=50,
    )
    assert calculate_mastery_level(record) == 76


def test_speed_score_tiers():
    assert calculate_speed_score(None) == 0.5
    assert calculate_speed_score(0) == 0.5
    assert calculate_speed_score(-10) == 0.5
    assert calculate_speed_score(2000) == 1.0
    assert calculate_speed_score(5000) == 0.8
    assert calculate_speed_score(7000) == 0.6
    assert calculate_speed_score(9000) == 0.4


def test_learning_efficiency_of_first_correct_answer():
    # 0.4 accuracy + 0.05 consistency + 0.075 untimed speed
    assert calculate_learning_efficiency(make_record(), True) == 53


def test_learning_efficiency_of_first_incorrect_answer():
    assert calculate_learning_efficiency(make_record(), False) == 8


def test_learning_efficiency_rewards_fast_answers():
    record = make_record()
    fast = calculate_learning_efficiency(record, True, response_time_ms=1000)
    slow = calculate_learning_efficiency(record, True, response_time_ms=20000)
    assert fast > slow


def test_learning_efficiency_stays_in_range():
    record = make_record(
        review_count=20, correct_count=20, consecutive_correct=20, confidence_level=100
    )
    assert calculate_learning_efficiency(record, True, response_time_ms=100) == 100
