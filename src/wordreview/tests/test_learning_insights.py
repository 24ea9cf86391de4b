"""Tests for learning statistics, suggestions and plans."""
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from wordreview.models.learning_models import LearningRecord
from wordreview.services.learning_insights import (
    calculate_learning_stats,
    calculate_streak_days,
    calculate_urgency,
    generate_learning_plan,
    get_learning_suggestions,
    get_words_for_review,
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


def make_record(word: str, mastery: int, due_in_days: float, **kwargs) -> LearningRecord:
    return LearningRecord(
        word_id=word,
        word=word,
        mastery_level=mastery,
        next_review_date=NOW + timedelta(days=due_in_days),
        **kwargs,
    )


def test_urgency_grows_with_overdue_days():
    assert calculate_urgency(make_record("a", 50, -2), NOW) == 20
    assert calculate_urgency(make_record("b", 0, 1), NOW) == 5


def test_words_for_review_order():
    records = [
        make_record("later", 80, 5),
        make_record("overdue", 60, -3),
        make_record("weak", 10, 5),
        make_record("today", 70, 0),
    ]

    due = get_words_for_review(records, now=NOW)

    assert [r.word for r in due] == ["overdue", "weak", "today"]
    assert len(get_words_for_review(records, max_words=1, now=NOW)) == 1


def test_words_for_review_default_cap_comes_from_settings():
    records = [make_record(str(i), 10, -1) for i in range(5)]
    with patch("wordreview.services.learning_insights.settings.review.max_words_for_review", 3):
        assert len(get_words_for_review(records, now=NOW)) == 3


def test_streak_days():
    records = [
        LearningRecord(word_id=str(i), word=str(i), last_reviewed=NOW - timedelta(days=i))
        for i in (0, 1, 2, 4)
    ]
    assert calculate_streak_days(records, NOW) == 3
    assert calculate_streak_days([], NOW) == 0


def test_learning_stats():
    records = [
        make_record("mastered", 96, 30, learning_efficiency=80, confidence_level=90,
                    last_reviewed=NOW, time_spent=10),
        make_record("learning", 50, 2, learning_efficiency=60, confidence_level=50,
                    last_reviewed=NOW - timedelta(days=1), time_spent=5),
        make_record("forgotten", 10, -1, learning_efficiency=20, confidence_level=10),
    ]

    stats = calculate_learning_stats(records, NOW)

    assert stats.total_words == 3
    assert stats.mastered_words == 1
    assert stats.learning_words == 1
    assert stats.forgotten_words == 1
    assert stats.average_mastery == 52
    assert stats.total_review_time == 15
    assert stats.streak_days == 2
    assert stats.last_study_date == NOW
    assert stats.learning_efficiency == 53
    assert stats.weekly_progress == 48


def test_learning_stats_of_nothing():
    stats = calculate_learning_stats([], NOW)
    assert stats.total_words == 0
    assert stats.average_mastery == 0


def test_suggestions_are_capped():
    records = [make_record(f"w{i}", 10, -1, review_count=5, incorrect_count=5) for i in range(5)]
    suggestions = get_learning_suggestions(records, NOW)
    assert 0 < len(suggestions) <= 5
    assert suggestions[0] == "5 words need focused review"


def test_learning_plan():
    records = [
        make_record("due", 30, -1),
        make_record("tomorrow", 70, 1),
        make_record("next_month", 90, 30),
        make_record("hard", 20, 3, review_count=5, incorrect_count=5),
    ]

    plan = generate_learning_plan(records, target_words_per_day=10, now=NOW)

    assert [r.word for r in plan.today] == ["due", "hard"]
    assert [r.word for r in plan.tomorrow] == ["tomorrow"]
    assert {r.word for r in plan.this_week} == {"due", "tomorrow", "hard"}
    assert [r.word for r in plan.difficult_words] == ["hard"]
    assert "hard" in [r.word for r in plan.recommended_words]
