"""Aggregate views over learning records: review priority, statistics, suggestions and plans."""
from datetime import UTC, date, datetime, timedelta
from typing import List, Optional

from wordreview.config import settings
from wordreview.models.learning_models import LearningPlan, LearningRecord, LearningStats
from wordreview.services.mastery_engine import round_half_up

MASTERED_LEVEL = 95
LEARNING_LEVEL = 25
DIFFICULT_LEVEL = 40


def _is_due(record: LearningRecord, now: datetime) -> bool:
    return record.next_review_date is None or record.next_review_date <= now


def calculate_urgency(record: LearningRecord, now: datetime) -> float:
    """Overdue days weigh most; low mastery adds a little on top."""
    if record.next_review_date is None:
        days_overdue = 0.0
    else:
        days_overdue = max(0.0, (now - record.next_review_date).total_seconds() / 86400)
    mastery_factor = max(0.0, (50 - record.mastery_level) / 50)
    return days_overdue * 10 + mastery_factor * 5


def get_words_for_review(
    records: List[LearningRecord],
    max_words: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[LearningRecord]:
    """Due or weak records, most urgent first; MAX_WORDS_FOR_REVIEW caps the list by default."""
    if max_words is None:
        max_words = settings.review.max_words_for_review
    now = now or datetime.now(UTC)
    due = [r for r in records if _is_due(r, now) or r.mastery_level < LEARNING_LEVEL]
    due.sort(key=lambda r: (-calculate_urgency(r, now), r.mastery_level, r.learning_efficiency))
    return due[:max_words]


def calculate_streak_days(records: List[LearningRecord], now: Optional[datetime] = None) -> int:
    """Number of consecutive study days ending today or yesterday."""
    now = now or datetime.now(UTC)
    study_days = sorted(
        {r.last_reviewed.astimezone(UTC).date() for r in records if r.last_reviewed is not None},
        reverse=True,
    )
    streak = 0
    current: date = now.astimezone(UTC).date()
    for study_day in study_days:
        if (current - study_day).days <= 1:
            streak += 1
            current = study_day
        else:
            break
    return streak


def calculate_progress(records: List[LearningRecord], days: int, now: Optional[datetime] = None) -> int:
    """Average mastery gained above the learning threshold by words studied recently."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=days)
    recent = [r for r in records if r.last_reviewed is not None and r.last_reviewed >= cutoff]
    if not recent:
        return 0
    gain = sum(max(0, r.mastery_level - LEARNING_LEVEL) for r in recent)
    return round_half_up(gain / len(recent))


def calculate_learning_stats(records: List[LearningRecord], now: Optional[datetime] = None) -> LearningStats:
    """Totals and averages across every record."""
    now = now or datetime.now(UTC)
    total = len(records)
    if total == 0:
        return LearningStats()

    reviewed = [r.last_reviewed for r in records if r.last_reviewed is not None]
    return LearningStats(
        total_words=total,
        mastered_words=sum(1 for r in records if r.mastery_level >= MASTERED_LEVEL),
        learning_words=sum(1 for r in records if LEARNING_LEVEL <= r.mastery_level < MASTERED_LEVEL),
        forgotten_words=sum(1 for r in records if r.mastery_level < LEARNING_LEVEL),
        average_mastery=round_half_up(sum(r.mastery_level for r in records) / total),
        total_review_time=sum(r.time_spent for r in records),
        streak_days=calculate_streak_days(records, now),
        last_study_date=max(reviewed) if reviewed else None,
        learning_efficiency=round_half_up(sum(r.learning_efficiency for r in records) / total),
        average_confidence=round_half_up(sum(r.confidence_level for r in records) / total),
        weekly_progress=calculate_progress(records, 7, now),
        monthly_progress=calculate_progress(records, 30, now),
    )


def get_learning_suggestions(records: List[LearningRecord], now: Optional[datetime] = None) -> List[str]:
    """Short hints for the learner, at most five."""
    now = now or datetime.now(UTC)
    stats = calculate_learning_stats(records, now)
    suggestions = []

    if stats.forgotten_words > 0:
        suggestions.append(f"{stats.forgotten_words} words need focused review")
    if stats.average_mastery < 50:
        suggestions.append("Overall mastery is low, review more often")
    if stats.learning_efficiency < 50:
        suggestions.append("Learning efficiency is low, try a different study method")
    if stats.average_confidence < 60:
        suggestions.append("Confidence is low, practise the basic words more")

    if stats.streak_days == 0:
        suggestions.append("You have not studied today, start today's review!")
    elif stats.streak_days >= 7:
        suggestions.append(f"{stats.streak_days} days in a row, keep it up!")
    elif stats.streak_days >= 3:
        suggestions.append(f"{stats.streak_days} days in a row, the habit is forming")

    if stats.weekly_progress > 10:
        suggestions.append("Great progress this week, keep going!")

    due = get_words_for_review(records, now=now)
    if due:
        suggestions.append(f"{len(due)} words are due for review")

    difficult = [r for r in records if r.mastery_level < DIFFICULT_LEVEL and r.review_count > 3]
    if difficult:
        suggestions.append(f"{len(difficult)} difficult words need a breakthrough")

    return suggestions[:5]


def generate_learning_plan(
    records: List[LearningRecord], target_words_per_day: int = 20, now: Optional[datetime] = None
) -> LearningPlan:
    """Split the upcoming workload into today, tomorrow and this week."""
    now = now or datetime.now(UTC)
    tomorrow = (now + timedelta(days=1)).date()
    week_end = now + timedelta(days=7)

    tomorrow_records = [
        r for r in records
        if r.next_review_date is not None and r.next_review_date.astimezone(UTC).date() == tomorrow
    ]
    this_week = [r for r in records if r.next_review_date is None or r.next_review_date <= week_end]
    difficult = sorted(
        (r for r in records if r.mastery_level < DIFFICULT_LEVEL and r.review_count > 2),
        key=lambda r: r.mastery_level,
    )
    recommended = sorted(
        (r for r in records if r.review_count == 0 or r.mastery_level < LEARNING_LEVEL),
        key=lambda r: -r.confidence_level,
    )

    return LearningPlan(
        today=get_words_for_review(records, target_words_per_day, now),
        tomorrow=tomorrow_records[:target_words_per_day],
        this_week=this_week[: target_words_per_day * 7],
        difficult_words=difficult[:10],
        recommended_words=recommended[:10],
    )
