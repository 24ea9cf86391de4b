"""Service driving a review session: batch selection, answers and session summary."""
import logging
from datetime import UTC, datetime
from typing import Any, Dict, Iterable, Optional, Protocol, Union

from wordreview import monitoring
from wordreview.config import settings
from wordreview.exceptions import NotFoundError, PersistenceError
from wordreview.models.learning_models import (
    LearningRecord,
    ReviewBatch,
    ReviewMode,
    ReviewOutcome,
    SessionStats,
    SyncItem,
    VocabularyEntry,
)
from wordreview.services.interval_scheduler import update_learning_record
from wordreview.services.learning_record_store import LearningRecordStore
from wordreview.services.review_queue import ReviewQueueBuilder
from wordreview.services.session_stats import (
    EXPERIENCE_FORGOTTEN,
    EXPERIENCE_REMEMBERED,
    SessionStatsAggregator,
)
from wordreview.services.vocabulary_service import VocabularyProvider
from wordreview.services.wrong_word_tracker import WrongWordTracker

logger = logging.getLogger(__name__)

EXPERIENCE_SKIPPED = 0


class SyncQueue(Protocol):
    """Anything that accepts progress snapshots for remote sync."""

    def enqueue(self, item: SyncItem) -> None:
        ...


def progress_payload(record: LearningRecord) -> Dict[str, Any]:
    """Subset of a learning record sent to the sync queue."""
    return {
        "word_id": record.word_id,
        "mastery_level": record.mastery_level,
        "interval_days": record.interval_days,
        "review_count": record.review_count,
        "correct_count": record.correct_count,
        "incorrect_count": record.incorrect_count,
        "next_review_date": record.next_review_date.isoformat() if record.next_review_date else None,
    }


def record_from_entry(entry: VocabularyEntry) -> LearningRecord:
    """Learning record rebuilt from the counters the vocabulary provider keeps."""
    review_count = max(entry.review_count, entry.incorrect_count)
    return LearningRecord(
        word_id=entry.key,
        word=entry.word,
        review_count=review_count,
        correct_count=review_count - entry.incorrect_count,
        incorrect_count=entry.incorrect_count,
        consecutive_correct=entry.consecutive_correct,
        consecutive_incorrect=entry.consecutive_incorrect,
    )


class ReviewService:
    """Runs one review session at a time over the engine's components."""

    def __init__(
        self,
        queue_builder: ReviewQueueBuilder,
        tracker: WrongWordTracker,
        records: LearningRecordStore,
        vocabulary: Optional[VocabularyProvider] = None,
        sync_queue: Optional[SyncQueue] = None,
    ):
        """Initialize the service with its collaborators."""
        self.queue_builder = queue_builder
        self.tracker = tracker
        self.records = records
        self.vocabulary = vocabulary
        self.sync_queue = sync_queue

        self.batch: Optional[ReviewBatch] = None
        self.aggregator: Optional[SessionStatsAggregator] = None
        self._entries: Dict[str, VocabularyEntry] = {}
        self._started_at: Optional[datetime] = None
        self._finished: Optional[SessionStats] = None

    def start_session(
        self,
        vocabulary: Optional[Iterable[VocabularyEntry]] = None,
        review_type: Optional[str] = None,
        source_id: Optional[Union[int, str]] = None,
        mode: ReviewMode = ReviewMode.SMART,
        now: Optional[datetime] = None,
    ) -> ReviewBatch:
        """Build the batch for a new session and reset the session totals."""
        if vocabulary is None:
            if self.vocabulary is None:
                raise ValueError("No vocabulary given and no provider configured")
            vocabulary = self.vocabulary.snapshot()
        vocabulary = tuple(vocabulary)

        self.batch = self.queue_builder.build(
            vocabulary, review_type=review_type, source_id=source_id, mode=mode, now=now
        )
        self._entries = {}
        for entry in vocabulary:
            self._entries.setdefault(entry.key, entry)
            self._entries.setdefault(entry.word, entry)
        self.aggregator = SessionStatsAggregator()
        self.aggregator.initialize(len(self.batch))
        self._started_at = now or datetime.now(UTC)
        self._finished = None
        logger.info(
            "Started session %s with %d words", self.aggregator.session_id, len(self.batch)
        )
        return self.batch

    def on_correct(
        self,
        word_id: str,
        response_time_ms: Optional[float] = None,
        confidence_level: Optional[int] = None,
    ) -> ReviewOutcome:
        """The learner remembered the word."""
        entry = self._lookup(word_id)
        record = self._update_record(entry, True, response_time_ms, confidence_level)
        # Correct answers only matter to the tracker while the word is tracked
        self.tracker.update_wrong_word(entry.word, True)
        self.aggregator.update_stats(entry.word, True, entry.translation)
        self._after_answer(entry, record, True, "correct")
        return ReviewOutcome(record=record, experience_delta=EXPERIENCE_REMEMBERED)

    def on_incorrect(
        self,
        word_id: str,
        response_time_ms: Optional[float] = None,
        confidence_level: Optional[int] = None,
    ) -> ReviewOutcome:
        """The learner forgot the word."""
        entry = self._lookup(word_id)
        record = self._update_record(entry, False, response_time_ms, confidence_level)
        if self.tracker.has_wrong_word(entry.word):
            self.tracker.update_wrong_word(entry.word, False)
        else:
            self.tracker.add_wrong_word(
                entry.word,
                {
                    "incorrect_count": entry.incorrect_count + 1,
                    "consecutive_incorrect": entry.consecutive_incorrect + 1,
                    "consecutive_correct": 0,
                    "review_count": entry.review_count + 1,
                },
            )
        self.aggregator.update_stats(entry.word, False, entry.translation)
        self._after_answer(entry, record, False, "incorrect")
        return ReviewOutcome(record=record, experience_delta=EXPERIENCE_FORGOTTEN)

    def on_skip(
        self,
        word_id: str,
        response_time_ms: Optional[float] = None,
        confidence_level: Optional[int] = None,
    ) -> ReviewOutcome:
        """The learner skipped the word; it counts as not remembered for scheduling only."""
        entry = self._lookup(word_id)
        record = self._update_record(entry, False, response_time_ms, confidence_level)
        self.aggregator.record_skip(entry.word)
        self._after_answer(entry, record, False, "skipped")
        return ReviewOutcome(record=record, experience_delta=EXPERIENCE_SKIPPED)

    def finish_session(self) -> SessionStats:
        """Final totals of the current session, saved to the session history once."""
        if self.aggregator is None:
            raise RuntimeError("No review session was started")
        stats = self.aggregator.calculate_final_stats()
        if self._finished is None:
            self._finished = stats
            try:
                self.records.save_review_session(
                    stats, [action.word for action in self.aggregator.actions], self._started_at
                )
            except PersistenceError as e:
                logger.error("Failed to save review session %s: %s", stats.session_id, e)
        return stats

    def _lookup(self, word_id: str) -> VocabularyEntry:
        if self.aggregator is None:
            raise RuntimeError("No review session was started")
        entry = self._entries.get(word_id)
        if entry is None:
            raise NotFoundError(f"Unknown word: {word_id}")
        return entry

    def _update_record(
        self,
        entry: VocabularyEntry,
        was_correct: bool,
        response_time_ms: Optional[float],
        confidence_level: Optional[int],
    ) -> LearningRecord:
        try:
            return self.records.record_review(
                entry.key,
                entry.word,
                was_correct,
                response_time_ms=response_time_ms,
                confidence_level=confidence_level,
            )
        except PersistenceError as e:
            # Stored history is unreadable; schedule from the provider's counters, unsaved
            logger.error("Learning records unavailable for %s: %s", entry.word, e)
            return update_learning_record(
                record_from_entry(entry),
                was_correct,
                response_time_ms=response_time_ms,
                confidence_level=confidence_level,
                baseline_ms=settings.review.baseline_response_time_ms,
            )

    def _after_answer(
        self, entry: VocabularyEntry, record: LearningRecord, was_correct: bool, outcome: str
    ) -> None:
        monitoring.reviews_total.labels(outcome=outcome).inc()
        if self.vocabulary is not None:
            if outcome != "skipped":
                self.vocabulary.record_answer(entry.word, was_correct)
            self.vocabulary.set_next_review(entry.word, record.next_review_date)

        if self.sync_queue is None:
            return
        item = SyncItem(
            word=entry.word,
            progress=progress_payload(record),
            is_successful_review=was_correct,
            timestamp=datetime.now(UTC),
        )
        try:
            self.sync_queue.enqueue(item)
        except Exception as e:
            logger.error("Failed to enqueue sync item for %s: %s", entry.word, e)
            monitoring.error_count.labels(error_type="sync_enqueue").inc()
