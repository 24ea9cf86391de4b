"""Service for loading, updating and saving learning records and review sessions."""
import json
import logging
import threading
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from wordreview import monitoring
from wordreview.config import LEARNING_RECORDS_KEY, REVIEW_SESSIONS_KEY, settings
from wordreview.exceptions import PersistenceError, ValidationError
from wordreview.models.learning_models import LearningRecord, SessionStats, format_datetime
from wordreview.services.document_store import DocumentStore
from wordreview.services.interval_scheduler import new_learning_record, update_learning_record

logger = logging.getLogger(__name__)


class LearningRecordStore:
    """Owns the learning_records and review_sessions documents.

    Learning records are read from the store once and then kept in memory.
    The in-memory list is authoritative: every write sends the whole list, so
    a write that fails is reconciled by the next one that succeeds.
    """

    def __init__(self, store: DocumentStore):
        """Initialize the service with a document store."""
        self.store = store
        self._lock = threading.RLock()
        self._records: Optional[List[LearningRecord]] = None

    def _read_json(self, key: str) -> List[Dict[str, Any]]:
        """Stored list under key.

        Raises:
            PersistenceError: If the read fails or the document is not a JSON list.
        """
        try:
            payload = self.store.get(key)
        except PersistenceError:
            monitoring.persistence_errors.labels(document=key).inc()
            raise
        if payload is None:
            return []
        try:
            data = json.loads(payload.decode("utf-8"))
        except ValueError as e:
            monitoring.error_count.labels(error_type="corrupt_document").inc()
            raise PersistenceError(key, f"not valid JSON: {e}") from e
        if not isinstance(data, list):
            monitoring.error_count.labels(error_type="corrupt_document").inc()
            raise PersistenceError(key, "expected a JSON list")
        return data

    def _load_json(self, key: str) -> List[Dict[str, Any]]:
        try:
            return self._read_json(key)
        except PersistenceError as e:
            logger.error("Failed to read %s: %s", key, e)
            return []

    def _save_json(self, key: str, items: List[Dict[str, Any]]) -> None:
        payload = json.dumps(items, ensure_ascii=False).encode("utf-8")
        try:
            self.store.set(key, payload)
        except PersistenceError:
            monitoring.persistence_errors.labels(document=key).inc()
            raise
        monitoring.persistence_writes.labels(document=key).inc()

    @staticmethod
    def _parse_records(items: List[Dict[str, Any]]) -> List[LearningRecord]:
        records = []
        for item in items:
            try:
                records.append(LearningRecord.from_dict(item))
            except (ValidationError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed learning record %r: %s", item, e)
        return records

    def _ensure_loaded(self) -> List[LearningRecord]:
        """Records held in memory, read from the store on first use.

        Raises:
            PersistenceError: If the stored records cannot be read.
        """
        if self._records is None:
            self._records = self._parse_records(self._read_json(LEARNING_RECORDS_KEY))
            logger.debug("Loaded %d learning records", len(self._records))
        return self._records

    def get_learning_records(self) -> List[LearningRecord]:
        """All known records; malformed ones are skipped.

        An unreadable store reads as no records and is retried on the next call.
        """
        with self._lock:
            try:
                return list(self._ensure_loaded())
            except PersistenceError as e:
                logger.error("Failed to read learning records: %s", e)
                return []

    def get_record(self, word_id: str) -> Optional[LearningRecord]:
        """The record of a word, or None."""
        return next((r for r in self.get_learning_records() if r.word_id == word_id), None)

    def save_learning_records(self, records: List[LearningRecord]) -> None:
        """Replace all records.

        The records are kept in memory even when the write fails.

        Raises:
            PersistenceError: If the write fails.
        """
        with self._lock:
            self._records = list(records)
            self._save_json(LEARNING_RECORDS_KEY, [record.to_dict() for record in self._records])
        logger.debug("Saved %d learning records", len(records))

    def record_review(
        self,
        word_id: str,
        word: str,
        was_correct: bool,
        review_date: Optional[datetime] = None,
        response_time_ms: Optional[float] = None,
        confidence_level: Optional[int] = None,
    ) -> LearningRecord:
        """Apply one answer to a word's record, creating the record on first encounter.

        A failed write is logged; the change stays in memory and goes out
        with the next successful write.

        Raises:
            ValidationError: If word_id is empty or the record is malformed.
            PersistenceError: If the stored records cannot be read. Nothing
                is changed or written in that case.
        """
        if not word_id:
            raise ValidationError("word_id is required")
        review_date = review_date or datetime.now(UTC)

        with self._lock:
            records = list(self._ensure_loaded())
            index = next((i for i, r in enumerate(records) if r.word_id == word_id), None)
            if index is None:
                record = new_learning_record(word_id, word, review_date)
                records.append(record)
                index = len(records) - 1
                logger.info("Created learning record for %s", word)
            else:
                record = records[index]

            updated = update_learning_record(
                record,
                was_correct,
                review_date=review_date,
                response_time_ms=response_time_ms,
                confidence_level=confidence_level,
                baseline_ms=settings.review.baseline_response_time_ms,
            )
            records[index] = updated
            try:
                self.save_learning_records(records)
            except PersistenceError as e:
                logger.error("Failed to save learning record for %s: %s", word, e)
        return updated

    def save_review_session(
        self,
        stats: SessionStats,
        words: List[str],
        started_at: datetime,
        ended_at: Optional[datetime] = None,
    ) -> None:
        """Append a finished session to the stored history.

        Raises:
            PersistenceError: If the history cannot be read or written.
        """
        sessions = self._read_json(REVIEW_SESSIONS_KEY)
        session = stats.to_dict()
        session.update(
            {
                "words": words,
                "start_time": format_datetime(started_at),
                "end_time": format_datetime(ended_at or datetime.now(UTC)),
            }
        )
        sessions.append(session)
        self._save_json(REVIEW_SESSIONS_KEY, sessions)
        logger.info("Saved review session %s", stats.session_id)

    def get_review_sessions(self) -> List[Dict[str, Any]]:
        """Stored session summaries, oldest first."""
        return self._load_json(REVIEW_SESSIONS_KEY)
