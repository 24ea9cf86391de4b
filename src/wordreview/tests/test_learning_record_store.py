"""Tests for the learning record store."""
import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from wordreview.config import LEARNING_RECORDS_KEY
from wordreview.exceptions import PersistenceError, ValidationError
from wordreview.models.learning_models import SessionStats
from wordreview.services.document_store import DocumentStore
from wordreview.services.learning_record_store import LearningRecordStore

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def records(store: DocumentStore) -> LearningRecordStore:
    return LearningRecordStore(store)


def test_no_records_initially(records: LearningRecordStore):
    assert records.get_learning_records() == []
    assert records.get_record("1") is None


def test_record_review_creates_and_updates(records: LearningRecordStore):
    first = records.record_review("1", "apple", True, review_date=NOW)
    assert first.review_count == 1
    assert first.interval_days == 66

    second = records.record_review("1", "apple", False, review_date=NOW)
    assert second.review_count == 2
    assert second.incorrect_count == 1

    stored = records.get_record("1")
    assert stored == second
    assert len(records.get_learning_records()) == 1


def test_record_review_requires_word_id(records: LearningRecordStore):
    with pytest.raises(ValidationError):
        records.record_review("", "apple", True)


def test_malformed_records_are_skipped(store: DocumentStore, records: LearningRecordStore):
    store.set(
        LEARNING_RECORDS_KEY,
        json.dumps([{"wordId": "1", "word": "apple", "reviewCount": 0}, {"word": "broken"}]).encode(),
    )
    loaded = records.get_learning_records()
    assert [r.word for r in loaded] == ["apple"]


def test_corrupt_document_reads_as_empty(store: DocumentStore, records: LearningRecordStore):
    store.set(LEARNING_RECORDS_KEY, b"{oops")
    assert records.get_learning_records() == []


def test_write_failure_still_returns_record():
    failing_store = MagicMock()
    failing_store.get.return_value = None
    failing_store.set.side_effect = PersistenceError(LEARNING_RECORDS_KEY, "disk full")
    records = LearningRecordStore(failing_store)

    record = records.record_review("1", "apple", True, review_date=NOW)

    assert record.review_count == 1
    with pytest.raises(PersistenceError):
        records.save_learning_records([record])


def test_review_sessions(records: LearningRecordStore):
    stats = SessionStats(session_id="s1", total_words=2, remembered_words=1, forgotten_words=1,
                         experience=3, accuracy=50)
    records.save_review_session(stats, ["apple", "pear"], NOW, NOW)

    sessions = records.get_review_sessions()
    assert len(sessions) == 1
    assert sessions[0]["session_id"] == "s1"
    assert sessions[0]["words"] == ["apple", "pear"]
    assert sessions[0]["start_time"] == NOW.isoformat()


class FlakyStore:
    """Document store whose next read or write fails on request."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.fail_next_get = False
        self.fail_next_set = False

    def get(self, key):
        if self.fail_next_get:
            self.fail_next_get = False
            raise PersistenceError(key, "database is locked")
        return self.store.get(key)

    def set(self, key, value):
        if self.fail_next_set:
            self.fail_next_set = False
            raise PersistenceError(key, "disk full")
        self.store.set(key, value)


def seed_records(store: DocumentStore, count: int) -> None:
    seeded = LearningRecordStore(store)
    for i in range(count):
        seeded.record_review(f"id{i}", f"word{i}", True, review_date=NOW)


def test_failed_read_does_not_overwrite_history(store: DocumentStore):
    seed_records(store, 5)
    flaky = FlakyStore(store)
    records = LearningRecordStore(flaky)

    flaky.fail_next_get = True
    with pytest.raises(PersistenceError):
        records.record_review("id0", "word0", True, review_date=NOW)

    stored = LearningRecordStore(store).get_learning_records()
    assert len(stored) == 5
    assert all(record.review_count == 1 for record in stored)

    # The next read works and the answer builds on the stored history
    updated = records.record_review("id0", "word0", True, review_date=NOW)
    assert updated.review_count == 2
    assert len(LearningRecordStore(store).get_learning_records()) == 5


def test_corrupt_document_is_not_overwritten(store: DocumentStore, records: LearningRecordStore):
    store.set(LEARNING_RECORDS_KEY, b"{oops")

    with pytest.raises(PersistenceError):
        records.record_review("1", "apple", True, review_date=NOW)

    assert store.get(LEARNING_RECORDS_KEY) == b"{oops"


def test_failed_write_is_kept_in_memory(store: DocumentStore):
    flaky = FlakyStore(store)
    records = LearningRecordStore(flaky)

    records.record_review("1", "apple", True, review_date=NOW)
    flaky.fail_next_set = True
    missed = records.record_review("1", "apple", False, review_date=NOW)
    assert missed.incorrect_count == 1
    assert records.get_record("1") == missed

    third = records.record_review("1", "apple", True, review_date=NOW)
    assert third.review_count == 3
    assert third.incorrect_count == 1

    # The successful write carried the earlier answer too
    stored = LearningRecordStore(store).get_record("1")
    assert stored == third


def test_review_session_history_survives_failed_read(store: DocumentStore):
    flaky = FlakyStore(store)
    records = LearningRecordStore(flaky)
    stats = SessionStats(session_id="s1", total_words=1, remembered_words=1, accuracy=100)
    records.save_review_session(stats, ["apple"], NOW, NOW)

    flaky.fail_next_get = True
    with pytest.raises(PersistenceError):
        records.save_review_session(SessionStats(session_id="s2"), [], NOW, NOW)

    assert [s["session_id"] for s in records.get_review_sessions()] == ["s1"]
