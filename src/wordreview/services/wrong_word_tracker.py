"""Service tracking the words a learner is currently struggling with."""
import json
import logging
import threading
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from wordreview import monitoring
from wordreview.config import WRONG_WORDS_KEY, settings
from wordreview.exceptions import PersistenceError, ValidationError
from wordreview.models.learning_models import (
    VocabularyEntry,
    WrongWordEntry,
    WrongWordEvent,
    WrongWordEventData,
    WrongWordStatistics,
    format_datetime,
)
from wordreview.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

EventCallback = Callable[[WrongWordEventData], None]
PendingEvent = Tuple[WrongWordEvent, WrongWordEventData]


def _count(data: Any, name: str) -> int:
    """Read a counter from an entry object or a plain dict, missing means 0."""
    if data is None:
        return 0
    if isinstance(data, dict):
        value = data.get(name, 0)
    else:
        value = getattr(data, name, 0)
    return int(value or 0)


class WrongWordTracker:
    """Keeps the wrong-word set, its statistics and their stored copy.

    A word is either untracked or tracked. It becomes tracked on an incorrect
    answer (or when the vocabulary is scanned at start-up) and is dropped
    again after `removal_threshold` consecutive correct answers.

    Every mutation happens under a lock, publishes events to subscribers and
    hands a snapshot of the whole collection to a single background writer.
    Callers never wait for the write; failed writes are logged, counted and
    passed to `error_handler`. A crash before a write completes loses the
    latest change.
    """

    def __init__(
        self,
        store: DocumentStore,
        removal_threshold: Optional[int] = None,
        error_handler: Optional[Callable[[Exception], None]] = None,
        storage_key: str = WRONG_WORDS_KEY,
    ):
        """Initialize the tracker with its document store."""
        self.store = store
        self.removal_threshold = (
            removal_threshold
            if removal_threshold is not None
            else settings.review.wrong_word_removal_threshold
        )
        self.error_handler = error_handler
        self.storage_key = storage_key

        self._entries: Dict[str, WrongWordEntry] = {}
        self._statistics = WrongWordStatistics()
        self._listeners: Dict[WrongWordEvent, List[EventCallback]] = defaultdict(list)
        self._lock = threading.RLock()
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="wrong-words-writer"
        )
        self._pending: Set[Future] = set()
        self.is_initialized = False

    # Lifecycle

    def initialize(self, vocabulary: Iterable[VocabularyEntry] = ()) -> None:
        """Load the stored collection, or build it from the vocabulary if none is stored."""
        if self.is_initialized:
            logger.debug("Wrong-word tracker already initialized")
            return
        if self._executor is None:
            raise RuntimeError("Wrong-word tracker was disposed")

        try:
            self.load_from_storage()
        except (PersistenceError, ValidationError, ValueError, KeyError) as e:
            logger.error("Failed to load wrong-word collection, rebuilding from vocabulary: %s", e)
            monitoring.persistence_errors.labels(document=self.storage_key).inc()
            with self._lock:
                self._entries.clear()
                self._statistics = WrongWordStatistics()

        if not self._entries:
            self.initialize_from_vocabulary(vocabulary)

        self.is_initialized = True
        logger.info("Wrong-word tracker initialized with %d words", len(self._entries))

    def dispose(self, timeout: Optional[float] = None) -> None:
        """Wait for pending writes and release the writer thread."""
        if self._executor is None:
            return
        if timeout is None:
            timeout = settings.review.persistence_flush_timeout
        if not self.flush(timeout):
            logger.warning("Disposing wrong-word tracker with writes still pending")
        self._executor.shutdown(wait=True)
        self._executor = None
        self._listeners.clear()
        self.is_initialized = False
        logger.info("Wrong-word tracker disposed")

    def initialize_from_vocabulary(self, vocabulary: Iterable[VocabularyEntry]) -> int:
        """Track every vocabulary word that qualifies as wrong; returns how many were added."""
        events: List[PendingEvent] = []
        with self._lock:
            for entry in vocabulary:
                if self.is_wrong_word(entry) and entry.word not in self._entries:
                    events.extend(self._insert(entry.word, entry))
            added = len(events) // 2
            if added:
                self._schedule_save()
        self._publish_all(events)
        logger.info("Found %d wrong words while scanning vocabulary", added)
        return added

    # Transitions

    def is_wrong_word(self, entry: Any) -> bool:
        """Whether an entry's counters mark it as struggling."""
        if _count(entry, "consecutive_correct") >= self.removal_threshold:
            return False
        return _count(entry, "incorrect_count") > 0 or _count(entry, "consecutive_incorrect") > 0

    def add_wrong_word(self, word: str, data: Any = None) -> bool:
        """Start tracking a word; returns False if it was already tracked."""
        with self._lock:
            if word in self._entries:
                logger.debug("%s is already a wrong word", word)
                return False
            events = self._insert(word, data)
            self._schedule_save()
            total = self._statistics.total_wrong_words
        self._publish_all(events)
        logger.info("Added wrong word %s, total %d", word, total)
        return True

    def update_wrong_word(self, word: str, was_correct: bool, data: Any = None) -> bool:
        """Record an answer for a tracked word; untracked words are ignored.

        ``data`` holds the word's counters after this answer, as the vocabulary
        provider reports them. Its non-zero counters replace the tracked ones,
        except that the streak the answer broke always stays at zero.
        """
        with self._lock:
            entry = self._entries.get(word)
            if entry is None:
                logger.debug("%s is not a wrong word, nothing to update", word)
                return False

            old_value = replace(entry)
            if was_correct:
                entry.consecutive_correct += 1
                entry.consecutive_incorrect = 0
            else:
                entry.incorrect_count += 1
                entry.consecutive_incorrect += 1
                entry.consecutive_correct = 0

            if was_correct and entry.consecutive_correct >= self.removal_threshold:
                events = self._remove(word, "consecutive_correct")
                self._schedule_save()
                removed = True
            else:
                now = datetime.now(UTC)
                entry.last_reviewed = now
                entry.review_count += 1
                if data is not None:
                    # Counters from the vocabulary take precedence when they are set
                    entry.incorrect_count = _count(data, "incorrect_count") or entry.incorrect_count
                    entry.consecutive_incorrect = (
                        _count(data, "consecutive_incorrect") or entry.consecutive_incorrect
                    )
                    entry.consecutive_correct = (
                        _count(data, "consecutive_correct") or entry.consecutive_correct
                    )
                    if was_correct:
                        entry.consecutive_incorrect = 0
                    else:
                        entry.consecutive_correct = 0
                self._statistics.last_updated = now
                events = [
                    (
                        WrongWordEvent.WORD_UPDATED,
                        WrongWordEventData(
                            word=word,
                            timestamp=now,
                            action="updated",
                            old_value=old_value,
                            new_value=replace(entry),
                        ),
                    )
                ]
                self._schedule_save()
                removed = False
        self._publish_all(events)
        if removed:
            logger.info("Removed wrong word %s after %d correct answers", word, self.removal_threshold)
        else:
            logger.debug("Updated wrong word %s (correct=%s)", word, was_correct)
        return True

    def remove_wrong_word(self, word: str, reason: str = "manual") -> bool:
        """Stop tracking a word; returns False if it was not tracked."""
        with self._lock:
            if word not in self._entries:
                return False
            events = self._remove(word, reason)
            self._schedule_save()
            total = self._statistics.total_wrong_words
        self._publish_all(events)
        logger.info("Removed wrong word %s (reason: %s), total %d", word, reason, total)
        return True

    def clear_wrong_words(self) -> None:
        """Forget every tracked word."""
        with self._lock:
            old_size = len(self._entries)
            self._entries.clear()
            self._statistics.total_wrong_words = 0
            self._statistics.last_updated = datetime.now(UTC)
            monitoring.wrong_words.set(0)
            self._schedule_save()
        self._publish(
            WrongWordEvent.COLLECTION_CHANGED,
            WrongWordEventData(word="", timestamp=datetime.now(UTC), action="cleared"),
        )
        logger.info("Cleared wrong-word collection, %d words dropped", old_size)

    def reset(self) -> None:
        """Clear memory and the stored collection; the tracker must be initialized again."""
        with self._lock:
            self._entries.clear()
            self._statistics = WrongWordStatistics()
            monitoring.wrong_words.set(0)
        self.flush(settings.review.persistence_flush_timeout)
        try:
            self.store.delete(self.storage_key)
        except PersistenceError as e:
            logger.error("Failed to delete stored wrong-word collection: %s", e)
            monitoring.persistence_errors.labels(document=self.storage_key).inc()
        self.is_initialized = False
        logger.info("Wrong-word collection reset")

    # Reads

    def get_wrong_words(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def has_wrong_word(self, word: str) -> bool:
        with self._lock:
            return word in self._entries

    def get_wrong_word_info(self, word: str) -> Optional[WrongWordEntry]:
        """Copy of the tracked entry, or None."""
        with self._lock:
            entry = self._entries.get(word)
            return replace(entry) if entry is not None else None

    def get_statistics(self) -> WrongWordStatistics:
        with self._lock:
            return replace(self._statistics)

    def get_wrong_words_count(self) -> int:
        with self._lock:
            return self._statistics.total_wrong_words

    def export_data(self) -> Dict[str, Any]:
        """Summary of the tracker state for debugging."""
        with self._lock:
            return {
                "wrong_words": list(self._entries),
                "statistics": self._statistics.to_dict(),
                "total_words": len(self._entries),
                "is_initialized": self.is_initialized,
            }

    # Events

    def subscribe(self, event: WrongWordEvent, callback: EventCallback) -> Callable[[], None]:
        """Register a callback; the returned function unsubscribes it."""
        self._listeners[event].append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _publish(self, event: WrongWordEvent, data: WrongWordEventData) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(data)
            except Exception:
                logger.exception("Wrong-word event callback failed: %s", event.value)

    def _publish_all(self, events: Iterable[PendingEvent]) -> None:
        for event, data in events:
            self._publish(event, data)

    # Persistence

    def load_from_storage(self) -> None:
        """Replace the in-memory collection with the stored one, if any."""
        payload = self.store.get(self.storage_key)
        if payload is None:
            return
        data = json.loads(payload.decode("utf-8"))
        entries = {}
        for item in data.get("entries", []):
            entry = WrongWordEntry.from_dict(item)
            entries[entry.word] = entry
        statistics = WrongWordStatistics.from_dict(data.get("statistics", {}))
        statistics.total_wrong_words = len(entries)
        with self._lock:
            self._entries = entries
            self._statistics = statistics
            monitoring.wrong_words.set(len(entries))
        logger.info("Loaded %d wrong words from storage", len(entries))

    def save_to_storage(self) -> Optional[Future]:
        """Schedule a write of the current collection."""
        with self._lock:
            return self._schedule_save()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for scheduled writes; returns False if some are still running."""
        pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def _serialize(self) -> bytes:
        data = {
            "words": list(self._entries),
            "entries": [entry.to_dict() for entry in self._entries.values()],
            "statistics": self._statistics.to_dict(),
            "last_saved": format_datetime(datetime.now(UTC)),
        }
        return json.dumps(data, ensure_ascii=False).encode("utf-8")

    def _schedule_save(self) -> Optional[Future]:
        # Called with the lock held so snapshots are submitted in mutation order
        if self._executor is None:
            logger.warning("Wrong-word tracker is disposed, change not persisted")
            return None
        payload = self._serialize()
        future = self._executor.submit(self._write, payload)
        self._pending.add(future)
        future.add_done_callback(self._on_write_done)
        return future

    def _write(self, payload: bytes) -> None:
        self.store.set(self.storage_key, payload)
        monitoring.persistence_writes.labels(document=self.storage_key).inc()

    def _on_write_done(self, future: Future) -> None:
        self._pending.discard(future)
        error = future.exception()
        if error is None:
            return
        logger.error("Failed to save wrong-word collection: %s", error)
        monitoring.persistence_errors.labels(document=self.storage_key).inc()
        if self.error_handler is not None:
            try:
                self.error_handler(error)
            except Exception:
                logger.exception("Persistence error handler failed")

    # Internal state changes, lock held

    def _insert(self, word: str, data: Any) -> List[PendingEvent]:
        now = datetime.now(UTC)
        self._entries[word] = WrongWordEntry(
            word=word,
            incorrect_count=_count(data, "incorrect_count"),
            consecutive_incorrect=_count(data, "consecutive_incorrect"),
            consecutive_correct=_count(data, "consecutive_correct"),
            added_at=now,
            last_reviewed=now,
            review_count=_count(data, "review_count"),
        )
        self._statistics.total_wrong_words += 1
        self._statistics.newly_added += 1
        self._statistics.last_updated = now
        monitoring.wrong_words.set(len(self._entries))
        return [
            (WrongWordEvent.WORD_ADDED, WrongWordEventData(word=word, timestamp=now)),
            (
                WrongWordEvent.COLLECTION_CHANGED,
                WrongWordEventData(word=word, timestamp=now, action="added"),
            ),
        ]

    def _remove(self, word: str, reason: str) -> List[PendingEvent]:
        now = datetime.now(UTC)
        old_value = self._entries.pop(word)
        self._statistics.total_wrong_words -= 1
        self._statistics.recently_removed += 1
        self._statistics.last_updated = now
        monitoring.wrong_words.set(len(self._entries))
        monitoring.wrong_words_removed.labels(reason=reason).inc()
        return [
            (
                WrongWordEvent.WORD_REMOVED,
                WrongWordEventData(word=word, timestamp=now, reason=reason, old_value=old_value),
            ),
            (
                WrongWordEvent.COLLECTION_CHANGED,
                WrongWordEventData(word=word, timestamp=now, action="removed", reason=reason),
            ),
        ]
