"""Service supplying snapshots of the learner's vocabulary."""
import json
import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from wordreview.exceptions import ValidationError
from wordreview.models.learning_models import VocabularyEntry

logger = logging.getLogger(__name__)


class VocabularyProvider:
    """Holds the vocabulary and hands out read-only snapshots of it."""

    def __init__(self, entries: Iterable[Union[VocabularyEntry, Dict[str, Any]]] = ()):
        """Initialize the provider with entries or raw payloads."""
        self._lock = threading.Lock()
        self._entries: List[VocabularyEntry] = [
            entry if isinstance(entry, VocabularyEntry) else VocabularyEntry.from_dict(entry)
            for entry in entries
        ]

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "VocabularyProvider":
        """Load a JSON list of word entries."""
        path = Path(path)
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("vocabulary", [])
        if not isinstance(data, list):
            raise ValidationError(f"{path} does not contain a list of words")

        entries = []
        for item in data:
            try:
                entries.append(VocabularyEntry.from_dict(item))
            except ValidationError as e:
                logger.warning("Skipping vocabulary entry %r: %s", item, e)
        logger.info("Loaded %d vocabulary entries from %s", len(entries), path)
        return cls(entries)

    def snapshot(self) -> Tuple[VocabularyEntry, ...]:
        """Immutable copy of the current vocabulary."""
        with self._lock:
            return tuple(self._entries)

    def find(self, key: str) -> Optional[VocabularyEntry]:
        """Entry by word id or word."""
        with self._lock:
            return next((e for e in self._entries if e.key == key or e.word == key), None)

    def record_answer(self, word: str, was_correct: bool) -> Optional[VocabularyEntry]:
        """Update the counters kept alongside a vocabulary word."""
        with self._lock:
            for index, entry in enumerate(self._entries):
                if entry.word != word:
                    continue
                if was_correct:
                    updated = replace(
                        entry,
                        consecutive_correct=entry.consecutive_correct + 1,
                        consecutive_incorrect=0,
                        review_count=entry.review_count + 1,
                    )
                else:
                    updated = replace(
                        entry,
                        incorrect_count=entry.incorrect_count + 1,
                        consecutive_incorrect=entry.consecutive_incorrect + 1,
                        consecutive_correct=0,
                        review_count=entry.review_count + 1,
                    )
                self._entries[index] = updated
                return updated
        return None

    def set_next_review(self, word: str, next_review_date) -> None:
        """Store the schedule computed for a word."""
        with self._lock:
            for index, entry in enumerate(self._entries):
                if entry.word == word:
                    self._entries[index] = replace(entry, next_review_date=next_review_date)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
