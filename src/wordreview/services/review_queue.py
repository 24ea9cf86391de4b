"""Selection and ordering of words into review batches."""
import logging
from datetime import UTC, datetime
from typing import Callable, Iterable, List, Optional, Union

from wordreview import monitoring
from wordreview.config import settings
from wordreview.models.learning_models import (
    BatchKind,
    ReviewBatch,
    ReviewMode,
    VocabularyEntry,
)
from wordreview.services.wrong_word_tracker import WrongWordTracker

logger = logging.getLogger(__name__)

EntryFilter = Callable[[VocabularyEntry], bool]

WRONG_WORDS_TYPE = "wrong_words"
CHALLENGE_TYPES = {"shuffle", "random"}
CURATED_TYPES = {"show", "wordbook"}


def make_source_filter(review_type: Optional[str], source_id: Optional[Union[int, str]]) -> EntryFilter:
    """Filter matching entries collected from one show or wordbook, or everything."""
    if review_type in CURATED_TYPES and source_id is not None:
        wanted = str(source_id)

        def matches(entry: VocabularyEntry) -> bool:
            source = entry.source_show
            return source is not None and source.type == review_type and str(source.id) == wanted

        return matches
    return lambda entry: True


def deduplicate(entries: Iterable[VocabularyEntry]) -> List[VocabularyEntry]:
    """Drop repeated words, keeping the first occurrence."""
    seen = set()
    unique = []
    for entry in entries:
        if entry.word in seen:
            continue
        seen.add(entry.word)
        unique.append(entry)
    return unique


def has_mistakes(entry: VocabularyEntry) -> bool:
    return entry.incorrect_count > 0 or entry.consecutive_incorrect > 0


def is_due(entry: VocabularyEntry, now: datetime) -> bool:
    """Entries never scheduled count as due."""
    return entry.next_review_date is None or entry.next_review_date <= now


class ReviewQueueBuilder:
    """Builds the batch of words presented in one review session."""

    def __init__(self, tracker: WrongWordTracker, target_size: Optional[int] = None):
        """Initialize the builder with the wrong-word tracker it consults."""
        self.tracker = tracker
        self.target_size = target_size or settings.review.min_review_batch

    def build(
        self,
        vocabulary: Iterable[VocabularyEntry],
        review_type: Optional[str] = None,
        source_id: Optional[Union[int, str]] = None,
        mode: ReviewMode = ReviewMode.SMART,
        now: Optional[datetime] = None,
    ) -> ReviewBatch:
        """Select the words for a session.

        Args:
            vocabulary: Snapshot of the learner's vocabulary; it is not modified.
            review_type: None, "shuffle" or "random" for a generic challenge,
                "wrong_words" for the wrong-word challenge, "show" or
                "wordbook" for a curated list.
            source_id: Show or wordbook id used with a curated list.
            mode: Smart (due words first) or all, for generic challenges.
            now: Reference time for due checks.

        Returns:
            The batch; empty when nothing matches.
        """
        now = now or datetime.now(UTC)
        entry_filter = make_source_filter(review_type, source_id)
        vocabulary = list(vocabulary)
        unique = deduplicate(entry for entry in vocabulary if entry_filter(entry))
        logger.debug(
            "Building batch: %d filtered unique words, type=%s, mode=%s",
            len(unique),
            review_type,
            mode.value,
        )

        if review_type == WRONG_WORDS_TYPE:
            batch = self._build_wrong_word_challenge(vocabulary, unique)
        elif review_type is None or review_type in CHALLENGE_TYPES:
            if mode == ReviewMode.ALL:
                batch = ReviewBatch(kind=BatchKind.CHALLENGE, entries=unique)
            else:
                batch = self._build_smart(unique, now)
        else:
            batch = ReviewBatch(kind=BatchKind.CURATED_LIST, entries=unique)

        batch.review_type = review_type
        batch.mode = mode
        monitoring.review_batch_size.labels(kind=batch.kind.value).observe(len(batch))
        logger.info(
            "Built %s batch with %d words (type=%s, mode=%s)",
            batch.kind.value,
            len(batch),
            review_type,
            mode.value,
        )
        return batch

    def _build_wrong_word_challenge(
        self, vocabulary: List[VocabularyEntry], unique: List[VocabularyEntry]
    ) -> ReviewBatch:
        wrong_words = self.tracker.get_wrong_words()

        if wrong_words:
            by_word = {}
            for entry in vocabulary:
                by_word.setdefault(entry.word, entry)
            selected = [by_word[word] for word in wrong_words if word in by_word]
            if len(selected) < self.target_size:
                included = {entry.word for entry in selected}
                for entry in unique:
                    if len(selected) >= self.target_size:
                        break
                    if entry.word not in included and has_mistakes(entry):
                        selected.append(entry)
                        included.add(entry.word)
        else:
            logger.debug("Wrong-word set is empty, scanning vocabulary instead")
            selected = [entry for entry in unique if has_mistakes(entry)]

        return ReviewBatch(kind=BatchKind.CHALLENGE, entries=selected[: self.target_size])

    def _build_smart(self, unique: List[VocabularyEntry], now: datetime) -> ReviewBatch:
        due = [entry for entry in unique if is_due(entry, now)]
        not_due = [entry for entry in unique if not is_due(entry, now)]
        logger.debug("Smart mode: %d due, %d not due", len(due), len(not_due))

        if len(due) >= self.target_size:
            return ReviewBatch(
                kind=BatchKind.DUE_REVIEW,
                entries=due[: self.target_size],
                is_ebbinghaus=True,
            )
        return ReviewBatch(
            kind=BatchKind.DUE_REVIEW,
            entries=due + not_due,
            is_ebbinghaus=bool(due),
        )
