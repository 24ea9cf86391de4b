"""Per-session review statistics."""
import logging
import threading
import uuid
from typing import List, Optional

from wordreview import monitoring
from wordreview.models.learning_models import ReviewAction, SessionStats
from wordreview.services.mastery_engine import round_half_up

logger = logging.getLogger(__name__)

EXPERIENCE_REMEMBERED = 2
EXPERIENCE_FORGOTTEN = 1


def calculate_accuracy(remembered: int, total: int) -> int:
    """Percentage of remembered words, 0 when nothing was answered."""
    if total <= 0:
        return 0
    return round_half_up(remembered / total * 100)


def experience_for(remembered: bool) -> int:
    return EXPERIENCE_REMEMBERED if remembered else EXPERIENCE_FORGOTTEN


class SessionStatsAggregator:
    """Accumulates the answers of one review session.

    Every answer is recorded in the same step that produces it, so the final
    totals are available as soon as the last answer is in.
    """

    def __init__(self, session_id: Optional[str] = None):
        """Initialize an empty session."""
        self.session_id = session_id or uuid.uuid4().hex
        self.planned_words = 0
        self._actions: List[ReviewAction] = []
        self._skipped = 0
        self._lock = threading.Lock()
        self._finalized = False

    def initialize(self, total_words: int) -> None:
        """Set the planned session size; later calls keep the first value."""
        with self._lock:
            if self.planned_words:
                logger.debug("Session %s already initialized", self.session_id)
                return
            self.planned_words = max(0, total_words)

    def update_stats(self, word: str, is_correct: bool, translation: Optional[str] = None) -> SessionStats:
        """Record an answer and return the running totals."""
        with self._lock:
            self._actions.append(ReviewAction(word=word, remembered=is_correct, translation=translation))
            stats = self._derive()
        logger.debug(
            "Session %s: %s %s, accuracy %d%%",
            self.session_id,
            "remembered" if is_correct else "forgot",
            word,
            stats.accuracy,
        )
        return stats

    def record_skip(self, word: str) -> None:
        """Count a skipped word; skips do not affect accuracy or experience."""
        with self._lock:
            self._skipped += 1
        logger.debug("Session %s: skipped %s", self.session_id, word)

    @property
    def actions(self) -> List[ReviewAction]:
        with self._lock:
            return list(self._actions)

    def calculate_final_stats(self) -> SessionStats:
        """Totals derived from the recorded answers; repeated calls give the same result."""
        with self._lock:
            stats = self._derive()
            first_time = not self._finalized
            self._finalized = True
        if first_time:
            monitoring.sessions_completed.inc()
            if stats.total_words:
                monitoring.session_accuracy.observe(stats.accuracy)
            logger.info(
                "Session %s finished: %d words, %d remembered, %d forgotten, %d XP, %d%% accuracy",
                self.session_id,
                stats.total_words,
                stats.remembered_words,
                stats.forgotten_words,
                stats.experience,
                stats.accuracy,
            )
        return stats

    def _derive(self) -> SessionStats:
        total = len(self._actions)
        remembered = sum(1 for action in self._actions if action.remembered)
        forgotten = total - remembered
        return SessionStats(
            session_id=self.session_id,
            total_words=total,
            remembered_words=remembered,
            forgotten_words=forgotten,
            skipped_words=self._skipped,
            experience=remembered * EXPERIENCE_REMEMBERED + forgotten * EXPERIENCE_FORGOTTEN,
            accuracy=calculate_accuracy(remembered, total),
        )
