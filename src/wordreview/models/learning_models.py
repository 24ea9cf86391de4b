"""Models for learning records, review batches and session data."""
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from wordreview.exceptions import ValidationError


class Difficulty(Enum):
    """Perceived difficulty of a word."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ReviewMode(Enum):
    """How a generic challenge picks its words."""
    SMART = "smart"  # Due words first, spaced repetition order
    ALL = "all"  # Every word, no date filter


class BatchKind(Enum):
    """What kind of session a review batch was built for."""
    DUE_REVIEW = "due_review"
    CHALLENGE = "challenge"
    CURATED_LIST = "curated_list"


class WrongWordEvent(Enum):
    """Events published by the wrong-word tracker."""
    WORD_ADDED = "word_added"
    WORD_REMOVED = "word_removed"
    WORD_UPDATED = "word_updated"
    COLLECTION_CHANGED = "collection_changed"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO string, epoch milliseconds or datetime into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, UTC)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"Invalid datetime value: {value!r}") from e
    else:
        raise ValidationError(f"Invalid datetime value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime for storage."""
    return value.isoformat() if value is not None else None


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, so both snake_case and camelCase payloads load."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class LearningRecord:
    """Review history and schedule of one learned word."""
    word_id: str
    word: str
    review_count: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    consecutive_correct: int = 0
    consecutive_incorrect: int = 0
    mastery_level: int = 0  # 0-100
    interval_days: int = 1  # 1-365
    last_reviewed: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    learning_efficiency: int = 0  # 0-100
    confidence_level: int = 0  # 0-100
    difficulty: Difficulty = Difficulty.MEDIUM
    time_spent: float = 0.0  # seconds

    def validate(self) -> None:
        """Raise ValidationError if the record cannot be reviewed."""
        if not self.word_id:
            raise ValidationError("Learning record is missing word_id")
        if not self.word:
            raise ValidationError(f"Learning record {self.word_id} is missing word")
        counters = (
            self.review_count,
            self.correct_count,
            self.incorrect_count,
            self.consecutive_correct,
            self.consecutive_incorrect,
        )
        if any(value < 0 for value in counters):
            raise ValidationError(f"Learning record {self.word_id} has negative counters")
        if self.correct_count + self.incorrect_count != self.review_count:
            raise ValidationError(
                f"Learning record {self.word_id}: correct + incorrect != review count"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        data = asdict(self)
        data["difficulty"] = self.difficulty.value
        data["last_reviewed"] = format_datetime(self.last_reviewed)
        data["next_review_date"] = format_datetime(self.next_review_date)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningRecord":
        """Build a record from stored data."""
        word_id = _pick(data, "word_id", "wordId")
        word = _pick(data, "word")
        if word_id is None or word is None:
            raise ValidationError("Learning record requires word_id and word")
        try:
            difficulty = Difficulty(_pick(data, "difficulty", default="medium"))
        except ValueError as e:
            raise ValidationError(f"Unknown difficulty for {word_id}") from e
        return cls(
            word_id=str(word_id),
            word=word,
            review_count=int(_pick(data, "review_count", "reviewCount", default=0)),
            correct_count=int(_pick(data, "correct_count", "correctCount", default=0)),
            incorrect_count=int(_pick(data, "incorrect_count", "incorrectCount", default=0)),
            consecutive_correct=int(
                _pick(data, "consecutive_correct", "consecutiveCorrect", default=0)
            ),
            consecutive_incorrect=int(
                _pick(data, "consecutive_incorrect", "consecutiveIncorrect", default=0)
            ),
            mastery_level=int(_pick(data, "mastery_level", "masteryLevel", default=0)),
            interval_days=int(_pick(data, "interval_days", "intervalDays", default=1)),
            last_reviewed=parse_datetime(_pick(data, "last_reviewed", "lastReviewed")),
            next_review_date=parse_datetime(_pick(data, "next_review_date", "nextReviewDate")),
            learning_efficiency=int(
                _pick(data, "learning_efficiency", "learningEfficiency", default=0)
            ),
            confidence_level=int(_pick(data, "confidence_level", "confidenceLevel", default=0)),
            difficulty=difficulty,
            time_spent=float(_pick(data, "time_spent", "timeSpent", default=0.0)),
        )


@dataclass(frozen=True)
class SourceShow:
    """Where a vocabulary entry was collected from."""
    type: str  # "show" or "wordbook"
    id: str


@dataclass(frozen=True)
class VocabularyEntry:
    """A word as supplied by the vocabulary provider."""
    word: str
    word_id: Optional[str] = None
    translation: str = ""
    phonetic: str = ""
    incorrect_count: int = 0
    consecutive_incorrect: int = 0
    consecutive_correct: int = 0
    review_count: int = 0
    source_show: Optional[SourceShow] = None
    next_review_date: Optional[datetime] = None

    @property
    def key(self) -> str:
        """Identifier used to link the entry to its learning record."""
        return self.word_id or self.word

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyEntry":
        """Build an entry from a provider payload."""
        word = _pick(data, "word")
        if not word:
            raise ValidationError("Vocabulary entry is missing word")
        source = _pick(data, "source_show", "sourceShow")
        source_show = None
        if isinstance(source, dict) and source.get("type") is not None:
            source_show = SourceShow(type=source["type"], id=str(source.get("id", "")))
        word_id = _pick(data, "word_id", "wordId", "id")
        translation = _pick(data, "translation", default="")
        if not translation:
            definitions = _pick(data, "definitions", default=[])
            translation = definitions[0] if definitions else ""
        return cls(
            word=word,
            word_id=str(word_id) if word_id is not None else None,
            translation=translation,
            phonetic=_pick(data, "phonetic", default=""),
            incorrect_count=int(_pick(data, "incorrect_count", "incorrectCount", default=0)),
            consecutive_incorrect=int(
                _pick(data, "consecutive_incorrect", "consecutiveIncorrect", default=0)
            ),
            consecutive_correct=int(
                _pick(data, "consecutive_correct", "consecutiveCorrect", default=0)
            ),
            review_count=int(_pick(data, "review_count", "reviewCount", default=0)),
            source_show=source_show,
            next_review_date=parse_datetime(
                _pick(data, "next_review_date", "nextReviewDate", "nextReviewAt")
            ),
        )


@dataclass
class WrongWordEntry:
    """A word currently flagged as struggling."""
    word: str
    incorrect_count: int = 0
    consecutive_incorrect: int = 0
    consecutive_correct: int = 0
    added_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_reviewed: datetime = field(default_factory=lambda: datetime.now(UTC))
    review_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["added_at"] = format_datetime(self.added_at)
        data["last_reviewed"] = format_datetime(self.last_reviewed)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WrongWordEntry":
        now = datetime.now(UTC)
        return cls(
            word=data["word"],
            incorrect_count=int(data.get("incorrect_count", 0)),
            consecutive_incorrect=int(data.get("consecutive_incorrect", 0)),
            consecutive_correct=int(data.get("consecutive_correct", 0)),
            added_at=parse_datetime(data.get("added_at")) or now,
            last_reviewed=parse_datetime(data.get("last_reviewed")) or now,
            review_count=int(data.get("review_count", 0)),
        )


@dataclass
class WrongWordStatistics:
    """Running counters of the wrong-word set."""
    total_wrong_words: int = 0
    newly_added: int = 0
    recently_removed: int = 0
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_updated"] = format_datetime(self.last_updated)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WrongWordStatistics":
        return cls(
            total_wrong_words=int(data.get("total_wrong_words", 0)),
            newly_added=int(data.get("newly_added", 0)),
            recently_removed=int(data.get("recently_removed", 0)),
            last_updated=parse_datetime(data.get("last_updated")) or datetime.now(UTC),
        )


@dataclass
class WrongWordEventData:
    """Payload passed to wrong-word event subscribers."""
    word: str
    timestamp: datetime
    action: Optional[str] = None
    reason: Optional[str] = None
    old_value: Optional[WrongWordEntry] = None
    new_value: Optional[WrongWordEntry] = None


@dataclass
class ReviewBatch:
    """Words selected for one review session."""
    kind: BatchKind
    entries: List[VocabularyEntry] = field(default_factory=list)
    review_type: Optional[str] = None
    mode: ReviewMode = ReviewMode.SMART
    is_ebbinghaus: bool = False  # Due words were put first

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def words(self) -> List[str]:
        return [entry.word for entry in self.entries]


@dataclass(frozen=True)
class ReviewAction:
    """One answer given during a review session."""
    word: str
    remembered: bool
    translation: Optional[str] = None


@dataclass
class SessionStats:
    """Counts for one review session."""
    session_id: str
    total_words: int = 0
    remembered_words: int = 0
    forgotten_words: int = 0
    skipped_words: int = 0
    experience: int = 0
    accuracy: int = 0  # percent

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LearningStats:
    """Aggregate statistics over all learning records."""
    total_words: int = 0
    mastered_words: int = 0
    learning_words: int = 0
    forgotten_words: int = 0
    average_mastery: int = 0
    total_review_time: float = 0.0
    streak_days: int = 0
    last_study_date: Optional[datetime] = None
    learning_efficiency: int = 0
    average_confidence: int = 0
    weekly_progress: int = 0
    monthly_progress: int = 0


@dataclass
class LearningPlan:
    """Upcoming review workload."""
    today: List[LearningRecord] = field(default_factory=list)
    tomorrow: List[LearningRecord] = field(default_factory=list)
    this_week: List[LearningRecord] = field(default_factory=list)
    difficult_words: List[LearningRecord] = field(default_factory=list)
    recommended_words: List[LearningRecord] = field(default_factory=list)


@dataclass(frozen=True)
class SyncItem:
    """Progress snapshot handed to the remote sync collaborator."""
    word: str
    progress: Dict[str, Any]
    is_successful_review: bool
    timestamp: datetime


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of one answer: the updated record and the experience gained."""
    record: LearningRecord
    experience_delta: int
