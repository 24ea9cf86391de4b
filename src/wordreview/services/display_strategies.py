"""Per-language rules for how a review card shows a word and its examples."""
import logging
from abc import ABC
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

from wordreview.models.learning_models import VocabularyEntry

logger = logging.getLogger(__name__)

Example = Dict[str, str]


@dataclass
class WordData:
    """Display fields of a word; unused fields stay empty."""
    word: str
    corrected_word: str = ""
    translation: str = ""
    phonetic: str = ""
    romaji: str = ""
    pinyin: str = ""
    kana: str = ""
    examples: List[Example] = field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: VocabularyEntry) -> "WordData":
        return cls(word=entry.word, translation=entry.translation, phonetic=entry.phonetic)


def get_all_subclasses(cls):
    """Get all subclasses of a class."""
    all_subclasses = []
    for subclass in cls.__subclasses__():
        all_subclasses.append(subclass)
        all_subclasses.extend(get_all_subclasses(subclass))
    return all_subclasses


class BaseDisplayStrategy(ABC):
    """Base class for language display strategies.

    Subclasses only set class attributes; override a method when a language
    needs more than a different field name.
    """

    language: str = ""
    example_key: str = "english"  # Field of an example holding the sentence
    example_phonetic_key: str = "phonetic"
    phonetic_keys: Tuple[str, ...] = ("phonetic",)
    main_from_translation: bool = True  # Headword is the translation, e.g. for Japanese
    shows_phonetic: bool = True
    shows_kana: bool = False

    def get_main_word(self, word_data: WordData) -> str:
        if self.main_from_translation and word_data.translation:
            return word_data.translation
        return word_data.corrected_word or word_data.word

    def get_phonetic(self, word_data: WordData) -> str:
        for key in self.phonetic_keys:
            value = getattr(word_data, key, "")
            if value:
                return value
        return ""

    def get_kana_text(self, word_data: WordData) -> str:
        return word_data.kana if self.shows_kana else ""

    def get_example_text(self, example: Example) -> str:
        return example.get(self.example_key) or example.get("english", "")

    def get_example_audio_text(self, example: Example) -> str:
        return self.get_example_text(example)

    def get_example_translation(self, example: Example) -> str:
        return example.get("english", "")

    def get_example_phonetic(self, example: Example) -> str:
        return example.get(self.example_phonetic_key, "")


class EnglishDisplayStrategy(BaseDisplayStrategy):
    language = "en"
    main_from_translation = False


class JapaneseDisplayStrategy(BaseDisplayStrategy):
    language = "ja"
    example_key = "japanese"
    example_phonetic_key = "romaji"
    phonetic_keys = ("phonetic", "romaji")
    shows_kana = True


class ChineseDisplayStrategy(BaseDisplayStrategy):
    language = "zh"
    example_key = "chinese"
    example_phonetic_key = "pinyin"
    phonetic_keys = ("pinyin", "phonetic")
    main_from_translation = False


class KoreanDisplayStrategy(BaseDisplayStrategy):
    language = "ko"
    example_key = "korean"
    example_phonetic_key = "romaji"
    phonetic_keys = ("phonetic", "romaji")


class FrenchDisplayStrategy(BaseDisplayStrategy):
    language = "fr"
    example_key = "french"


class SpanishDisplayStrategy(BaseDisplayStrategy):
    language = "es"
    example_key = "spanish"


def get_strategy_classes() -> Dict[str, Type[BaseDisplayStrategy]]:
    """Registered strategies by language code."""
    return {cls.language: cls for cls in get_all_subclasses(BaseDisplayStrategy) if cls.language}


def get_display_strategy(language: Optional[str]) -> BaseDisplayStrategy:
    """Strategy for a language code such as "ja" or "ja-JP"; English when unknown."""
    code = (language or "en").split("-")[0].lower()
    strategy_class = get_strategy_classes().get(code)
    if strategy_class is None:
        logger.debug("No display strategy for %s, using English", language)
        strategy_class = EnglishDisplayStrategy
    return strategy_class()


def format_prompt(strategy: BaseDisplayStrategy, entry: VocabularyEntry) -> str:
    """Headword of a review card, followed by its reading when the language shows one."""
    word_data = WordData.from_entry(entry)
    text = strategy.get_main_word(word_data)
    phonetic = strategy.get_phonetic(word_data) if strategy.shows_phonetic else ""
    return f"{text} {phonetic}" if phonetic else text
