"""Console entry point for the review engine."""
import argparse
import logging
import sys
import time
from typing import Callable, List, Optional

from wordreview.app import ReviewApp
from wordreview.config import ensure_directories, settings
from wordreview.exceptions import ValidationError
from wordreview.logging_config import setup_logging
from wordreview.models.learning_models import ReviewMode
from wordreview.services.display_strategies import format_prompt, get_display_strategy
from wordreview.services.forgetting_curve import predict_forgetting_curve
from wordreview.services.learning_insights import (
    calculate_learning_stats,
    get_learning_suggestions,
)
from wordreview.services.vocabulary_service import VocabularyProvider

logger = logging.getLogger(__name__)

InputFunc = Callable[[str], str]
OutputFunc = Callable[[str], None]


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(prog="wordreview", description="Spaced-repetition word review")
    parser.add_argument("vocabulary", help="Path to a JSON file with the vocabulary")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    review = subparsers.add_parser("review", help="Run a review session in the console")
    review.add_argument(
        "--type",
        dest="review_type",
        default=None,
        help="shuffle, random, wrong_words, show or wordbook",
    )
    review.add_argument("--source-id", default=None, help="Show or wordbook id")
    review.add_argument(
        "--mode",
        choices=[mode.value for mode in ReviewMode],
        default=ReviewMode.SMART.value,
    )
    review.add_argument(
        "--language",
        default="en",
        help="Language of the vocabulary, e.g. en, ja or zh; picks how words are shown",
    )

    subparsers.add_parser("stats", help="Show learning statistics and suggestions")

    forecast = subparsers.add_parser("forecast", help="Show predicted retention per word")
    forecast.add_argument("--days", type=int, default=settings.review.forecast_days)
    return parser


def run_review(
    app: ReviewApp,
    args: argparse.Namespace,
    input_func: InputFunc = input,
    output: OutputFunc = print,
) -> int:
    """Ask each word of a batch: y = remembered, n = forgot, s = skip, q = quit."""
    service = app.review_service
    strategy = get_display_strategy(args.language)
    batch = service.start_session(
        review_type=args.review_type,
        source_id=args.source_id,
        mode=ReviewMode(args.mode),
    )
    if batch.is_empty:
        output("Nothing to review.")
        return 0

    experience = 0
    for position, entry in enumerate(batch, start=1):
        started = time.monotonic()
        prompt = f"[{position}/{len(batch)}] {format_prompt(strategy, entry)}  (y/n/s/q): "
        answer = input_func(prompt).strip().lower()
        elapsed_ms = (time.monotonic() - started) * 1000
        if answer == "q":
            break
        if answer == "y":
            outcome = service.on_correct(entry.key, response_time_ms=elapsed_ms)
        elif answer == "s":
            outcome = service.on_skip(entry.key)
        else:
            outcome = service.on_incorrect(entry.key, response_time_ms=elapsed_ms)
            if entry.translation:
                output(f"  {entry.word}: {entry.translation}")
        experience += outcome.experience_delta
        output(
            f"  mastery {outcome.record.mastery_level}%, next review in "
            f"{outcome.record.interval_days} days"
        )

    stats = service.finish_session()
    output(
        f"Remembered {stats.remembered_words}, forgot {stats.forgotten_words}, "
        f"skipped {stats.skipped_words}. Accuracy {stats.accuracy}%, +{experience} XP"
    )
    return 0


def run_stats(app: ReviewApp, output: OutputFunc = print) -> int:
    """Print aggregate statistics of the stored learning records."""
    records = app.records.get_learning_records()
    stats = calculate_learning_stats(records)
    output(f"Words: {stats.total_words}")
    output(f"Mastered: {stats.mastered_words}, learning: {stats.learning_words}, "
           f"forgotten: {stats.forgotten_words}")
    output(f"Average mastery: {stats.average_mastery}%")
    output(f"Learning efficiency: {stats.learning_efficiency}%")
    output(f"Streak: {stats.streak_days} days")
    output(f"Wrong words: {app.tracker.get_wrong_words_count()}")
    for suggestion in get_learning_suggestions(records):
        output(f"- {suggestion}")
    return 0


def run_forecast(app: ReviewApp, days: int, output: OutputFunc = print) -> int:
    """Print predicted retention after 1, 7 and the last forecast day."""
    records = app.records.get_learning_records()
    if not records:
        output("No learning records yet.")
        return 0
    checkpoints = sorted({1, min(7, days), days})
    output("word".ljust(20) + "".join(f"day {day}".rjust(10) for day in checkpoints))
    for record in records:
        curve = list(predict_forgetting_curve(record, days))
        output(record.word.ljust(20) + "".join(f"{curve[day - 1]:9.1f}%" for day in checkpoints))
    return 0


def main(
    argv: Optional[List[str]] = None,
    input_func: InputFunc = input,
    output: OutputFunc = print,
) -> int:
    """Run the command line interface."""
    args = build_parser().parse_args(argv)
    if args.command == "forecast" and args.days < 1:
        output("--days must be positive")
        return 2

    ensure_directories()
    setup_logging("Starting wordreview ...", args.log_level)

    try:
        vocabulary = VocabularyProvider.from_json_file(args.vocabulary)
    except (OSError, ValueError) as e:
        logger.error("Could not load vocabulary %s: %s", args.vocabulary, e)
        output(f"Could not load vocabulary: {e}")
        return 1

    with ReviewApp(vocabulary) as app:
        try:
            if args.command == "review":
                return run_review(app, args, input_func, output)
            if args.command == "stats":
                return run_stats(app, output)
            return run_forecast(app, args.days, output)
        except (KeyboardInterrupt, EOFError):
            logger.info("Interrupted, shutting down...")
            return 130
        except ValidationError as e:
            logger.error("Invalid data: %s", e)
            return 1


if __name__ == "__main__":
    sys.exit(main())
