"""Application wiring for the review engine."""
import logging
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from wordreview import monitoring
from wordreview.config import settings
from wordreview.models.base import SessionLocal, engine, init_db
from wordreview.services.document_store import DocumentStore
from wordreview.services.learning_record_store import LearningRecordStore
from wordreview.services.review_queue import ReviewQueueBuilder
from wordreview.services.review_service import ReviewService, SyncQueue
from wordreview.services.vocabulary_service import VocabularyProvider
from wordreview.services.wrong_word_tracker import WrongWordTracker


class ReviewApp:
    """Main application class: builds the components and owns their lifecycle."""

    def __init__(
        self,
        vocabulary: VocabularyProvider,
        session_factory: Optional[sessionmaker] = None,
        bind: Optional[Engine] = None,
        sync_queue: Optional[SyncQueue] = None,
        error_handler: Optional[Callable[[Exception], None]] = None,
        enable_monitoring: Optional[bool] = None,
    ):
        """Initialize the application."""
        self.vocabulary = vocabulary
        self.session_factory = session_factory or SessionLocal
        self.bind = bind or engine
        self.sync_queue = sync_queue
        self.error_handler = error_handler
        self.enable_monitoring = (
            settings.monitoring.enabled if enable_monitoring is None else enable_monitoring
        )

        self.store: Optional[DocumentStore] = None
        self.tracker: Optional[WrongWordTracker] = None
        self.records: Optional[LearningRecordStore] = None
        self.queue_builder: Optional[ReviewQueueBuilder] = None
        self.review_service: Optional[ReviewService] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            # Initialize database
            init_db(self.bind)
            self.store = DocumentStore(self.session_factory)
            self.logger.info("Database initialized")

            # Wrong-word tracker loads its stored state or scans the vocabulary
            self.tracker = WrongWordTracker(self.store, error_handler=self.error_handler)
            self.tracker.initialize(self.vocabulary.snapshot())

            self.records = LearningRecordStore(self.store)
            self.queue_builder = ReviewQueueBuilder(self.tracker)
            self.review_service = ReviewService(
                self.queue_builder,
                self.tracker,
                self.records,
                vocabulary=self.vocabulary,
                sync_queue=self.sync_queue,
            )
            self.logger.info("Review services created")

            if self.enable_monitoring:
                monitoring.start_monitoring(settings.monitoring.port)
                self.logger.info("Metrics server listening on port %d", settings.monitoring.port)

            self.running = True
            self.logger.info("Application started")

        except Exception as e:
            self.logger.error("Failed to start application: %s", e)
            self.running = True
            self.stop()
            raise

    def stop(self) -> None:
        """Stop the application, waiting for pending writes."""
        if not self.running:
            return

        try:
            if self.tracker:
                self.tracker.dispose()
                self.logger.info("Wrong-word tracker stopped")
        finally:
            self.tracker = None
            self.review_service = None
            self.queue_builder = None
            self.records = None
            self.store = None
            self.running = False
            self.logger.info("Application stopped")

    def __enter__(self) -> "ReviewApp":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
