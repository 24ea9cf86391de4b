"""Configuration settings for the review engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
VOCABULARY_DIR = DATA_DIR / "vocabulary"
LOGS_DIR = DATA_DIR / "logs"

# Review settings
MIN_REVIEW_BATCH = 10  # target size of a review batch
WRONG_WORD_REMOVAL_THRESHOLD = 2  # consecutive correct answers that clear a wrong word
BASELINE_RESPONSE_TIME_MS = 5000  # average answer time used for speed tiers

# Persisted document keys
LEARNING_RECORDS_KEY = "learning_records"
WRONG_WORDS_KEY = "wrong_words_collection"
REVIEW_SESSIONS_KEY = "review_sessions"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        VOCABULARY_DIR,
        LOGS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    vocabulary_dir: Path = VOCABULARY_DIR
    logs_dir: Path = LOGS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordreview.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class ReviewSettings:
    """Review engine settings."""
    min_review_batch: int = int(os.getenv("MIN_REVIEW_BATCH", str(MIN_REVIEW_BATCH)))
    wrong_word_removal_threshold: int = int(
        os.getenv("WRONG_WORD_REMOVAL_THRESHOLD", str(WRONG_WORD_REMOVAL_THRESHOLD))
    )
    baseline_response_time_ms: int = int(
        os.getenv("BASELINE_RESPONSE_TIME_MS", str(BASELINE_RESPONSE_TIME_MS))
    )
    forecast_days: int = int(os.getenv("FORECAST_DAYS", "30"))
    max_words_for_review: int = int(os.getenv("MAX_WORDS_FOR_REVIEW", "20"))
    persistence_flush_timeout: float = float(os.getenv("PERSISTENCE_FLUSH_TIMEOUT", "5.0"))


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_review_settings() -> ReviewSettings:
    """Get review settings."""
    return ReviewSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    review: ReviewSettings = field(default_factory=get_review_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.database.url:
            raise ValueError("DATABASE_URL is required")

        if self.review.min_review_batch < 1:
            raise ValueError("MIN_REVIEW_BATCH must be positive")

        if self.review.wrong_word_removal_threshold < 1:
            raise ValueError("WRONG_WORD_REMOVAL_THRESHOLD must be positive")

        if self.review.baseline_response_time_ms <= 0:
            raise ValueError("BASELINE_RESPONSE_TIME_MS must be positive")

        if self.review.forecast_days < 1:
            raise ValueError("FORECAST_DAYS must be positive")

        if self.review.max_words_for_review < 1:
            raise ValueError("MAX_WORDS_FOR_REVIEW must be positive")

        if self.monitoring.port < 1 or self.monitoring.port > 65535:
            raise ValueError("METRICS_PORT must be between 1 and 65535")


# Create global settings instance
settings = Settings()
settings.validate()
