"""Tests for configuration settings."""
import pytest

from wordreview.config import (
    DATA_DIR,
    LOGS_DIR,
    VOCABULARY_DIR,
    Settings,
    settings,
)


def test_base_directories_exist():
    """Test that all required directories exist."""
    assert DATA_DIR.exists()
    assert VOCABULARY_DIR.exists()
    assert LOGS_DIR.exists()


def test_settings_defaults():
    """Test default review settings."""
    assert settings.review.min_review_batch == 10
    assert settings.review.wrong_word_removal_threshold == 2
    assert settings.review.baseline_response_time_ms == 5000
    assert settings.review.forecast_days == 30
    assert settings.monitoring.enabled is False


def test_settings_validation():
    test_settings = Settings()
    test_settings.validate()

    test_settings.review.min_review_batch = 0
    with pytest.raises(ValueError):
        test_settings.validate()

    test_settings = Settings()
    test_settings.monitoring.port = 70000
    with pytest.raises(ValueError):
        test_settings.validate()

    test_settings = Settings()
    test_settings.database.url = ""
    with pytest.raises(ValueError):
        test_settings.validate()
