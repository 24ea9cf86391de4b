"""Retention forecast used for progress charts."""
import math
from typing import Iterator

from wordreview.models.learning_models import LearningRecord
from wordreview.services.mastery_engine import clamp

# Mastery level -> share of the word expected to be retained
RETENTION_RATES = {
    0: 0.05,
    10: 0.15,
    25: 0.35,
    40: 0.50,
    60: 0.65,
    75: 0.80,
    85: 0.88,
    95: 0.95,
    100: 0.98,
}


def get_retention_rate(mastery_level: float) -> float:
    """Retention rate of the highest mastery key not above the level."""
    for level in sorted(RETENTION_RATES, reverse=True):
        if mastery_level >= level:
            return RETENTION_RATES[level]
    return RETENTION_RATES[0]


def get_forgetting_rate(mastery_level: float, learning_efficiency: float) -> float:
    """Decay constant in days; higher means slower forgetting."""
    base_rate = max(1.0, 30 - mastery_level * 0.2)
    efficiency_adjustment = (learning_efficiency - 50) / 100  # -0.5 to 0.5
    return max(1.0, base_rate * (1 - efficiency_adjustment * 0.3))


def predict_forgetting_curve(record: LearningRecord, days: int = 30) -> Iterator[float]:
    """Yield the predicted retention percentage for each day 1..days."""
    retention_rate = get_retention_rate(record.mastery_level)
    efficiency_factor = record.learning_efficiency / 100
    adjusted_retention = retention_rate * (0.8 + efficiency_factor * 0.4)
    forgetting_rate = get_forgetting_rate(record.mastery_level, record.learning_efficiency)

    for day in range(1, days + 1):
        retention = adjusted_retention * math.exp(-day / forgetting_rate)
        yield clamp(retention * 100, 0, 100)
