"""Monitoring configuration for the review engine."""
from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Review metrics
reviews_total = Counter(
    "wordreview_reviews_total",
    "Total number of answers recorded by the review engine",
    ["outcome"],
)

review_batch_size = Histogram(
    "wordreview_review_batch_size",
    "Number of words selected into a review batch",
    ["kind"],
    buckets=[0, 1, 5, 10, 20, 50, 100, 500],
)

sessions_completed = Counter(
    "wordreview_sessions_completed_total",
    "Total number of review sessions finalized",
)

session_accuracy = Histogram(
    "wordreview_session_accuracy_percent",
    "Accuracy of finalized review sessions",
    buckets=[10, 25, 50, 75, 90, 100],
)

# Wrong word metrics
wrong_words = Gauge(
    "wordreview_wrong_words",
    "Number of words currently tracked as struggling",
)

wrong_words_removed = Counter(
    "wordreview_wrong_words_removed_total",
    "Total number of words removed from the wrong-word set",
    ["reason"],
)

# Persistence metrics
persistence_writes = Counter(
    "wordreview_persistence_writes_total",
    "Total number of document writes",
    ["document"],
)

persistence_errors = Counter(
    "wordreview_persistence_errors_total",
    "Total number of failed document reads or writes",
    ["document"],
)

# Error metrics
error_count = Counter(
    "wordreview_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
