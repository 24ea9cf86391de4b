"""Tests for session statistics."""
import threading

from faker import Faker

from wordreview.services.session_stats import SessionStatsAggregator, calculate_accuracy

fake = Faker()


def test_accuracy():
    assert calculate_accuracy(0, 0) == 0
    assert calculate_accuracy(1, 3) == 33
    assert calculate_accuracy(2, 3) == 67
    assert calculate_accuracy(5, 5) == 100


def test_running_totals():
    aggregator = SessionStatsAggregator("session-1")
    aggregator.initialize(3)

    aggregator.update_stats("apple", True)
    stats = aggregator.update_stats("pear", False, "pera")

    assert stats.session_id == "session-1"
    assert stats.total_words == 2
    assert stats.remembered_words == 1
    assert stats.forgotten_words == 1
    assert stats.experience == 3
    assert stats.accuracy == 50
    assert aggregator.actions[1].translation == "pera"


def test_final_stats_are_available_immediately_and_idempotent():
    aggregator = SessionStatsAggregator()
    for _ in range(4):
        aggregator.update_stats(fake.word(), True)
    aggregator.update_stats(fake.word(), False)

    first = aggregator.calculate_final_stats()
    second = aggregator.calculate_final_stats()

    assert first == second
    assert first.total_words == 5
    assert first.experience == 9
    assert first.accuracy == 80


def test_empty_session_gives_zeroed_stats():
    stats = SessionStatsAggregator().calculate_final_stats()
    assert stats.total_words == 0
    assert stats.experience == 0
    assert stats.accuracy == 0


def test_skips_do_not_count_towards_accuracy():
    aggregator = SessionStatsAggregator()
    aggregator.update_stats("apple", True)
    aggregator.record_skip("pear")

    stats = aggregator.calculate_final_stats()
    assert stats.total_words == 1
    assert stats.skipped_words == 1
    assert stats.accuracy == 100
    assert stats.experience == 2


def test_initialize_keeps_first_size():
    aggregator = SessionStatsAggregator()
    aggregator.initialize(10)
    aggregator.initialize(3)
    assert aggregator.planned_words == 10


def test_concurrent_updates():
    aggregator = SessionStatsAggregator()

    def answer(correct: bool):
        for i in range(50):
            aggregator.update_stats(f"word{i}", correct)

    threads = [threading.Thread(target=answer, args=(i % 2 == 0,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stats = aggregator.calculate_final_stats()
    assert stats.total_words == 200
    assert stats.remembered_words == 100
    assert stats.experience == 300
