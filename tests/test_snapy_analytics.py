"""Tests for snapy/analytics.py -- aggregate study statistics."""

import sys
from pathlib import Path
from datetime import date

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from snapy.models import ProgressRecord
from snapy.analytics import StudyStats, aggregate_stats, retention_rate


def _record(flashcard_id, interval, repetitions, ease_factor=2.5):
    return ProgressRecord(
        user_id='u1',
        flashcard_id=flashcard_id,
        ease_factor=ease_factor,
        interval=interval,
        repetitions=repetitions,
        next_review_date=date(2026, 1, 1),
    )


def test_empty_collection_defaults():
    """No records: average ease 2.5, average interval 0, no buckets."""
    stats = aggregate_stats([], 0, 0, 0)
    assert stats.total_cards == 0
    assert stats.average_ease_factor == 2.5
    assert stats.average_interval == 0
    assert stats.retention_rate == 0.0
    assert stats.learning_cards == stats.review_cards == stats.mature_cards == 0


def test_empty_collection_keeps_counters():
    """Counters are reported even when no progress records exist."""
    stats = aggregate_stats([], 4, 3, 1)
    assert stats.total_reviews == 4
    assert stats.retention_rate == pytest.approx(0.75)
    assert stats.retention_percentage == 75


def test_buckets():
    """Each record lands in exactly one classify() bucket."""
    records = [
        _record(1, 1, 1),     # learning
        _record(2, 5, 1),     # learning
        _record(3, 10, 2),    # review
        _record(4, 21, 3),    # mature
        _record(5, 40, 6),    # mature
    ]
    stats = aggregate_stats(records, 10, 8, 2, cards_due_today=3)
    assert stats.total_cards == 5
    assert stats.learning_cards == 2
    assert stats.review_cards == 1
    assert stats.mature_cards == 2
    assert stats.new_cards == 0
    assert stats.cards_due_today == 3


def test_averages():
    """Ease is an arithmetic mean; interval is a truncating integer mean."""
    records = [
        _record(1, 1, 1, ease_factor=2.0),
        _record(2, 6, 2, ease_factor=2.5),
        _record(3, 16, 3, ease_factor=2.6),
    ]
    stats = aggregate_stats(records, 3, 3, 0)
    assert stats.average_ease_factor == pytest.approx((2.0 + 2.5 + 2.6) / 3)
    assert stats.average_interval == 7  # 23 // 3


def test_retention_rate():
    assert retention_rate(0, 0) == 0.0
    assert retention_rate(10, 7) == pytest.approx(0.7)
    assert retention_rate(3, 3) == 1.0


def test_retention_percentage_truncates():
    stats = StudyStats(retention_rate=2 / 3)
    assert stats.retention_percentage == 66


def test_accepts_generator():
    """Records may be any iterable, consumed once."""
    gen = (_record(i, 10, 2) for i in range(3))
    stats = aggregate_stats(gen, 0, 0, 0)
    assert stats.total_cards == 3
    assert stats.review_cards == 3


def test_to_dict():
    d = aggregate_stats([_record(1, 1, 1)], 2, 1, 1).to_dict()
    assert d['total_cards'] == 1
    assert d['retention_percentage'] == 50
    assert d['learning_cards'] == 1
