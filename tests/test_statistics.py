"""Tests for the streaming statistics aggregator (Welford updates)."""

from __future__ import annotations

import math
import statistics as pystats
from datetime import datetime, timedelta, timezone

import pytest

from exceptions.registry import NotFoundError
from monitoring.statistics import StatisticsAggregator


@pytest.fixture()
def aggregator(target) -> StatisticsAggregator:
    agg = StatisticsAggregator()
    agg.track(target)
    return agg


def test_fresh_record_is_empty(aggregator, target) -> None:
    stats = aggregator.snapshot(target.id)

    assert stats.total_count == 0
    assert stats.packet_loss_percent == 0.0
    assert stats.jitter_ms == 0.0
    assert stats.min_latency_ms is None
    assert stats.max_latency_ms is None
    assert stats.mean_latency_ms is None


def test_mixed_outcomes(aggregator, target, make_outcome) -> None:
    for seq, latency in enumerate([10.0, 12.0, None, 11.0, 9.0], start=1):
        aggregator.record(make_outcome(latency_ms=latency, sequence=seq))

    stats = aggregator.snapshot(target.id)

    assert stats.total_count == 5
    assert stats.success_count == 4
    assert stats.failure_count == 1
    assert stats.total_count == stats.success_count + stats.failure_count
    assert stats.min_latency_ms == 9.0
    assert stats.max_latency_ms == 12.0
    assert stats.mean_latency_ms == pytest.approx(10.5)
    assert stats.packet_loss_percent == pytest.approx(20.0)
    assert stats.jitter_ms == pytest.approx(pystats.stdev([10.0, 12.0, 11.0, 9.0]))


def test_jitter_matches_sample_stdev_over_long_run(aggregator, target, make_outcome) -> None:
    latencies = [20.0 + (i * 7 % 13) * 0.37 for i in range(500)]
    for latency in latencies:
        aggregator.record(make_outcome(latency_ms=latency))

    stats = aggregator.snapshot(target.id)

    assert stats.mean_latency_ms == pytest.approx(pystats.mean(latencies))
    assert stats.jitter_ms == pytest.approx(pystats.stdev(latencies))


def test_single_success_has_zero_jitter(aggregator, target, make_outcome) -> None:
    aggregator.record(make_outcome(latency_ms=42.0))

    stats = aggregator.snapshot(target.id)

    assert stats.jitter_ms == 0.0
    assert not math.isnan(stats.jitter_ms)
    assert stats.min_latency_ms == stats.max_latency_ms == stats.mean_latency_ms == 42.0


def test_all_failures(aggregator, target, make_outcome) -> None:
    for _ in range(3):
        aggregator.record(make_outcome(error="timeout"))

    stats = aggregator.snapshot(target.id)

    assert stats.packet_loss_percent == 100.0
    assert stats.success_count == 0
    assert stats.mean_latency_ms is None
    assert stats.jitter_ms == 0.0


def test_last_outcome_tracks_latest_timestamp(aggregator, target, make_outcome) -> None:
    t0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    aggregator.record(make_outcome(timestamp=t0))
    aggregator.record(make_outcome(error="unreachable", timestamp=t0 + timedelta(seconds=1)))

    assert aggregator.snapshot(target.id).last_outcome == t0 + timedelta(seconds=1)


def test_reset_one_target_keeps_it_tracked(aggregator, target, make_outcome) -> None:
    aggregator.record(make_outcome(latency_ms=5.0))
    later = datetime(2030, 1, 1, tzinfo=timezone.utc)

    aggregator.reset(target.id, now=later)

    stats = aggregator.snapshot(target.id)
    assert stats.total_count == 0
    assert stats.session_start == later
    assert stats.target_label == target.label


def test_reset_all_and_unknown(aggregator, make_outcome) -> None:
    aggregator.record(make_outcome())
    aggregator.reset()
    assert all(s.total_count == 0 for s in aggregator.snapshot_all().values())

    with pytest.raises(NotFoundError):
        aggregator.reset("missing")


def test_discard_and_snapshot_unknown(aggregator, target) -> None:
    assert aggregator.discard(target.id) is True
    assert aggregator.discard(target.id) is False
    with pytest.raises(NotFoundError):
        aggregator.snapshot(target.id)


def test_snapshots_are_copies(aggregator, target, make_outcome) -> None:
    snap = aggregator.snapshot(target.id)
    aggregator.record(make_outcome())

    assert snap.total_count == 0
    assert aggregator.snapshot(target.id).total_count == 1


def test_track_refreshes_label(aggregator, target, make_outcome) -> None:
    aggregator.record(make_outcome())
    target.label = "Renamed"

    aggregator.track(target)

    stats = aggregator.snapshot(target.id)
    assert stats.target_label == "Renamed"
    assert stats.total_count == 1


def test_to_dict_shape(aggregator, target, make_outcome) -> None:
    aggregator.record(make_outcome(latency_ms=10.0))

    data = aggregator.snapshot(target.id).to_dict()

    assert data["target"] == "1.1.1.1"
    assert data["target_label"] == "Cloudflare"
    assert data["packet_loss_percent"] == 0.0
    assert data["session_start"].endswith("Z")
