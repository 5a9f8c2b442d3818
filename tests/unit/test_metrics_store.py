"""Unit tests for the retention-pruned metrics store."""

from datetime import datetime, timezone

import pytest

from perf_analyzer.monitoring.metrics_store import MetricsStore
from perf_analyzer.monitoring.models import MetricSample


class TestMetricsStore:
    """Test suite for MetricsStore."""

    @pytest.fixture
    def store(self, clock):
        return MetricsStore(retention_period=100, clock=clock)

    def test_add_and_latest(self, store, make_sample):
        """Test appending samples and reading the newest one."""
        assert store.get_latest() is None

        first = make_sample(seconds_ago=20)
        second = make_sample(seconds_ago=10)
        store.add_metrics(first)
        store.add_metrics(second)

        assert len(store) == 2
        assert store.get_latest() is second

    def test_retention_over_twice_the_period(self, store, make_sample, clock):
        """Test that only samples inside the retention period survive."""
        for seconds_ago in range(199, -1, -10):
            store.add_metrics(make_sample(seconds_ago=seconds_ago))

        recent = store.get_recent(100)
        assert recent
        assert all((clock.now - s.timestamp).total_seconds() <= 100 for s in recent)
        assert len(store) == len(recent)

    def test_prune_as_time_passes(self, store, make_sample, clock):
        """Test that pruning follows the clock."""
        store.add_metrics(make_sample(seconds_ago=0))
        clock.advance(150)
        store.add_metrics(make_sample(seconds_ago=0))

        assert len(store) == 1

    def test_sample_exactly_at_cutoff_is_kept(self, store, make_sample):
        """Test that pruning removes only samples strictly older than retention."""
        store.add_metrics(make_sample(seconds_ago=100))
        assert len(store) == 1

    def test_get_recent_window(self, store, make_sample):
        """Test that get_recent returns samples in order within the window."""
        samples = [make_sample(seconds_ago=s) for s in (90, 50, 30, 5)]
        for sample in samples:
            store.add_metrics(sample)

        assert store.get_recent(40) == samples[2:]

    def test_get_recent_returns_copy(self, store, make_sample):
        store.add_metrics(make_sample())
        recent = store.get_recent()
        recent.clear()
        assert len(store) == 1

    def test_capacity_bounds_history(self, clock, make_sample):
        """Test ring-buffer eviction when capacity is reached."""
        store = MetricsStore(retention_period=1000, capacity=3, clock=clock)
        samples = [make_sample(seconds_ago=s) for s in (40, 30, 20, 10)]
        for sample in samples:
            store.add_metrics(sample)

        assert store.snapshot() == samples[1:]

    def test_malformed_samples_are_accepted(self, store):
        """Test that samples without usable timestamps never raise."""
        store.add_metrics({"system": {"cpu": 10}})
        store.add_metrics({"timestamp": datetime.now(timezone.utc)})
        assert len(store) == 2

    def test_clear(self, store, make_sample):
        store.add_metrics(make_sample())
        store.clear()
        assert len(store) == 0

    def test_raw_payloads_with_timestamps_are_pruned(self, store, clock, make_sample):
        """Test that mapping samples age out like regular ones."""
        store.add_metrics({"timestamp": clock.now, "system": {"cpu": 95}})
        store.add_metrics({"timestamp": clock.now.isoformat()})

        clock.advance(1000)
        store.add_metrics(make_sample())

        assert len(store) == 1
        assert len(store.get_recent(100)) == 1


class TestMetricSampleFromDict:
    """Test suite for building samples from collector payloads."""

    def test_camel_case_keys(self, start_time):
        sample = MetricSample.from_dict({
            "timestamp": start_time.isoformat(),
            "system": {"cpu": 95, "networkLatency": 5},
            "application": {"responseTime": 250.0, "errorRate": 0.5, "activeConnections": 12},
            "agents": {"total": 4, "active": 3, "averageHealth": 0.9},
        })

        assert sample.timestamp == start_time
        assert sample.system.network_latency == 5
        assert sample.application.response_time == 250.0
        assert sample.application.active_connections == 12
        assert sample.agents.average_health == 0.9

    def test_unknown_keys_are_ignored(self, start_time):
        sample = MetricSample.from_dict({
            "timestamp": start_time,
            "system": {"cpu": 40, "gpu": 99},
            "extra": {"anything": 1},
        })

        assert sample.system.cpu == 40
        assert sample.application.response_time == 0.0
