"""Pytest configuration and shared fixtures for performance analyzer tests."""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytest

from perf_analyzer.config.settings import AnalyzerSettings, PerformanceThresholds
from perf_analyzer.monitoring.models import (
    AgentMetrics,
    ApplicationMetrics,
    MetricSample,
    SystemMetrics,
)
from perf_analyzer.optimization.optimization_executor import StepExecutor


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeStepExecutor(StepExecutor):
    """Deterministic step executor that records every step it runs."""

    def __init__(self, outcomes: Optional[Dict[str, object]] = None):
        self.outcomes = outcomes or {}
        self.executed: List[str] = []

    async def execute(self, step, recommendation):
        self.executed.append(step)
        outcome = self.outcomes.get(step, True)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def build_sample(
    timestamp: datetime,
    cpu: float = 60.0,
    memory: float = 70.0,
    disk: float = 70.0,
    network_latency: float = 20.0,
    response_time: float = 100.0,
    throughput: float = 1000.0,
    error_rate: float = 0.05,
    active_connections: int = 80,
    agents_total: int = 4,
    agents_active: int = 4,
    average_health: float = 0.95,
) -> MetricSample:
    """Healthy sample by default; override individual metrics as needed."""
    return MetricSample(
        timestamp=timestamp,
        system=SystemMetrics(cpu=cpu, memory=memory, disk=disk, network_latency=network_latency),
        application=ApplicationMetrics(
            response_time=response_time,
            throughput=throughput,
            error_rate=error_rate,
            active_connections=active_connections,
        ),
        agents=AgentMetrics(total=agents_total, active=agents_active, average_health=average_health),
    )


@pytest.fixture
def start_time():
    return datetime(2024, 1, 15, 12, 0, 0)


@pytest.fixture
def clock(start_time):
    return FakeClock(start_time)


@pytest.fixture
def make_sample(clock):
    """Factory for samples stamped relative to the fake clock."""
    def _make(seconds_ago: float = 0.0, **overrides) -> MetricSample:
        return build_sample(clock.now - timedelta(seconds=seconds_ago), **overrides)
    return _make


@pytest.fixture
def escalating_samples(make_sample):
    """Ten samples with CPU rising 50 -> 95 and response time 100 -> 2500 ms."""
    samples = []
    for i in range(10):
        last = i == 9
        samples.append(make_sample(
            seconds_ago=(9 - i) * 10,
            cpu=50 + i * 5,
            response_time=100 + i * (2400 / 9),
            throughput=50.0 if last else 900.0,
            error_rate=10.0 if last else 0.5,
        ))
    return samples


@pytest.fixture
def thresholds():
    return PerformanceThresholds()


@pytest.fixture
def test_settings(tmp_path):
    """Settings with zero delays, no benchmarks and a temporary data directory."""
    return AnalyzerSettings(
        data_dir=str(tmp_path / "data"),
        log_dir=str(tmp_path / "logs"),
        stabilization_delay=0,
        step_delay=0,
        benchmark_enabled=False,
        analysis_interval=3600,
    )


@pytest.fixture
def fake_step_executor():
    return FakeStepExecutor()


@pytest.fixture
def make_step_executor():
    """Factory for step executors with per-step outcomes (bool or exception)."""
    return FakeStepExecutor
