"""Unit tests for structured logging helpers."""

import logging
import sys
import warnings
from datetime import datetime, timedelta

import pytest
from loguru import logger

from perf_analyzer.config.settings import AnalyzerSettings
from perf_analyzer.utils.logging import OperationLogger, log_analysis_cycle, setup_logging


@pytest.fixture
def records():
    captured = []
    sink_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(sink_id)


class TestOperationLogger:
    """Test suite for OperationLogger."""

    def test_success(self, records):
        with OperationLogger("analysis_cycle", {"period": "1h"}) as op:
            op.update_metadata(bottlenecks=2)

        completed = records[-1]
        assert completed["message"] == "Operation completed: analysis_cycle"
        assert completed["extra"]["metadata"] == {"period": "1h", "bottlenecks": 2}
        assert op.duration >= 0

    def test_timestamps_are_timezone_aware(self, records):
        """Test that operation records carry UTC timestamps without deprecated calls."""
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            with OperationLogger("analysis_cycle"):
                pass

        timestamp = datetime.fromisoformat(records[-1]["extra"]["timestamp"])
        assert timestamp.utcoffset() == timedelta(0)

    def test_error_is_logged_and_propagated(self, records):
        with pytest.raises(RuntimeError):
            with OperationLogger("optimization"):
                raise RuntimeError("step exploded")

        failed = records[-1]
        assert failed["level"].name == "ERROR"
        assert failed["extra"]["error"] == "step exploded"


def test_analysis_cycle_metadata(records):
    log_analysis_cycle(76.834, 2, 3, benchmark_count=2, duration=0.4)

    metadata = records[-1]["extra"]["metadata"]
    assert metadata == {"overall_score": 76.83, "bottlenecks": 2, "recommendations": 3, "benchmarks": 2}


def test_setup_logging_writes_files(tmp_path):
    root_handlers = logging.getLogger().handlers[:]
    settings = AnalyzerSettings(log_to_file=True, log_dir=str(tmp_path / "logs"))
    try:
        setup_logging(settings)
        logging.getLogger("perf_analyzer.test").error("routed through loguru")
        logger.complete()

        assert (tmp_path / "logs" / "performance_analyzer.log").exists()
        assert (tmp_path / "logs" / "errors.log").exists()
    finally:
        logger.remove()
        logger.add(sys.stderr)
        logging.getLogger().handlers[:] = root_handlers
