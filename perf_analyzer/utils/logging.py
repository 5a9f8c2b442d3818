"""Logging utilities for the performance analyzer."""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from ..config.settings import AnalyzerSettings, get_settings


class InterceptHandler(logging.Handler):
    """Forwards standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(settings: Optional[AnalyzerSettings] = None) -> None:
    """Configure logging for the analyzer."""
    settings = settings or get_settings()

    # Remove default handler
    logger.remove()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    log_level = "DEBUG" if settings.debug else settings.log_level.value

    logger.add(
        sys.stdout,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=True,
        diagnose=settings.debug,
    )

    if settings.log_to_file:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        structured_format = json.dumps({
            "timestamp": "{time:YYYY-MM-DD HH:mm:ss.SSS}",
            "level": "{level}",
            "module": "{name}",
            "function": "{function}",
            "line": "{line}",
            "message": "{message}",
            "extra": "{extra}"
        })

        logger.add(
            str(log_dir / "performance_analyzer.log"),
            format=structured_format,
            level="INFO",
            rotation="1 day",
            retention="30 days",
            compression="gz",
            serialize=True
        )

        logger.add(
            str(log_dir / "errors.log"),
            format=structured_format,
            level="ERROR",
            rotation="1 week",
            retention="4 weeks",
            compression="gz",
            serialize=True
        )

    # Module loggers use the standard library; route them through loguru.
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def log_operation(
    operation: str,
    status: str,
    duration: Optional[float] = None,
    metadata: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None
) -> None:
    """Log an operation with structured metadata."""
    log_data = {
        "operation": operation,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if duration is not None:
        log_data["duration_seconds"] = duration

    if metadata:
        log_data["metadata"] = metadata

    if error:
        log_data["error"] = error

    bound = logger.bind(**log_data)
    if status == "success":
        bound.info(f"Operation completed: {operation}")
    elif status == "error":
        bound.error(f"Operation failed: {operation}")
    else:
        bound.info(f"Operation {status}: {operation}")


def log_analysis_cycle(
    overall_score: float,
    bottleneck_count: int,
    recommendation_count: int,
    benchmark_count: int = 0,
    duration: Optional[float] = None,
    error: Optional[str] = None
) -> None:
    """Log a completed or failed analysis cycle."""
    metadata = {
        "overall_score": round(overall_score, 2),
        "bottlenecks": bottleneck_count,
        "recommendations": recommendation_count,
        "benchmarks": benchmark_count,
    }

    log_operation(
        operation="analysis_cycle",
        status="error" if error else "success",
        duration=duration,
        metadata=metadata,
        error=error
    )


def log_optimization(
    recommendation_id: str,
    status: str,
    improvement: Optional[Dict[str, float]] = None,
    duration: Optional[float] = None,
    error: Optional[str] = None
) -> None:
    """Log an optimization attempt and its outcome."""
    metadata = {
        "recommendation_id": recommendation_id,
        "optimization_status": status,
        "total_improvement": sum((improvement or {}).values()),
    }

    log_operation(
        operation="optimization",
        status="error" if error else "success",
        duration=duration,
        metadata=metadata,
        error=error
    )


class OperationLogger:
    """Context manager for logging timed analyzer operations."""

    def __init__(self, operation: str, metadata: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.metadata = metadata or {}
        self.start_time = None
        self.duration: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        logger.bind(**self.metadata).debug(f"Starting operation: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time

        if exc_type is None:
            log_operation(
                operation=self.operation,
                status="success",
                duration=self.duration,
                metadata=self.metadata
            )
        else:
            log_operation(
                operation=self.operation,
                status="error",
                duration=self.duration,
                metadata=self.metadata,
                error=str(exc_val)
            )
        return False

    def update_metadata(self, **kwargs):
        """Update operation metadata."""
        self.metadata.update(kwargs)
