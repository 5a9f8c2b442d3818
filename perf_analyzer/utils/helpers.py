"""Utility helper functions for the performance analyzer."""

import dataclasses
from collections import deque
from datetime import datetime
from enum import Enum
from numbers import Number
from typing import Any, Iterable, Mapping

import numpy as np


def get_metric_value(sample: Any, path: str, default: float = 0.0) -> float:
    """Resolve a dotted metric path ("system.cpu") against a sample.

    Works on dataclass samples and plain dictionaries alike. Missing segments
    and non-numeric leaves resolve to ``default``.
    """
    value = sample
    for key in path.split("."):
        if value is None:
            return default
        if isinstance(value, Mapping):
            value = value.get(key)
        else:
            value = getattr(value, key, None)

    if isinstance(value, bool) or not isinstance(value, Number):
        return default
    return float(value)


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for an empty input."""
    data = list(values)
    if not data:
        return 0.0
    return float(np.mean(data))


def clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def format_period(seconds: float) -> str:
    """Format a window length the way analysis snapshots label it (e.g. "1h")."""
    seconds = int(seconds)
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size and seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def to_serializable(obj: Any) -> Any:
    """Convert dataclasses, enums and datetimes into JSON-compatible values."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            field.name: to_serializable(getattr(obj, field.name))
            for field in dataclasses.fields(obj)
        }
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Mapping):
        return {str(to_serializable(k)): to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, deque)):
        return [to_serializable(item) for item in obj]
    if isinstance(obj, np.generic):
        return obj.item()
    return obj
