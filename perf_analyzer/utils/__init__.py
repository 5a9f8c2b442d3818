"""
Utility functions and helpers.
"""

from .file_utils import ensure_directory, read_json_file, write_json_file
from .helpers import format_period, get_metric_value, mean, to_serializable

__all__ = [
    "ensure_directory",
    "read_json_file",
    "write_json_file",
    "format_period",
    "get_metric_value",
    "mean",
    "to_serializable",
]
