"""
File-based persistence of analyzer state.

Layout under the data directory:
- ``performance-baseline.json``: benchmark name -> baseline score
- ``performance-analysis.json``: analysis and optimization history snapshot
- ``optimization-report-<epoch_ms>.json``: report written at shutdown
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..utils.exceptions import PersistenceError
from ..utils.file_utils import read_json_file, write_json_file
from .models import Analysis, ImplementedOptimization, OptimizationReport, OptimizationStatus

logger = logging.getLogger(__name__)

BASELINE_FILE = "performance-baseline.json"
ANALYSIS_FILE = "performance-analysis.json"
REPORT_PREFIX = "optimization-report-"


def optimization_from_dict(data: Mapping[str, Any]) -> ImplementedOptimization:
    implemented_at = data["implemented_at"]
    if isinstance(implemented_at, str):
        implemented_at = datetime.fromisoformat(implemented_at)
    return ImplementedOptimization(
        id=data["id"],
        name=data.get("name", data["id"]),
        implemented_at=implemented_at,
        category=data.get("category", ""),
        before=dict(data.get("before") or {}),
        after=dict(data.get("after") or {}),
        improvement=dict(data.get("improvement") or {}),
        cost=float(data.get("cost", 0.0)),
        effort=data.get("effort", ""),
        status=OptimizationStatus(data.get("status", OptimizationStatus.SUCCESS.value)),
        notes=data.get("notes", ""),
    )


class AnalysisPersistence:
    """Reads and writes analyzer state as JSON files."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    @property
    def baseline_path(self) -> Path:
        return self.data_dir / BASELINE_FILE

    @property
    def analysis_path(self) -> Path:
        return self.data_dir / ANALYSIS_FILE

    async def load_baseline(self) -> Dict[str, float]:
        """Stored baseline scores; empty when nothing has been saved yet."""
        try:
            data = await read_json_file(self.baseline_path)
        except Exception as e:
            raise PersistenceError(f"Failed to read {self.baseline_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise PersistenceError(f"Malformed baseline file: {self.baseline_path}")

        baseline = {str(name): float(score) for name, score in data.items()}
        logger.info(f"Loaded performance baseline with {len(baseline)} entries")
        return baseline

    async def save_baseline(self, baseline: Mapping[str, float]) -> Path:
        try:
            return await write_json_file(self.baseline_path, dict(baseline))
        except Exception as e:
            raise PersistenceError(f"Failed to write {self.baseline_path}: {e}") from e

    async def load_optimization_history(self) -> List[ImplementedOptimization]:
        """Optimization records from the last saved snapshot."""
        try:
            data = await read_json_file(self.analysis_path)
            if not data:
                return []
            return [optimization_from_dict(item) for item in data.get("optimization_history", [])]
        except Exception as e:
            raise PersistenceError(f"Failed to read {self.analysis_path}: {e}") from e

    async def save_analysis_results(
        self,
        analysis_history: Sequence[Analysis],
        optimization_history: Sequence[ImplementedOptimization],
        baseline: Mapping[str, float],
    ) -> Path:
        snapshot = {
            "saved_at": datetime.now(),
            "analysis_history": list(analysis_history),
            "optimization_history": list(optimization_history),
            "performance_baseline": dict(baseline),
        }
        try:
            path = await write_json_file(self.analysis_path, snapshot)
        except Exception as e:
            raise PersistenceError(f"Failed to write {self.analysis_path}: {e}") from e
        logger.info(f"Saved {len(analysis_history)} analyses to {path}")
        return path

    async def write_report(self, report: OptimizationReport, timestamp: Optional[datetime] = None) -> Path:
        timestamp = timestamp or report.timestamp
        path = self.data_dir / f"{REPORT_PREFIX}{int(timestamp.timestamp() * 1000)}.json"
        try:
            await write_json_file(path, report)
        except Exception as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e
        logger.info(f"Optimization report written to {path}")
        return path
