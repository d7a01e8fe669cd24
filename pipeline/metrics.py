"""
Structured logging and metrics for remote call executions.

Tracks, per finished executor run:
- label (inference / speech)
- final state and attempt count
- backoff delays taken
- elapsed time
"""

import logging
import time
from typing import List

logger = logging.getLogger("shadow_scan.pipeline.metrics")


class ExecutionMetrics:
    """Records and reports executor runs."""

    def __init__(self, max_history: int = 100):
        self._history: List[dict] = []
        self._max_history = max_history

    def record(self, run):
        """Record a finished ExecutionRun with structured logging."""
        entry = {
            "timestamp": time.time(),
            "label": run.label,
            "success": run.state.value == "success",
            "state": run.state.value,
            "attempts": run.attempts,
            "retries": len(run.delays),
            "delays_ms": [round(d * 1000) for d in run.delays],
            "time_ms": run.elapsed_ms,
            "error": str(run.last_error) if run.last_error and run.state.value != "success" else None,
        }

        self._history.append(entry)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        if entry["success"]:
            logger.info(
                "CALL_OK label=%s attempts=%d retries=%d time=%.0fms",
                entry["label"], entry["attempts"], entry["retries"], entry["time_ms"],
            )
        else:
            logger.warning(
                "CALL_FAIL label=%s attempts=%d delays=%s error=%s time=%.0fms",
                entry["label"], entry["attempts"], entry["delays_ms"],
                (entry["error"] or "")[:200], entry["time_ms"],
            )

    def get_stats(self) -> dict:
        """Return aggregate stats across all recorded runs."""
        if not self._history:
            return {"total_runs": 0}

        successes = sum(1 for h in self._history if h["success"])
        total = len(self._history)
        return {
            "total_runs": total,
            "success_rate": successes / total,
            "avg_time_ms": sum(h["time_ms"] for h in self._history) / total,
            "total_attempts": sum(h["attempts"] for h in self._history),
            "total_retries": sum(h["retries"] for h in self._history),
        }

    @property
    def history(self) -> List[dict]:
        return list(self._history)
