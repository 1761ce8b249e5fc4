"""
stakepool/metrics.py

Prometheus metrics collection for stakepool.

Counts executed instructions by operation and outcome and mirrors the
pool's accounting gauges after each successful transition.

Usage:
    from stakepool.metrics import LedgerMetrics

    metrics = LedgerMetrics()
    runtime = Runtime(store, bank, config, metrics=metrics)

    prometheus_output = metrics.collect()
"""

import time
import logging
import threading
from collections import defaultdict
from typing import Any, Dict, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .ledger.records import PoolRecord

logger = logging.getLogger("stakepool.metrics")


class LedgerMetrics:
    """Prometheus metrics collector for one pool."""

    METRICS = {
        "stakepool_instructions_total": {
            "type": "counter",
            "help": "Instructions executed, by operation and outcome",
        },
        "stakepool_transferred_amount_total": {
            "type": "counter",
            "help": "Asset units moved by successful instructions, by operation",
        },
        "stakepool_total_staked": {
            "type": "gauge",
            "help": "Stake currently held by the pool",
        },
        "stakepool_epoch_id": {
            "type": "gauge",
            "help": "Current epoch id",
        },
        "stakepool_epoch_reward": {
            "type": "gauge",
            "help": "Reward allocated to the current epoch",
        },
        "stakepool_uptime_seconds": {
            "type": "counter",
            "help": "Seconds since the collector was created",
        },
    }

    def __init__(self):
        self._start_time = time.time()
        self._lock = threading.Lock()

        # (operation, outcome) -> count; outcome is "ok" or an error kind
        self._instructions: Dict[Tuple[str, str], int] = defaultdict(int)
        self._amounts: Dict[str, int] = defaultdict(int)

        self._total_staked = 0
        self._epoch_id = 0
        self._epoch_reward = 0

    def record_success(self, operation: str, amount: int, pool: "PoolRecord") -> None:
        """Record a committed instruction and refresh pool gauges."""
        with self._lock:
            self._instructions[(operation, "ok")] += 1
            self._amounts[operation] += amount
            self._total_staked = pool.total_staked
            self._epoch_id = pool.epoch_id
            self._epoch_reward = pool.epoch_reward

    def record_failure(self, operation: str, kind: str) -> None:
        """Record a rejected instruction."""
        with self._lock:
            self._instructions[(operation, kind)] += 1

    def count(self, operation: str, outcome: str = "ok") -> int:
        return self._instructions.get((operation, outcome), 0)

    def collect(self) -> str:
        """
        Collect all metrics and return in Prometheus format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        def header(name: str) -> None:
            metric_def = self.METRICS[name]
            lines.append(f"# HELP {name} {metric_def['help']}")
            lines.append(f"# TYPE {name} {metric_def['type']}")

        def sample(name: str, value: float, labels: Dict[str, str] = None) -> None:
            if labels:
                label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
                lines.append(f"{name}{{{label_str}}} {value}")
            else:
                lines.append(f"{name} {value}")

        with self._lock:
            header("stakepool_instructions_total")
            for (operation, outcome), value in sorted(self._instructions.items()):
                sample("stakepool_instructions_total", value, {"operation": operation, "outcome": outcome})

            header("stakepool_transferred_amount_total")
            for operation, value in sorted(self._amounts.items()):
                sample("stakepool_transferred_amount_total", value, {"operation": operation})

            header("stakepool_total_staked")
            sample("stakepool_total_staked", self._total_staked)

            header("stakepool_epoch_id")
            sample("stakepool_epoch_id", self._epoch_id)

            header("stakepool_epoch_reward")
            sample("stakepool_epoch_reward", self._epoch_reward)

        header("stakepool_uptime_seconds")
        sample("stakepool_uptime_seconds", time.time() - self._start_time)

        return "\n".join(lines) + "\n"

    def get_stats(self) -> Dict[str, Any]:
        """
        Get metrics as a dictionary (for JSON output).

        Returns:
            Dictionary of metric values
        """
        with self._lock:
            return {
                "instructions": {
                    f"{operation}:{outcome}": value
                    for (operation, outcome), value in self._instructions.items()
                },
                "amounts": dict(self._amounts),
                "total_staked": self._total_staked,
                "epoch_id": self._epoch_id,
                "epoch_reward": self._epoch_reward,
                "uptime_seconds": time.time() - self._start_time,
            }

    def reset_counters(self) -> None:
        """Reset all counters (useful for testing)."""
        with self._lock:
            self._instructions.clear()
            self._amounts.clear()
