"""
Metrics Logger Module
=====================

Logging and metrics tracking for on-line training.

Features:
    - Rolling statistics
    - CSV logging
    - JSON history for plotting
    - One-line progress summaries

Author: Enemy DRL Team
"""

import csv
import json
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional
from collections import deque
import numpy as np


class RollingStats:
    """Windowed summary of the most recent values of one metric."""

    def __init__(self, window_size: int = 100):
        self.window_size = window_size
        self._window = deque(maxlen=window_size)

    def add(self, value: float):
        self._window.append(float(value))

    def _reduce(self, fn: Callable, min_count: int = 1) -> float:
        if len(self._window) < min_count:
            return 0.0
        return float(fn(np.fromiter(self._window, dtype=np.float64)))

    @property
    def last(self) -> float:
        return self._window[-1] if self._window else 0.0

    @property
    def mean(self) -> float:
        return self._reduce(np.mean)

    @property
    def std(self) -> float:
        # A single value has no spread
        return self._reduce(np.std, min_count=2)

    @property
    def min(self) -> float:
        return self._reduce(np.min)

    @property
    def max(self) -> float:
        return self._reduce(np.max)

    def __len__(self) -> int:
        return len(self._window)


class MetricsLogger:
    """
    Metrics logging for the training phase.

    Tracks:
        - Loss per training pass (rounded) and its moving average
        - Minibatch sizes and skipped (non-finite) samples
        - Buffer length and target syncs

    When output_dir is None nothing is written to disk; history is kept
    in memory only.

    Example:
        >>> logger = MetricsLogger("outputs", "run1")
        >>> logger.log_training_pass(tick=30, loss=0.42, loss_ema=0.004,
        ...                          batch_size=32, buffer_length=64)
        >>> logger.save()
    """

    HISTORY_KEYS = (
        "tick",
        "loss",
        "loss_ema",
        "batch_size",
        "skipped_samples",
        "buffer_length",
        "target_syncs",
        "time_elapsed",
    )

    def __init__(
        self,
        output_dir: Optional[str] = None,
        experiment_name: str = "experiment",
        window_size: int = 100
    ):
        """
        Initialize logger.

        Args:
            output_dir: Directory for log files (None for in-memory only)
            experiment_name: Name of experiment
            window_size: Size of rolling statistics window
        """
        self.experiment_name = experiment_name
        self.window_size = window_size
        self._csv_file = None
        self._csv_writer = None

        self.output_dir = None
        if output_dir is not None:
            self.output_dir = Path(output_dir) / experiment_name
            self.output_dir.mkdir(parents=True, exist_ok=True)

        # Rolling statistics
        self.losses = RollingStats(window_size)
        self.batch_sizes = RollingStats(window_size)

        # Full history for plotting
        self.history: Dict[str, List[float]] = {key: [] for key in self.HISTORY_KEYS}

        # Counters
        self.total_passes = 0
        self.total_skipped = 0
        self.target_syncs = 0
        self.sync_ticks: List[int] = []
        self.sync_cleared: List[int] = []
        self.start_time = time.time()

        # CSV writer
        if self.output_dir is not None:
            self._init_csv()

    def _init_csv(self):
        """Initialize CSV logging."""
        csv_path = self.output_dir / "training_log.csv"
        self._csv_file = open(csv_path, "w", newline="")
        self._csv_writer = csv.DictWriter(
            self._csv_file,
            fieldnames=list(self.HISTORY_KEYS)
        )
        self._csv_writer.writeheader()

    def log_training_pass(
        self,
        tick: int,
        loss: float,
        loss_ema: float,
        batch_size: int,
        skipped_samples: int = 0,
        buffer_length: int = 0
    ):
        """
        Log one training pass.

        Args:
            tick: Tick at which the pass ran
            loss: Rounded loss metric
            loss_ema: Moving average of the loss
            batch_size: Transitions in the minibatch
            skipped_samples: Samples skipped for non-finite values
            buffer_length: Buffer length after the pass
        """
        self.losses.add(loss)
        self.batch_sizes.add(batch_size)
        self.total_passes += 1
        self.total_skipped += skipped_samples

        record = {
            "tick": tick,
            "loss": loss,
            "loss_ema": loss_ema,
            "batch_size": batch_size,
            "skipped_samples": skipped_samples,
            "buffer_length": buffer_length,
            "target_syncs": self.target_syncs,
            "time_elapsed": time.time() - self.start_time
        }

        for key, value in record.items():
            self.history[key].append(value)

        if self._csv_writer:
            self._csv_writer.writerow(record)
            self._csv_file.flush()

    def log_target_sync(self, tick: int, cleared: int):
        """
        Log a target sync.

        Args:
            tick: Tick at which the sync happened
            cleared: Transitions discarded from the buffer
        """
        self.target_syncs += 1
        self.sync_ticks.append(tick)
        self.sync_cleared.append(cleared)

    def get_stats(self) -> Dict[str, float]:
        """Get current rolling statistics."""
        return {
            "loss_last": self.losses.last,
            "loss_mean": self.losses.mean,
            "loss_std": self.losses.std,
            "loss_min": self.losses.min,
            "loss_max": self.losses.max,
            "batch_size_mean": self.batch_sizes.mean,
            "total_passes": self.total_passes,
            "total_skipped": self.total_skipped,
            "target_syncs": self.target_syncs,
            "transitions_cleared": sum(self.sync_cleared),
            "time_elapsed": time.time() - self.start_time
        }

    def print_stats(self, prefix: str = ""):
        """Print current statistics."""
        stats = self.get_stats()

        print(f"{prefix}Passes: {self.total_passes:,} | "
              f"Loss: {stats['loss_last']:.2f} "
              f"(avg {stats['loss_mean']:.2f}+/-{stats['loss_std']:.2f}) | "
              f"Batch: {stats['batch_size_mean']:.1f} | "
              f"Syncs: {self.target_syncs} | "
              f"Skipped: {self.total_skipped}")

    def save(self):
        """Save history and final stats. No-op without an output directory."""
        if self.output_dir is None:
            return

        with open(self.output_dir / "history.json", "w") as f:
            json.dump(self.history, f, indent=2)

        with open(self.output_dir / "final_stats.json", "w") as f:
            json.dump(self.get_stats(), f, indent=2)

    def close(self):
        """Close file handles."""
        if self._csv_file:
            self._csv_file.close()
            self._csv_file = None

    def __del__(self):
        self.close()
