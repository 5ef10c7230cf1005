"""
Training Plots Module
=====================

Loss and buffer curves from a run's history.json.

Graphs:
    1. Loss per training pass (raw + rolling moving average) with the EMA
    2. Buffer length at each pass, with target syncs marked

Author: Enemy DRL Team
"""

import json
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional

try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False


def rolling_moving_average(data, window: int = 20) -> np.ndarray:
    """
    Rolling mean with the same length as the input.

    The first window-1 points use an expanding-window mean.
    """
    data = np.asarray(data, dtype=np.float64)
    if len(data) < window:
        return data

    cumsum = np.cumsum(np.insert(data, 0, 0))
    smoothed = (cumsum[window:] - cumsum[:-window]) / window
    pad = np.array([np.mean(data[:i + 1]) for i in range(window - 1)])

    return np.concatenate([pad, smoothed])


def load_history(experiment_dir) -> Dict[str, List[float]]:
    """Load history.json written by MetricsLogger.save()."""
    with open(Path(experiment_dir) / "history.json") as f:
        return json.load(f)


def plot_loss_curve(
    history: Dict[str, List[float]],
    save_path: Optional[Path] = None,
    show: bool = False,
    window: int = 20
):
    """
    Plot the training loss and buffer length against ticks.

    Args:
        history: MetricsLogger history dict
        save_path: Where to save the PNG (not saved if None)
        show: Display the figure interactively
        window: Rolling average window

    Returns:
        The matplotlib Figure

    Raises:
        ImportError: If matplotlib is not installed
        ValueError: If the history holds no training passes
    """
    if not HAS_MATPLOTLIB:
        raise ImportError("matplotlib required for plotting")

    ticks = np.array(history.get("tick", []))
    losses = np.array(history.get("loss", []), dtype=np.float64)
    if len(ticks) == 0:
        raise ValueError("History contains no training passes")

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

    ax1.plot(ticks, losses, "royalblue", alpha=0.25, linewidth=1.0, label="Loss")
    ax1.plot(ticks, rolling_moving_average(losses, window), "royalblue",
             linewidth=2.5, label=f"Loss (moving average, {window})")
    if "loss_ema" in history:
        ax1.plot(ticks, history["loss_ema"], "darkorange", linewidth=1.5,
                 linestyle="--", label="Loss EMA")
    ax1.set_ylabel("Squared TD error", fontsize=12, fontweight="bold")
    ax1.set_title("Training Loss", fontsize=14, fontweight="bold")
    ax1.legend(loc="upper right")
    ax1.grid(True, alpha=0.4)

    ax2.plot(ticks, history.get("buffer_length", np.zeros(len(ticks))),
             "seagreen", linewidth=1.5, label="Buffer length")
    syncs = np.array(history.get("target_syncs", []))
    if len(syncs) == len(ticks):
        # Target syncs show up as increments of the running counter
        sync_ticks = ticks[1:][np.diff(syncs) > 0]
        for tick in sync_ticks:
            ax2.axvline(x=tick, color="red", linestyle=":", linewidth=1.0)
    ax2.set_xlabel("Tick", fontsize=12, fontweight="bold")
    ax2.set_ylabel("Transitions", fontsize=12, fontweight="bold")
    ax2.legend(loc="upper right")
    ax2.grid(True, alpha=0.4)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"[SAVED] {save_path}")

    if show:
        plt.show()
    else:
        plt.close(fig)

    return fig
