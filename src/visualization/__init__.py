"""
Visualization Module
====================

Plotting utilities.
    - plots: Loss and buffer curves from history.json
"""

from .plots import (
    plot_loss_curve,
    rolling_moving_average,
    load_history,
)

__all__ = [
    "plot_loss_curve",
    "rolling_moving_average",
    "load_history",
]
