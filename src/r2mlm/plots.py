"""Stacked bar charts of outcome-variance decompositions.

Each bar stacks the proportion of variance attributable to every
component, so a bar sums to 1.  Colours and hatching follow a fixed
convention per component so that charts of different models read the
same way.  Figures are returned to the caller, never shown, and are
not registered with pyplot, so they are freed with the result that
holds them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from matplotlib.figure import Figure

if TYPE_CHECKING:
    from matplotlib.axes import Axes

    from ._results import R2ComparisonResult, R2Result

__all__ = ["plot_comparison", "plot_decomposition"]

# (legend label, face colour, hatch) per decomposition row.
_CENTERED_STYLE: dict[str, tuple[str, str, str | None]] = {
    "fixed, within": ("fixed slopes (within)", "darkred", None),
    "fixed, between": ("fixed slopes (between)", "steelblue", None),
    "slope variation": ("slope variation (within)", "darkred", "///"),
    "mean variation": ("intercept variation (between)", "midnightblue", "\\\\\\"),
    "sigma2": ("residual (within)", "white", None),
}
_POOLED_STYLE: dict[str, tuple[str, str, str | None]] = {
    "fixed": ("fixed slopes", "darkblue", None),
    "slope variation": ("slope variation", "darkblue", "///"),
    "mean variation": ("intercept variation", "darkblue", "xxx"),
    "sigma2": ("residual", "white", None),
}


def _stacked_bars(
    ax: Axes,
    table: pd.DataFrame,
    positions: np.ndarray,
    width: float,
) -> None:
    """Draw one stacked bar per column of *table* (NaN treated as 0)."""
    style = _CENTERED_STYLE if "fixed, within" in table.index else _POOLED_STYLE
    values = table.fillna(0.0).to_numpy(dtype=float)
    bottom = np.zeros(values.shape[1])
    for i, row in enumerate(table.index):
        label, color, hatch = style[row]
        ax.bar(
            positions,
            values[i],
            width=width,
            bottom=bottom,
            color=color,
            hatch=hatch,
            edgecolor="black",
            linewidth=0.6,
            label=label,
        )
        bottom += values[i]


def _finish(ax: Axes, title: str) -> None:
    ax.set_ylim(0, 1)
    ax.set_ylabel("proportion of variance")
    ax.set_title(title)
    # One legend entry per component, below the axes.
    handles, labels = ax.get_legend_handles_labels()
    unique = dict(zip(labels, handles))
    ax.legend(
        unique.values(),
        unique.keys(),
        loc="upper center",
        bbox_to_anchor=(0.5, -0.12),
        ncol=2,
        fontsize="small",
        frameon=False,
    )


def plot_decomposition(
    result: R2Result,
    *,
    title: str = "Decomposition",
    ax: Axes | None = None,
) -> Figure:
    """Draw the stacked decomposition of one model.

    Centred results show three bars (total, within, between);
    non-centred results show a single total bar.

    Args:
        result: Output of :func:`~r2mlm.r2mlm_manual`.
        title: Axes title.
        ax: Axes to draw on.  A new figure is created when omitted.

    Returns:
        The figure holding the chart.
    """
    if ax is None:
        fig = Figure(figsize=(6, 5))
        ax = fig.add_subplot()
    else:
        fig = ax.figure

    table = result.decompositions
    positions = np.arange(table.shape[1], dtype=float)
    _stacked_bars(ax, table, positions, width=0.6)
    ax.set_xticks(positions)
    ax.set_xticklabels(list(table.columns))
    _finish(ax, title)
    fig.tight_layout()
    return fig


def plot_comparison(
    result: R2ComparisonResult,
    *,
    title: str = "Decomposition",
    ax: Axes | None = None,
) -> Figure:
    """Draw model A and model B side by side for each level.

    Bars are ordered total (A, B), within (A, B), between (A, B).

    Args:
        result: Output of :func:`~r2mlm.r2mlm_comp_manual`.
        title: Axes title.
        ax: Axes to draw on.  A new figure is created when omitted.

    Returns:
        The figure holding the chart.
    """
    if ax is None:
        fig = Figure(figsize=(8, 5))
        ax = fig.add_subplot()
    else:
        fig = ax.figure

    table_a = result.model_a.decompositions
    table_b = result.model_b.decompositions
    n_levels = table_a.shape[1]
    width = 0.35
    centers = np.arange(n_levels, dtype=float)
    _stacked_bars(ax, table_a, centers - width / 2 - 0.02, width)
    _stacked_bars(ax, table_b, centers + width / 2 + 0.02, width)

    ticks = np.concatenate([centers - width / 2 - 0.02, centers + width / 2 + 0.02])
    labels = [f"Model A\n{level}" for level in table_a.columns] + [
        f"Model B\n{level}" for level in table_b.columns
    ]
    order = np.argsort(ticks)
    ax.set_xticks(ticks[order])
    ax.set_xticklabels([labels[i] for i in order], fontsize="small")
    _finish(ax, title)
    fig.tight_layout()
    return fig
