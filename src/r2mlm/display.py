"""Formatted ASCII table display for R-squared decompositions.

The layout follows the statsmodels summary style: a title banner, a
header panel describing the model configuration, then one panel per
table with measures as rows and levels (total, within, between) as
columns.  Not-applicable cells print as ``N/A``.
"""

from __future__ import annotations

import math
import textwrap
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from ._results import R2ComparisonResult, R2Result

_WIDTH = 80
_LABEL_WIDTH = 22


def _fmt_cell(val: object, precision: int, signed: bool = False) -> str:
    """Format a table cell; ``NaN`` and ``None`` become ``'N/A'``."""
    if val is None:
        return "N/A"
    if isinstance(val, float) and math.isnan(val):
        return "N/A"
    return f"{val:+.{precision}f}" if signed else f"{val:.{precision}f}"


def _banner(title: str) -> None:
    print("=" * _WIDTH)
    for line in textwrap.wrap(title, width=_WIDTH - 2):
        print(f"{line:^{_WIDTH}}")
    print("=" * _WIDTH)


def _render_table(
    table: pd.DataFrame,
    heading: str,
    precision: int,
    signed: bool = False,
) -> None:
    n_cols = table.shape[1]
    # Value columns share what is left after the label column.
    col_w = (_WIDTH - _LABEL_WIDTH) // max(n_cols, 1)

    print(heading)
    print("-" * _WIDTH)
    header = "".join(f"{str(c):>{col_w}}" for c in table.columns)
    print(f"{'':<{_LABEL_WIDTH}}{header}")
    print("-" * _WIDTH)
    for row in table.index:
        cells = "".join(
            f"{_fmt_cell(table.at[row, c], precision, signed):>{col_w}}"
            for c in table.columns
        )
        print(f"{str(row):<{_LABEL_WIDTH}}{cells}")
    print("-" * _WIDTH)


def _render_header(result: R2Result) -> None:
    c = result.components
    centred = "yes" if result.cluster_mean_centered else "no"
    total = c.total if result.cluster_mean_centered else c.total_notdecomp
    print(f"{'Cluster-mean-centred:':<26}{centred:<14}{'Total variance:':>26} {total:>13.4f}")
    if result.cluster_mean_centered:
        print(
            f"{'Within variance:':<26}{c.total_within:<14.4f}"
            f"{'Between variance:':>26} {c.total_between:>13.4f}"
        )
    print("-" * _WIDTH)


def print_decomposition_table(
    result: R2Result,
    *,
    title: str = "Multilevel R-squared Decomposition",
    precision: int = 4,
) -> None:
    """Print the decomposition and R-squared tables of one model.

    Args:
        result: Output of :func:`~r2mlm.r2mlm_manual`.
        title: Title for the output table.
        precision: Decimal places for proportions.
    """
    _banner(title)
    _render_header(result)
    _render_table(result.decompositions, "Decompositions", precision)
    _render_table(result.r2s, "R-squared measures", precision)
    if not result.cluster_mean_centered:
        print(
            textwrap.fill(
                "  [!] Level-1 predictors are not cluster-mean-centred: only "
                "total measures are defined.",
                width=_WIDTH,
                subsequent_indent=" " * 6,
            )
        )
    print("=" * _WIDTH)
    print()


def print_comparison_table(
    result: R2ComparisonResult,
    *,
    title: str = "Multilevel R-squared Model Comparison",
    precision: int = 4,
) -> None:
    """Print both models' R-squared tables and their differences.

    Args:
        result: Output of :func:`~r2mlm.r2mlm_comp_manual`.
        title: Title for the output table.
        precision: Decimal places for proportions.
    """
    _banner(title)
    _render_table(result.r2s_a, "Model A R-squared measures", precision)
    _render_table(result.r2s_b, "Model B R-squared measures", precision)
    _render_table(
        result.r2_differences,
        "R-squared differences (Model B - Model A)",
        precision,
        signed=True,
    )
    print("=" * _WIDTH)
    print()
