"""R-squared measures assembled from variance components.

Each measure is a ratio of one component (or a sum of components) to
a total.  Two configurations produce different tables:

**Cluster-mean-centred** level-1 predictors — the decomposition is
level-separable, so every measure of Rights & Sterba (2019, Table 1)
is available:

    ========  ===========================  ==================  ============
    measure   total                        within              between
    ========  ===========================  ==================  ============
    f1        fixed_within / total         f_w                 —
    f2        fixed_between / total        —                   f_b
    v         slope_variation / total      v_w                 —
    m         mean_variation / total       —                   m_b
    f         f1 + f2                      —                   —
    fv        f + v                        fv_w = f_w + v_w    —
    fvm       f + v + m                    —                   —
    ========  ===========================  ==================  ============

**Not centred** — predictors carry both within and between variance,
so only the total measures of Rights & Sterba (2019, Table 5) are
defined, each over ``total_notdecomp``.

Cells with no level-specific meaning are ``NaN``.  Row and column
order is fixed.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from .components import VarianceComponents

CENTERED_DECOMP_ROWS = [
    "fixed, within",
    "fixed, between",
    "slope variation",
    "mean variation",
    "sigma2",
]
CENTERED_R2_ROWS = ["f1", "f2", "v", "m", "f", "fv", "fvm"]
POOLED_DECOMP_ROWS = ["fixed", "slope variation", "mean variation", "sigma2"]
POOLED_R2_ROWS = ["f", "v", "m", "fv", "fvm"]
LEVEL_COLUMNS = ["total", "within", "between"]

_NA = np.nan


def _ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``; ``NaN`` when the total is zero."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.divide(numerator, denominator))


def centered_tables(
    components: VarianceComponents,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Decomposition and R-squared tables for centred predictors.

    Args:
        components: Variance components of the model.

    Returns:
        ``(decompositions, r2s)`` — a 5×3 and a 7×3 DataFrame with
        columns ``total``, ``within``, ``between``.
    """
    c = components

    fixed_within = _ratio(c.fixed_within, c.total)
    fixed_between = _ratio(c.fixed_between, c.total)
    slopes = _ratio(c.slope_variation, c.total)
    means = _ratio(c.mean_variation, c.total)
    sigma = _ratio(c.residual, c.total)

    fixed_within_w = _ratio(c.fixed_within, c.total_within)
    slopes_w = _ratio(c.slope_variation, c.total_within)
    sigma_w = _ratio(c.residual, c.total_within)

    fixed_between_b = _ratio(c.fixed_between, c.total_between)
    means_b = _ratio(c.random_intercept, c.total_between)

    decompositions = pd.DataFrame(
        {
            "total": [fixed_within, fixed_between, slopes, means, sigma],
            "within": [fixed_within_w, _NA, slopes_w, _NA, sigma_w],
            "between": [_NA, fixed_between_b, _NA, means_b, _NA],
        },
        index=CENTERED_DECOMP_ROWS,
        columns=LEVEL_COLUMNS,
    )

    fixed = fixed_within + fixed_between
    r2s = pd.DataFrame(
        {
            "total": [
                fixed_within,
                fixed_between,
                slopes,
                means,
                fixed,
                fixed + slopes,
                fixed + slopes + means,
            ],
            "within": [
                fixed_within_w, _NA, slopes_w, _NA, _NA,
                fixed_within_w + slopes_w, _NA,
            ],
            "between": [_NA, fixed_between_b, _NA, means_b, _NA, _NA, _NA],
        },
        index=CENTERED_R2_ROWS,
        columns=LEVEL_COLUMNS,
    )
    return decompositions, r2s


def pooled_tables(
    components: VarianceComponents,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Decomposition and R-squared tables for non-centred predictors.

    Every ratio is taken over ``components.total_notdecomp``.

    Returns:
        ``(decompositions, r2s)`` — a 4×1 and a 5×1 DataFrame with the
        single column ``total``.
    """
    c = components
    fixed = _ratio(c.fixed_pooled, c.total_notdecomp)
    slopes = _ratio(c.slope_variation, c.total_notdecomp)
    means = _ratio(c.mean_variation, c.total_notdecomp)
    sigma = _ratio(c.residual, c.total_notdecomp)

    decompositions = pd.DataFrame(
        {"total": [fixed, slopes, means, sigma]},
        index=POOLED_DECOMP_ROWS,
    )
    r2s = pd.DataFrame(
        {"total": [fixed, slopes, means, fixed + slopes, fixed + slopes + means]},
        index=POOLED_R2_ROWS,
    )
    return decompositions, r2s


def difference_table(r2_a: pd.DataFrame, r2_b: pd.DataFrame) -> pd.DataFrame:
    """Per-measure change in R-squared from model A to model B.

    Returns ``r2_b - r2_a`` aligned on measure and level.  A cell is
    ``NaN`` when the measure is not applicable in either table.
    Negative values mean model B explains less of that source.

    Raises:
        ValueError: If the tables do not share a layout.
    """
    if list(r2_a.index) != list(r2_b.index) or list(r2_a.columns) != list(
        r2_b.columns
    ):
        raise ValueError(
            "R-squared tables must share measures and levels to be compared; "
            f"got {list(r2_a.index)} x {list(r2_a.columns)} and "
            f"{list(r2_b.index)} x {list(r2_b.columns)}."
        )
    return r2_b - r2_a
