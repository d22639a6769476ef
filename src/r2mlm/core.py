"""R-squared measures for two-level linear models from manual estimates.

Given the data used to fit a multilevel model and the model's
parameter estimates (fixed effects, random-effect covariance matrix,
residual variance), these entry points compute the Rights & Sterba
(2019) decomposition of outcome variance and the R-squared measures
derived from it.

Pipeline for one model::

    data + ModelEstimates
      └─ build_covariance_structures()    predictor covariances
          └─ compute_variance_components()  five additive terms + totals
              └─ centered_tables() / pooled_tables()
                  └─ R2Result (+ optional bar chart)

The centring flag is resolved once, at entry, into the table builder
that runs; nothing downstream branches on it again.

Model comparison runs the single-model pipeline for each model on the
same data and subtracts the R-squared tables (model B minus model A).
It is defined only for cluster-mean-centred predictors, because the
within/between measures it contrasts do not exist otherwise.

Every call is a pure function of its inputs apart from the optional
figure; nothing is cached between calls.

References:
    Rights, J. D., & Sterba, S. K. (2019). Quantifying explained
    variance in multilevel models: An integrative framework for
    defining R-squared measures. *Psychological Methods*, 24(3),
    309–338.

    Rights, J. D., & Sterba, S. K. (2020). New recommendations on the
    use of R-squared differences in multilevel model comparisons.
    *Multivariate Behavioral Research*, 55(4), 568–599.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import pandas as pd

from ._compat import DataFrameLike, as_data_table
from ._config import get_validation
from ._results import R2ComparisonResult, R2Result
from ._typing import ColumnSelection, EstimateLike
from .components import VarianceComponents, compute_variance_components
from .covariance import build_covariance_structures
from .estimates import ModelEstimates
from .measures import centered_tables, difference_table, pooled_tables
from .plots import plot_comparison, plot_decomposition

logger = logging.getLogger(__name__)

TableBuilder = Callable[[VarianceComponents], tuple[pd.DataFrame, pd.DataFrame]]

_TABLE_BUILDERS: dict[bool, TableBuilder] = {
    True: centered_tables,
    False: pooled_tables,
}


def _decompose(
    data: pd.DataFrame,
    estimates: ModelEstimates,
    cluster_mean_centered: bool,
    stacklevel: int,
) -> R2Result:
    build_tables = _TABLE_BUILDERS[bool(cluster_mean_centered)]
    logger.debug(
        "Decomposing with %s (intercept=%s, validation=%s).",
        build_tables.__name__, estimates.has_intercept, get_validation(),
    )
    structures = build_covariance_structures(
        data, estimates, stacklevel=stacklevel + 1
    )
    components = compute_variance_components(estimates, structures)
    decompositions, r2s = build_tables(components)
    return R2Result(
        decompositions=decompositions,
        r2s=r2s,
        components=components,
        cluster_mean_centered=bool(cluster_mean_centered),
    )


def r2mlm_manual(
    data: DataFrameLike,
    within_covs: ColumnSelection,
    between_covs: ColumnSelection,
    random_covs: ColumnSelection,
    gamma_w: EstimateLike,
    gamma_b: EstimateLike,
    tau: Any,
    sigma2: float,
    has_intercept: bool = True,
    cluster_mean_centered: bool = True,
    bargraph: bool = True,
) -> R2Result:
    """Compute R-squared measures for a two-level model.

    When level-1 predictors are cluster-mean-centred, all measures of
    Rights & Sterba (2019, Table 1) are returned at the total, within,
    and between levels.  Otherwise only the total measures of Table 5
    are returned.  Any number of level-1 and level-2 predictors is
    supported, and any level-1 predictor may carry a random slope.

    Args:
        data: Data table used to fit the model, rows = observations.
            Accepts pandas or Polars DataFrames, or a 2-D NumPy
            array.
        within_covs: Columns of the level-1 predictors (``None`` if
            none).  Labels, or 0-based positions for integers that are
            not labels.
        between_covs: Columns of the level-2 predictors (``None`` if
            none).
        random_covs: Columns of the level-1 predictors with random
            slopes (``None`` if none).
        gamma_w: Fixed slopes of the level-1 predictors, in the order
            of *within_covs*.
        gamma_b: Fixed intercept (if *has_intercept*) followed by the
            fixed slopes of the level-2 predictors, in the order of
            *between_covs*.
        tau: Random-effect covariance matrix.  Row/column 0 is the
            random intercept (all zeros if the intercept is fixed);
            the rest follow *random_covs*.
        sigma2: Level-1 residual variance.
        has_intercept: Whether ``gamma_b[0]`` is the fixed intercept.
        cluster_mean_centered: Whether the level-1 predictors are
            cluster-mean-centred.
        bargraph: Whether to draw the decomposition bar chart.  The
            figure is stored on ``result.figure``.

    Returns:
        An :class:`~r2mlm.R2Result` with ``decompositions`` and
        ``r2s`` tables.

    Raises:
        ValueError: If an estimate does not match its predictor list,
            or, in ``"strict"`` validation mode, on a domain error.
        KeyError: If a selected column is not in *data*.

    Examples:
        Teacher job satisfaction, with salary and control
        cluster-mean-centred at level 1 and their cluster means plus
        the student-teacher ratio at level 2::

            r2mlm_manual(
                data=teachsat,
                within_covs=["salary_c", "control_c"],
                between_covs=["salary_m", "control_m", "s_t_ratio"],
                random_covs=["salary_c", "control_c"],
                gamma_w=[0.074485, 0.310800],
                gamma_b=[4.352652, 0.036759, 0.027532, -0.035250],
                tau=[[0.387, 0.0000646, 0.00625],
                     [0.0000646, 0.00277, -0.000333],
                     [0.00625, -0.000333, 0.0285]],
                sigma2=0.55031,
            )
    """
    estimates = ModelEstimates(
        within_covs=within_covs,
        between_covs=between_covs,
        random_covs=random_covs,
        gamma_w=gamma_w,
        gamma_b=gamma_b,
        tau=tau,
        sigma2=sigma2,
        has_intercept=has_intercept,
    )
    frame = as_data_table(data, keys=estimates.selected_columns)
    result = _decompose(frame, estimates, cluster_mean_centered, stacklevel=3)
    if bargraph:
        result = replace(result, figure=plot_decomposition(result))
    return result


def r2mlm_comp_manual(
    data: DataFrameLike,
    model_a: ModelEstimates,
    model_b: ModelEstimates,
    bargraph: bool = True,
) -> R2ComparisonResult:
    """Compare R-squared measures of two models fitted to the same data.

    Each model is decomposed independently (level-1 predictors
    cluster-mean-centred) and the difference ``R²(B) − R²(A)`` is taken
    for every measure and level.  Negative differences mean model B
    explains less of that source than model A.

    Args:
        data: Data table both models were fitted to.
        model_a: Estimates of model A.
        model_b: Estimates of model B.
        bargraph: Whether to draw side-by-side decomposition bars.

    Returns:
        An :class:`~r2mlm.R2ComparisonResult` with both models' results
        and the ``r2_differences`` table.

    Raises:
        TypeError: If either model is not a :class:`ModelEstimates`.
    """
    for name, model in (("model_a", model_a), ("model_b", model_b)):
        if not isinstance(model, ModelEstimates):
            raise TypeError(
                f"'{name}' must be a ModelEstimates instance, "
                f"got {type(model).__name__}."
            )

    frame = as_data_table(
        data, keys=model_a.selected_columns + model_b.selected_columns
    )
    result_a = _decompose(frame, model_a, cluster_mean_centered=True, stacklevel=3)
    result_b = _decompose(frame, model_b, cluster_mean_centered=True, stacklevel=3)
    differences = difference_table(result_a.r2s, result_b.r2s)

    result = R2ComparisonResult(
        model_a=result_a,
        model_b=result_b,
        r2_differences=differences,
    )
    if bargraph:
        result = replace(result, figure=plot_comparison(result))
    return result
