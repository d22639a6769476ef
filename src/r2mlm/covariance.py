"""Empirical covariance structures of the model's predictors.

The variance decomposition weights each set of estimates by the
dispersion of the predictors it multiplies:

* ``phi`` — covariance of ``[1, level-1, level-2]`` (the constant only
  when the model has a fixed intercept), used for the undecomposed
  total variance.
* ``phi_w`` — covariance of the level-1 predictors alone.
* ``phi_b`` — covariance of ``[1, level-2]``.
* ``random_cov`` / ``random_means`` — covariance and column means of
  ``[1, random-slope predictors]``, aligned with the rows of ``tau``.

A constant column has zero variance and zero covariance with
everything, so it is added as a zero row/column rather than computed.
This keeps every structure aligned with an estimate vector that
carries a leading intercept.

Missing values are handled listwise per structure: a row is dropped
from a covariance matrix when any of that matrix's columns is missing.
Column means skip missing values column by column.

An empty predictor list gives ``None`` for the structure instead of a
zero-sized matrix; :func:`quadratic_form` treats ``None`` as
annihilating the term.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ._compat import DataFrameLike, as_data_table
from ._typing import ColumnKey
from .estimates import ModelEstimates, _report_domain_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CovarianceStructures:
    """Predictor covariance matrices for one model.

    ``None`` marks a structure whose predictor list is empty.
    """

    phi: np.ndarray | None
    """Pooled covariance of ``[1?, level-1, level-2]``."""

    phi_w: np.ndarray | None
    """Covariance of the level-1 predictors."""

    phi_b: np.ndarray | None
    """Covariance of ``[1?, level-2]``."""

    random_cov: np.ndarray | None
    """Covariance of ``[1, random-slope predictors]``."""

    random_means: np.ndarray
    """Column means of ``[1, random-slope predictors]``; ``[1.0]`` if none."""

    n_observations: int
    """Rows in the data table."""


def quadratic_form(vec: np.ndarray, mat: np.ndarray | None) -> float:
    """Return ``vec' · mat · vec``, or ``0.0`` for an empty structure."""
    if mat is None or vec.size == 0:
        return 0.0
    if mat.shape != (vec.size, vec.size):
        raise ValueError(
            f"Cannot form a quadratic form of a length-{vec.size} vector "
            f"with a {mat.shape} matrix."
        )
    return float(vec @ mat @ vec)


def _resolve_column(frame: pd.DataFrame, key: ColumnKey, name: str) -> str:
    if key in frame.columns:
        return key  # type: ignore[return-value]
    if isinstance(key, int) and not isinstance(key, bool):
        if 0 <= key < frame.shape[1]:
            return frame.columns[key]
        raise KeyError(
            f"Column position {key} in '{name}' is out of range for a "
            f"table with {frame.shape[1]} columns."
        )
    raise KeyError(f"Column {key!r} in '{name}' is not in the data table.")


def resolve_columns(
    frame: pd.DataFrame,
    keys: tuple[ColumnKey, ...],
    name: str,
) -> list[str]:
    """Translate column keys to labels of *frame*.

    A key that is a label of *frame* is used as-is; an integer that is
    not a label is read as a 0-based position.

    Raises:
        KeyError: If a key is neither a label nor a valid position.
        TypeError: If a selected column is not numeric.
    """
    labels = [_resolve_column(frame, key, name) for key in keys]
    for label in labels:
        if not pd.api.types.is_numeric_dtype(frame[label]):
            raise TypeError(
                f"Column {label!r} in '{name}' must be numeric, "
                f"got dtype {frame[label].dtype}."
            )
    return labels


def _check_selection(
    within: list[str],
    between: list[str],
    random: list[str],
    stacklevel: int,
) -> None:
    overlap = sorted(set(within) & set(between), key=str)
    if overlap:
        _report_domain_error(
            f"Columns {overlap} are listed as both level-1 ('within_covs') "
            "and level-2 ('between_covs') predictors.",
            stacklevel=stacklevel + 1,
        )
    stray = [c for c in random if c not in within]
    if stray:
        _report_domain_error(
            f"Random-slope columns {stray} in 'random_covs' are not level-1 "
            "predictors listed in 'within_covs'.",
            stacklevel=stacklevel + 1,
        )
    if len(set(random)) != len(random):
        _report_domain_error(
            "'random_covs' lists a column more than once.",
            stacklevel=stacklevel + 1,
        )


def _listwise_cov(frame: pd.DataFrame, labels: list[str]) -> np.ndarray:
    """Sample covariance (``ddof=1``) over rows complete in *labels*."""
    complete = frame[labels].dropna()
    if len(complete) < 2:
        raise ValueError(
            f"Need at least two complete observations in columns {labels} "
            f"to estimate their covariance, got {len(complete)}."
        )
    values = complete.to_numpy(dtype=float)
    return np.atleast_2d(np.cov(values, rowvar=False, ddof=1))


def _with_constant(cov: np.ndarray | None) -> np.ndarray:
    """Prepend a zero row/column for a constant predictor."""
    if cov is None:
        return np.zeros((1, 1))
    p = cov.shape[0]
    padded = np.zeros((p + 1, p + 1))
    padded[1:, 1:] = cov
    return padded


def build_covariance_structures(
    data: DataFrameLike,
    estimates: ModelEstimates,
    *,
    stacklevel: int = 2,
) -> CovarianceStructures:
    """Compute the predictor covariance structures for *estimates*.

    Args:
        data: Data table used to fit the model.  Accepts pandas or
            Polars DataFrames, or a 2-D NumPy array.
        estimates: Predictor selection and estimates of the model.
        stacklevel: Frame that permissive-mode warnings are attributed
            to, counted as for :func:`warnings.warn` from this call.

    Returns:
        A :class:`CovarianceStructures` aligned with the estimates.

    Raises:
        KeyError: If a selected column is not in *data*.
        TypeError: If a selected column is not numeric.
        ValueError: If fewer than two complete rows remain, or (in
            ``"strict"`` validation mode) if the selections overlap or
            a random slope is not a level-1 predictor.
    """
    frame = as_data_table(data, keys=estimates.selected_columns)

    within = resolve_columns(frame, estimates.within_covs, "within_covs")
    between = resolve_columns(frame, estimates.between_covs, "between_covs")
    random = resolve_columns(frame, estimates.random_covs, "random_covs")
    _check_selection(within, between, random, stacklevel=stacklevel + 1)

    pooled_cols = within + between
    if pooled_cols:
        phi: np.ndarray | None = _listwise_cov(frame, pooled_cols)
        if estimates.has_intercept:
            phi = _with_constant(phi)
    else:
        phi = np.zeros((1, 1)) if estimates.has_intercept else None

    phi_w = _listwise_cov(frame, within) if within else None

    if between:
        phi_b: np.ndarray | None = _listwise_cov(frame, between)
        if estimates.has_intercept:
            phi_b = _with_constant(phi_b)
    else:
        phi_b = None

    if random:
        random_cov: np.ndarray | None = _with_constant(_listwise_cov(frame, random))
        means = frame[random].mean(axis=0, skipna=True).to_numpy(dtype=float)
        random_means = np.concatenate([[1.0], means])
    else:
        random_cov = None
        random_means = np.ones(1)

    logger.debug(
        "Covariance structures: %d level-1, %d level-2, %d random-slope "
        "predictor(s) over %d rows.",
        len(within), len(between), len(random), len(frame),
    )

    return CovarianceStructures(
        phi=phi,
        phi_w=phi_w,
        phi_b=phi_b,
        random_cov=random_cov,
        random_means=random_means,
        n_observations=len(frame),
    )
