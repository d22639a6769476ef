"""Parameter estimates of a fitted two-level model.

A :class:`ModelEstimates` record pairs each predictor column with the
estimate that belongs to it.  Every downstream computation reads the
positional order from here: ``gamma_w`` follows ``within_covs``,
``gamma_b`` follows ``between_covs`` (after the fixed intercept when
``has_intercept`` is true), and rows/columns ``1:`` of ``tau`` follow
``random_covs``.  Checking those lengths once, at construction, means
a misaligned vector can never reach the variance calculator.

The estimates themselves come from whatever package fitted the model
(lme4, statsmodels ``MixedLM``, ...).  For the random-effect
covariance matrix, the first row/column is the random-intercept
variance and its covariances; set them to zero if the intercept is
fixed.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any

import numpy as np
from scipy import linalg as _sp_linalg

from ._config import get_validation
from ._typing import ColumnKey, ColumnSelection, EstimateLike

# Relative tolerance for the positive-semi-definiteness check on tau.
_PSD_TOL = 1e-8


def _report_domain_error(message: str, *, stacklevel: int) -> None:
    """Raise or warn about a domain error according to the validation mode.

    *stacklevel* counts frames from this function, as for
    :func:`warnings.warn`; each caller passes its own level plus one.
    """
    if get_validation() == "strict":
        raise ValueError(message)
    warnings.warn(message, UserWarning, stacklevel=stacklevel)


def _as_columns(cols: ColumnSelection, name: str) -> tuple[ColumnKey, ...]:
    if cols is None:
        return ()
    if isinstance(cols, (str, int)):
        return (cols,)
    if not hasattr(cols, "__iter__"):
        raise TypeError(
            f"'{name}' must be a sequence of column labels or positions, "
            f"got {type(cols).__name__}."
        )
    return tuple(c.item() if isinstance(c, np.generic) else c for c in cols)


def _as_vector(values: EstimateLike, name: str) -> np.ndarray:
    if values is None:
        return np.zeros(0, dtype=float)
    arr = np.array(values, dtype=float)
    if arr.ndim > 1:
        raise ValueError(f"'{name}' must be one-dimensional, got shape {arr.shape}.")
    return arr.reshape(-1)


def _as_scalar(value: Any, name: str) -> float:
    arr = np.asarray(value, dtype=float)
    if arr.size != 1:
        raise ValueError(f"'{name}' must be a single value, got shape {arr.shape}.")
    return arr.item()


def _as_matrix(values: Any, name: str) -> np.ndarray:
    arr = np.array(values, dtype=float)
    if arr.ndim == 0:
        return arr.reshape(1, 1)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(f"'{name}' must be a square matrix, got shape {arr.shape}.")
    return arr


@dataclass(frozen=True)
class ModelEstimates:
    """Predictor selection and parameter estimates for one model.

    Args:
        within_covs: Columns of the level-1 (within-cluster) predictors.
        between_covs: Columns of the level-2 (between-cluster) predictors.
        random_covs: Level-1 columns that carry a random slope, in the
            order of ``tau``'s rows ``1:``.
        gamma_w: Fixed slopes of the level-1 predictors.
        gamma_b: Fixed intercept (if ``has_intercept``) followed by the
            fixed slopes of the level-2 predictors.
        tau: Random-effect covariance matrix of size
            ``1 + len(random_covs)``.
        sigma2: Level-1 residual variance.
        has_intercept: Whether ``gamma_b[0]`` is the fixed intercept.

    Raises:
        ValueError: If an estimate does not match its predictor list,
            always; for negative ``sigma2`` or a non-PSD ``tau`` only in
            ``"strict"`` validation mode.
    """

    within_covs: tuple[ColumnKey, ...]
    between_covs: tuple[ColumnKey, ...]
    random_covs: tuple[ColumnKey, ...]
    gamma_w: np.ndarray
    gamma_b: np.ndarray
    tau: np.ndarray
    sigma2: float
    has_intercept: bool = True

    def __init__(
        self,
        within_covs: ColumnSelection = None,
        between_covs: ColumnSelection = None,
        random_covs: ColumnSelection = None,
        gamma_w: EstimateLike = None,
        gamma_b: EstimateLike = None,
        tau: Any = 0.0,
        sigma2: float = 0.0,
        has_intercept: bool = True,
    ) -> None:
        set_ = object.__setattr__
        set_(self, "within_covs", _as_columns(within_covs, "within_covs"))
        set_(self, "between_covs", _as_columns(between_covs, "between_covs"))
        set_(self, "random_covs", _as_columns(random_covs, "random_covs"))
        set_(self, "gamma_w", _as_vector(gamma_w, "gamma_w"))
        set_(self, "gamma_b", _as_vector(gamma_b, "gamma_b"))
        set_(self, "tau", _as_matrix(tau, "tau"))
        set_(self, "sigma2", _as_scalar(sigma2, "sigma2"))
        set_(self, "has_intercept", bool(has_intercept))
        # Estimates are immutable once constructed.
        for arr in (self.gamma_w, self.gamma_b, self.tau):
            arr.setflags(write=False)
        self._check_shapes()
        self._check_domain(stacklevel=3)

    # ---- Validation -------------------------------------------------

    def _check_shapes(self) -> None:
        n_w = len(self.within_covs)
        if self.gamma_w.size != n_w:
            raise ValueError(
                f"'gamma_w' has {self.gamma_w.size} element(s) but "
                f"'within_covs' lists {n_w} predictor(s)."
            )

        n_b = len(self.between_covs) + int(self.has_intercept)
        if self.gamma_b.size != n_b:
            expected = (
                "1 intercept + " if self.has_intercept else ""
            ) + f"{len(self.between_covs)} level-2 slope(s)"
            raise ValueError(
                f"'gamma_b' has {self.gamma_b.size} element(s), expected "
                f"{n_b} ({expected})."
            )

        q = 1 + len(self.random_covs)
        if self.tau.shape != (q, q):
            raise ValueError(
                f"'tau' has shape {self.tau.shape}, expected ({q}, {q}): "
                f"random intercept + {len(self.random_covs)} random slope(s)."
            )

    def _check_domain(self, stacklevel: int) -> None:
        level = stacklevel + 1
        if not np.isfinite(self.sigma2) or self.sigma2 < 0:
            _report_domain_error(
                f"'sigma2' must be a non-negative finite variance, got {self.sigma2}.",
                stacklevel=level,
            )

        if not np.all(np.isfinite(self.tau)):
            _report_domain_error("'tau' contains non-finite entries.", stacklevel=level)
            return
        if not np.allclose(self.tau, self.tau.T):
            _report_domain_error("'tau' must be symmetric.", stacklevel=level)
            return
        eigvals = _sp_linalg.eigvalsh(self.tau)
        scale = max(1.0, float(np.max(np.abs(self.tau))))
        if eigvals[0] < -_PSD_TOL * scale:
            _report_domain_error(
                f"'tau' is not positive semi-definite (smallest eigenvalue "
                f"{eigvals[0]:.3g}).",
                stacklevel=level,
            )

    # ---- Accessors ----------------------------------------------------

    @property
    def intercept(self) -> float | None:
        """Fixed intercept estimate, or ``None`` when not modelled."""
        return float(self.gamma_b[0]) if self.has_intercept else None

    @property
    def between_slopes(self) -> np.ndarray:
        """Fixed slopes of the level-2 predictors (intercept stripped)."""
        return self.gamma_b[1:] if self.has_intercept else self.gamma_b

    @property
    def random_intercept_variance(self) -> float:
        """Variance of the random intercept, ``tau[0, 0]``."""
        return float(self.tau[0, 0])

    @property
    def selected_columns(self) -> tuple[ColumnKey, ...]:
        """Every column the model reads, in first-seen order."""
        return tuple(
            dict.fromkeys(self.within_covs + self.between_covs + self.random_covs)
        )

    def within_effects(self) -> dict[ColumnKey, float]:
        """Map each level-1 column to its fixed slope."""
        return dict(zip(self.within_covs, self.gamma_w.tolist(), strict=True))

    def between_effects(self) -> dict[ColumnKey, float]:
        """Map each level-2 column to its fixed slope."""
        return dict(zip(self.between_covs, self.between_slopes.tolist(), strict=True))

    def random_slope_variances(self) -> dict[ColumnKey, float]:
        """Map each random-slope column to its variance in ``tau``."""
        return dict(zip(self.random_covs, np.diag(self.tau)[1:].tolist(), strict=True))

    def __hash__(self) -> int:
        return hash(
            (
                self.within_covs,
                self.between_covs,
                self.random_covs,
                self.gamma_w.tobytes(),
                self.gamma_b.tobytes(),
                self.tau.tobytes(),
                self.sigma2,
                self.has_intercept,
            )
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModelEstimates):
            return NotImplemented
        return (
            self.within_covs == other.within_covs
            and self.between_covs == other.between_covs
            and self.random_covs == other.random_covs
            and np.array_equal(self.gamma_w, other.gamma_w)
            and np.array_equal(self.gamma_b, other.gamma_b)
            and np.array_equal(self.tau, other.tau)
            and self.sigma2 == other.sigma2
            and self.has_intercept == other.has_intercept
        )
