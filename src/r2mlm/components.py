"""Variance components of a two-level linear model.

Under the Rights & Sterba (2019) framework the model-implied outcome
variance splits into five additive sources::

    fixed_within    = γ_w' Φ_w γ_w
    fixed_between   = γ_b' Φ_b γ_b
    slope_variation = v'ψ + 2 r'κ
    mean_variation  = m' T m
    residual        = σ²

where ``v``/``r`` are the diagonal and strictly-lower-triangular
entries of the covariance of ``[1, random-slope predictors]``,
``ψ``/``κ`` the matching entries of ``T`` (``tau``), and ``m`` the
column means of ``[1, random-slope predictors]``.  Slope variation is
the variance induced by cluster-specific slopes acting on dispersed
predictors; mean variation is what the random intercept and slopes
contribute at the predictors' average levels.

Level-specific totals::

    total_within  = fixed_within + slope_variation + σ²
    total_between = fixed_between + T[0, 0]
    total         = total_within + total_between

These only partition the variance when level-1 predictors are
cluster-mean-centred.  Without centring, predictor covariance crosses
levels, so the fixed part is taken jointly over the pooled covariance
``Φ`` of all predictors::

    total_notdecomp = γ'Φγ + v'ψ + 2 r'κ + m'Tm + σ²

Reference:
    Rights, J. D., & Sterba, S. K. (2019). Quantifying explained
    variance in multilevel models: An integrative framework for
    defining R-squared measures. *Psychological Methods*, 24(3),
    309–338.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .covariance import CovarianceStructures, quadratic_form
from .estimates import ModelEstimates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VarianceComponents:
    """Additive variance terms and totals for one model."""

    fixed_within: float
    fixed_between: float
    slope_variation: float
    mean_variation: float
    residual: float
    random_intercept: float
    """``tau[0, 0]``; equals ``mean_variation`` under cluster-mean centring."""

    fixed_pooled: float
    """``γ'Φγ`` over all predictors jointly."""

    total_within: float
    total_between: float
    total: float
    total_notdecomp: float


def _slope_variation(tau: np.ndarray, random_cov: np.ndarray | None) -> float:
    if random_cov is None:
        return 0.0
    if random_cov.shape != tau.shape:
        raise ValueError(
            f"Random-slope covariance has shape {random_cov.shape} but "
            f"'tau' has shape {tau.shape}."
        )
    lower = np.tril_indices(tau.shape[0], k=-1)
    v, psi = np.diag(random_cov), np.diag(tau)
    r, kappa = random_cov[lower], tau[lower]
    return float(v @ psi + 2.0 * (r @ kappa))


def _pooled_gamma(estimates: ModelEstimates) -> np.ndarray:
    # The leading 1 multiplies the zero-variance constant column of phi.
    lead = [1.0] if estimates.has_intercept else []
    return np.concatenate([lead, estimates.gamma_w, estimates.between_slopes])


def compute_variance_components(
    estimates: ModelEstimates,
    structures: CovarianceStructures,
) -> VarianceComponents:
    """Combine estimates and predictor covariances into variance terms.

    Args:
        estimates: Parameter estimates of the model.
        structures: Covariance structures built from the same
            estimates by :func:`~r2mlm.covariance.build_covariance_structures`.

    Returns:
        The five variance components plus the level-specific and
        undecomposed totals.
    """
    tau = estimates.tau

    fixed_within = quadratic_form(estimates.gamma_w, structures.phi_w)
    fixed_between = quadratic_form(estimates.gamma_b, structures.phi_b)
    fixed_pooled = quadratic_form(_pooled_gamma(estimates), structures.phi)
    slope_variation = _slope_variation(tau, structures.random_cov)
    mean_variation = quadratic_form(structures.random_means, tau)
    residual = estimates.sigma2
    random_intercept = float(tau[0, 0])

    total_within = fixed_within + slope_variation + residual
    total_between = fixed_between + random_intercept
    total_notdecomp = fixed_pooled + slope_variation + mean_variation + residual

    components = VarianceComponents(
        fixed_within=fixed_within,
        fixed_between=fixed_between,
        slope_variation=slope_variation,
        mean_variation=mean_variation,
        residual=residual,
        random_intercept=random_intercept,
        fixed_pooled=fixed_pooled,
        total_within=total_within,
        total_between=total_between,
        total=total_within + total_between,
        total_notdecomp=total_notdecomp,
    )
    logger.debug("Variance components: %s", components)
    return components
