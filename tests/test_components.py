"""Tests for the variance-component calculator."""

import numpy as np
import pytest

from r2mlm.components import _slope_variation, compute_variance_components
from r2mlm.covariance import build_covariance_structures
from r2mlm.estimates import ModelEstimates


def _components(data, **kwargs):
    est = ModelEstimates(**kwargs)
    return compute_variance_components(est, build_covariance_structures(data, est))


_TINY = dict(
    within_covs=["x"],
    between_covs=["z"],
    random_covs=["x"],
    gamma_w=[2.0],
    gamma_b=[5.0, 3.0],
    tau=[[1.0, 0.0], [0.0, 0.5]],
    sigma2=2.0,
)


class TestSlopeVariation:
    def test_no_random_slopes(self):
        assert _slope_variation(np.array([[0.7]]), None) == 0.0

    def test_diagonal_and_off_diagonal_terms(self):
        random_cov = np.array(
            [[0.0, 0.0, 0.0], [0.0, 2.0, 0.5], [0.0, 0.5, 3.0]]
        )
        tau = np.array([[1.0, 0.1, 0.2], [0.1, 0.4, 0.05], [0.2, 0.05, 0.6]])
        # v'psi = 2*0.4 + 3*0.6; 2 r'kappa = 2 * 0.5 * 0.05
        assert _slope_variation(tau, random_cov) == pytest.approx(2.6 + 0.05)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="Random-slope covariance"):
            _slope_variation(np.eye(3), np.eye(2))


class TestHandComputed:
    def test_centered(self, tiny_centered):
        c = _components(tiny_centered, **{**_TINY, "within_covs": ["x_c"],
                                          "random_covs": ["x_c"]})
        assert c.fixed_within == pytest.approx(40 / 3)
        assert c.fixed_between == pytest.approx(3.0)
        assert c.slope_variation == pytest.approx(5 / 3)
        assert c.mean_variation == pytest.approx(1.0)
        assert c.residual == 2.0
        assert c.random_intercept == 1.0
        assert c.total_within == pytest.approx(17.0)
        assert c.total_between == pytest.approx(4.0)
        assert c.total == pytest.approx(21.0)
        # Centred level-1 predictors are uncorrelated with level-2 ones.
        assert c.fixed_pooled == pytest.approx(c.fixed_within + c.fixed_between)
        assert c.total_notdecomp == pytest.approx(c.total)

    def test_uncentered(self, tiny_raw):
        c = _components(tiny_raw, **_TINY)
        assert c.fixed_pooled == pytest.approx(161 / 3)
        assert c.slope_variation == pytest.approx(13 / 3)
        # m = [1, mean(x)] = [1, 4]: 1 + 16 * 0.5
        assert c.mean_variation == pytest.approx(9.0)
        assert c.total_notdecomp == pytest.approx(69.0)

    def test_intercept_value_does_not_matter(self, tiny_raw):
        a = _components(tiny_raw, **_TINY)
        b = _components(tiny_raw, **{**_TINY, "gamma_b": [-100.0, 3.0]})
        assert a.fixed_between == pytest.approx(b.fixed_between)
        assert a.fixed_pooled == pytest.approx(b.fixed_pooled)
        assert a.total == pytest.approx(b.total)


class TestIdentities:
    def test_totals_add_up(self, clustered_data, full_model_kwargs):
        c = _components(clustered_data, **full_model_kwargs)
        assert c.total_within + c.total_between == pytest.approx(c.total, rel=1e-12)
        assert c.total_within == pytest.approx(
            c.fixed_within + c.slope_variation + c.residual
        )
        assert c.total_between == pytest.approx(c.fixed_between + c.random_intercept)

    def test_mean_variation_collapses_under_centering(
        self, clustered_data, full_model_kwargs
    ):
        c = _components(clustered_data, **full_model_kwargs)
        assert c.mean_variation == pytest.approx(c.random_intercept, rel=1e-9)

    def test_mean_variation_general_form_when_uncentered(self, clustered_data):
        clustered_data = clustered_data.assign(x1=clustered_data["x1"] + 3.0)
        tau = [[0.4, 0.05], [0.05, 0.2]]
        c = _components(
            clustered_data,
            within_covs=["x1"],
            random_covs=["x1"],
            gamma_w=[0.5],
            gamma_b=[1.0],
            tau=tau,
            sigma2=1.0,
        )
        m = np.array([1.0, clustered_data["x1"].mean()])
        assert c.mean_variation == pytest.approx(m @ np.array(tau) @ m)
        assert c.mean_variation != pytest.approx(c.random_intercept)

    def test_components_non_negative(self, clustered_data, full_model_kwargs):
        c = _components(clustered_data, **full_model_kwargs)
        for value in (
            c.fixed_within, c.fixed_between, c.slope_variation,
            c.mean_variation, c.residual,
        ):
            assert value >= 0.0


class TestDegenerateCases:
    def test_no_level1_predictors(self, clustered_data):
        c = _components(
            clustered_data,
            between_covs=["z"],
            gamma_b=[1.0, 0.3],
            tau=0.5,
            sigma2=1.2,
        )
        assert c.fixed_within == 0.0
        assert c.slope_variation == 0.0
        assert c.total_within == 1.2

    def test_no_level2_predictors(self, clustered_data):
        c = _components(
            clustered_data,
            within_covs=["x1_c"],
            gamma_w=[0.4],
            gamma_b=[2.0],
            tau=0.5,
            sigma2=1.2,
        )
        assert c.fixed_between == 0.0
        assert c.total_between == 0.5

    def test_no_random_slopes(self, clustered_data):
        c = _components(
            clustered_data,
            within_covs=["x1_c", "x2_c"],
            between_covs=["z"],
            gamma_w=[0.4, -0.2],
            gamma_b=[2.0, 0.1],
            tau=0.5,
            sigma2=1.2,
        )
        assert c.slope_variation == 0.0
        assert c.mean_variation == 0.5

    def test_no_intercept(self, clustered_data):
        with_int = _components(
            clustered_data,
            within_covs=["x1_c"],
            between_covs=["z"],
            gamma_w=[0.4],
            gamma_b=[2.0, 0.1],
            tau=0.5,
            sigma2=1.0,
        )
        without = _components(
            clustered_data,
            within_covs=["x1_c"],
            between_covs=["z"],
            gamma_w=[0.4],
            gamma_b=[0.1],
            tau=0.5,
            sigma2=1.0,
            has_intercept=False,
        )
        assert without.fixed_between == pytest.approx(with_int.fixed_between)
        assert without.fixed_pooled == pytest.approx(with_int.fixed_pooled)
