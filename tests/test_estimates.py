"""Tests for the ModelEstimates record."""

import warnings

import numpy as np
import pytest

from r2mlm import ModelEstimates, set_validation


def _kwargs(**overrides):
    kwargs = dict(
        within_covs=["a", "b"],
        between_covs=["c"],
        random_covs=["a"],
        gamma_w=[0.5, -0.2],
        gamma_b=[1.0, 0.3],
        tau=[[0.4, 0.01], [0.01, 0.1]],
        sigma2=1.0,
    )
    kwargs.update(overrides)
    return kwargs


class TestConstruction:
    def test_pairs_columns_with_estimates(self):
        est = ModelEstimates(**_kwargs())
        assert est.within_effects() == {"a": 0.5, "b": -0.2}
        assert est.between_effects() == {"c": 0.3}
        assert est.random_slope_variances() == {"a": 0.1}
        assert est.intercept == 1.0
        assert est.random_intercept_variance == 0.4

    def test_no_intercept(self):
        est = ModelEstimates(**_kwargs(gamma_b=[0.3], has_intercept=False))
        assert est.intercept is None
        np.testing.assert_array_equal(est.between_slopes, [0.3])

    def test_none_means_empty(self):
        est = ModelEstimates(gamma_b=[2.0], tau=0.3, sigma2=1.0)
        assert est.within_covs == ()
        assert est.gamma_w.size == 0
        assert est.tau.shape == (1, 1)

    def test_sigma2_from_one_element_array(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            est = ModelEstimates(**_kwargs(sigma2=np.array([0.55031])))
        assert est.sigma2 == 0.55031
        assert type(est.sigma2) is float

    def test_selected_columns(self):
        est = ModelEstimates(**_kwargs(between_covs=["c", "a"]))
        assert est.selected_columns == ("a", "b", "c")

    def test_single_column_key(self):
        est = ModelEstimates(**_kwargs(between_covs="c"))
        assert est.between_covs == ("c",)

    def test_numpy_integer_keys_normalised(self):
        est = ModelEstimates(**_kwargs(within_covs=np.array([3, 4])))
        assert est.within_covs == (3, 4)
        assert all(type(k) is int for k in est.within_covs)

    def test_immutable(self):
        est = ModelEstimates(**_kwargs())
        with pytest.raises(AttributeError):
            est.sigma2 = 2.0
        with pytest.raises(ValueError):
            est.gamma_w[0] = 9.0

    def test_copies_caller_arrays(self):
        gamma_w = np.array([0.5, -0.2])
        ModelEstimates(**_kwargs(gamma_w=gamma_w))
        gamma_w[0] = 9.0  # still writable
        assert gamma_w.flags.writeable

    def test_equality_and_hash(self):
        a = ModelEstimates(**_kwargs())
        b = ModelEstimates(**_kwargs())
        assert a == b
        assert hash(a) == hash(b)
        assert a != ModelEstimates(**_kwargs(sigma2=2.0))


class TestShapeErrors:
    def test_gamma_w_length(self):
        with pytest.raises(ValueError, match="'gamma_w' has 1 element"):
            ModelEstimates(**_kwargs(gamma_w=[0.5]))

    def test_gamma_b_length_with_intercept(self):
        with pytest.raises(ValueError, match=r"expected 2 \(1 intercept \+ 1 level-2"):
            ModelEstimates(**_kwargs(gamma_b=[0.3]))

    def test_gamma_b_length_without_intercept(self):
        with pytest.raises(ValueError, match="'gamma_b' has 2"):
            ModelEstimates(**_kwargs(has_intercept=False))

    def test_tau_size(self):
        with pytest.raises(ValueError, match=r"expected \(2, 2\)"):
            ModelEstimates(**_kwargs(tau=0.4))

    def test_tau_not_square(self):
        with pytest.raises(ValueError, match="square matrix"):
            ModelEstimates(**_kwargs(tau=[[0.4, 0.1]]))

    def test_gamma_not_vector(self):
        with pytest.raises(ValueError, match="one-dimensional"):
            ModelEstimates(**_kwargs(gamma_w=[[0.5, -0.2]]))

    def test_shape_errors_raise_even_when_permissive(self):
        set_validation("permissive")
        with pytest.raises(ValueError, match="gamma_w"):
            ModelEstimates(**_kwargs(gamma_w=[0.5]))

    def test_sigma2_not_scalar(self):
        with pytest.raises(ValueError, match="'sigma2' must be a single value"):
            ModelEstimates(**_kwargs(sigma2=[0.5, 0.6]))

    def test_bad_column_container(self):
        with pytest.raises(TypeError, match="'within_covs' must be a sequence"):
            ModelEstimates(**_kwargs(within_covs=1.5))


class TestDomainErrors:
    def test_negative_sigma2(self):
        with pytest.raises(ValueError, match="non-negative"):
            ModelEstimates(**_kwargs(sigma2=-1.0))

    def test_tau_not_psd(self):
        with pytest.raises(ValueError, match="not positive semi-definite"):
            ModelEstimates(**_kwargs(tau=[[0.1, 0.5], [0.5, 0.1]]))

    def test_tau_not_symmetric(self):
        with pytest.raises(ValueError, match="symmetric"):
            ModelEstimates(**_kwargs(tau=[[0.4, 0.2], [0.0, 0.1]]))

    def test_tau_non_finite(self):
        with pytest.raises(ValueError, match="non-finite"):
            ModelEstimates(**_kwargs(tau=[[np.nan, 0.0], [0.0, 0.1]]))

    def test_fixed_intercept_zero_row_is_psd(self):
        est = ModelEstimates(**_kwargs(tau=[[0.0, 0.0], [0.0, 0.1]]))
        assert est.random_intercept_variance == 0.0

    def test_permissive_warns(self):
        set_validation("permissive")
        with pytest.warns(UserWarning, match="not positive semi-definite"):
            est = ModelEstimates(**_kwargs(tau=[[0.1, 0.5], [0.5, 0.1]]))
        assert est.tau[0, 1] == 0.5

    def test_warning_attributed_to_caller(self):
        set_validation("permissive")
        with pytest.warns(UserWarning, match="sigma2") as record:
            ModelEstimates(**_kwargs(sigma2=-1.0))
        assert [w.filename for w in record] == [__file__]

    def test_env_var_selects_permissive(self, monkeypatch):
        monkeypatch.setenv("R2MLM_VALIDATION", "permissive")
        with pytest.warns(UserWarning, match="sigma2"):
            ModelEstimates(**_kwargs(sigma2=-1.0))
