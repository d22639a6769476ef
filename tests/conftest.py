"""Shared fixtures: synthetic two-level data."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def make_clustered_data(
    n_clusters: int = 30,
    n_per_cluster: int = 12,
    seed: int = 0,
) -> pd.DataFrame:
    """Clustered data with centred level-1 and constant level-2 predictors.

    Columns: ``cluster``, raw level-1 ``x1``/``x2``, their
    cluster-mean-centred versions ``x1_c``/``x2_c``, cluster means
    ``x1_m``/``x2_m``, and a level-2 covariate ``z``.
    """
    rng = np.random.default_rng(seed)
    n = n_clusters * n_per_cluster
    cluster = np.repeat(np.arange(n_clusters), n_per_cluster)
    shift = rng.normal(0.0, 1.0, size=(n_clusters, 2))[cluster]
    x = shift + rng.normal(0.0, [1.0, 2.0], size=(n, 2))

    frame = pd.DataFrame(
        {
            "cluster": cluster,
            "x1": x[:, 0],
            "x2": x[:, 1],
            "z": rng.normal(5.0, 2.0, size=n_clusters)[cluster],
        }
    )
    for col in ("x1", "x2"):
        means = frame.groupby("cluster")[col].transform("mean")
        frame[f"{col}_m"] = means
        frame[f"{col}_c"] = frame[col] - means
    return frame


@pytest.fixture()
def clustered_data() -> pd.DataFrame:
    return make_clustered_data()


@pytest.fixture()
def full_model_kwargs() -> dict:
    """Estimates for a model with two random slopes and three level-2 predictors."""
    return {
        "within_covs": ["x1_c", "x2_c"],
        "between_covs": ["x1_m", "x2_m", "z"],
        "random_covs": ["x1_c", "x2_c"],
        "gamma_w": [0.074485, 0.310800],
        "gamma_b": [4.352652, 0.036759, 0.027532, -0.035250],
        "tau": [
            [0.387, 0.0000646, 0.00625],
            [0.0000646, 0.00277, -0.000333],
            [0.00625, -0.000333, 0.0285],
        ],
        "sigma2": 0.55031,
    }


@pytest.fixture()
def tiny_centered() -> pd.DataFrame:
    """Two clusters of two rows with hand-checkable moments.

    var(x_c) = 10/3, var(z) = 1/3, cov(x_c, z) = 0.
    """
    return pd.DataFrame(
        {
            "x_c": [-1.0, 1.0, -2.0, 2.0],
            "z": [0.0, 0.0, 1.0, 1.0],
        }
    )


@pytest.fixture()
def tiny_raw() -> pd.DataFrame:
    """Uncentred variant: var(x) = 26/3, var(z) = 1/3, cov(x, z) = 4/3, mean(x) = 4."""
    return pd.DataFrame(
        {
            "x": [1.0, 3.0, 4.0, 8.0],
            "z": [0.0, 0.0, 1.0, 1.0],
        }
    )


@pytest.fixture(autouse=True)
def _reset_validation(monkeypatch):
    """Each test starts from the default validation mode."""
    import r2mlm._config as _cfg

    monkeypatch.setattr(_cfg, "_validation_override", None)
    monkeypatch.delenv("R2MLM_VALIDATION", raising=False)
    yield


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    import matplotlib.pyplot as plt

    plt.close("all")
