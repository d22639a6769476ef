"""r2mlm — R-squared measures for two-level linear models.

Implements the Rights & Sterba (2019) framework: the model-implied
outcome variance of a multilevel model is decomposed into variance
from fixed within-cluster effects, fixed between-cluster effects,
random-slope variation, random-intercept (mean) variation, and
level-1 residual variance.  Ratios of these components give a family
of R-squared measures at the total, within-cluster, and
between-cluster levels, for one model or for the difference between
two models.

Model fitting is left to the caller: supply the fixed effects, the
random-effect covariance matrix, and the residual variance from any
package, together with the data the model was fitted to.

Public API:
    .. autosummary::
        r2mlm_manual
        r2mlm_comp_manual
        ModelEstimates
        build_covariance_structures
        CovarianceStructures
        compute_variance_components
        VarianceComponents
        centered_tables
        pooled_tables
        difference_table
        print_decomposition_table
        print_comparison_table
        plot_decomposition
        plot_comparison
        get_validation
        set_validation
        R2Result
        R2ComparisonResult
"""

from ._config import get_validation, set_validation
from ._results import R2ComparisonResult, R2Result
from .components import VarianceComponents, compute_variance_components
from .core import r2mlm_comp_manual, r2mlm_manual
from .covariance import CovarianceStructures, build_covariance_structures
from .display import print_comparison_table, print_decomposition_table
from .estimates import ModelEstimates
from .measures import centered_tables, difference_table, pooled_tables
from .plots import plot_comparison, plot_decomposition

__all__ = [
    "R2ComparisonResult",
    "R2Result",
    "r2mlm_manual",
    "r2mlm_comp_manual",
    "ModelEstimates",
    "build_covariance_structures",
    "CovarianceStructures",
    "compute_variance_components",
    "VarianceComponents",
    "centered_tables",
    "pooled_tables",
    "difference_table",
    "print_decomposition_table",
    "print_comparison_table",
    "plot_decomposition",
    "plot_comparison",
    "get_validation",
    "set_validation",
]

__version__ = "0.1.0"
