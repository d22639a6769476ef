"""Typed result objects for R-squared decompositions.

Frozen dataclasses that provide:

* **Attribute access** — ``result.r2s``, ``result.decompositions``.
* **Dict-like access** — ``result["R2s"]``, ``result.get("key")``,
  ``"key" in result``, including the table names used by the R
  ``r2mlm`` package (``"Decompositions"``, ``"R2s"``,
  ``"R2 differences"``).
* **Serialisation** — ``.to_dict()`` returns a plain ``dict[str, Any]``
  with tables as nested ``{column: {row: value}}`` dicts and all NumPy
  types converted to native Python.

Two concrete result types mirror the two entry points:

* :class:`R2Result` — one model, from :func:`~r2mlm.r2mlm_manual`.
* :class:`R2ComparisonResult` — two models and their differences,
  from :func:`~r2mlm.r2mlm_comp_manual`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import pandas as pd

from .components import VarianceComponents

if TYPE_CHECKING:
    from matplotlib.figure import Figure

# ------------------------------------------------------------------ #
# Serialisation helpers
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types.

    Handles nested dicts, lists, np.ndarray, np.integer, and
    np.floating so that :meth:`to_dict` returns a fully
    JSON-serialisable structure.
    """
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


def _table_to_dict(table: pd.DataFrame) -> dict[str, dict[str, float]]:
    return {str(col): {str(row): table.at[row, col] for row in table.index}
            for col in table.columns}


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Supports three access patterns:

    1. ``result["key"]``     — raises ``KeyError`` on miss
    2. ``result.get(key, d)`` — returns *d* on miss (default ``None``)
    3. ``"key" in result``   — membership test

    ``_ALIASES`` maps alternative key names onto field names.
    ``_SERIALIZERS`` registers per-field conversion functions for
    :meth:`to_dict`; serialized values still pass through
    :func:`_numpy_to_python`.
    """

    _ALIASES: ClassVar[dict[str, str]] = {}

    _SERIALIZERS: ClassVar[dict[str, Any]] = {}

    # Fields to exclude from to_dict() serialisation.
    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset({"figure"})

    def _field_name(self, key: str) -> str:
        return self._ALIASES.get(key, key)

    def __getitem__(self, key: str) -> Any:
        """Attribute lookup via bracket syntax."""
        try:
            return getattr(self, self._field_name(key))
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        """Attribute lookup with a fallback default."""
        return getattr(self, self._field_name(key), default)

    def __contains__(self, key: object) -> bool:
        """Membership test: ``"key" in result``."""
        if not isinstance(key, str):
            return False
        return hasattr(self, self._field_name(key))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary.

        Applies per-field serializers from ``_SERIALIZERS``, then runs
        :func:`_numpy_to_python` on every value.
        """
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            if f.name in self._EXCLUDE_FROM_DICT:
                continue
            val = getattr(self, f.name)
            if f.name in self._SERIALIZERS:
                val = self._SERIALIZERS[f.name](val)
            result[f.name] = _numpy_to_python(val)
        return result


# ------------------------------------------------------------------ #
# R2Result
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class R2Result(_DictAccessMixin):
    """Variance decomposition and R-squared measures of one model.

    Returned by :func:`~r2mlm.r2mlm_manual`.
    """

    _ALIASES: ClassVar[dict[str, str]] = {
        "Decompositions": "decompositions",
        "R2s": "r2s",
    }

    _SERIALIZERS: ClassVar[dict[str, Any]] = {
        "decompositions": _table_to_dict,
        "r2s": _table_to_dict,
        "components": asdict,
    }

    decompositions: pd.DataFrame
    """Proportion of variance per component and level."""

    r2s: pd.DataFrame
    """R-squared measures per level (``NaN`` where not applicable)."""

    components: VarianceComponents
    """Raw variance components and totals."""

    cluster_mean_centered: bool
    """Whether the centred (level-specific) tables were produced."""

    figure: Figure | None = field(default=None, repr=False, compare=False)
    """Bar chart of the decomposition; ``None`` unless requested."""


# ------------------------------------------------------------------ #
# R2ComparisonResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class R2ComparisonResult(_DictAccessMixin):
    """Two models' R-squared measures and their differences.

    Returned by :func:`~r2mlm.r2mlm_comp_manual`.
    """

    _ALIASES: ClassVar[dict[str, str]] = {
        "Model A R2s": "r2s_a",
        "Model B R2s": "r2s_b",
        "R2 differences": "r2_differences",
    }

    _SERIALIZERS: ClassVar[dict[str, Any]] = {
        "model_a": lambda r: r.to_dict(),
        "model_b": lambda r: r.to_dict(),
        "r2_differences": _table_to_dict,
    }

    model_a: R2Result
    """Single-model result for model A."""

    model_b: R2Result
    """Single-model result for model B."""

    r2_differences: pd.DataFrame
    """``R²(B) − R²(A)`` per measure and level."""

    figure: Figure | None = field(default=None, repr=False, compare=False)
    """Side-by-side bar chart of both decompositions."""

    @property
    def r2s_a(self) -> pd.DataFrame:
        return self.model_a.r2s

    @property
    def r2s_b(self) -> pd.DataFrame:
        return self.model_b.r2s
