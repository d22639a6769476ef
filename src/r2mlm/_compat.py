"""Data-table boundary for the variance decomposition.

Past :func:`as_data_table` every module indexes columns with pandas.
Three kinds of input are accepted:

* a ``pandas.DataFrame``, used as-is;
* a 2-D NumPy array, wrapped with integer column labels ``0..k-1`` so
  that column positions and labels coincide;
* a Polars ``DataFrame`` or ``LazyFrame`` (only when Polars is
  installed).  When every requested column is a label of the Polars
  table, only those columns are selected before conversion, and a
  ``LazyFrame`` is collected once.  A positional key needs the full
  column order, so the whole table is converted in that case.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, TypeAlias

import numpy as np
import pandas as pd

from ._typing import ColumnKey

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | np.ndarray | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame | np.ndarray

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _polars_to_pandas(data: pl.DataFrame | pl.LazyFrame, keys: list[ColumnKey]) -> pd.DataFrame:
    lazy = isinstance(data, pl.LazyFrame)
    names = data.collect_schema().names() if lazy else data.columns
    if keys and all(isinstance(k, str) and k in names for k in keys):
        data = data.select(keys)
    if lazy:
        data = data.collect()
    return data.to_pandas()


def as_data_table(
    data: DataFrameLike,
    *,
    keys: Iterable[ColumnKey] = (),
    name: str = "data",
) -> pd.DataFrame:
    """Return *data* as a pandas table the covariance builder can index.

    Args:
        data: pandas DataFrame, 2-D NumPy array, or Polars
            DataFrame/LazyFrame.
        keys: Columns the decomposition will read.  Used to narrow a
            Polars table before conversion; ignored otherwise.
        name: Argument name used in error messages.

    Raises:
        ValueError: If a NumPy array is not two-dimensional.
        TypeError: If *data* is none of the accepted table types.
    """
    if isinstance(data, pd.DataFrame):
        return data

    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise ValueError(
                f"'{name}' must be a two-dimensional array (rows = "
                f"observations), got {data.ndim} dimension(s)."
            )
        return pd.DataFrame(data)

    if _HAS_POLARS and isinstance(data, (pl.DataFrame, pl.LazyFrame)):
        return _polars_to_pandas(data, list(dict.fromkeys(keys)))

    accepted = "a pandas DataFrame or 2-D NumPy array"
    if _HAS_POLARS:
        accepted += " or a Polars DataFrame/LazyFrame"
    raise TypeError(f"'{name}' must be {accepted}, got {type(data).__name__}.")
