"""Shared type aliases for the r2mlm package."""

from collections.abc import Sequence

import numpy as np

# A column is addressed by its label, or by 0-based position when the
# integer is not itself a label of the data table.
ColumnKey = str | int

# Predictor lists accepted by the public API; ``None`` means "none used".
ColumnSelection = Sequence[ColumnKey] | None

# Estimate inputs: scalar, sequence, or array.  ``None`` means empty.
EstimateLike = float | Sequence[float] | np.ndarray | None
