"""Validation-mode configuration for the r2mlm package.

Controls how domain errors in the caller-supplied estimates are
handled: negative residual variance, a random-effect covariance
matrix that is not positive semi-definite, random slopes that are not
level-1 predictors, and overlapping level-1 / level-2 selections.

* ``"strict"`` — raise :class:`ValueError` before anything is computed.
* ``"permissive"`` — emit a :class:`UserWarning` and compute anyway.
  Results may then fall outside ``[0, 1]``.

Shape errors (estimate vectors that do not match their predictor
lists) are always raised, whatever the mode.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_validation`.
    2. The ``R2MLM_VALIDATION`` environment variable.
    3. ``"strict"``.

Examples:
    Accept legacy inputs from the shell::

        export R2MLM_VALIDATION=permissive

    Programmatically::

        import r2mlm
        r2mlm.set_validation("permissive")

    Restore the default resolution::

        r2mlm.set_validation("auto")
"""

from __future__ import annotations

import os

_VALID_MODES = {"strict", "permissive", "auto"}

# Sentinel indicating "no programmatic override has been set".
_validation_override: str | None = None


def get_validation() -> str:
    """Return the active validation mode (``"strict"`` or ``"permissive"``).

    Resolution order:
        1. Value set by :func:`set_validation` (unless ``"auto"``).
        2. ``R2MLM_VALIDATION`` environment variable.
        3. ``"strict"``.

    Returns:
        ``"strict"`` or ``"permissive"``.
    """
    # 1. Programmatic override
    if _validation_override is not None and _validation_override != "auto":
        return _validation_override

    # 2. Environment variable
    env = os.environ.get("R2MLM_VALIDATION", "").strip().lower()
    if env in ("strict", "permissive"):
        return env

    # 3. Default
    return "strict"


def set_validation(name: str) -> None:
    """Override the validation mode.

    Args:
        name: One of ``"strict"``, ``"permissive"``, or ``"auto"``
            (case-insensitive).  ``"auto"`` restores the default
            resolution order.

    Raises:
        ValueError: If *name* is not a recognised mode.
    """
    global _validation_override
    normalised = name.strip().lower()
    if normalised not in _VALID_MODES:
        raise ValueError(
            f"Unknown validation mode '{name}'. Choose from: {sorted(_VALID_MODES)}"
        )
    _validation_override = normalised
