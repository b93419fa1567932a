"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Spectral grids and resampling.

  WavelengthAxis
    1.  Strictly-increasing enforcement on construction.
    2.  Raw-bytes signature for bit-exact grid comparison (no float
        equality pitfalls when deciding whether two grids are "the same").
    3.  Read-only backing array; the axis is shared between threads.

  resample
    4.  PCHIP (shape-preserving) interpolation along the last axis, so
        cubes [h, w, bands], batches [n, bands] and single spectra all go
        through one code path.
    5.  Out-of-domain targets evaluate to exactly 0.0 instead of being
        extrapolated.
    6.  Optional coverage guard raising RangeError.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Sequence, TypeAlias, Union

import numpy as np
import numpy.typing as npt
from scipy.interpolate import PchipInterpolator

from lucent_errors import GridMismatchError, RangeError, ValidationError

__all__ = [
    "ArrayFloat",
    "AxisLike",
    "VISIBLE_MIN_NM",
    "VISIBLE_MAX_NM",
    "WORKING_STEP_NM",
    "WavelengthAxis",
    "working_grid",
    "check_coverage",
    "require_same_grid",
    "resample",
    "as_axis",
]

logger = logging.getLogger("lucent.spectraldata")

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------
ArrayFloat: TypeAlias = npt.NDArray[np.floating]
AxisLike: TypeAlias = Union["WavelengthAxis", np.ndarray, Sequence[float]]

# ---------------------------------------------------------------------------
# Working range (visible, nm)
# ---------------------------------------------------------------------------
VISIBLE_MIN_NM: Final[float] = 400.0
VISIBLE_MAX_NM: Final[float] = 780.0
WORKING_STEP_NM: Final[float] = 5.0


# =============================================================================
# 1.  WavelengthAxis
# =============================================================================
class WavelengthAxis:
    """
    Immutable, strictly increasing wavelength grid in nanometres.

    The backing array is flagged read-only, so an axis can be handed to
    worker threads without copying.  Two axes compare equal only when they
    are bit-identical (``signature``).
    """

    __slots__ = ("_values", "_sig")

    def __init__(self, values: Union[np.ndarray, Sequence[float]]) -> None:
        arr = np.array(values, dtype=np.float64).ravel()
        if arr.size < 2:
            raise ValidationError(
                f"WavelengthAxis: need at least 2 samples, got {arr.size}."
            )
        if not np.all(np.isfinite(arr)):
            raise ValidationError("WavelengthAxis: wavelengths must be finite.")
        if not np.all(np.diff(arr) > 0):
            raise ValidationError(
                "WavelengthAxis: wavelength array must be strictly "
                "monotonically increasing."
            )
        arr.flags.writeable = False
        self._values = arr
        self._sig = arr.tobytes()

    @classmethod
    def from_range(cls, start: float, stop: float, step: float) -> "WavelengthAxis":
        """
        Grid from ``start`` with spacing ``step``, never past ``stop``.

        ``stop`` is included when ``stop - start`` is a whole number of
        steps; otherwise the last sample is the largest one below it.
        """
        if step <= 0:
            raise ValidationError(f"WavelengthAxis: step must be > 0, got {step}")
        # 1e-9 absorbs ratios like 3799.9999999 for 0.1 nm steps
        n = int(np.floor((stop - start) / step + 1e-9)) + 1
        last = min(start + (n - 1) * step, stop)
        return cls(np.linspace(start, last, n))

    @classmethod
    def coerce(cls, axis: AxisLike) -> "WavelengthAxis":
        if isinstance(axis, WavelengthAxis):
            return axis
        return cls(axis)

    # -- read interface ----------------------------------------------------
    @property
    def values(self) -> np.ndarray:
        """The wavelength samples (read-only view)."""
        return self._values

    @property
    def bounds(self) -> tuple[float, float]:
        return float(self._values[0]), float(self._values[-1])

    @property
    def signature(self) -> bytes:
        """Raw bytes fingerprint of the grid."""
        return self._sig

    def covers(self, lo: float, hi: float) -> bool:
        """True if ``[lo, hi]`` lies inside the axis span."""
        first, last = self.bounds
        return first <= lo and last >= hi

    def __len__(self) -> int:
        return self._values.shape[0]

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        if dtype is None:
            return self._values
        return self._values.astype(dtype)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WavelengthAxis):
            return NotImplemented
        return self._sig == other._sig

    def __hash__(self) -> int:
        return hash(self._sig)

    def __repr__(self) -> str:
        first, last = self.bounds
        return f"WavelengthAxis(points={len(self)}, range=[{first:.2f}, {last:.2f}])"


def working_grid(
    start: float = VISIBLE_MIN_NM,
    stop: float = VISIBLE_MAX_NM,
    step: float = WORKING_STEP_NM,
) -> WavelengthAxis:
    """The canonical grid all spectra are resampled to (400–780 nm, 5 nm)."""
    return WavelengthAxis.from_range(start, stop, step)


# =============================================================================
# 2.  Guards
# =============================================================================
def check_coverage(
    axis: AxisLike,
    lo: float = VISIBLE_MIN_NM,
    hi: float = VISIBLE_MAX_NM,
    label: str = "spectral data",
) -> None:
    """
    Raise ``RangeError`` unless *axis* spans at least ``[lo, hi]``.

    Only the span is checked; the sampling inside it may be arbitrary.
    """
    ax = WavelengthAxis.coerce(axis)
    if not ax.covers(lo, hi):
        first, last = ax.bounds
        raise RangeError(
            f"The {label} range [{first:g}, {last:g}] nm must include the "
            f"range of {lo:g} to {hi:g} nm.",
            required=(lo, hi),
            available=(first, last),
        )


def require_same_grid(*axes: AxisLike) -> WavelengthAxis:
    """
    Assert that every axis is bit-identical and return the first one.

    Integration across mismatched grids is undefined, so callers use this
    before any spectral product is formed.
    """
    if not axes:
        raise ValidationError("require_same_grid: no axes given.")
    ref = WavelengthAxis.coerce(axes[0])
    for other in axes[1:]:
        if WavelengthAxis.coerce(other) != ref:
            raise GridMismatchError(
                f"Spectral grid mismatch: {ref!r} vs {WavelengthAxis.coerce(other)!r}."
            )
    return ref


# =============================================================================
# 3.  Resampling
# =============================================================================
def resample(
    source_wl: AxisLike,
    spectra: Union[np.ndarray, Sequence[float]],
    target_wl: AxisLike,
    require_coverage: bool = False,
    label: str = "spectral data",
) -> ArrayFloat:
    """
    Resample co-indexed spectra from *source_wl* onto *target_wl*.

    Interpolation is piecewise-cubic Hermite (PCHIP): it never overshoots
    the local extrema of the samples, so non-negative spectra stay
    non-negative and monotone spectra stay monotone.

    Args:
        source_wl: Source grid, length = ``spectra.shape[-1]``.
        spectra: Shape (bands,), (N, bands) or (H, W, bands).
        target_wl: Target grid.
        require_coverage: If True, raise ``RangeError`` when the target span
            is not inside the source span.
        label: Name used in error messages.

    Returns:
        float64 array of shape ``spectra.shape[:-1] + (len(target_wl),)``.
        Targets outside the source span are 0.0.
    """
    src = WavelengthAxis.coerce(source_wl)
    tgt = WavelengthAxis.coerce(target_wl)
    data = np.asarray(spectra, dtype=np.float64)

    if data.ndim == 0 or data.shape[-1] != len(src):
        raise ValidationError(
            f"resample({label}): last dimension {data.shape[-1] if data.ndim else 0} "
            f"!= source wavelength length {len(src)}."
        )

    if require_coverage:
        lo, hi = tgt.bounds
        check_coverage(src, lo, hi, label=label)

    # Fast path: grids match exactly
    if src == tgt:
        return data.copy()

    t = tgt.values
    src_lo, src_hi = src.bounds
    inside = (t >= src_lo) & (t <= src_hi)

    out = np.zeros(data.shape[:-1] + (t.shape[0],), dtype=np.float64)
    if np.any(inside):
        interpolator = PchipInterpolator(src.values, data, axis=-1, extrapolate=False)
        out[..., inside] = interpolator(t[inside])

    n_outside = int(t.shape[0] - np.count_nonzero(inside))
    if n_outside:
        logger.warning(
            "resample(%s): %d of %d target samples fall outside [%g, %g] nm "
            "and were set to 0.",
            label, n_outside, t.shape[0], src_lo, src_hi,
        )
    logger.debug(
        "resample(%s): %s -> %s, batch shape %s",
        label, src, tgt, data.shape[:-1],
    )
    return out


def as_axis(axis: Optional[AxisLike]) -> Optional[WavelengthAxis]:
    """``None``-tolerant :meth:`WavelengthAxis.coerce`."""
    if axis is None:
        return None
    return WavelengthAxis.coerce(axis)
