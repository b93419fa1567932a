# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Spectral Color Engine
=====================
Reflectance → XYZ → (CAT02 adaptation) → display RGB.

This module is the numerical heart of Lucent. It chains four transforms,
each with a fixed normalisation / clipping convention:

1. Tristimulus integration with the CIE Y-normalisation ``k = 100 / Σ S·ȳ``,
   so the illuminant's own white always lands on Y = 100.
2. CIECAM02 degree-of-adaptation transform in CAT02 cone space.
3. Global luminance normalisation (brightest Y → 1.0) followed by the
   IEC 61966-2-1 XYZ → linear RGB matrix and a hard [0, 1] clip.
4. Pure power-law gamma encoding ``RGB ** (1/gamma)`` (JIT-compiled).

Numeric degeneracies (zero-luminance illuminants, zero cone responses) are
detected up front and raised as typed errors; no NaN/Inf is ever allowed
to reach an encoded image.

References:
    - CIE 15:2004 "Colorimetry"
    - CIE 159:2004 "A colour appearance model for colour management
      systems: CIECAM02"
    - IEC 61966-2-1:1999 (sRGB Standard)
"""

import functools
import logging
import numpy as np
import numpy.typing as npt
from numba import njit
from typing import Tuple, Final, TypeAlias, Callable, Optional, Any

from lucent_errors import (
    DegenerateIlluminantError,
    DegenerateWhitePointError,
    GridMismatchError,
    ValidationError,
)
from lucent_spectraldata import AxisLike, WavelengthAxis, require_same_grid

__all__ = [
    # --- Type Aliases ---
    "ArrayFloat",

    # --- Constants ---
    "REFERENCE_WHITE_Y",
    "DEFAULT_GAMMA",
    "DEFAULT_DEGREE_OF_ADAPTATION",

    # --- Configuration ---
    "set_strict_ieee",

    # --- Matrices ---
    "M_CAT02",
    "M_CAT02_T",
    "M_XYZ_TO_RGB",
    "M_XYZ_TO_RGB_T",

    # --- Decorators ---
    "handle_shapes",

    # --- Functions ---
    "xyz_to_xy",

    # --- Classes ---
    "TristimulusCalculator",
    "ChromaticAdaptation",
    "DisplayEncoder",
]

logger = logging.getLogger("lucent.colorengine")

# --- Type Aliases ---
ArrayFloat: TypeAlias = npt.NDArray[np.floating]

# --- Constants & Pre-Transposed Matrices ---

# Luminance of the adopted white after k-normalisation
REFERENCE_WHITE_Y: Final[float] = 100.0
DEFAULT_GAMMA: Final[float] = 2.4
DEFAULT_DEGREE_OF_ADAPTATION: Final[float] = 0.9

# CAT02 (CIECAM02) XYZ -> sharpened cone response.
# We keep the base matrix for linear solves (column-vector form) and a
# pre-transposed copy for row-vector batches: rgb = xyz @ M_T.
M_CAT02: Final[ArrayFloat] = np.array([
    [ 0.7328,  0.4296, -0.1624],
    [-0.7036,  1.6975,  0.0061],
    [ 0.0030,  0.0136,  0.9834]
], dtype=np.float64)
M_CAT02.flags.writeable = False
M_CAT02_T: Final[ArrayFloat] = M_CAT02.T.copy()
M_CAT02_T.flags.writeable = False

# XYZ -> linear RGB (IEC 61966-2-1, Eqn 6, 4-decimal form)
M_XYZ_TO_RGB: Final[ArrayFloat] = np.array([
    [ 3.2406, -1.5372, -0.4986],
    [-0.9689,  1.8758,  0.0414],
    [ 0.0557, -0.2040,  1.0570]
], dtype=np.float64)
M_XYZ_TO_RGB.flags.writeable = False
M_XYZ_TO_RGB_T: Final[ArrayFloat] = M_XYZ_TO_RGB.T.copy()
M_XYZ_TO_RGB_T.flags.writeable = False


# --- Runtime Configuration ---
# When True, the gamma kernel is the fastmath=False variant, which keeps
# strict IEEE 754 semantics (no FP reassociation).
#
# Toggle at runtime via:
#     import lucent_colorengine as ce
#     ce.set_strict_ieee(True)   # enable strict mode
#     ce.set_strict_ieee(False)  # back to fast mode (default)
_STRICT_IEEE: bool = False

def set_strict_ieee(enabled: bool = True) -> None:
    """
    Toggle between fast (default) and strict IEEE 754 Numba kernels.

    Args:
        enabled: If True, use strict IEEE mode.
    """
    global _STRICT_IEEE
    _STRICT_IEEE = bool(enabled)


# =============================================================================
# 1. ROBUST DECORATORS
# =============================================================================

def handle_shapes(func: Callable[..., ArrayFloat]) -> Callable[..., ArrayFloat]:
    """
    Decorator to normalize inputs of shape (..., 3) to a contiguous (N, 3)
    float64 batch and restore the leading shape on the way out.

    - (3,)        -> (3,)
    - (N, 3)      -> (N, 3)
    - (H, W, 3)   -> (H, W, 3)
    """
    @functools.wraps(func)
    def wrapper(arr: ArrayFloat, *args: Any, **kwargs: Any) -> ArrayFloat:
        arr = np.asarray(arr, dtype=np.float64)
        if arr.ndim == 0 or arr.shape[-1] != 3:
            raise ValidationError(
                f"Expected last dimension size 3, got {arr.shape[-1] if arr.ndim else 0}"
            )
        lead = arr.shape[:-1]
        flat = np.ascontiguousarray(arr.reshape(-1, 3))

        res = func(flat, *args, **kwargs)

        return res.reshape(lead + (3,))
    return wrapper


# =============================================================================
# 2. LOW-LEVEL MATH KERNELS (Numba Optimized)
# =============================================================================

@njit(cache=True, fastmath=True)
def _fast_gamma_power(linear: ArrayFloat, inv_gamma: float) -> ArrayFloat:
    """
    Power-law OETF ``v ** (1/gamma)`` on an (N, 3) batch.

    Non-positive samples map to 0.0 so the kernel never evaluates a
    fractional power of a negative number.
    """
    n = linear.shape[0]
    out = np.empty_like(linear)
    for i in range(n):
        for c in range(3):
            v = linear[i, c]
            if v <= 0.0:
                out[i, c] = 0.0
            else:
                out[i, c] = v ** inv_gamma
    return out

@njit(cache=True, fastmath=False)
def _fast_gamma_power_strict(linear: ArrayFloat, inv_gamma: float) -> ArrayFloat:
    """Strict IEEE 754 variant of ``_fast_gamma_power``."""
    n = linear.shape[0]
    out = np.empty_like(linear)
    for i in range(n):
        for c in range(3):
            v = linear[i, c]
            if v <= 0.0:
                out[i, c] = 0.0
            else:
                out[i, c] = v ** inv_gamma
    return out

def _gamma_power(linear: ArrayFloat, inv_gamma: float) -> ArrayFloat:
    if _STRICT_IEEE:
        return _fast_gamma_power_strict(linear, inv_gamma)
    return _fast_gamma_power(linear, inv_gamma)


@handle_shapes
def xyz_to_xy(xyz_array: ArrayFloat) -> ArrayFloat:
    """
    XYZ → (x, y, Y).

    Zero-sum pixels get (0, 0, 0); this helper is only used for reporting
    white-point chromaticities, never inside the rendering path.
    """
    xyz = np.asarray(xyz_array, dtype=np.float64)
    sum_xyz = np.sum(xyz, axis=-1, keepdims=True)
    valid = np.abs(sum_xyz) > 1e-12
    safe_sum = np.where(valid, sum_xyz, 1.0)
    out = np.empty_like(xyz)
    out[..., 0:2] = xyz[..., 0:2] / safe_sum
    out[..., 2] = xyz[..., 1]
    return np.where(valid, out, 0.0)


# =============================================================================
# 3. TRISTIMULUS CALCULATOR
# =============================================================================

class TristimulusCalculator:
    """
    Integrates reflectance × illuminant × CMF into CIE XYZ.

    Normalization Convention:
        The integration uses the CIE Y-normalisation factor

            k = 100 / Σ S(λ) · ȳ(λ)

        so the perfect reflecting diffuser under the given illuminant maps
        to Y = 100.  The wavelength interval is omitted because it cancels
        in k.  No clipping is applied: negative CMF lobes or noisy
        reflectances may yield negative tristimulus values, which the
        encoder handles.

    The calculator binds one CMF table to one wavelength grid.  Every SPD
    and reflectance passed in must live on that exact grid.
    """

    __slots__ = ("_cmf", "_wavelength")

    def __init__(self, cmf: ArrayFloat, wavelength: Optional[AxisLike] = None) -> None:
        arr = np.array(cmf, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != 3:
            raise ValidationError(f"CMFs must be shape (N_waves, 3), got {arr.shape}.")
        if not np.all(np.isfinite(arr)):
            raise ValidationError("CMFs contain non-finite values.")

        self._wavelength: Optional[WavelengthAxis] = None
        if wavelength is not None:
            self._wavelength = WavelengthAxis.coerce(wavelength)
            if len(self._wavelength) != arr.shape[0]:
                raise GridMismatchError(
                    f"CMF length {arr.shape[0]} != wavelength length {len(self._wavelength)}."
                )
        arr.flags.writeable = False
        self._cmf = arr

    @property
    def cmf(self) -> ArrayFloat:
        return self._cmf

    @property
    def wavelength(self) -> Optional[WavelengthAxis]:
        return self._wavelength

    @property
    def bands(self) -> int:
        return self._cmf.shape[0]

    # -- guards -------------------------------------------------------------
    def _check_grid(self, length: int, wavelength: Optional[AxisLike], label: str) -> None:
        if length != self.bands:
            raise GridMismatchError(
                f"{label} dimension mismatch. Expected {self.bands} bands, got {length}."
            )
        if wavelength is not None and self._wavelength is not None:
            require_same_grid(self._wavelength, wavelength)

    def _prepare_spd(self, spd: ArrayFloat, wavelength: Optional[AxisLike]) -> ArrayFloat:
        s = np.asarray(spd, dtype=np.float64)
        if s.ndim != 1:
            raise ValidationError(f"SPD must be 1D, got shape {s.shape}.")
        self._check_grid(s.shape[0], wavelength, "SPD")
        if not np.all(np.isfinite(s)):
            raise ValidationError("SPD contains non-finite values.")
        return s

    # -- integration ---------------------------------------------------------
    def _raw_white(self, s: ArrayFloat) -> Tuple[float, ArrayFloat]:
        raw = np.dot(s, self._cmf)
        denom = raw[1]
        if not np.isfinite(denom) or denom <= 0.0:
            raise DegenerateIlluminantError(
                f"Illuminant luminance Σ S·ȳ = {denom!r}; the k-factor is undefined."
            )
        return REFERENCE_WHITE_Y / denom, raw

    def normalization_factor(self, spd: ArrayFloat, wavelength: Optional[AxisLike] = None) -> float:
        """``k = 100 / Σ SPD·ȳ``."""
        k, _ = self._raw_white(self._prepare_spd(spd, wavelength))
        return float(k)

    def white_point(self, spd: ArrayFloat, wavelength: Optional[AxisLike] = None) -> ArrayFloat:
        """XYZ of the illuminant itself; Y is 100 by construction."""
        k, raw = self._raw_white(self._prepare_spd(spd, wavelength))
        return k * raw

    def tristimulus(
        self,
        reflectance: ArrayFloat,
        spd: ArrayFloat,
        wavelength: Optional[AxisLike] = None,
    ) -> Tuple[ArrayFloat, ArrayFloat]:
        """
        Per-pixel XYZ and the illuminant white point.

        Args:
            reflectance: Shape (..., bands), e.g. (pixels, bands) or a full
                (H, W, bands) cube.
            spd: Illuminant SPD, shape (bands,).
            wavelength: Optional grid of *reflectance* / *spd*; when given it
                must be bit-identical to the calculator's grid.

        Returns:
            (xyz, xyz_white) with xyz of shape (..., 3).
        """
        s = self._prepare_spd(spd, wavelength)
        refl = np.asarray(reflectance, dtype=np.float64)
        if refl.ndim == 0:
            raise ValidationError("Reflectance must have a band axis.")
        self._check_grid(refl.shape[-1], None, "Reflectance")

        k, raw = self._raw_white(s)

        # Weights for the sample (CMF * SPD * k); (P, W) dot (W, 3) -> (P, 3)
        weights = self._cmf * s[:, np.newaxis] * k
        lead = refl.shape[:-1]
        xyz = np.dot(refl.reshape(-1, self.bands), weights).reshape(lead + (3,))
        xyz_white = k * raw

        logger.debug(
            "tristimulus: k=%.6g, white=(%.4f, %.4f, %.4f), pixels=%d",
            k, xyz_white[0], xyz_white[1], xyz_white[2], int(np.prod(lead, dtype=np.int64)),
        )
        return xyz, xyz_white


# =============================================================================
# 4. CHROMATIC ADAPTATION
# =============================================================================

class ChromaticAdaptation:
    """
    CIECAM02 degree-of-adaptation transform (CAT02 cone space).

    For a scene white ``XYZw`` and degree ``D``:

        RGB    = M_CAT02 · XYZ
        RGBw   = M_CAT02 · XYZw
        gain_c = Yw · D / RGBw_c + (1 − D)
        XYZ'   = M_CAT02⁻¹ · (gain · RGB)

    The inverse is applied with a linear solve, never a stored inverse.
    ``D = 0`` leaves colours as they are; ``D = 1`` fully discounts the
    illuminant towards an equal-energy reference white of luminance Yw.
    """

    @staticmethod
    def _check_degree(degree: float) -> float:
        d = float(degree)
        if not np.isfinite(d) or d < 0.0 or d > 1.0:
            raise ValidationError(f"Degree of adaptation D must be in [0, 1], got {degree!r}.")
        return d

    @staticmethod
    def cone_response(xyz: ArrayFloat) -> ArrayFloat:
        """XYZ (..., 3) → CAT02 RGB (..., 3)."""
        return np.dot(np.asarray(xyz, dtype=np.float64), M_CAT02_T)

    @staticmethod
    def gains(white_xyz: ArrayFloat, degree: float) -> ArrayFloat:
        """
        Per-channel von Kries gains for the given white point.

        Raises:
            DegenerateWhitePointError: a white-point cone response is zero
                or non-finite.
            ValidationError: ``degree`` outside [0, 1] or a malformed white.
        """
        d = ChromaticAdaptation._check_degree(degree)
        w = np.asarray(white_xyz, dtype=np.float64)
        if w.shape != (3,):
            raise ValidationError(f"White point must be shape (3,), got {w.shape}.")

        rgb_w = np.dot(M_CAT02, w)
        if not np.all(np.isfinite(rgb_w)) or np.any(rgb_w == 0.0):
            raise DegenerateWhitePointError(
                f"White point XYZ={tuple(w)} has a degenerate CAT02 cone "
                f"response {tuple(rgb_w)}; adaptation gain is undefined.",
                cone_response=tuple(float(v) for v in rgb_w),
            )
        return (w[1] * d / rgb_w) + (1.0 - d)

    @staticmethod
    @handle_shapes
    def adapt(xyz: ArrayFloat, white_xyz: ArrayFloat, degree: float) -> ArrayFloat:
        """
        Adapts XYZ colour(s) seen under ``white_xyz``.

        Args:
            xyz: Input XYZ, shape (..., 3).
            white_xyz: Scene illuminant white point (Y = 100 convention).
            degree: Degree of adaptation D in [0, 1].

        Returns:
            Adapted XYZ with the same shape as *xyz*.
        """
        g = ChromaticAdaptation.gains(white_xyz, degree)
        rgb_c = np.dot(xyz, M_CAT02_T) * g
        # Column-vector solve: M · X' = RGBc
        return np.linalg.solve(M_CAT02, rgb_c.T).T


# =============================================================================
# 5. DISPLAY ENCODER
# =============================================================================

class DisplayEncoder:
    """
    XYZ → gamma-encoded display RGB in [0, 1].

    Normalisation is *global*: the whole array is divided by its single
    brightest Y, so relative luminances between pixels are preserved and
    re-encoding the same array is bit-identical.
    """

    @staticmethod
    def _check_gamma(gamma: float) -> float:
        g = float(gamma)
        if not np.isfinite(g) or g <= 0.0:
            raise ValidationError(f"gamma must be a positive finite number, got {gamma!r}.")
        return g

    @staticmethod
    @handle_shapes
    def normalize(xyz_array: ArrayFloat) -> ArrayFloat:
        """Clip negatives, then scale so the brightest Y is 1.0."""
        xyz = np.maximum(xyz_array, 0.0)
        y_max = xyz[:, 1].max() if xyz.shape[0] else 0.0
        # An all-black frame stays black instead of 0/0
        if y_max > 0.0:
            xyz = xyz / y_max
        return xyz

    @staticmethod
    @handle_shapes
    def xyz_to_linear_rgb(xyz_array: ArrayFloat, clip: bool = True) -> ArrayFloat:
        """
        Normalised XYZ → linear RGB.

        Args:
            xyz_array: Input XYZ data, shape (..., 3).
            clip: If True (default), clamps linear RGB to [0, 1].
        """
        linear = np.dot(xyz_array, M_XYZ_TO_RGB_T)
        if clip:
            linear = np.clip(linear, 0.0, 1.0)
        return linear

    @staticmethod
    @handle_shapes
    def encode(xyz_array: ArrayFloat, gamma: float = DEFAULT_GAMMA) -> ArrayFloat:
        """
        Full encode: clip → normalise by max Y → matrix → clip → gamma.

        Args:
            xyz_array: XYZ data, shape (..., 3), any absolute scale.
            gamma: Display gamma (commonly 2.2 or 2.4).

        Returns:
            float64 RGB in [0, 1], same leading shape as the input.
        """
        g = DisplayEncoder._check_gamma(gamma)
        xyz = DisplayEncoder.normalize(xyz_array)
        linear = np.clip(np.dot(xyz, M_XYZ_TO_RGB_T), 0.0, 1.0)
        return _gamma_power(np.ascontiguousarray(linear), 1.0 / g)
