# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: planckian.py — Blackbody radiators and CIE illuminant A.

Relative SPDs follow Planck's law normalised to 100 at 560 nm:

    S(λ) = 100 · (560/λ)^5 · (exp(c2 / (560·T)) − 1) / (exp(c2 / (λ·T)) − 1)
"""

import math

import numpy as np
from numba import njit
from typing import Dict, Union, Optional

from lucent_errors import ValidationError
from lucent_spectraldata import AxisLike

from .source import LightSource

__all__ = ["Planckian", "CIEIlluminantA", "relative_planck", "C2_ITS90", "C2_CIE_A"]

# Second radiation constant [nm·K]
C2_ITS90: float = 1.4388e7
# Value frozen into the definition of illuminant A
C2_CIE_A: float = 1.435e7

REFERENCE_NM: float = 560.0


@njit(cache=True, fastmath=True)
def relative_planck(
    wavelength: np.ndarray,
    temperature: float,
    c2: float,
    reference_nm: float,
) -> np.ndarray:
    """
    Planck radiance relative to its value at *reference_nm*, scaled to 100.

    expm1 keeps short wavelengths at low temperature accurate.
    """
    ref = math.expm1(c2 / (reference_nm * temperature))
    out = np.empty(wavelength.shape[0], dtype=np.float64)
    for i in range(wavelength.shape[0]):
        lam = wavelength[i]
        ratio = reference_nm / lam
        out[i] = 100.0 * ratio ** 5 * ref / math.expm1(c2 / (lam * temperature))
    return out


class Planckian(LightSource):
    """
    Full radiator at colour temperature ``temperature`` (K).

    Parameters:
        temperature: Colour temperature in kelvin (required, > 0).
        c2: Second radiation constant in nm·K (default ITS-90 value).

    Examples:
        src = Planckian(temperature=3200)
        spd = src.spectral_power(np.arange(400, 781, 5))
        src.set_param('temperature', 2700)
    """

    def __init__(
        self,
        temperature: Optional[Union[float, int]] = None,
        c2: Optional[Union[float, int]] = None,
        wavelength: Optional[AxisLike] = None,
        params: Optional[Dict[str, Union[float, int]]] = None,
        **kwargs: Union[float, int]
    ):
        p = params.copy() if params else {}
        if temperature is not None:
            p['temperature'] = temperature
        if c2 is not None:
            p['c2'] = c2
        p.update(kwargs)

        super().__init__(wavelength=wavelength, params=p)
        self._validate_params(required=['temperature'], optional={'c2': C2_ITS90})

    def _check_params(self) -> None:
        if self.params['temperature'] <= 0:
            raise ValidationError(
                f"Temperature must be > 0 K, got {self.params['temperature']}"
            )
        if self.params['c2'] <= 0:
            raise ValidationError(f"c2 must be > 0, got {self.params['c2']}")

    @property
    def temperature(self) -> float:
        return self.params['temperature']

    def _compute(self, wavelength: np.ndarray) -> np.ndarray:
        return relative_planck(
            wavelength, self.params['temperature'], self.params['c2'], REFERENCE_NM
        )


class CIEIlluminantA(Planckian):
    """
    CIE standard illuminant A (typical tungsten-filament light).

    Defined by the CIE closed form with T = 2848 K and c2 = 1.435e7 nm·K,
    which corresponds to a CCT of about 2856 K on the ITS-90 scale.
    """

    NOMINAL_CCT: float = 2856.0

    def __init__(self, wavelength: Optional[AxisLike] = None):
        super().__init__(temperature=2848.0, c2=C2_CIE_A, wavelength=wavelength)
