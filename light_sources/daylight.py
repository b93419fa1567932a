# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: daylight.py — CIE D-series daylight illuminants.

Architecture:
  CCT  ->  (x_D, y_D) on the daylight locus      (CIE 15:2004 Eq. 3.3, 3.4)
       ->  (M1, M2)                               (Eq. 3.6)
       ->  S = S0 + M1·S1 + M2·S2 on 360–830 nm   (Eq. 3.5)
       ->  PCHIP onto the requested grid
"""

import numpy as np
from typing import Dict, Tuple, Union, Optional

from lucent_errors import ValidationError
from lucent_loader import CIEDataset, load_cie_table
from lucent_spectraldata import AxisLike, resample

from .source import LightSource

__all__ = [
    "Daylight",
    "CIEIlluminantD65",
    "daylight_locus_chromaticity",
    "daylight_m_coefficients",
]

DAYLIGHT_CCT_MIN: float = 4000.0
DAYLIGHT_CCT_MAX: float = 25000.0

# Nominal D-series names (D50, D65, ...) date from c2 = 1.4380e7
_NOMINAL_CCT_SCALE: float = 1.4388 / 1.4380


def daylight_locus_chromaticity(cct: float) -> Tuple[float, float]:
    """Chromaticity (x_D, y_D) of daylight with correlated colour temperature *cct*."""
    if cct < DAYLIGHT_CCT_MIN or cct > DAYLIGHT_CCT_MAX:
        raise ValidationError(
            f"Daylight CCT {cct} K out of range "
            f"[{DAYLIGHT_CCT_MIN:g}, {DAYLIGHT_CCT_MAX:g}]"
        )

    if cct <= 7000.0:
        x = (-4.6070e9 / cct**3 +
              2.9678e6 / cct**2 +
              0.09911e3 / cct +
              0.244063)
    else:
        x = (-2.0064e9 / cct**3 +
              1.9018e6 / cct**2 +
              0.24748e3 / cct +
              0.237040)

    y = -3.000 * x**2 + 2.870 * x - 0.275
    return x, y


def daylight_m_coefficients(x_d: float, y_d: float) -> Tuple[float, float]:
    denominator = 0.0241 + 0.2562 * x_d - 0.7341 * y_d
    m1 = (-1.3515 - 1.7703 * x_d + 5.9114 * y_d) / denominator
    m2 = (0.0300 - 31.4424 * x_d + 30.0717 * y_d) / denominator
    return m1, m2


class Daylight(LightSource):
    """
    CIE daylight illuminant for a correlated colour temperature.

    Parameters:
        cct: Correlated colour temperature in kelvin, 4000–25000.

    Examples:
        d55 = Daylight.from_nominal(5500)
        spd = d55.spectral_power(np.arange(400, 781, 5))
    """

    def __init__(
        self,
        cct: Optional[Union[float, int]] = None,
        wavelength: Optional[AxisLike] = None,
        params: Optional[Dict[str, Union[float, int]]] = None,
        **kwargs: Union[float, int]
    ):
        p = params.copy() if params else {}
        if cct is not None:
            p['cct'] = cct
        p.update(kwargs)

        super().__init__(wavelength=wavelength, params=p)
        self._validate_params(required=['cct'])

    @classmethod
    def from_nominal(cls, nominal_cct: float, wavelength: Optional[AxisLike] = None) -> "Daylight":
        """Build D50/D55/D75 style illuminants from their nominal temperature."""
        return cls(cct=nominal_cct * _NOMINAL_CCT_SCALE, wavelength=wavelength)

    def _check_params(self) -> None:
        cct = self.params['cct']
        if cct < DAYLIGHT_CCT_MIN or cct > DAYLIGHT_CCT_MAX:
            raise ValidationError(
                f"Daylight CCT {cct} K out of range "
                f"[{DAYLIGHT_CCT_MIN:g}, {DAYLIGHT_CCT_MAX:g}]"
            )

    @property
    def cct(self) -> float:
        return self.params['cct']

    @property
    def chromaticity(self) -> Tuple[float, float]:
        return daylight_locus_chromaticity(self.params['cct'])

    def _compute(self, wavelength: np.ndarray) -> np.ndarray:
        m1, m2 = daylight_m_coefficients(*self.chromaticity)
        basis = load_cie_table(CIEDataset.DAYLIGHT_BASIS)
        spd = basis.values[:, 0] + m1 * basis.values[:, 1] + m2 * basis.values[:, 2]
        return resample(basis.wavelength, spd, wavelength, label=f"D{self.cct:.0f}")


class CIEIlluminantD65(LightSource):
    """CIE standard illuminant D65 from the published table (not the basis)."""

    def __init__(self, wavelength: Optional[AxisLike] = None):
        super().__init__(wavelength=wavelength)

    def _compute(self, wavelength: np.ndarray) -> np.ndarray:
        table = load_cie_table(CIEDataset.ILLUMINANT_D65)
        return resample(table.wavelength, table.values, wavelength, label="D65")
