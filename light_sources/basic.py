# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: basic.py — Equal-energy, tabulated and CIE fluorescent light sources.
"""

import numpy as np
from typing import Dict, Union, Optional, Sequence

from lucent_errors import ValidationError
from lucent_loader import CIEDataset, load_cie_table
from lucent_spectraldata import AxisLike, WavelengthAxis, resample

from .source import LightSource

__all__ = ["EqualEnergy", "TabulatedSource", "CIEIlluminantF"]


class EqualEnergy(LightSource):
    """
    CIE illuminant E: constant power at every wavelength.

    Parameters:
        level: Relative power (default 100, must be > 0).
    """

    def __init__(
        self,
        level: Optional[Union[float, int]] = None,
        wavelength: Optional[AxisLike] = None,
        params: Optional[Dict[str, Union[float, int]]] = None,
        **kwargs: Union[float, int]
    ):
        p = params.copy() if params else {}
        if level is not None:
            p['level'] = level
        p.update(kwargs)

        super().__init__(wavelength=wavelength, params=p)
        self._validate_params(optional={'level': 100.0})

    def _check_params(self) -> None:
        if self.params['level'] <= 0:
            raise ValidationError(f"Level must be > 0, got {self.params['level']}")

    @property
    def level(self) -> float:
        return self.params['level']

    def _compute(self, wavelength: np.ndarray) -> np.ndarray:
        return np.full(wavelength.shape, self.params['level'], dtype=np.float64)


class TabulatedSource(LightSource):
    """
    Light source from measured samples (LED, fluorescent, projector lamp).

    The table is resampled with PCHIP onto the requested grid; requested
    wavelengths outside the measured span are 0.

    Parameters:
        source_wavelength: Measured wavelengths (nm), strictly increasing.
        source_values: Measured relative powers, same length.
        scale: Multiplier applied to the samples (default 1.0).

    Examples:
        led = TabulatedSource([400, 450, 500, 600, 700], [2, 90, 30, 60, 10])
        spd = led.spectral_power(np.arange(400, 701, 5))
        led.set_param('scale', 0.5)
    """

    def __init__(
        self,
        source_wavelength: AxisLike,
        source_values: Union[np.ndarray, Sequence[float]],
        scale: Optional[Union[float, int]] = None,
        wavelength: Optional[AxisLike] = None,
        params: Optional[Dict[str, Union[float, int]]] = None,
        **kwargs: Union[float, int]
    ):
        p = params.copy() if params else {}
        if scale is not None:
            p['scale'] = scale
        p.update(kwargs)

        super().__init__(wavelength=wavelength, params=p)
        self._validate_params(optional={'scale': 1.0})

        # Raw data (not in params - these are arrays)
        self.source_wavelength = WavelengthAxis.coerce(source_wavelength)
        values = np.array(source_values, dtype=np.float64)
        if values.shape != (len(self.source_wavelength),):
            raise ValidationError(
                f"TabulatedSource: {values.size} values for "
                f"{len(self.source_wavelength)} wavelengths."
            )
        if not np.all(np.isfinite(values)):
            raise ValidationError("TabulatedSource: values must be finite.")
        values.flags.writeable = False
        self.source_values = values

    def _check_params(self) -> None:
        if self.params['scale'] <= 0:
            raise ValidationError(f"Scale must be > 0, got {self.params['scale']}")

    def _compute(self, wavelength: np.ndarray) -> np.ndarray:
        spd = resample(self.source_wavelength, self.source_values, wavelength,
                       label="tabulated source")
        return spd * self.params['scale']


class CIEIlluminantF(TabulatedSource):
    """
    CIE fluorescent illuminants from the bundled 10 nm table.

    ``series`` picks the lamp: F2 (cool white), F7 (broadband daylight)
    or F11 (narrow triband).
    """

    SERIES = ("F2", "F7", "F11")

    def __init__(
        self,
        series: str = "F2",
        scale: Optional[Union[float, int]] = None,
        wavelength: Optional[AxisLike] = None,
    ):
        if series not in self.SERIES:
            raise ValidationError(
                f"Unknown fluorescent series {series!r}; choose one of {', '.join(self.SERIES)}."
            )
        table = load_cie_table(CIEDataset.FLUORESCENT)
        column = self.SERIES.index(series)
        super().__init__(table.wavelength, table.values[:, column], scale=scale,
                         wavelength=wavelength)
        self.series = series
