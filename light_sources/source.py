# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: source.py — Base class for light sources.

  - Hybrid parameter API: dict-based and keyword parameters
  - Single source of truth: self.params holds every scalar parameter
  - Centralized cache invalidation through set_param()
  - Validation helpers for consistent parameter checking
"""

import numpy as np
from typing import Dict, Union, Optional, List

from lucent_errors import ValidationError
from lucent_spectraldata import AxisLike, WavelengthAxis


class LightSource:
    """
    Base class for light sources with a relative spectral power distribution.

    Subclasses override ``_compute(wavelength)``.  After
    ``spectral_power(wavelength)`` is called the result is cached in
    ``self.spd`` (read-only float64 ndarray) until the grid or a parameter
    changes.

    Attributes:
        params : Dict[str, float]
            Source parameters (single source of truth).
        wavelength : np.ndarray | None
            Current wavelength grid (nm). None if not yet set.
        spd : np.ndarray | None
            Cached SPD on ``wavelength``.
    """

    def __init__(
        self,
        wavelength: Optional[AxisLike] = None,
        params: Optional[Dict[str, Union[float, int]]] = None,
        **kwargs: Union[float, int]
    ):
        """
        Examples:
            # Dict-based (good for config files)
            Planckian(params={'temperature': 3200})

            # Keyword-based
            Planckian(temperature=3200)

            # Hybrid (kwargs override params)
            Planckian(params={'temperature': 3200}, temperature=3000)
        """
        merged = {**(params or {}), **kwargs}
        self.params: Dict[str, float] = {}
        for k, v in merged.items():
            if not isinstance(v, (int, float, np.number)):
                raise TypeError(
                    f"Parameter '{k}' must be numeric, got {type(v).__name__}"
                )
            self.params[k] = float(v)

        self.wavelength: Optional[np.ndarray] = None
        self.spd: Optional[np.ndarray] = None

        if wavelength is not None:
            self.set_wavelength_range(wavelength)

    def _validate_params(
        self,
        required: Optional[List[str]] = None,
        optional: Optional[Dict[str, float]] = None
    ) -> None:
        """
        Check required parameters and fill in defaults for optional ones.

        Raises:
            ValidationError: If a required parameter is missing.
        """
        if required:
            for param in required:
                if param not in self.params:
                    raise ValidationError(
                        f"Parameter '{param}' is required for {self.__class__.__name__}."
                    )
        if optional:
            for param, default in optional.items():
                self.params.setdefault(param, default)
        self._check_params()

    def _check_params(self) -> None:
        """Override in subclass: raise ValidationError on unphysical values."""

    def set_wavelength_range(self, wavelength: AxisLike) -> None:
        self.wavelength = WavelengthAxis.coerce(wavelength).values
        self.spd = None

    def spectral_power(self, wavelength: Optional[AxisLike] = None) -> np.ndarray:
        """
        Relative SPD on *wavelength* (or the grid set earlier).

        Returns:
            Read-only float64 ndarray of shape (n_wavelengths,).
        """
        if wavelength is not None:
            self.set_wavelength_range(wavelength)
        if self.wavelength is None:
            raise ValidationError(
                f"{self.__class__.__name__}: no wavelength grid set."
            )
        if self.spd is None:
            spd = np.array(self._compute(self.wavelength), dtype=np.float64)
            spd.flags.writeable = False
            self.spd = spd
        return self.spd

    def _compute(self, wavelength: np.ndarray) -> np.ndarray:
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement _compute()"
        )

    def get_params(self) -> Dict[str, float]:
        return self.params.copy()

    def set_param(self, param_name: str, value: Union[float, int]) -> None:
        """
        Set a parameter by name with cache invalidation.

        Raises:
            TypeError: If value is not numeric.
            ValidationError: If the name is unknown or the value unphysical.
        """
        if not isinstance(value, (int, float, np.number)):
            raise TypeError(
                f"Parameter '{param_name}' must be numeric, got {type(value).__name__}"
            )
        if param_name not in self.params:
            raise ValidationError(
                f"{self.__class__.__name__} has no parameter '{param_name}'."
            )
        old = self.params[param_name]
        self.params[param_name] = float(value)
        try:
            self._check_params()
        except ValidationError:
            self.params[param_name] = old
            raise
        self.spd = None

    def to_record(self, name: str, wavelength: Optional[AxisLike] = None):
        """Sample the source and wrap it as an ``IlluminantRecord``."""
        from lucent_illuminants import IlluminantRecord

        spd = self.spectral_power(wavelength)
        return IlluminantRecord(name, WavelengthAxis(self.wavelength), spd)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v:g}" for k, v in self.params.items())
        return f"{self.__class__.__name__}({inner})"
