# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: lucent_errors.py — Exception hierarchy shared by every Lucent module.

Every error derives from ``LucentError`` *and* from the closest builtin, so
callers that already catch ``ValueError`` / ``KeyError`` keep working.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "LucentError",
    "ValidationError",
    "GridMismatchError",
    "DegenerateIlluminantError",
    "RangeError",
    "NotFoundError",
    "MissingIlluminantError",
    "DegenerateWhitePointError",
    "SimulationCancelledError",
]


class LucentError(Exception):
    """Root of the Lucent exception tree."""


class ValidationError(LucentError, ValueError):
    """Malformed input: empty names/SPDs, duplicates, bad shapes or parameters."""


class GridMismatchError(ValidationError):
    """Spectral operands are not sampled on the same wavelength grid."""


class DegenerateIlluminantError(ValidationError):
    """Illuminant has no luminance under the CMF (k-factor undefined)."""


class RangeError(LucentError, ValueError):
    """
    Wavelength coverage does not include the mandatory working range.

    Attributes:
        required: (min, max) span that had to be covered, in nm.
        available: (min, max) span actually supplied, in nm.
    """

    def __init__(
        self,
        message: str,
        required: Optional[tuple[float, float]] = None,
        available: Optional[tuple[float, float]] = None,
    ) -> None:
        super().__init__(message)
        self.required = required
        self.available = available


class NotFoundError(LucentError, KeyError):
    """Named illuminant is absent from the store."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the argument
        return f"Illuminant '{self.name}' not found."


class MissingIlluminantError(NotFoundError, ValidationError):
    """``update``/``delete`` of a name the store does not hold."""


class DegenerateWhitePointError(LucentError, ArithmeticError):
    """
    White point has a zero (or non-finite) cone response channel.

    Attributes:
        cone_response: The offending CAT02 response of the white point.
    """

    def __init__(self, message: str, cone_response: Optional[tuple[float, ...]] = None) -> None:
        super().__init__(message)
        self.cone_response = cone_response


class SimulationCancelledError(LucentError, RuntimeError):
    """The caller cancelled a batch before it completed."""
