# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Parametric and tabulated light sources.
"""

from typing import Dict

from .source import LightSource
from .planckian import Planckian, CIEIlluminantA
from .daylight import Daylight, CIEIlluminantD65
from .basic import EqualEnergy, TabulatedSource, CIEIlluminantF

__all__ = [
    "LightSource",
    "Planckian",
    "CIEIlluminantA",
    "Daylight",
    "CIEIlluminantD65",
    "EqualEnergy",
    "TabulatedSource",
    "CIEIlluminantF",
    "standard_illuminants",
]


def standard_illuminants() -> Dict[str, LightSource]:
    """The CIE illuminants every default store is seeded with, in display order."""
    return {
        "A": CIEIlluminantA(),
        "D50": Daylight.from_nominal(5000),
        "D55": Daylight.from_nominal(5500),
        "D65": CIEIlluminantD65(),
        "D75": Daylight.from_nominal(7500),
        "E": EqualEnergy(),
        "F2": CIEIlluminantF("F2"),
        "F7": CIEIlluminantF("F7"),
        "F11": CIEIlluminantF("F11"),
    }
