# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Shared pytest fixtures.
"""

import numpy as np
import pytest

from lucent_illuminants import IlluminantStore
from lucent_spectraldata import WavelengthAxis, working_grid


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def grid() -> WavelengthAxis:
    return working_grid()


@pytest.fixture
def cube_axis() -> WavelengthAxis:
    """A 10 nm scanner axis that overshoots the visible range on both ends."""
    return WavelengthAxis.from_range(380.0, 800.0, 10.0)


@pytest.fixture
def small_cube(rng, cube_axis) -> np.ndarray:
    """4x5 pixel reflectance cube with smooth, positive spectra."""
    wl = cube_axis.values
    centres = rng.uniform(420.0, 720.0, size=(4, 5, 1))
    base = rng.uniform(0.05, 0.2, size=(4, 5, 1))
    return base + 0.7 * np.exp(-0.5 * ((wl - centres) / 40.0) ** 2)


@pytest.fixture
def store() -> IlluminantStore:
    """In-memory store: two well-behaved SPDs and a dark one."""
    s = IlluminantStore()
    wl = s.default_wavelength.values
    s.add("Flat", np.full(wl.shape, 100.0))
    s.add("Warm", 20.0 + 0.4 * (wl - 400.0))
    s.add("Dark", np.zeros(wl.shape))
    return s
