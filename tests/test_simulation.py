# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later
"""

import logging
import threading
from types import MappingProxyType

import numpy as np
import pytest

import lucent_simulation
from lucent_config import SimulationConfig
from lucent_errors import (
    DegenerateIlluminantError,
    DegenerateWhitePointError,
    NotFoundError,
    RangeError,
    SimulationCancelledError,
    ValidationError,
)
from lucent_loader import load_cmf
from lucent_simulation import simulate_illumination


class _TripAfter(threading.Event):
    """Event that reports itself set from the (n+1)-th check on."""

    def __init__(self, n):
        super().__init__()
        self._remaining = n

    def is_set(self):
        self._remaining -= 1
        return self._remaining < 0


def _assert_image(img, shape):
    assert img.shape == shape + (3,)
    assert img.dtype == np.float64
    assert np.all(np.isfinite(img))
    assert img.min() >= 0.0 and img.max() <= 1.0


class TestHappyPath:
    def test_default_store(self, small_cube, cube_axis):
        result = simulate_illumination(small_cube, cube_axis, ["D65", "A"], 2.4, 0.9)
        assert list(result.simple_illum) == ["D65", "A"]
        assert list(result.adapted_images) == ["D65", "A"]
        assert result.ok
        for name in ("D65", "A"):
            _assert_image(result.simple_illum[name], (4, 5))
            _assert_image(result.adapted_images[name], (4, 5))
            assert result.white_points[name][1] == pytest.approx(100.0)
        assert len(result.working_wavelength) == 77

    def test_default_store_fluorescent(self, small_cube, cube_axis):
        result = simulate_illumination(small_cube, cube_axis, ["F11", "F2"], 2.4, 0.9)
        assert result.ok and list(result.adapted_images) == ["F11", "F2"]
        _assert_image(result.simple_illum["F11"], (4, 5))

    def test_request_order_is_kept(self, small_cube, cube_axis, store):
        result = simulate_illumination(small_cube, cube_axis, ["Warm", "Flat"], 2.2, 0.5,
                                       store=store)
        assert list(result.simple_illum) == ["Warm", "Flat"]

    def test_input_cube_untouched(self, small_cube, cube_axis, store):
        before = small_cube.copy()
        simulate_illumination(small_cube, cube_axis, ["Flat"], 2.4, 0.9, store=store)
        assert np.array_equal(small_cube, before)

    def test_images_are_fresh_arrays(self, small_cube, cube_axis, store):
        result = simulate_illumination(small_cube, cube_axis, ["Flat"], 2.4, 0.9, store=store)
        assert result.simple_illum["Flat"].flags.writeable
        assert not np.shares_memory(result.simple_illum["Flat"], result.adapted_images["Flat"])

    def test_zero_adaptation_matches_simple(self, small_cube, cube_axis, store):
        result = simulate_illumination(small_cube, cube_axis, ["Warm"], 2.4, 0.0, store=store)
        assert np.allclose(result.adapted_images["Warm"], result.simple_illum["Warm"], atol=1e-6)

    def test_repeatable(self, small_cube, cube_axis, store):
        a = simulate_illumination(small_cube, cube_axis, ["Warm"], 2.4, 0.9, store=store)
        b = simulate_illumination(small_cube, cube_axis, ["Warm"], 2.4, 0.9, store=store)
        assert np.array_equal(a.adapted_images["Warm"], b.adapted_images["Warm"])

    def test_config_supplies_defaults(self, small_cube, cube_axis, store):
        cfg = SimulationConfig(gamma=1.0, degree_of_adaptation=0.0)
        by_cfg = simulate_illumination(small_cube, cube_axis, ["Warm"], store=store, config=cfg)
        explicit = simulate_illumination(small_cube, cube_axis, ["Warm"], 1.0, 0.0, store=store)
        assert np.array_equal(by_cfg.simple_illum["Warm"], explicit.simple_illum["Warm"])

    def test_explicit_cmf_and_plain_provider(self, small_cube, cube_axis, store):
        class Provider:
            def snapshot(self):
                return MappingProxyType({"Flat": store.get("Flat")})

        cmf = load_cmf()
        result = simulate_illumination(small_cube, cube_axis, ["Flat"], 2.4, 0.9,
                                       store=Provider(), cmf=(cmf.wavelength, cmf.values))
        assert "Flat" in result.simple_illum

    def test_empty_request(self, small_cube, cube_axis, store):
        result = simulate_illumination(small_cube, cube_axis, [], 2.4, 0.9, store=store)
        assert result.simple_illum == {} and result.ok

    def test_threaded_matches_serial(self, small_cube, cube_axis, store):
        names = ["Flat", "Warm"]
        serial = simulate_illumination(small_cube, cube_axis, names, 2.4, 0.9, store=store)
        threaded = simulate_illumination(small_cube, cube_axis, names, 2.4, 0.9, store=store,
                                         max_workers=4)
        assert list(threaded.simple_illum) == names
        for n in names:
            assert np.array_equal(serial.simple_illum[n], threaded.simple_illum[n])
            assert np.array_equal(serial.adapted_images[n], threaded.adapted_images[n])


class TestGuards:
    def test_range_checked_first(self, store):
        # Bad cube and unknown name too: the coverage error must win
        with pytest.raises(RangeError):
            simulate_illumination(np.ones((2, 2)), np.arange(450.0, 701.0, 10.0),
                                  ["Nope"], 2.4, 0.9, store=store)

    def test_cube_must_be_3d(self, cube_axis, store):
        with pytest.raises(ValidationError):
            simulate_illumination(np.ones((5, len(cube_axis))), cube_axis, ["Flat"], 2.4, 0.9,
                                  store=store)

    def test_band_mismatch(self, small_cube, store):
        axis = np.linspace(400.0, 780.0, small_cube.shape[2] + 1)
        with pytest.raises(ValidationError):
            simulate_illumination(small_cube, axis, ["Flat"], 2.4, 0.9, store=store)

    def test_non_finite_cube(self, small_cube, cube_axis, store):
        cube = small_cube.copy()
        cube[0, 0, 3] = np.nan
        with pytest.raises(ValidationError):
            simulate_illumination(cube, cube_axis, ["Flat"], 2.4, 0.9, store=store)

    def test_duplicate_names(self, small_cube, cube_axis, store):
        with pytest.raises(ValidationError, match="Duplicate"):
            simulate_illumination(small_cube, cube_axis, ["Flat", "Flat"], 2.4, 0.9, store=store)

    def test_unknown_name(self, small_cube, cube_axis, store):
        with pytest.raises(NotFoundError) as excinfo:
            simulate_illumination(small_cube, cube_axis, ["Flat", "Nope"], 2.4, 0.9, store=store)
        assert excinfo.value.name == "Nope"

    @pytest.mark.parametrize("gamma, degree", [(0.0, 0.9), (2.4, 1.5)])
    def test_bad_gamma_or_degree(self, small_cube, cube_axis, store, gamma, degree):
        with pytest.raises(ValidationError):
            simulate_illumination(small_cube, cube_axis, ["Flat"], gamma, degree, store=store)


class TestIsolation:
    def test_dark_illuminant_is_isolated(self, small_cube, cube_axis, store):
        result = simulate_illumination(small_cube, cube_axis, ["Flat", "Dark", "Warm"],
                                       2.4, 0.9, store=store)
        assert list(result.simple_illum) == ["Flat", "Warm"]
        assert list(result.adapted_images) == ["Flat", "Warm"]
        failure = result.failures["Dark"]
        assert failure.stage == "tristimulus"
        assert isinstance(failure.error, DegenerateIlluminantError)
        assert not result.ok

    def test_out_of_range_spd_degenerates(self, small_cube, cube_axis, store):
        store.add("Infrared", [1.0, 2.0, 1.0], [800.0, 850.0, 900.0])
        result = simulate_illumination(small_cube, cube_axis, ["Infrared"], 2.4, 0.9,
                                       store=store)
        assert result.failures["Infrared"].stage == "tristimulus"

    def test_degenerate_white_keeps_simple_image(self, small_cube, cube_axis, store, monkeypatch):
        real_adapt = lucent_simulation.ChromaticAdaptation.adapt

        def adapt(xyz, white, degree):
            if white[0] < white[2]:
                raise DegenerateWhitePointError("zero cone response", cone_response=(0.0, 1.0, 1.0))
            return real_adapt(xyz, white, degree)

        monkeypatch.setattr(lucent_simulation.ChromaticAdaptation, "adapt", staticmethod(adapt))
        blue = store.default_wavelength.values
        store.add("Blue", 800.0 - blue)
        store.add("Red", blue - 390.0)

        result = simulate_illumination(small_cube, cube_axis, ["Blue", "Red"], 2.4, 0.9,
                                       store=store)
        assert list(result.simple_illum) == ["Blue", "Red"]
        assert list(result.adapted_images) == ["Red"]
        assert result.failures["Blue"].stage == "adapted"
        assert "Blue" in result.white_points

    def test_zero_cone_response_through_real_gains(self, small_cube, cube_axis, store,
                                                   monkeypatch):
        # A spectral white always has Y = 100, and every CAT02 row mixes all
        # three of X, Y, Z with non-dyadic weights, so no SPD/CMF pair lands a
        # cone channel on exactly 0.0. The white is therefore replaced right
        # after integration; gains() and the isolation path run unpatched.
        real_tristimulus = lucent_simulation.TristimulusCalculator.tristimulus

        def tristimulus(self, reflectance, spd, wavelength=None):
            xyz, white = real_tristimulus(self, reflectance, spd, wavelength)
            if spd[-1] > spd[0]:
                white = np.zeros(3)
            return xyz, white

        monkeypatch.setattr(lucent_simulation.TristimulusCalculator, "tristimulus", tristimulus)
        cmf = load_cmf()
        result = simulate_illumination(small_cube, cube_axis, ["Flat", "Warm"], 2.4, 0.9,
                                       store=store, cmf=(cmf.wavelength, cmf.values))
        assert list(result.simple_illum) == ["Flat", "Warm"]
        assert list(result.adapted_images) == ["Flat"]
        failure = result.failures["Warm"]
        assert failure.stage == "adapted"
        assert isinstance(failure.error, DegenerateWhitePointError)
        assert failure.error.cone_response == (0.0, 0.0, 0.0)
        _assert_image(result.simple_illum["Warm"], (4, 5))

    def test_fail_fast(self, small_cube, cube_axis, store):
        with pytest.raises(DegenerateIlluminantError):
            simulate_illumination(small_cube, cube_axis, ["Flat", "Dark"], 2.4, 0.9,
                                  store=store, fail_fast=True)

    def test_fail_fast_from_config_threaded(self, small_cube, cube_axis, store):
        cfg = SimulationConfig(fail_fast=True, max_workers=3)
        with pytest.raises(DegenerateIlluminantError):
            simulate_illumination(small_cube, cube_axis, ["Flat", "Dark", "Warm"],
                                  store=store, config=cfg)


class TestCancellation:
    def test_cancel_before_start(self, small_cube, cube_axis, store):
        event = threading.Event()
        event.set()
        with pytest.raises(SimulationCancelledError):
            simulate_illumination(small_cube, cube_axis, ["Flat"], 2.4, 0.9,
                                  store=store, cancel_event=event)

    def test_cancel_mid_batch_gives_no_result(self, small_cube, cube_axis, store):
        # Checks: before resampling, before "Flat", before "Warm" -> trips here
        event = _TripAfter(2)
        with pytest.raises(SimulationCancelledError):
            simulate_illumination(small_cube, cube_axis, ["Flat", "Warm"], 2.4, 0.9,
                                  store=store, cancel_event=event)

    def test_cancel_threaded(self, small_cube, cube_axis, store):
        # Passes the pre-resampling check, trips inside the workers
        event = _TripAfter(1)
        with pytest.raises(SimulationCancelledError):
            simulate_illumination(small_cube, cube_axis, ["Flat", "Warm"], 2.4, 0.9,
                                  store=store, cancel_event=event, max_workers=2)


def test_coarse_working_grid_accepts_visible_cube(small_cube, cube_axis, store):
    cfg = SimulationConfig(working_step=150.0)
    result = simulate_illumination(small_cube, cube_axis, ["Flat"], store=store, config=cfg)
    assert result.working_wavelength.bounds == (400.0, 700.0)
    assert "Flat" in result.simple_illum


class TestLogging:
    def test_white_point_chromaticity_only_at_debug(self, small_cube, cube_axis, store,
                                                    monkeypatch, caplog):
        calls = []
        real = lucent_simulation.xyz_to_xy
        monkeypatch.setattr(lucent_simulation, "xyz_to_xy",
                            lambda xyz: calls.append(1) or real(xyz))

        caplog.set_level(logging.INFO, logger="lucent.simulation")
        simulate_illumination(small_cube, cube_axis, ["Flat"], 2.4, 0.9, store=store)
        assert calls == []

        caplog.set_level(logging.DEBUG, logger="lucent.simulation")
        simulate_illumination(small_cube, cube_axis, ["Flat"], 2.4, 0.9, store=store)
        assert calls == [1]
        assert "white point xyY" in caplog.text
