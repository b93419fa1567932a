# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later
"""

import numpy as np
import pytest

from light_sources import (
    CIEIlluminantA,
    CIEIlluminantD65,
    CIEIlluminantF,
    Daylight,
    EqualEnergy,
    Planckian,
    TabulatedSource,
    standard_illuminants,
)
from light_sources.daylight import daylight_locus_chromaticity, daylight_m_coefficients
from lucent_errors import ValidationError
from lucent_illuminants import IlluminantRecord
from lucent_loader import CIEDataset, load_cie_table
from lucent_spectraldata import working_grid


class TestPlanckian:
    def test_normalised_at_560(self):
        spd = Planckian(temperature=3200).spectral_power([400.0, 560.0, 700.0])
        assert spd[1] == pytest.approx(100.0)

    def test_low_temperature_rises_through_visible(self, grid):
        spd = Planckian(temperature=2700).spectral_power(grid)
        assert np.all(np.diff(spd) > 0)

    def test_params_api(self):
        src = Planckian(params={"temperature": 3000}, temperature=3500)
        assert src.temperature == 3500.0
        assert src.get_params()["c2"] == pytest.approx(1.4388e7)

    def test_set_param_invalidates_cache(self, grid):
        src = Planckian(temperature=3000, wavelength=grid)
        before = src.spectral_power()
        src.set_param("temperature", 6000)
        after = src.spectral_power()
        assert after[0] > before[0]

    def test_set_param_validation(self):
        src = Planckian(temperature=3000)
        with pytest.raises(TypeError):
            src.set_param("temperature", "hot")
        with pytest.raises(ValidationError):
            src.set_param("colour", 1.0)
        with pytest.raises(ValidationError):
            src.set_param("temperature", -5.0)
        assert src.temperature == 3000.0

    def test_requires_temperature(self):
        with pytest.raises(ValidationError):
            Planckian()

    def test_needs_grid(self):
        with pytest.raises(ValidationError):
            Planckian(temperature=3000).spectral_power()

    def test_spd_is_read_only(self, grid):
        spd = Planckian(temperature=3000).spectral_power(grid)
        assert not spd.flags.writeable


class TestCIEIlluminantA:
    @pytest.mark.parametrize(
        "nm, expected",
        [(400.0, 14.708), (500.0, 59.8611), (560.0, 100.0), (600.0, 129.043), (780.0, 241.675)],
    )
    def test_published_values(self, nm, expected):
        spd = CIEIlluminantA().spectral_power([nm, nm + 1.0])
        assert spd[0] == pytest.approx(expected, rel=1e-4)


class TestDaylight:
    def test_d65_chromaticity(self):
        x, y = daylight_locus_chromaticity(6504.0)
        assert x == pytest.approx(0.31271, abs=2e-4)
        assert y == pytest.approx(0.32902, abs=5e-4)

    def test_m_coefficients_for_d65(self):
        m1, m2 = daylight_m_coefficients(*daylight_locus_chromaticity(6504.0))
        assert m1 == pytest.approx(-0.296, abs=5e-3)
        assert m2 == pytest.approx(-0.688, abs=1e-2)

    def test_basis_reconstruction_tracks_table(self):
        table = load_cie_table(CIEDataset.ILLUMINANT_D65)
        nodes = np.array([400.0, 450.0, 500.0, 560.0, 600.0, 700.0])
        reconstructed = Daylight.from_nominal(6500).spectral_power(nodes)
        tabulated = np.interp(nodes, table.wavelength.values, table.values)
        assert np.allclose(reconstructed, tabulated, rtol=1e-2)

    @pytest.mark.parametrize("cct", [3000.0, 30000.0])
    def test_cct_range(self, cct):
        with pytest.raises(ValidationError):
            Daylight(cct=cct)
        with pytest.raises(ValidationError):
            daylight_locus_chromaticity(cct)

    def test_d65_table_source(self, grid):
        spd = CIEIlluminantD65().spectral_power(grid)
        assert spd[0] == pytest.approx(82.7549)
        assert spd[32] == pytest.approx(100.0)


class TestBasicSources:
    def test_equal_energy(self, grid):
        assert np.array_equal(EqualEnergy().spectral_power(grid), np.full(77, 100.0))
        with pytest.raises(ValidationError):
            EqualEnergy(level=0)

    def test_tabulated(self):
        src = TabulatedSource([450.0, 500.0, 550.0], [10.0, 40.0, 20.0], scale=2.0)
        spd = src.spectral_power([400.0, 450.0, 500.0, 550.0, 600.0])
        assert np.allclose(spd, [0.0, 20.0, 80.0, 40.0, 0.0])

    def test_tabulated_validation(self):
        with pytest.raises(ValidationError):
            TabulatedSource([450.0, 500.0], [1.0, 2.0, 3.0])
        with pytest.raises(ValidationError):
            TabulatedSource([450.0, 500.0], [1.0, np.nan])

    def test_fluorescent_table_nodes(self):
        f11 = CIEIlluminantF("F11")
        # Table nodes are reproduced exactly
        spd = f11.spectral_power([440.0, 540.0, 610.0])
        assert np.allclose(spd, [12.13, 39.59, 55.27])
        assert f11.series == "F11"

    def test_fluorescent_is_non_negative_between_nodes(self, grid):
        for series in CIEIlluminantF.SERIES:
            spd = CIEIlluminantF(series).spectral_power(grid)
            assert spd.min() >= 0.0

    def test_fluorescent_unknown_series(self):
        with pytest.raises(ValidationError, match="F2, F7, F11"):
            CIEIlluminantF("F1")


def test_to_record(grid):
    record = EqualEnergy(level=50).to_record("E50", grid)
    assert isinstance(record, IlluminantRecord)
    assert record.name == "E50"
    assert record.wavelength == grid
    assert np.all(record.values == 50.0)


def test_standard_illuminants():
    sources = standard_illuminants()
    assert list(sources) == ["A", "D50", "D55", "D65", "D75", "E", "F2", "F7", "F11"]
    grid = working_grid()
    for source in sources.values():
        spd = source.spectral_power(grid)
        assert np.all(np.isfinite(spd))
        assert np.all(spd > 0.0)
