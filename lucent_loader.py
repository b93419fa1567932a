# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: lucent_loader.py — Read-only inputs for the simulation.

Supplies the bundled CIE tables (colour-matching functions, D65, daylight
basis), reflectance cubes and user spectra.  CIE tables are parsed once and
memoised; every array handed out is flagged read-only so it can be shared
between simulation calls and worker threads.
"""

from __future__ import annotations

import enum
import functools
import json
import logging
import warnings
from pathlib import Path
from typing import Dict, NamedTuple, Optional, Tuple, Union

import numpy as np

from lucent_errors import ValidationError
from lucent_spectraldata import AxisLike, WavelengthAxis

__all__ = [
    "DATA_DIR",
    "REFLECTANCE_SOFT_MAX",
    "CIEDataset",
    "SpectralTable",
    "ReflectanceData",
    "load_cie_table",
    "load_cmf",
    "load_reflectance",
    "load_spectrum_json",
    "load_spectrum_csv",
]

logger = logging.getLogger("lucent.loader")

PathLike = Union[str, Path]

DATA_DIR: Path = Path(__file__).resolve().parent / "data" / "CIE"

# Reflectance factors above this are noise, not physics
REFLECTANCE_SOFT_MAX: float = 1.2


class CIEDataset(enum.Enum):
    CMF_1931_2DEG = "cmf/cie1931_2deg_5nm.json"
    ILLUMINANT_D65 = "illuminants/cie_d65_5nm.json"
    DAYLIGHT_BASIS = "illuminants/cie_daylight_basis_5nm.json"
    FLUORESCENT = "illuminants/cie_fluorescent_10nm.json"


# Column keys per dataset, in output column order
KEY_MAPPINGS: Dict[CIEDataset, Tuple[str, ...]] = {
    CIEDataset.CMF_1931_2DEG:  ("x_bar(lambda)", "y_bar(lambda)", "z_bar(lambda)"),
    CIEDataset.ILLUMINANT_D65: ("S(lambda)",),
    CIEDataset.DAYLIGHT_BASIS: ("S0(lambda)", "S1(lambda)", "S2(lambda)"),
    CIEDataset.FLUORESCENT:    ("F2(lambda)", "F7(lambda)", "F11(lambda)"),
}


class SpectralTable(NamedTuple):
    """Tabulated spectral data: ``values`` is (bands,) or (bands, k)."""
    wavelength: WavelengthAxis
    values: np.ndarray


class ReflectanceData(NamedTuple):
    """A reflectance cube (H, W, bands) and its wavelength axis."""
    cube: np.ndarray
    wavelength: WavelengthAxis


def _freeze(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


def _parse_cie_json(content: dict, keys: Tuple[str, ...], origin: str) -> SpectralTable:
    data_block = content.get("data", content)
    try:
        wl = np.array(data_block["lambda"]["values"], dtype=np.float64)
        columns = [np.array(data_block[k]["values"], dtype=np.float64) for k in keys]
    except KeyError as e:
        raise ValidationError(f"JSON key error in {origin}: missing key {e}") from e

    for k, col in zip(keys, columns):
        if col.shape != wl.shape:
            raise ValidationError(
                f"{origin}: column '{k}' has {col.shape[0]} samples, "
                f"lambda has {wl.shape[0]}."
            )
    values = columns[0] if len(columns) == 1 else np.stack(columns, axis=1)
    return SpectralTable(WavelengthAxis(wl), _freeze(values))


@functools.lru_cache(maxsize=None)
def load_cie_table(dataset: CIEDataset) -> SpectralTable:
    """
    Load one bundled CIE table.  Parsed once per process.

    Raises:
        FileNotFoundError: the data file is missing from the install.
        ValidationError: the file does not have the expected layout.
    """
    path = DATA_DIR / dataset.value
    with open(path, "r", encoding="utf-8") as f:
        content = json.load(f)
    table = _parse_cie_json(content, KEY_MAPPINGS[dataset], str(path))
    logger.debug("Loaded %s: %r", dataset.name, table.wavelength)
    return table


def load_cmf() -> SpectralTable:
    """CIE 1931 2° colour-matching functions, 360–830 nm at 5 nm, shape (95, 3)."""
    return load_cie_table(CIEDataset.CMF_1931_2DEG)


def load_reflectance(
    path: PathLike,
    wavelength: Optional[AxisLike] = None,
) -> ReflectanceData:
    """
    Read a reflectance cube from ``.npz`` or ``.npy``.

    ``.npz`` archives must contain ``cube`` and either ``wavelength`` or
    ``wl``; an explicit *wavelength* argument overrides the stored axis.
    ``.npy`` files hold only the cube, so *wavelength* is required.

    Values above ``REFLECTANCE_SOFT_MAX`` are kept but reported with a
    ``UserWarning``.
    """
    p = Path(path)
    suffix = p.suffix.lower()

    if suffix == ".npz":
        with np.load(p) as archive:
            if "cube" not in archive.files:
                raise ValidationError(f"{p}: archive has no 'cube' array.")
            cube = np.asarray(archive["cube"], dtype=np.float64)
            stored_wl = None
            for key in ("wavelength", "wl"):
                if key in archive.files:
                    stored_wl = np.asarray(archive[key], dtype=np.float64)
                    break
        axis_src = wavelength if wavelength is not None else stored_wl
    elif suffix == ".npy":
        cube = np.asarray(np.load(p), dtype=np.float64)
        axis_src = wavelength
    else:
        raise ValidationError(f"Unsupported reflectance file type '{p.suffix}'.")

    if axis_src is None:
        raise ValidationError(f"{p}: no wavelength axis stored or supplied.")
    axis = WavelengthAxis.coerce(axis_src)

    if cube.ndim != 3:
        raise ValidationError(f"{p}: reflectance cube must be 3-D (H, W, bands), got {cube.shape}.")
    if cube.shape[2] != len(axis):
        raise ValidationError(
            f"{p}: cube has {cube.shape[2]} bands but the axis has {len(axis)} samples."
        )

    peak = float(np.nanmax(cube)) if cube.size else 0.0
    if peak > REFLECTANCE_SOFT_MAX:
        warnings.warn(
            f"load_reflectance({p.name}): peak reflectance {peak:.3f} exceeds "
            f"{REFLECTANCE_SOFT_MAX}; data may be unnormalised.",
            stacklevel=2,
        )
    logger.info("Loaded reflectance %s: shape=%s, %r", p.name, cube.shape, axis)
    return ReflectanceData(_freeze(cube), axis)


def load_spectrum_json(path: PathLike, key: str = "S(lambda)") -> SpectralTable:
    """
    Read a single spectrum from JSON.

    Accepts the CIE layout used by the bundled tables
    (``{"data": {"lambda": {"values": [...]}, key: {"values": [...]}}}``) and
    the flat layout ``{"wavelength": [...], "values": [...]}``.
    """
    p = Path(path)
    with open(p, "r", encoding="utf-8") as f:
        content = json.load(f)

    if "wavelength" in content and "values" in content:
        wl = np.asarray(content["wavelength"], dtype=np.float64)
        vals = np.asarray(content["values"], dtype=np.float64)
        if wl.shape != vals.shape:
            raise ValidationError(
                f"{p}: wavelength ({wl.shape[0]}) and values ({vals.shape[0]}) differ in length."
            )
        return SpectralTable(WavelengthAxis(wl), _freeze(vals))
    return _parse_cie_json(content, (key,), str(p))


def load_spectrum_csv(
    path: PathLike,
    delimiter: str = ",",
    skip_header: int = 0,
    column: int = 1,
) -> SpectralTable:
    """
    Read a spectrum from a delimited text file: wavelength in column 0 and
    power in *column*.
    """
    table = np.loadtxt(path, delimiter=delimiter, skiprows=skip_header, ndmin=2)
    if table.shape[1] <= column:
        raise ValidationError(
            f"{path}: expected at least {column + 1} columns, got {table.shape[1]}."
        )
    return SpectralTable(
        WavelengthAxis(table[:, 0]),
        _freeze(np.ascontiguousarray(table[:, column])),
    )
