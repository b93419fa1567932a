# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: lucent_simulation.py — Batch rendering of a reflectance cube under
named illuminants.

Pipeline per call:
  1. Guards: reflectance coverage (400–780 nm), cube shape, names.
  2. Resolve every name against one store snapshot (unknown name = fatal).
  3. Resample cube and CMF onto the working grid once; both are frozen
     and shared by every illuminant task.
  4. Per illuminant, in request order:
         SPD → working grid → XYZ, white ─┬─ encode             → simple_illum
                                          └─ CAT02 adapt → encode → adapted_images
  5. Failures of one illuminant are recorded and do not affect the others
     unless ``fail_fast`` is set.
"""

from __future__ import annotations

import functools
import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Dict, List, Literal, Mapping, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from lucent_colorengine import (
    ChromaticAdaptation,
    DisplayEncoder,
    TristimulusCalculator,
    xyz_to_xy,
)
from lucent_config import SimulationConfig
from lucent_errors import (
    DegenerateIlluminantError,
    DegenerateWhitePointError,
    LucentError,
    NotFoundError,
    SimulationCancelledError,
    ValidationError,
)
from lucent_illuminants import IlluminantProvider, IlluminantRecord, IlluminantStore
from lucent_loader import load_cmf
from lucent_spectraldata import (
    VISIBLE_MAX_NM,
    VISIBLE_MIN_NM,
    AxisLike,
    WavelengthAxis,
    check_coverage,
    resample,
)

__all__ = [
    "FailureStage",
    "IlluminantFailure",
    "SimulationResult",
    "default_illuminants",
    "simulate_illumination",
]

logger = logging.getLogger("lucent.simulation")

FailureStage = Literal["tristimulus", "adapted"]

# Seconds between cancellation checks while waiting on workers
_POLL_INTERVAL_S: float = 0.05


# ---------------------------------------------------------------------------
# 1.  Result types
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class IlluminantFailure:
    """Why an illuminant is missing from one (or both) result maps."""
    name:  str
    stage: FailureStage
    error: LucentError


@dataclass(slots=True)
class SimulationResult:
    """
    Ordered name → image maps plus diagnostics.

    Images are float64 (H, W, 3) in [0, 1].  ``white_points`` holds the
    illuminant XYZ (Y = 100) of every illuminant whose tristimulus stage
    succeeded.
    """
    simple_illum:       Dict[str, np.ndarray] = field(default_factory=dict)
    adapted_images:     Dict[str, np.ndarray] = field(default_factory=dict)
    failures:           Dict[str, IlluminantFailure] = field(default_factory=dict)
    white_points:       Dict[str, np.ndarray] = field(default_factory=dict)
    working_wavelength: Optional[WavelengthAxis] = None

    @property
    def ok(self) -> bool:
        return not self.failures


class _Rendered(NamedTuple):
    name: str
    simple: Optional[np.ndarray]
    adapted: Optional[np.ndarray]
    white: Optional[np.ndarray]
    failure: Optional[IlluminantFailure]


@dataclass(slots=True, frozen=True)
class _Job:
    """Read-only state shared by every illuminant task of one call."""
    cube:         np.ndarray
    grid:         WavelengthAxis
    calculator:   TristimulusCalculator
    gamma:        float
    degree:       float
    fail_fast:    bool
    cancel_event: Optional[threading.Event]


# ---------------------------------------------------------------------------
# 2.  Helpers
# ---------------------------------------------------------------------------
@functools.lru_cache(maxsize=1)
def default_illuminants() -> Mapping[str, IlluminantRecord]:
    """Snapshot of the built-in store (CIE A, D-series, E, F2, F7, F11); built once."""
    return IlluminantStore.default().snapshot()


def _check_cancel(cancel_event: Optional[threading.Event], where: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Simulation cancelled %s.", where)
        raise SimulationCancelledError(f"Simulation cancelled {where}.")


def _validate_cube(cube: np.ndarray, axis: WavelengthAxis) -> np.ndarray:
    arr = np.asarray(cube, dtype=np.float64)
    if arr.ndim != 3:
        raise ValidationError(
            f"Reflectance cube must be 3-D (height, width, bands), got shape {arr.shape}."
        )
    if arr.shape[2] != len(axis):
        raise ValidationError(
            f"Reflectance cube has {arr.shape[2]} bands but the wavelength axis "
            f"has {len(axis)} samples."
        )
    if not np.all(np.isfinite(arr)):
        raise ValidationError("Reflectance cube contains non-finite values.")
    return arr


def _validate_names(names: Sequence[str]) -> List[str]:
    if isinstance(names, str):
        names = [names]
    out = list(names)
    for n in out:
        if not isinstance(n, str) or not n:
            raise ValidationError(f"Illuminant names must be non-empty strings, got {n!r}.")
    seen = set()
    dupes = [n for n in out if n in seen or seen.add(n)]
    if dupes:
        raise ValidationError(f"Duplicate illuminant names requested: {sorted(set(dupes))}.")
    return out


def _resolve(
    names: List[str], snapshot: Mapping[str, IlluminantRecord]
) -> List[Tuple[str, IlluminantRecord]]:
    resolved = []
    for n in names:
        if n not in snapshot:
            raise NotFoundError(n)
        resolved.append((n, snapshot[n]))
    return resolved


def _freeze(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


# ---------------------------------------------------------------------------
# 3.  Per-illuminant work
# ---------------------------------------------------------------------------
def _render_one(job: _Job, name: str, record: IlluminantRecord) -> _Rendered:
    _check_cancel(job.cancel_event, f"before illuminant {name!r}")

    spd = resample(record.wavelength, record.values, job.grid, label=f"illuminant {name}")

    try:
        xyz, white = job.calculator.tristimulus(job.cube, spd)
    except DegenerateIlluminantError as e:
        if job.fail_fast:
            raise
        logger.warning("Illuminant %r skipped: %s", name, e)
        return _Rendered(name, None, None, None, IlluminantFailure(name, "tristimulus", e))

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Illuminant %r white point xyY = (%.4f, %.4f, %.2f)", name, *xyz_to_xy(white)
        )
    simple = DisplayEncoder.encode(xyz, job.gamma)

    try:
        adapted_xyz = ChromaticAdaptation.adapt(xyz, white, job.degree)
    except DegenerateWhitePointError as e:
        if job.fail_fast:
            raise
        logger.warning("Illuminant %r: adaptation skipped: %s", name, e)
        return _Rendered(name, simple, None, white, IlluminantFailure(name, "adapted", e))

    adapted = DisplayEncoder.encode(adapted_xyz, job.gamma)
    return _Rendered(name, simple, adapted, white, None)


def _run_serial(job: _Job, resolved: List[Tuple[str, IlluminantRecord]]) -> List[_Rendered]:
    return [_render_one(job, name, record) for name, record in resolved]


def _run_threaded(
    job: _Job,
    resolved: List[Tuple[str, IlluminantRecord]],
    workers: int,
) -> List[_Rendered]:
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lucent") as pool:
        futures = [pool.submit(_render_one, job, name, record) for name, record in resolved]
        pending = set(futures)
        try:
            while pending:
                done, pending = wait(pending, timeout=_POLL_INTERVAL_S,
                                     return_when=FIRST_EXCEPTION)
                for fut in done:
                    exc = fut.exception()
                    if exc is not None:
                        raise exc
                _check_cancel(job.cancel_event, "while collecting results")
        except BaseException:
            pool.shutdown(wait=False, cancel_futures=True)
            raise
    return [fut.result() for fut in futures]


# ---------------------------------------------------------------------------
# 4.  Entry point
# ---------------------------------------------------------------------------
def simulate_illumination(
    reflectance_cube: np.ndarray,
    reflectance_axis: AxisLike,
    illuminant_names: Sequence[str],
    gamma: Optional[float] = None,
    D: Optional[float] = None,
    *,
    store: Optional[IlluminantProvider] = None,
    cmf: Optional[Tuple[AxisLike, np.ndarray]] = None,
    config: Optional[SimulationConfig] = None,
    cancel_event: Optional[threading.Event] = None,
    max_workers: Optional[int] = None,
    fail_fast: Optional[bool] = None,
) -> SimulationResult:
    """
    Render *reflectance_cube* under each named illuminant.

    Args:
        reflectance_cube: (H, W, bands) reflectance factors. Not modified.
        reflectance_axis: Wavelengths (nm) of the cube bands; must span
            400–780 nm.
        illuminant_names: Names to render, in output order.
        gamma: Display gamma; overrides ``config.gamma``.
        D: Degree of adaptation in [0, 1]; overrides
            ``config.degree_of_adaptation``.
        store: Anything with ``snapshot()``; defaults to the built-in CIE
            illuminants.
        cmf: ``(wavelength, values[bands, 3])``; defaults to CIE 1931 2°.
        config: Base settings (default ``SimulationConfig()``).
        cancel_event: Set it from another thread to abort the batch.
        max_workers: Overrides ``config.max_workers``.
        fail_fast: Overrides ``config.fail_fast``.

    Returns:
        SimulationResult with ``simple_illum`` / ``adapted_images`` keyed by
        illuminant name in request order.

    Raises:
        RangeError: the reflectance axis does not cover 400–780 nm.
        ValidationError: malformed cube, names, gamma or D.
        NotFoundError: an illuminant name is not in the store.
        SimulationCancelledError: *cancel_event* was set.
        DegenerateIlluminantError, DegenerateWhitePointError: only with
            ``fail_fast``.
    """
    axis = WavelengthAxis.coerce(reflectance_axis)
    check_coverage(axis, VISIBLE_MIN_NM, VISIBLE_MAX_NM, label="reflectance")

    overrides = {}
    if gamma is not None:
        overrides["gamma"] = float(gamma)
    if D is not None:
        overrides["degree_of_adaptation"] = float(D)
    if max_workers is not None:
        overrides["max_workers"] = max_workers
    if fail_fast is not None:
        overrides["fail_fast"] = bool(fail_fast)
    cfg = replace(config if config is not None else SimulationConfig(), **overrides)

    cube = _validate_cube(reflectance_cube, axis)
    names = _validate_names(illuminant_names)

    snapshot = store.snapshot() if store is not None else default_illuminants()
    resolved = _resolve(names, snapshot)

    grid = cfg.working_grid()
    result = SimulationResult(working_wavelength=grid)
    if not resolved:
        return result

    logger.info(
        "Simulating %d illuminant(s) on a %dx%d cube (%d bands -> %d), gamma=%g, D=%g",
        len(resolved), cube.shape[0], cube.shape[1], len(axis), len(grid),
        cfg.gamma, cfg.degree_of_adaptation,
    )
    _check_cancel(cancel_event, "before resampling")

    cube_w = _freeze(resample(axis, cube, grid, require_coverage=True, label="reflectance"))
    cmf_wl, cmf_values = cmf if cmf is not None else load_cmf()
    cmf_w = _freeze(resample(cmf_wl, np.asarray(cmf_values, dtype=np.float64).T, grid,
                             require_coverage=True, label="CMF").T.copy())

    job = _Job(
        cube=cube_w,
        grid=grid,
        calculator=TristimulusCalculator(cmf_w, grid),
        gamma=cfg.gamma,
        degree=cfg.degree_of_adaptation,
        fail_fast=cfg.fail_fast,
        cancel_event=cancel_event,
    )

    workers = min(cfg.max_workers, len(resolved))
    if workers > 1:
        rendered = _run_threaded(job, resolved, workers)
    else:
        rendered = _run_serial(job, resolved)
    _check_cancel(cancel_event, "after rendering")

    for r in rendered:
        if r.simple is not None:
            result.simple_illum[r.name] = r.simple
        if r.adapted is not None:
            result.adapted_images[r.name] = r.adapted
        if r.white is not None:
            result.white_points[r.name] = r.white
        if r.failure is not None:
            result.failures[r.name] = r.failure

    logger.info(
        "Simulation finished: %d simple, %d adapted, %d failure(s)",
        len(result.simple_illum), len(result.adapted_images), len(result.failures),
    )
    return result
