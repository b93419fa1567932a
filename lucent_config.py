# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: lucent_config.py — Simulation settings.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

from lucent_colorengine import DEFAULT_DEGREE_OF_ADAPTATION, DEFAULT_GAMMA
from lucent_errors import ValidationError
from lucent_spectraldata import (
    VISIBLE_MAX_NM,
    VISIBLE_MIN_NM,
    WORKING_STEP_NM,
    WavelengthAxis,
    working_grid,
)

__all__ = ["SimulationConfig", "load_config"]

logger = logging.getLogger("lucent.config")


@dataclass(slots=True, frozen=True)
class SimulationConfig:
    """
    Immutable settings for one simulation batch.

    gamma                 display gamma, > 0
    degree_of_adaptation  CAT02 D, 0 (none) to 1 (full)
    working_*             integration grid, inside 400–780 nm
    fail_fast             abort on the first per-illuminant failure
    max_workers           1 runs serially; > 1 uses a thread pool
    """
    gamma:                float = DEFAULT_GAMMA
    degree_of_adaptation: float = DEFAULT_DEGREE_OF_ADAPTATION
    working_start:        float = VISIBLE_MIN_NM
    working_stop:         float = VISIBLE_MAX_NM
    working_step:         float = WORKING_STEP_NM
    fail_fast:            bool = False
    max_workers:          int = 1

    def __post_init__(self) -> None:
        if not math.isfinite(self.gamma) or self.gamma <= 0:
            raise ValidationError(f"gamma must be > 0, got {self.gamma}")
        if not 0.0 <= self.degree_of_adaptation <= 1.0:
            raise ValidationError(
                f"degree_of_adaptation must be in [0, 1], got {self.degree_of_adaptation}"
            )
        if self.working_step <= 0:
            raise ValidationError(f"working_step must be > 0, got {self.working_step}")
        if not VISIBLE_MIN_NM <= self.working_start < self.working_stop <= VISIBLE_MAX_NM:
            raise ValidationError(
                f"Working grid [{self.working_start}, {self.working_stop}] must lie "
                f"inside [{VISIBLE_MIN_NM:g}, {VISIBLE_MAX_NM:g}] nm."
            )
        if self.working_step > self.working_stop - self.working_start:
            raise ValidationError(
                f"working_step {self.working_step:g} leaves fewer than 2 samples in "
                f"[{self.working_start:g}, {self.working_stop:g}] nm."
            )
        first, last = self.working_grid().bounds
        if first < self.working_start or last > self.working_stop:
            raise ValidationError(
                f"Working grid [{first:g}, {last:g}] overshoots "
                f"[{self.working_start:g}, {self.working_stop:g}] nm."
            )
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) \
                or self.max_workers < 1:
            raise ValidationError(f"max_workers must be an int >= 1, got {self.max_workers!r}")

    def working_grid(self) -> WavelengthAxis:
        return working_grid(self.working_start, self.working_stop, self.working_step)

    def get_state(self) -> Dict[str, Any]:
        """Full serialisable snapshot."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "SimulationConfig":
        """Reconstruct from a dict; missing keys take their defaults."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(state) - known)
        if unknown:
            raise ValidationError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**state)


def load_config(path: Union[str, Path]) -> SimulationConfig:
    """Read a ``SimulationConfig`` from a JSON object."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            state = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{path}: invalid JSON ({e}).") from e
    if not isinstance(state, dict):
        raise ValidationError(f"{path}: configuration must be a JSON object.")
    config = SimulationConfig.from_state(state)
    logger.debug("Loaded %r from %s", config, path)
    return config
