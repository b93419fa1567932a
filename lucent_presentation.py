# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: lucent_presentation.py — 8-bit quantisation and PNG output.

File names are always ``<prefix><illuminant name>.png`` with the name
sanitised to ``[A-Za-z0-9_.-]``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Mapping, Union

import numpy as np
from PIL import Image

from lucent_errors import ValidationError

if TYPE_CHECKING:
    from lucent_simulation import SimulationResult

__all__ = ["to_uint8", "sanitize_name", "save_images", "save_result"]

logger = logging.getLogger("lucent.presentation")

PathLike = Union[str, Path]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def to_uint8(image: np.ndarray) -> np.ndarray:
    """[0, 1] float RGB (H, W, 3) → uint8, rounding ``image * 255``."""
    arr = np.asarray(image, dtype=np.float64)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValidationError(f"Expected an (H, W, 3) image, got shape {arr.shape}.")
    if not np.all(np.isfinite(arr)):
        raise ValidationError("Image contains non-finite values.")
    return np.rint(np.clip(arr, 0.0, 1.0) * 255.0).astype(np.uint8)


def sanitize_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name).strip("._")
    if not cleaned:
        raise ValidationError(f"Illuminant name {name!r} has no file-safe characters.")
    return cleaned


def save_images(
    images: Mapping[str, np.ndarray],
    out_dir: PathLike,
    prefix: str = "",
) -> List[Path]:
    """
    Write each image as ``out_dir/<prefix><name>.png``.

    Returns:
        Written paths, in the order of *images*.

    Raises:
        ValidationError: two names sanitise to the same file name.
    """
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    targets: Dict[str, Path] = {}
    for name in images:
        path = out / f"{sanitize_name(prefix + name)}.png"
        if path in targets.values():
            raise ValidationError(f"Illuminant names collide on output file {path.name!r}.")
        targets[name] = path

    written = []
    for name, image in images.items():
        Image.fromarray(to_uint8(image)).save(targets[name])
        written.append(targets[name])
        logger.debug("Wrote %s", targets[name])
    logger.info("Saved %d image(s) to %s", len(written), out)
    return written


def save_result(result: "SimulationResult", out_dir: PathLike) -> List[Path]:
    """Save ``simple_<name>.png`` and ``adapted_<name>.png`` for a simulation result."""
    paths = save_images(result.simple_illum, out_dir, prefix="simple_")
    paths += save_images(result.adapted_images, out_dir, prefix="adapted_")
    return paths
