# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: lucent_illuminants.py — Named illuminant SPD store.

  IlluminantRecord
    Immutable (name, wavelength, values) triple; values are read-only.

  IlluminantStore
    1.  CRUD keyed by name, insertion ordered.
    2.  Writers serialised by a re-entrant lock.
    3.  Optional JSON backing file, written atomically after every
        mutation when ``autosave`` is on.
    4.  ``snapshot()`` hands the simulation an immutable view, so later
        edits never leak into a running batch.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import warnings
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

import numpy as np

from lucent_errors import MissingIlluminantError, NotFoundError, ValidationError
from lucent_spectraldata import AxisLike, WavelengthAxis

if TYPE_CHECKING:
    from light_sources import LightSource

__all__ = [
    "STORE_FORMAT",
    "STORE_VERSION",
    "DEFAULT_STORE_GRID",
    "IlluminantRecord",
    "IlluminantProvider",
    "IlluminantStore",
]

logger = logging.getLogger("lucent.illuminants")

PathLike = Union[str, Path]

STORE_FORMAT = "lucent-illuminants"
STORE_VERSION = 1

# SPDs supplied without an axis are taken to be on this grid (start, stop, step)
DEFAULT_STORE_GRID = (400.0, 780.0, 1.0)

_EMPTY_MSG = "Name and SPD cannot be empty."
_DUPLICATE_MSG = "An illuminant with the same name already exists."


# ---------------------------------------------------------------------------
# 1.  Record & provider interface
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True, eq=False)
class IlluminantRecord:
    """One named SPD on its own wavelength grid."""
    name:       str
    wavelength: WavelengthAxis
    values:     np.ndarray

    def __post_init__(self) -> None:
        if not isinstance(self.wavelength, WavelengthAxis):
            raise ValidationError(
                f"IlluminantRecord({self.name!r}): wavelength must be a WavelengthAxis."
            )
        if self.values.ndim != 1 or self.values.shape[0] != len(self.wavelength):
            raise ValidationError(
                f"IlluminantRecord({self.name!r}): {self.values.shape} values for "
                f"{len(self.wavelength)} wavelengths."
            )

    def to_json(self) -> dict:
        return {
            "name": self.name,
            "wavelength": self.wavelength.values.tolist(),
            "values": self.values.tolist(),
        }


@runtime_checkable
class IlluminantProvider(Protocol):
    """
    Minimal interface an illuminant source must satisfy.

    snapshot() → immutable mapping name → IlluminantRecord
    """
    def snapshot(self) -> Mapping[str, IlluminantRecord]: ...


# ---------------------------------------------------------------------------
# 2.  Store
# ---------------------------------------------------------------------------
class IlluminantStore:
    """
    Thread-safe CRUD table of illuminant SPDs.

    Examples:
        store = IlluminantStore("illuminants.json")
        store.load()
        store.add("Candle", spd)              # on the 400–780 nm, 1 nm grid
        store.add("LED_3000K", led, wl)       # on its own grid
        store.update("Candle", new_spd)
        store.delete("Candle")
    """

    def __init__(
        self,
        path: Optional[PathLike] = None,
        default_wavelength: Optional[AxisLike] = None,
        autosave: bool = True,
    ) -> None:
        self._path: Optional[Path] = Path(path) if path is not None else None
        if default_wavelength is None:
            self._default_wl = WavelengthAxis.from_range(*DEFAULT_STORE_GRID)
        else:
            self._default_wl = WavelengthAxis.coerce(default_wavelength)
        self._autosave = autosave
        self._records: Dict[str, IlluminantRecord] = {}
        self._lock = threading.RLock()

    @classmethod
    def default(cls, path: Optional[PathLike] = None) -> "IlluminantStore":
        """Store seeded with CIE A, D50, D55, D65, D75, E, F2, F7 and F11 on the default grid."""
        from light_sources import standard_illuminants

        store = cls(path, autosave=False)
        for name, source in standard_illuminants().items():
            store.add_source(name, source)
        store._autosave = True
        return store

    # -- read interface ----------------------------------------------------
    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def default_wavelength(self) -> WavelengthAxis:
        return self._default_wl

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))

    def names(self) -> List[str]:
        with self._lock:
            return list(self._records)

    def get(self, name: str) -> IlluminantRecord:
        """Raises ``NotFoundError`` if *name* is absent."""
        try:
            return self._records[name]
        except KeyError:
            raise NotFoundError(name) from None

    def snapshot(self) -> Mapping[str, IlluminantRecord]:
        """Immutable view of the current table; records are shared, not copied."""
        with self._lock:
            return MappingProxyType(dict(self._records))

    # -- write interface ---------------------------------------------------
    def add(
        self,
        name: str,
        spd: Union[np.ndarray, Sequence[float]],
        wavelength: Optional[AxisLike] = None,
    ) -> IlluminantRecord:
        """
        Add a new illuminant.

        Raises:
            ValidationError: empty name/SPD, duplicate name, length mismatch.
        """
        with self._lock:
            record = self._build_record(name, spd, wavelength)
            if record.name in self._records:
                raise ValidationError(_DUPLICATE_MSG)
            self._records[record.name] = record
            logger.debug("Added illuminant %r (%r)", record.name, record.wavelength)
            self._persist()
            return record

    def add_source(
        self,
        name: str,
        source: "LightSource",
        wavelength: Optional[AxisLike] = None,
    ) -> IlluminantRecord:
        """Sample a light source on *wavelength* (default store grid) and add it."""
        axis = self._default_wl if wavelength is None else WavelengthAxis.coerce(wavelength)
        return self.add(name, source.spectral_power(axis), axis)

    def update(
        self,
        name: str,
        new_spd: Union[np.ndarray, Sequence[float]],
        wavelength: Optional[AxisLike] = None,
    ) -> IlluminantRecord:
        """
        Replace the SPD of an existing illuminant.

        Without *wavelength* the record keeps its current axis.

        Raises:
            ValidationError: empty name or SPD.
            MissingIlluminantError: *name* is absent (a ``ValidationError``
                and a ``NotFoundError``).
        """
        with self._lock:
            self._check_not_empty(name, new_spd)
            current = self._records.get(name)
            if current is None:
                raise MissingIlluminantError(name)
            axis = current.wavelength if wavelength is None else wavelength
            record = self._build_record(name, new_spd, axis)
            self._records[name] = record
            logger.debug("Updated illuminant %r", name)
            self._persist()
            return record

    def delete(self, name: str) -> None:
        """Raises ``MissingIlluminantError`` if *name* is absent."""
        with self._lock:
            if name not in self._records:
                raise MissingIlluminantError(name)
            del self._records[name]
            logger.debug("Deleted illuminant %r", name)
            self._persist()

    # -- persistence -------------------------------------------------------
    def load(self) -> "IlluminantStore":
        """
        Replace the table with the contents of the backing file.

        A missing file leaves the store empty.

        Raises:
            ValidationError: no path set, or the document is malformed.
        """
        if self._path is None:
            raise ValidationError("IlluminantStore.load: no backing file set.")
        with self._lock:
            if not self._path.exists():
                logger.info("Illuminant file %s does not exist; starting empty.", self._path)
                self._records = {}
                return self

            with open(self._path, "r", encoding="utf-8") as f:
                try:
                    content = json.load(f)
                except json.JSONDecodeError as e:
                    raise ValidationError(f"{self._path}: invalid JSON ({e}).") from e

            if not isinstance(content, dict) or content.get("format") != STORE_FORMAT:
                raise ValidationError(f"{self._path}: not a {STORE_FORMAT} document.")
            if content.get("version") != STORE_VERSION:
                raise ValidationError(
                    f"{self._path}: unsupported version {content.get('version')!r}."
                )

            records: Dict[str, IlluminantRecord] = {}
            for entry in content.get("illuminants", []):
                try:
                    record = self._build_record(
                        entry["name"], entry["values"], entry["wavelength"]
                    )
                except KeyError as e:
                    raise ValidationError(f"{self._path}: entry missing key {e}.") from e
                if record.name in records:
                    raise ValidationError(
                        f"{self._path}: duplicate illuminant {record.name!r}."
                    )
                records[record.name] = record

            self._records = records
            logger.info("Loaded %d illuminants from %s", len(records), self._path)
        return self

    def save(self, path: Optional[PathLike] = None) -> Path:
        """
        Write the table as JSON.  The file is replaced atomically.

        Returns:
            The path written.
        """
        target = Path(path) if path is not None else self._path
        if target is None:
            raise ValidationError("IlluminantStore.save: no backing file set.")

        with self._lock:
            document = {
                "format": STORE_FORMAT,
                "version": STORE_VERSION,
                "illuminants": [r.to_json() for r in self._records.values()],
            }
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=1)
                os.replace(tmp_name, target)
            except BaseException:
                os.unlink(tmp_name)
                raise
            logger.info("Saved %d illuminants to %s", len(self._records), target)
        return target

    def _persist(self) -> None:
        """Caller must hold _lock."""
        if self._autosave and self._path is not None:
            self.save()

    # -- internals ---------------------------------------------------------
    @staticmethod
    def _check_not_empty(name: object, spd: object) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(_EMPTY_MSG)
        if spd is None or np.size(spd) == 0:
            raise ValidationError(_EMPTY_MSG)

    def _build_record(
        self,
        name: str,
        spd: Union[np.ndarray, Sequence[float]],
        wavelength: Optional[AxisLike],
    ) -> IlluminantRecord:
        self._check_not_empty(name, spd)
        values = np.array(spd, dtype=np.float64).ravel()
        axis = self._default_wl if wavelength is None else WavelengthAxis.coerce(wavelength)

        if values.shape[0] != len(axis):
            raise ValidationError(
                f"Illuminant {name!r}: SPD has {values.shape[0]} samples, "
                f"wavelength axis has {len(axis)}."
            )
        if not np.all(np.isfinite(values)):
            raise ValidationError(f"Illuminant {name!r}: SPD contains non-finite values.")
        if np.any(values < 0):
            warnings.warn(
                f"Illuminant {name!r}: {int(np.count_nonzero(values < 0))} negative "
                "SPD samples clipped to 0.",
                stacklevel=3,
            )
            np.clip(values, 0.0, None, out=values)

        values.flags.writeable = False
        return IlluminantRecord(name, axis, values)

    def __repr__(self) -> str:
        where = str(self._path) if self._path is not None else "memory"
        return f"IlluminantStore(illuminants={len(self._records)}, backing={where})"
