"""Perturbation component records and parsing of numeric component rows.

Components can be given either as the records below or as numeric rows in
the compact matrix form, one component per row:

    sine:  [freq, ampl, phase, angle, group]
    noise: [freq, freq_bandwidth, angle, angle_bandwidth, ampl, group]
    bumps: [count, ampl, sigma]

Missing trailing columns are filled with the record defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable, Sequence, TypeVar

import numpy as np

from ._errors import ShapeConfigError


@dataclass(frozen=True)
class SineComponent:
    """One sinusoidal carrier or modulator.

    Phase and angle are in degrees. Angle 0 modulates along the first
    (column) coordinate, 90 along the second (row) coordinate.
    """

    frequency: float
    amplitude: float = 0.1
    phase: float = 0.0
    angle: float = 0.0
    group: int = 0


@dataclass(frozen=True)
class NoiseComponent:
    """One band-pass filtered noise component."""

    frequency: float
    freq_bandwidth: float = 1.0
    """Full width at half maximum of the radial pass band, in octaves."""
    angle: float = 0.0
    """Centre orientation of the pass band, degrees."""
    angle_bandwidth: float = 30.0
    """Full width at half maximum of the orientation band, degrees (inf = isotropic)."""
    amplitude: float = 0.1
    group: int = 0


@dataclass(frozen=True)
class BumpComponent:
    """A set of identical radially symmetric bumps.

    The profile function is evaluated as ``profile(d, params)`` for every
    grid point closer than ``cutoff`` to a bump centre.
    """

    count: int
    cutoff: float
    params: tuple[float, ...] = ()
    centers: np.ndarray | None = None
    """Optional (count, 2) explicit centres in the shape's bump domain."""


def gaussian_bumps(
    count: int,
    amplitude: float = 0.1,
    sigma: float = 0.1,
    centers: np.ndarray | None = None,
) -> BumpComponent:
    """Bump row for the default Gaussian profile (cutoff at 3.5 sigma)."""
    return BumpComponent(
        count=int(count),
        cutoff=3.5 * sigma,
        params=(float(amplitude), float(sigma)),
        centers=centers,
    )


_MODULATOR_DEFAULTS = SineComponent(frequency=0.0, amplitude=1.0)

_C = TypeVar("_C")


def _as_rows(rows: Any, name: str) -> list[np.ndarray]:
    arr = np.asarray(rows, dtype=float)
    if arr.size == 0:
        return []
    if arr.ndim == 1:
        arr = arr[None, :]
    if arr.ndim != 2:
        raise ShapeConfigError(
            f"{name} parameters must be a row or a 2D matrix, got shape {arr.shape}"
        )
    return [row for row in arr]


def _parse(
    rows: Any,
    record: type[_C],
    name: str,
    from_row: Callable[[np.ndarray, int], _C],
) -> list[_C]:
    if rows is None:
        return []
    if isinstance(rows, record):
        return [rows]
    if isinstance(rows, Sequence) and len(rows) == 0:
        return []
    if isinstance(rows, Sequence) and all(isinstance(r, record) for r in rows):
        return list(rows)
    return [from_row(row, i) for i, row in enumerate(_as_rows(rows, name))]


def _check_group(group: float, name: str, index: int) -> int:
    if group < 0 or group != int(group):
        raise ShapeConfigError(
            f"{name} component {index}: group index must be a non-negative integer, got {group}"
        )
    return int(group)


def parse_sine_components(rows: Any, modulator: bool = False) -> list[SineComponent]:
    """Parse carrier or modulator rows into SineComponents.

    Args:
        rows: SineComponent(s), a single numeric row, or a 2D matrix
        modulator: Fill missing amplitudes with 1 instead of 0.1

    Returns:
        List of components, possibly empty

    Raises:
        ShapeConfigError: If a row has no columns or more than five
    """
    name = "Modulator" if modulator else "Carrier"
    defaults = _MODULATOR_DEFAULTS if modulator else SineComponent(frequency=0.0)
    names = [f.name for f in fields(SineComponent)]

    def from_row(row: np.ndarray, i: int) -> SineComponent:
        if not 1 <= len(row) <= len(names):
            raise ShapeConfigError(
                f"{name} component {i}: expected 1-{len(names)} columns, got {len(row)}"
            )
        values = {k: getattr(defaults, k) for k in names}
        values.update(zip(names, row.tolist()))
        values["group"] = _check_group(values["group"], name, i)
        return SineComponent(**values)

    return _parse(rows, SineComponent, name, from_row)


def parse_noise_components(rows: Any) -> list[NoiseComponent]:
    """Parse noise rows into NoiseComponents (see module docstring for columns)."""
    names = [f.name for f in fields(NoiseComponent)]
    defaults = NoiseComponent(frequency=0.0)

    def from_row(row: np.ndarray, i: int) -> NoiseComponent:
        if not 1 <= len(row) <= len(names):
            raise ShapeConfigError(
                f"Noise component {i}: expected 1-{len(names)} columns, got {len(row)}"
            )
        values = {k: getattr(defaults, k) for k in names}
        values.update(zip(names, row.tolist()))
        values["group"] = _check_group(values["group"], "Noise", i)
        if values["frequency"] <= 0:
            raise ShapeConfigError(
                f"Noise component {i}: frequency must be positive, got {values['frequency']}"
            )
        if values["freq_bandwidth"] <= 0 or values["angle_bandwidth"] <= 0:
            raise ShapeConfigError(f"Noise component {i}: bandwidths must be positive")
        return NoiseComponent(**values)

    return _parse(rows, NoiseComponent, "Noise", from_row)


def parse_bump_components(rows: Any) -> list[BumpComponent]:
    """Parse Gaussian bump rows ``[count, amplitude, sigma]``."""

    def from_row(row: np.ndarray, i: int) -> BumpComponent:
        if not 1 <= len(row) <= 3:
            raise ShapeConfigError(
                f"Bump component {i}: expected 1-3 columns [count, ampl, sigma], got {len(row)}"
            )
        count, amplitude, sigma = np.concatenate([row, [0.1, 0.1][len(row) - 1 :]])
        if sigma <= 0:
            raise ShapeConfigError(f"Bump component {i}: sigma must be positive, got {sigma}")
        return gaussian_bumps(_check_count(count, i), amplitude, sigma)

    return _parse(rows, BumpComponent, "Bump", from_row)


def parse_profile_components(rows: Any) -> list[BumpComponent]:
    """Parse custom-profile rows ``[count, cutoff, *params]``."""

    def from_row(row: np.ndarray, i: int) -> BumpComponent:
        if len(row) < 2:
            raise ShapeConfigError(
                f"Profile component {i}: expected at least [count, cutoff], got {len(row)} column(s)"
            )
        if row[1] <= 0:
            raise ShapeConfigError(f"Profile component {i}: cutoff must be positive")
        return BumpComponent(
            count=_check_count(row[0], i),
            cutoff=float(row[1]),
            params=tuple(float(p) for p in row[2:]),
        )

    return _parse(rows, BumpComponent, "Profile", from_row)


def _check_count(count: float, index: int) -> int:
    if count < 0 or count != int(count):
        raise ShapeConfigError(
            f"Bump component {index}: count must be a non-negative integer, got {count}"
        )
    return int(count)
