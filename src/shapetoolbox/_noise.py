"""Band-pass filtered noise synthesized in the frequency domain."""

from __future__ import annotations

from typing import Any

import numpy as np
from jaxtyping import Float
from loguru import logger
from scipy import ndimage

from ._components import NoiseComponent, parse_noise_components, parse_sine_components
from ._sine import combine_groups


def _axis_spacing(values: np.ndarray) -> float:
    if len(values) < 2:
        return 1.0
    step = float(values[1] - values[0])
    return step if step != 0 else 1.0


def make_filter(
    component: NoiseComponent,
    fx: np.ndarray,
    fy: np.ndarray,
) -> np.ndarray:
    """Build the polar band-pass filter for one component.

    The radial band is a raised cosine in log2 frequency whose full width
    at half maximum is ``freq_bandwidth`` octaves. The orientation band is a
    raised cosine around ``angle`` (FWHM ``angle_bandwidth`` degrees),
    symmetric under F -> -F so the filtered noise stays real. An infinite
    orientation bandwidth makes the filter isotropic.

    Args:
        component: Noise component
        fx: Column frequencies (fftfreq layout)
        fy: Row frequencies (fftfreq layout)

    Returns:
        (len(fy), len(fx)) filter in fftfreq layout
    """
    FX, FY = np.meshgrid(fx, fy)
    F = np.hypot(FX, FY)

    bw = component.freq_bandwidth
    with np.errstate(divide="ignore", invalid="ignore"):
        octaves = np.log2(F / component.frequency)
        radial = np.where(
            np.abs(octaves) < bw, 0.5 * (1 + np.cos(np.pi * octaves / bw)), 0.0
        )

    if np.isinf(component.angle_bandwidth):
        return radial

    theta = np.arctan2(FY, FX)
    ang_bw = np.deg2rad(component.angle_bandwidth)
    # Distance to the band centre, folded so that opposite directions match.
    d = np.mod(theta - np.deg2rad(component.angle) + np.pi / 2, np.pi) - np.pi / 2
    angular = np.where(np.abs(d) < ang_bw, 0.5 * (1 + np.cos(np.pi * d / ang_bw)), 0.0)
    return radial * angular


def filtered_noise(
    component: NoiseComponent,
    shape: tuple[int, int],
    spacing: tuple[float, float],
    rng: np.random.Generator,
) -> np.ndarray:
    """One component of filtered noise on a regular grid, peak-normalized.

    The result is scaled so that ``max |field| == component.amplitude``.

    Args:
        component: Noise component
        shape: Grid size (rows, cols)
        spacing: Sample spacing (row, col) in cycle units
        rng: Random generator drawing the white-noise spectrum

    Returns:
        (rows, cols) noise field
    """
    m, n = shape
    fy = np.fft.fftfreq(m, d=spacing[0])
    fx = np.fft.fftfreq(n, d=spacing[1])

    spectrum = rng.standard_normal((m, n)) + 1j * rng.standard_normal((m, n))
    field = np.real(np.fft.ifft2(spectrum * make_filter(component, fx, fy)))

    peak = np.abs(field).max()
    if peak < 1e-12:
        logger.warning(
            f"Noise filter at frequency {component.frequency} passes nothing on a "
            f"{m}x{n} grid; component contributes zero"
        )
        return np.zeros((m, n))
    return component.amplitude * field / peak


def _noise_on_points(
    component: NoiseComponent,
    x: np.ndarray,
    y: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """Synthesize on a square working grid and resample at scattered points."""
    k = max(x.shape)
    x0, x1 = float(x.min()), float(x.max())
    y0, y1 = float(y.min()), float(y.max())
    sx = (x1 - x0) / (k - 1) if x1 > x0 else 1.0
    sy = (y1 - y0) / (k - 1) if y1 > y0 else 1.0

    work = filtered_noise(component, (k, k), (sy, sx), rng)
    rows = (y - y0) / sy
    cols = (x - x0) / sx
    return ndimage.map_coordinates(work, [rows, cols], order=1, mode="nearest")


def compose_noise(
    components: Any,
    x: Float[np.ndarray, "m n"],
    y: Float[np.ndarray, "m n"],
    rng: np.random.Generator,
    modulators: Any = None,
    regular: bool = True,
) -> Float[np.ndarray, "m n"]:
    """Sum of filtered noise components, optionally modulated by sines.

    Components sharing a group index are summed and multiplied by the sine
    modulators of that group, with the same group semantics as
    ``compose_sines``.

    Args:
        components: Noise components (records or numeric rows)
        x: First coordinate field (columns), cycle units
        y: Second coordinate field (rows), cycle units
        rng: Random generator; draws one spectrum per component in order
        modulators: Optional sine modulators
        regular: Whether x and y form a regular grid. If False, noise is
            synthesized on a working grid and resampled at (x, y).

    Returns:
        Noise field with the shape of x
    """
    comps = parse_noise_components(components)
    mods = parse_sine_components(modulators, modulator=True)

    spacing = (_axis_spacing(y[:, 0]), _axis_spacing(x[0, :]))
    group_fields: dict[int, np.ndarray] = {}
    for c in comps:
        if regular:
            field = filtered_noise(c, x.shape, spacing, rng)
        else:
            field = _noise_on_points(c, x, y, rng)
        group_fields[c.group] = group_fields.get(c.group, 0.0) + field

    return combine_groups(group_fields, mods, x, y)
