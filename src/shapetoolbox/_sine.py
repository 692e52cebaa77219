"""Sinusoidal carrier/modulator composition."""

from __future__ import annotations

from typing import Any

import numpy as np
from jaxtyping import Float

from ._components import SineComponent, parse_sine_components


def sine_field(
    components: list[SineComponent],
    x: Float[np.ndarray, "m n"],
    y: Float[np.ndarray, "m n"],
) -> Float[np.ndarray, "m n"]:
    """Sum of plain sine waves, no grouping.

    Each component contributes
    ``a * sin(2*pi*f*(x*cos(o) + y*sin(o)) + p)`` with phase p and
    orientation o given in degrees.
    """
    out = np.zeros(np.broadcast(x, y).shape)
    for c in components:
        ph = np.deg2rad(c.phase)
        ang = np.deg2rad(c.angle)
        out += c.amplitude * np.sin(
            2 * np.pi * c.frequency * (x * np.cos(ang) + y * np.sin(ang)) + ph
        )
    return out


def combine_groups(
    group_fields: dict[int, np.ndarray],
    modulators: list[SineComponent],
    x: np.ndarray,
    y: np.ndarray,
) -> np.ndarray:
    """Combine per-group carrier sums with their modulators.

    Group 0 carriers are added without modulation. Every other group is
    multiplied by the sum of the modulators sharing its index (or left
    alone if it has none). Modulators in group 0 multiply the accumulated
    total of all groups.

    Args:
        group_fields: Carrier sum per group index
        modulators: Modulator components
        x: First coordinate field
        y: Second coordinate field

    Returns:
        Combined perturbation field
    """
    total = np.zeros(np.broadcast(x, y).shape)
    mod_groups = {c.group for c in modulators}

    for group in sorted(group_fields):
        field = group_fields[group]
        if group != 0 and group in mod_groups:
            field = field * sine_field([c for c in modulators if c.group == group], x, y)
        total = total + field

    if 0 in mod_groups:
        total = total * sine_field([c for c in modulators if c.group == 0], x, y)

    return total


def compose_sines(
    carriers: Any,
    modulators: Any,
    x: Float[np.ndarray, "m n"],
    y: Float[np.ndarray, "m n"],
) -> Float[np.ndarray, "m n"]:
    """Evaluate a carrier/modulator stack on a pair of coordinate fields.

    Args:
        carriers: Carrier components (records or numeric rows)
        modulators: Modulator components (records or numeric rows), may be empty
        x: First native coordinate field, in cycle units
        y: Second native coordinate field, in cycle units

    Returns:
        Scalar perturbation field with the broadcast shape of x and y
    """
    carrier_list = parse_sine_components(carriers)
    modulator_list = parse_sine_components(modulators, modulator=True)

    group_fields = {
        g: sine_field([c for c in carrier_list if c.group == g], x, y)
        for g in {c.group for c in carrier_list}
    }
    return combine_groups(group_fields, modulator_list, x, y)


def amplitude_bound(components: list, modulators: list[SineComponent]) -> float:
    """Upper bound of the largest absolute value ``combine_groups`` can produce.

    Works for any components with ``amplitude`` and ``group`` attributes
    whose individual peak is their amplitude (sine carriers, noise). Group
    sums are bounded by the summed absolute amplitudes, scaled by the
    summed absolute modulator amplitudes of their group; group 0
    modulators scale the total.
    """
    group_sums: dict[int, float] = {}
    for c in components:
        group_sums[c.group] = group_sums.get(c.group, 0.0) + abs(c.amplitude)
    mod_sums: dict[int, float] = {}
    for c in modulators:
        mod_sums[c.group] = mod_sums.get(c.group, 0.0) + abs(c.amplitude)

    total = sum(
        a * (mod_sums.get(g, 1.0) if g != 0 else 1.0) for g, a in group_sums.items()
    )
    return total * mod_sums.get(0, 1.0)
