"""Placement and evaluation of radially symmetric bumps."""

from __future__ import annotations

from typing import Any, Callable, Literal

import numpy as np
from loguru import logger

from ._components import BumpComponent, parse_bump_components
from ._errors import PlacementError, ShapeConfigError

ProfileFn = Callable[[np.ndarray, tuple[float, ...]], np.ndarray]
SampleFn = Callable[[np.random.Generator, int], np.ndarray]
DistanceFn = Callable[[np.ndarray, np.ndarray], np.ndarray]

# Candidate centres drawn per requested bump under a minimum distance.
OVERSAMPLING = 30


def gaussian_profile(d: np.ndarray, params: tuple[float, ...]) -> np.ndarray:
    """Gaussian bump ``a * exp(-d^2 / (2 sigma^2))`` with params (a, sigma)."""
    amplitude, sigma = params[0], params[1]
    return amplitude * np.exp(-(d**2) / (2 * sigma**2))


def place_centers(
    count: int,
    sample: SampleFn,
    distance: DistanceFn,
    rng: np.random.Generator,
    mindist: float = 0.0,
) -> np.ndarray:
    """Pick bump centres, optionally at least ``mindist`` apart.

    With a minimum distance, ``OVERSAMPLING * count`` candidates are drawn
    and accepted greedily in order: a candidate is kept if it is far enough
    from every centre accepted before it. The first candidate is always
    kept.

    Args:
        count: Number of centres
        sample: Draws (k, 2) uniformly distributed points of the domain
        distance: Pairwise distances between (k, 2) and (l, 2) point sets
        rng: Random generator
        mindist: Minimum pairwise distance, 0 disables the constraint

    Returns:
        (count, 2) centres

    Raises:
        PlacementError: If fewer than ``count`` candidates pass the constraint
    """
    if count == 0:
        return np.zeros((0, 2))
    if mindist <= 0:
        return sample(rng, count)

    candidates = sample(rng, OVERSAMPLING * count)

    # Distance from every candidate to its nearest accepted centre so far.
    nearest = np.full(len(candidates), np.inf)
    accepted = [0]
    while len(accepted) < count:
        idx = accepted[-1]
        nearest = np.minimum(nearest, distance(candidates[idx : idx + 1], candidates)[0])
        later = np.flatnonzero(nearest[idx + 1 :] >= mindist)
        if len(later) == 0:
            break
        accepted.append(idx + 1 + int(later[0]))

    if len(accepted) < count:
        raise PlacementError(
            f"Could only place {len(accepted)} of {count} bumps at least {mindist} apart "
            f"(tried {len(candidates)} candidates). "
            "Reduce the number of bumps or the value of 'mindist'."
        )
    return candidates[accepted]


def compose_bumps(
    components: Any,
    points: np.ndarray,
    grid_shape: tuple[int, int],
    sample: SampleFn,
    distance: DistanceFn,
    rng: np.random.Generator,
    mindist: float = 0.0,
    overlap: Literal["sum", "max"] = "sum",
    profile: ProfileFn = gaussian_profile,
) -> np.ndarray:
    """Evaluate bumps of every component on the grid.

    Args:
        components: Bump components, or numeric Gaussian rows [count, ampl, sigma]
        points: (m*n, 2) grid points in the bump domain, row-major
        grid_shape: (m, n)
        sample: Domain sampler used for centre placement
        distance: Domain distance function
        rng: Random generator
        mindist: Minimum distance between centres of the same component
        overlap: 'sum' adds contributions, 'max' keeps the largest magnitude
        profile: Radial profile ``f(d, params)``

    Returns:
        (m, n) bump field
    """
    comps = parse_bump_components(components)
    if overlap not in ("sum", "max"):
        raise ShapeConfigError(f"Unknown overlap policy '{overlap}'. Use 'sum' or 'max'.")

    field = np.zeros(len(points))
    for i, comp in enumerate(comps):
        if comp.centers is not None:
            centers = np.atleast_2d(np.asarray(comp.centers, dtype=float))
            if centers.shape[1] != 2:
                raise ShapeConfigError(
                    f"Bump component {i}: centers must be (k, 2), got {centers.shape}"
                )
        else:
            try:
                centers = place_centers(comp.count, sample, distance, rng, mindist)
            except PlacementError as e:
                raise PlacementError(f"Bump component {i}: {e}") from None

        for center in centers:
            d = distance(center[None, :], points)[0]
            idx = np.flatnonzero(d < comp.cutoff)
            if len(idx) == 0:
                continue
            values = np.asarray(profile(d[idx], comp.params), dtype=float)
            if overlap == "sum":
                field[idx] += values
            else:
                stronger = np.abs(values) > np.abs(field[idx])
                field[idx[stronger]] = values[stronger]

        logger.debug(f"Bump component {i}: {len(centers)} bump(s), cutoff {comp.cutoff:.4f}")

    return field.reshape(grid_shape)
