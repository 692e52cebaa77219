"""Build a perturbed shape and save it as a Wavefront OBJ file."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import jax_dataclasses as jdc
import tyro
from loguru import logger

from shapetoolbox import (
    PerturbParams,
    ShapeParams,
    make_bumpy,
    make_noise,
    make_shape,
    make_sine,
)


def main(
    shape: Literal[
        "sphere", "plane", "disk", "torus", "cylinder", "revolution", "extrusion", "worm"
    ] = "sphere",
    sine: tuple[float, ...] = (),
    modulator: tuple[float, ...] = (),
    noise: tuple[float, ...] = (),
    bumps: tuple[float, ...] = (),
    mindist: float = 0.0,
    seed: int | None = None,
    npoints: tuple[int, int] | None = None,
    normals: bool = False,
    caps: bool = False,
    material: tuple[str, str] | None = None,
    output_path: Path | None = None,
) -> None:
    """Create a shape with optional sine, noise and bump perturbations.

    Each perturbation option takes a single component row; omit it to skip
    that perturbation.

    Args:
        shape: Base shape.
        sine: Carrier row: freq [ampl [phase [angle [group]]]].
        modulator: Modulator row for the carrier, same format.
        noise: Noise row: freq [freq_bw [angle [angle_bw [ampl [group]]]]].
        bumps: Bump row: count [ampl [sigma]].
        mindist: Minimum distance between bump centres.
        seed: Seed for noise and bump placement.
        npoints: Grid size (m, n). Defaults to the per-shape size.
        normals: Write vertex normals.
        caps: Close tube ends.
        material: (mtl file, material name); also writes texture coordinates.
        output_path: Output OBJ path. Defaults to <shape>.obj.

    Examples:
        python scripts/make_shape.py --shape sphere --sine 8 0.1
        python scripts/make_shape.py --shape plane --noise 16 1 0 30 0.05 --seed 3
        python scripts/make_shape.py --shape torus --bumps 20 0.05 0.2 --normals
    """
    shape_params = ShapeParams(npoints=npoints, caps=caps, normals=normals, material=material)
    params = PerturbParams(mindist=mindist, seed=seed)

    model = make_shape(shape, shape_params)
    logger.info(f"Created {shape} with grid {model.m}x{model.n}")

    if sine:
        model = make_sine(model, [list(sine)], [list(modulator)] if modulator else None, params=params)
    if noise:
        model = make_noise(model, [list(noise)], params=params)
    if bumps:
        # Offset the seed so bump placement does not reuse the noise draws.
        bump_params = params if seed is None else jdc.replace(params, seed=seed + 1)
        model = make_bumpy(model, [list(bumps)], params=bump_params)

    if output_path is None:
        output_path = Path(f"{shape}.obj")
    path = model.save_obj(output_path)
    logger.info(
        f"Saved {len(model.vertices)} vertices, {len(model.faces)} faces "
        f"({len(model.perturbations)} perturbations) to {path}"
    )


if __name__ == "__main__":
    tyro.cli(main)
