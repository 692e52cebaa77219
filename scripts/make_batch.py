"""Generate a stimulus set: one shape per carrier frequency, saved as OBJ files."""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Literal

import tyro
from loguru import logger

from shapetoolbox import BatchJob, PerturbParams, ShapeParams, make_sine, run_batch


def main(
    shape: Literal[
        "sphere", "plane", "disk", "torus", "cylinder", "revolution", "extrusion", "worm"
    ] = "sphere",
    frequencies: tuple[float, ...] = (2.0, 4.0, 8.0, 16.0),
    amplitude: float = 0.1,
    npoints: tuple[int, int] | None = None,
    normals: bool = False,
    output_dir: Path = Path("stimuli"),
    ignore_errors: bool = False,
) -> None:
    """Build one sine-perturbed shape per frequency.

    Args:
        shape: Base shape.
        frequencies: Carrier frequencies, one model each.
        amplitude: Carrier amplitude shared by all models.
        npoints: Grid size (m, n). Defaults to the per-shape size.
        normals: Write vertex normals.
        output_dir: Directory for the OBJ files.
        ignore_errors: Skip models that fail instead of stopping.

    Examples:
        python scripts/make_batch.py
        python scripts/make_batch.py --shape torus --frequencies 3 6 12 --amplitude 0.05
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    shape_params = ShapeParams(npoints=npoints, normals=normals)

    jobs = [
        BatchJob(
            name=f"{shape}_f{f:g}",
            build=partial(
                make_sine, shape, [[f, amplitude]], shape_params=shape_params, params=PerturbParams()
            ),
            path=output_dir / f"{shape}_f{f:g}.obj",
        )
        for f in frequencies
    ]
    result = run_batch(jobs, ignore_errors=ignore_errors)

    for name, path in result.paths.items():
        logger.info(f"  {name}: {path}")
    for name, error in result.failures.items():
        logger.warning(f"  {name} failed: {error}")


if __name__ == "__main__":
    tyro.cli(main)
