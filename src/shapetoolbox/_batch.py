"""Build and save several models in one go."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from loguru import logger

from ._errors import ShapeToolboxError
from ._model import Model


@dataclass(frozen=True)
class BatchJob:
    """A named model recipe, saved to ``path`` when one is given."""

    name: str
    build: Callable[[], Model]
    path: Path | str | None = None


@dataclass
class BatchResult:
    models: dict[str, Model] = field(default_factory=dict)
    failures: dict[str, ShapeToolboxError] = field(default_factory=dict)
    paths: dict[str, Path] = field(default_factory=dict)


def run_batch(jobs: Sequence[BatchJob], ignore_errors: bool = False) -> BatchResult:
    """
    Run model recipes in order.

    Args:
        jobs: Recipes to build
        ignore_errors: Record configuration errors and continue with the next
            job instead of raising

    Returns:
        BatchResult with the built models, saved paths and recorded failures

    Raises:
        ShapeToolboxError: The first failure, unless ignore_errors is set
    """
    result = BatchResult()
    for i, job in enumerate(jobs):
        if job.name in result.models or job.name in result.failures:
            logger.warning(f"Batch job name '{job.name}' repeated; later result wins")
        try:
            model = job.build()
            if job.path is not None:
                result.paths[job.name] = model.save_obj(job.path)
        except ShapeToolboxError as e:
            if not ignore_errors:
                raise
            logger.warning(f"Batch job {i} ('{job.name}') failed: {e}")
            result.failures[job.name] = e
            continue
        result.models[job.name] = model
        logger.info(f"Batch job {i} ('{job.name}'): {len(model.perturbations)} perturbation(s)")

    logger.info(f"Batch done: {len(result.models)} built, {len(result.failures)} failed")
    return result
