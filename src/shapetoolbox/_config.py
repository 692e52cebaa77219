"""Configuration for shape generation and perturbation."""

from __future__ import annotations

from enum import Enum
from typing import Literal

import jax_dataclasses as jdc
import numpy as np

from ._errors import ShapeConfigError


class ShapeType(Enum):
    """Base shapes a model can be built on.

    SPHERE: Unit sphere, azimuth x elevation grid.
    PLANE: Flat rectangle in the xy-plane, perturbed along z.
    DISK: Flat unit disk, angle x radius grid, perturbed along z.
    TORUS: Ring torus, major angle x minor angle grid, closed in both directions.
    CYLINDER: Open tube of radius 1 and height 2*pi.
    REVOLUTION: Cylinder whose radius follows a profile curve along the height.
    EXTRUSION: Cylinder whose radius follows a profile curve around the angle.
    WORM: Tube whose cross-sections follow an arbitrary 3D spine.
    """

    SPHERE = "sphere"
    PLANE = "plane"
    DISK = "disk"
    TORUS = "torus"
    CYLINDER = "cylinder"
    REVOLUTION = "revolution"
    EXTRUSION = "extrusion"
    WORM = "worm"

    @classmethod
    def parse(cls, shape: "ShapeType | str") -> "ShapeType":
        """Accept an enum member or its (case-insensitive) name."""
        if isinstance(shape, ShapeType):
            return shape
        try:
            return cls(str(shape).lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ShapeConfigError(
                f"Unknown shape '{shape}'. Valid shapes: {valid}"
            ) from None


TUBE_SHAPES: frozenset[ShapeType] = frozenset(
    {ShapeType.CYLINDER, ShapeType.REVOLUTION, ShapeType.EXTRUSION, ShapeType.WORM}
)


@jdc.pytree_dataclass
class ShapeParams:
    """Parameters fixed when a model is created."""

    npoints: tuple[int, int] | None = None
    """Grid size (m, n): rows along the non-periodic axis, columns along the
    periodic one. None uses the per-shape default."""

    width: float = 1.0
    """Plane width (x extent)."""

    height: float | None = None
    """Plane height (y extent). None keeps the aspect of the grid, m/n * width."""

    minor_radius: float = 0.4
    """Torus tube radius."""

    major_radius: float = 1.0
    """Torus ring radius."""

    coords: Literal["polar", "cartesian"] = "polar"
    """Disk coordinate convention handed to perturbations."""

    caps: bool = False
    """Close the ends of tube shapes with triangle fans."""

    rcurve: np.ndarray | None = None
    """Radius as a function of height (revolution, worm, cylinder)."""

    ecurve: np.ndarray | None = None
    """Radius as a function of angle (extrusion, worm, cylinder)."""

    spine: np.ndarray | None = None
    """(k, 3) midline points of a worm."""

    curve_mode: Literal["multiply", "add"] = "multiply"
    """How rcurve and ecurve combine into the base radius."""

    normals: bool = False
    """Compute per-vertex normals on finalization."""

    material: tuple[str, str] | None = None
    """(mtl filename, material name); enables texture coordinates."""

    @classmethod
    def from_shape(cls, shape: ShapeType | str) -> "ShapeParams":
        """Create parameters with the default grid size for a shape.

        Args:
            shape: Shape the parameters are meant for

        Returns:
            ShapeParams with npoints filled in
        """
        return cls(npoints=DEFAULT_NPOINTS[ShapeType.parse(shape)])


@jdc.pytree_dataclass
class PerturbParams:
    """Parameters of a single perturbation call."""

    mindist: float = 0.0
    """Minimum distance between bump centres (0 disables the constraint)."""

    overlap: Literal["sum", "max"] = "sum"
    """How overlapping bumps combine.

    sum: contributions add up.
    max: the contribution with the largest magnitude wins at each point.
    """

    seed: int | None = None
    """Seed for noise and bump placement. None draws fresh entropy."""

    combine: Literal["add", "multiply"] = "add"
    """How the perturbation combines with the base field.

    add: radius = base + perturbation.
    multiply: radius = base * (1 + perturbation); stored as base * perturbation.
    """

    target: Literal["primary", "major"] = "primary"
    """Field to perturb. 'major' is the torus major radius."""


DEFAULT_NPOINTS: dict[ShapeType, tuple[int, int]] = {
    ShapeType.SPHERE: (128, 256),
    ShapeType.PLANE: (256, 256),
    ShapeType.DISK: (128, 256),
    ShapeType.TORUS: (128, 256),
    ShapeType.CYLINDER: (128, 256),
    ShapeType.REVOLUTION: (128, 256),
    ShapeType.EXTRUSION: (128, 256),
    ShapeType.WORM: (128, 256),
}


def check_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    """Raise ShapeConfigError if an option value is not one of the choices."""
    if value not in choices:
        raise ShapeConfigError(
            f"Bad value for option '{name}': '{value}'. Expected one of {choices}"
        )


def validate_perturb_params(params: PerturbParams) -> None:
    """Check option values that the type annotations cannot enforce."""
    check_choice("overlap", params.overlap, ("sum", "max"))
    check_choice("combine", params.combine, ("add", "multiply"))
    check_choice("target", params.target, ("primary", "major"))
    if params.mindist < 0:
        raise ShapeConfigError(f"'mindist' must be non-negative, got {params.mindist}")
