"""The model aggregate: base grid, perturbation list and derived mesh buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, TYPE_CHECKING

import numpy as np
from loguru import logger

from ._config import ShapeParams, ShapeType
from ._errors import ShapeConfigError
from ._faces import cap_faces, grid_faces, uv_coordinates, uv_faces, vertex_normals
from ._shapes import Grid, ShapeBuilder, get_builder

if TYPE_CHECKING:
    import trimesh


@dataclass(eq=False)
class Perturbation:
    """One perturbation field together with its enabled flag."""

    kind: Literal["sine", "noise", "bump", "custom"]
    field: np.ndarray
    enabled: bool = True
    target: Literal["primary", "major"] = "primary"
    description: dict[str, Any] = field(default_factory=dict)
    """Generating parameters, for bookkeeping and file headers."""


@dataclass
class _Buffers:
    vertices: np.ndarray
    faces: np.ndarray
    normals: np.ndarray | None
    uvs: np.ndarray | None
    uv_faces: np.ndarray | None


@dataclass(eq=False)
class Model:
    """A shape grid with an ordered list of perturbations.

    The base grid is fixed at creation. Perturbations are appended and can
    be toggled on and off; the derived field and the mesh buffers are
    always recomputed from the base field, the perturbation fields and
    their enabled flags.

    Usage:
        model = Model.create("sphere", ShapeParams(npoints=(64, 128)))
        model = make_sine(model, [8, 0.1])
        model = make_noise(model, [16, 1, 0, 30, 0.05])
        model.set_enabled(0, False)
        model.save_obj("sphere.obj")
    """

    shape: ShapeType
    grid: Grid
    params: ShapeParams
    perturbations: list[Perturbation] = field(default_factory=list)
    _buffers: _Buffers | None = field(default=None, init=False, repr=False)
    _buffers_key: tuple | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(cls, shape: ShapeType | str, params: ShapeParams | None = None) -> "Model":
        """Build an unperturbed model.

        Args:
            shape: Shape name or ShapeType
            params: Shape parameters. If None, uses defaults.

        Returns:
            Model with an empty perturbation list

        Raises:
            ShapeConfigError: On unknown shapes or invalid parameters
        """
        shape = ShapeType.parse(shape)
        params = params or ShapeParams()
        grid = get_builder(shape).build(params)
        return cls(shape=shape, grid=grid, params=params)

    # =========================================================================
    # Grid
    # =========================================================================

    @property
    def builder(self) -> ShapeBuilder:
        return get_builder(self.shape)

    @property
    def m(self) -> int:
        """Number of grid rows."""
        return self.grid.shape[0]

    @property
    def n(self) -> int:
        """Number of grid columns."""
        return self.grid.shape[1]

    @property
    def base(self) -> np.ndarray:
        return self.grid.base

    def base_for(self, target: str) -> np.ndarray:
        """Base field perturbed by the given target."""
        if target == "major":
            if self.grid.base_major is None:
                raise ShapeConfigError(
                    f"Target 'major' is only valid for the torus, not {self.shape.value}"
                )
            return self.grid.base_major
        return self.grid.base

    # =========================================================================
    # Perturbations
    # =========================================================================

    @property
    def enabled_mask(self) -> np.ndarray:
        """Boolean flag per perturbation, in insertion order."""
        return np.array([p.enabled for p in self.perturbations], dtype=bool)

    def add_perturbation(self, perturbation: Perturbation) -> int:
        """Append a perturbation and return its index."""
        if perturbation.field.shape != self.grid.shape:
            raise ShapeConfigError(
                f"Perturbation field shape {perturbation.field.shape} does not match "
                f"the {self.shape.value} grid {self.grid.shape}"
            )
        self.base_for(perturbation.target)
        perturbation.field.setflags(write=False)
        self.perturbations.append(perturbation)
        logger.debug(
            f"{self.shape.value}: added {perturbation.kind} perturbation "
            f"#{len(self.perturbations) - 1} ({perturbation.target})"
        )
        return len(self.perturbations) - 1

    def set_enabled(self, index: int, enabled: bool = True) -> None:
        """Enable or disable one perturbation."""
        if not -len(self.perturbations) <= index < len(self.perturbations):
            raise ShapeConfigError(
                f"No perturbation {index}; the model has {len(self.perturbations)}"
            )
        self.perturbations[index].enabled = bool(enabled)

    def set_mask(self, mask) -> None:
        """Set all enabled flags at once."""
        mask = np.asarray(mask, dtype=bool).ravel()
        if len(mask) != len(self.perturbations):
            raise ShapeConfigError(
                f"Mask has {len(mask)} entries but the model has "
                f"{len(self.perturbations)} perturbations"
            )
        for p, flag in zip(self.perturbations, mask):
            p.enabled = bool(flag)

    def _derived(self, target: str) -> np.ndarray:
        total = np.array(self.base_for(target), dtype=float)
        for p in self.perturbations:
            if p.enabled and p.target == target:
                total += p.field
        return total

    @property
    def derived_field(self) -> np.ndarray:
        """Base field plus all enabled perturbations (radius, height or minor radius)."""
        return self._derived("primary")

    @property
    def derived_major(self) -> np.ndarray | None:
        """Torus major radius plus its enabled perturbations; None for other shapes."""
        if self.grid.base_major is None:
            return None
        return self._derived("major")

    # =========================================================================
    # Mesh buffers
    # =========================================================================

    def _state_key(self) -> tuple:
        # Changes whenever a perturbation is added, removed, replaced or toggled,
        # including direct edits of `perturbations` or `Perturbation.enabled`.
        return tuple((id(p), id(p.field), p.target, p.enabled) for p in self.perturbations)

    def finalize(self) -> None:
        """Compute vertices, faces and optional normals and uvs.

        A no-op if the perturbation list and the enabled flags are unchanged
        since the last call.
        """
        key = self._state_key()
        if self._buffers is not None and self._buffers_key == key:
            return

        b = self.builder
        m, n = self.grid.shape
        caps = self.params.caps

        vertices = b.to_cartesian(self.grid, self.derived_field, self.derived_major)
        faces = grid_faces(m, n, b.periodic_rows, b.periodic_cols, b.reverse_winding)
        if caps:
            vertices = np.concatenate([vertices, b.cap_centers(self.grid)])
            faces = np.concatenate([faces, cap_faces(m, n, b.reverse_winding)])

        normals = vertex_normals(vertices, faces) if self.params.normals else None

        uvs = uvf = None
        if self.params.material is not None:
            uvs = uv_coordinates(m, n, b.periodic_rows, b.periodic_cols, caps)
            uvf = uv_faces(m, n, b.periodic_rows, b.periodic_cols, b.reverse_winding, caps)

        self._buffers = _Buffers(vertices, faces, normals, uvs, uvf)
        self._buffers_key = key

    @property
    def vertices(self) -> np.ndarray:
        """(N, 3) vertex positions, row-major over the grid, cap centres last."""
        self.finalize()
        return self._buffers.vertices

    @property
    def faces(self) -> np.ndarray:
        """(F, 3) 0-indexed triangle vertex indices."""
        self.finalize()
        return self._buffers.faces

    @property
    def normals(self) -> np.ndarray | None:
        self.finalize()
        return self._buffers.normals

    @property
    def uvs(self) -> np.ndarray | None:
        self.finalize()
        return self._buffers.uvs

    @property
    def uv_faces(self) -> np.ndarray | None:
        self.finalize()
        return self._buffers.uv_faces

    def to_trimesh(self) -> "trimesh.Trimesh":
        """Convert to a trimesh.Trimesh (vertices are not merged)."""
        from .utils._mesh_utils import model_to_trimesh

        return model_to_trimesh(self)

    def save_obj(self, path: Path | str) -> Path:
        """Write the model to a Wavefront OBJ file and return the path written."""
        from ._obj import write_obj

        return write_obj(self, path)
