"""Native parameter grids, base fields and Cartesian mappings of the base shapes.

Every shape is an (m, n) grid: rows run along the non-periodic (or minor)
axis, columns along the periodic (or fast) one. A builder creates the grid
and base field once; perturbation producers then ask it for coordinate
fields in cycle units (angles divided by 2*pi) and for the bump domain,
and the model asks it to map the perturbed field to vertices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

import numpy as np
from loguru import logger

from ._config import DEFAULT_NPOINTS, ShapeParams, ShapeType, TUBE_SHAPES, check_choice
from ._errors import ShapeConfigError
from .utils._mesh_utils import (
    as_curve,
    resample_curve,
    resample_periodic_curve,
    resample_polyline,
    rotation_minimizing_frames,
)


@dataclass
class Grid:
    """Native grid of a shape, fixed at creation."""

    u: np.ndarray
    """(n,) column axis values."""

    v: np.ndarray
    """(m,) row axis values."""

    base: np.ndarray
    """(m, n) unperturbed field: radius, height or minor radius."""

    base_major: np.ndarray | None = None
    """(m, n) unperturbed torus major radius."""

    coords: str = "polar"
    rcurve: np.ndarray | None = None
    ecurve: np.ndarray | None = None
    spine: np.ndarray | None = None
    """(m, 3) resampled worm midline."""

    frames: tuple[np.ndarray, np.ndarray] | None = field(default=None, repr=False)

    @property
    def shape(self) -> tuple[int, int]:
        return self.base.shape

    @property
    def U(self) -> np.ndarray:
        return np.broadcast_to(self.u[None, :], self.shape)

    @property
    def V(self) -> np.ndarray:
        return np.broadcast_to(self.v[:, None], self.shape)


def _freeze(*arrays: np.ndarray | None) -> None:
    for a in arrays:
        if a is not None:
            a.setflags(write=False)


def _angles(n: int) -> np.ndarray:
    """n azimuths from -pi up to (not including) pi."""
    return np.linspace(-np.pi, np.pi - 2 * np.pi / n, n)


def _wrap(a: np.ndarray) -> np.ndarray:
    return np.mod(a + np.pi, 2 * np.pi) - np.pi


def _euclidean(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.hypot(a[:, None, 0] - b[None, :, 0], a[:, None, 1] - b[None, :, 1])


class ShapeBuilder:
    """Common capability of all shape grid builders."""

    shape: ClassVar[ShapeType]
    periodic_rows: ClassVar[bool] = False
    periodic_cols: ClassVar[bool] = True
    radial: ClassVar[bool] = True
    """Base field is a radius that must stay positive."""
    reverse_winding: ClassVar[bool] = False
    has_caps: ClassVar[bool] = False

    min_points: ClassVar[tuple[int, int]] = (2, 3)

    def build(self, params: ShapeParams) -> Grid:
        """Create the grid and base field.

        Raises:
            ShapeConfigError: On bad grid size or options the shape does not take
        """
        m, n = self.resolve_npoints(params)
        self.check_params(params)
        grid = self.make_grid(m, n, params)
        _freeze(grid.u, grid.v, grid.base, grid.base_major, grid.rcurve, grid.ecurve, grid.spine)
        logger.debug(f"Built {self.shape.value} grid {m}x{n}")
        return grid

    def resolve_npoints(self, params: ShapeParams) -> tuple[int, int]:
        npoints = params.npoints if params.npoints is not None else DEFAULT_NPOINTS[self.shape]
        values = np.asarray(npoints).ravel()
        if len(values) != 2:
            raise ShapeConfigError(
                f"'npoints' for {self.shape.value} must have two values (m, n), got {npoints}"
            )
        m, n = (int(x) for x in values)
        if m != values[0] or n != values[1] or m < self.min_points[0] or n < self.min_points[1]:
            raise ShapeConfigError(
                f"'npoints' for {self.shape.value} must be integers of at least "
                f"{self.min_points}, got {npoints}"
            )
        return m, n

    def check_params(self, params: ShapeParams) -> None:
        if params.caps and not self.has_caps:
            raise ShapeConfigError(f"Option 'caps' is only valid for tube shapes, not {self.shape.value}")
        for name in ("rcurve", "ecurve", "spine"):
            if getattr(params, name) is not None and self.shape not in TUBE_SHAPES:
                raise ShapeConfigError(f"Option '{name}' is not valid for {self.shape.value}")

    def make_grid(self, m: int, n: int, params: ShapeParams) -> Grid:
        raise NotImplementedError

    def coordinates(self, grid: Grid) -> tuple[np.ndarray, np.ndarray, bool]:
        """Coordinate fields (x, y) in cycle units, plus whether they form a regular grid."""
        return grid.U / (2 * np.pi), grid.V / (2 * np.pi), True

    def bump_points(self, grid: Grid) -> np.ndarray:
        """(m*n, 2) grid points in the bump domain, row-major."""
        return np.stack([grid.U.ravel(), grid.V.ravel()], axis=1)

    def sample(self, grid: Grid, rng: np.random.Generator, k: int) -> np.ndarray:
        """k points distributed uniformly over the surface, in the bump domain."""
        raise NotImplementedError

    def distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """(len(a), len(b)) surface distances between bump-domain points."""
        raise NotImplementedError

    def to_cartesian(
        self, grid: Grid, field: np.ndarray, major: np.ndarray | None = None
    ) -> np.ndarray:
        """(m*n, 3) vertices, row-major, from the derived field."""
        raise NotImplementedError

    def cap_centers(self, grid: Grid) -> np.ndarray:
        raise ShapeConfigError(f"{self.shape.value} has no caps")


class SphereBuilder(ShapeBuilder):
    """Unit sphere; rows are elevation, columns azimuth."""

    shape = ShapeType.SPHERE

    def make_grid(self, m: int, n: int, params: ShapeParams) -> Grid:
        return Grid(u=_angles(n), v=np.linspace(-np.pi / 2, np.pi / 2, m), base=np.ones((m, n)))

    def sample(self, grid: Grid, rng: np.random.Generator, k: int) -> np.ndarray:
        azimuth = rng.uniform(-np.pi, np.pi, k)
        elevation = np.arcsin(rng.uniform(-1.0, 1.0, k))
        return np.stack([azimuth, elevation], axis=1)

    def distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        # Great-circle distance on the unit sphere.
        az1, el1 = a[:, None, 0], a[:, None, 1]
        az2, el2 = b[None, :, 0], b[None, :, 1]
        cos_d = np.sin(el1) * np.sin(el2) + np.cos(el1) * np.cos(el2) * np.cos(az1 - az2)
        return np.arccos(np.clip(cos_d, -1.0, 1.0))

    def to_cartesian(self, grid, field, major=None):
        azimuth, elevation = grid.U, grid.V
        x = field * np.cos(elevation) * np.cos(azimuth)
        y = field * np.cos(elevation) * np.sin(azimuth)
        z = field * np.sin(elevation)
        return np.stack([x.ravel(), y.ravel(), z.ravel()], axis=1)


class PlaneBuilder(ShapeBuilder):
    """Rectangle in the xy-plane, displaced along z; no periodic axis."""

    shape = ShapeType.PLANE
    periodic_cols = False
    radial = False
    min_points = (2, 2)

    def make_grid(self, m: int, n: int, params: ShapeParams) -> Grid:
        w = params.width
        h = params.height if params.height is not None else m / n * w
        if w <= 0 or h <= 0:
            raise ShapeConfigError(f"Plane width and height must be positive, got {w} x {h}")
        return Grid(
            u=np.linspace(-w / 2, w / 2, n),
            v=np.linspace(-h / 2, h / 2, m),
            base=np.zeros((m, n)),
        )

    def coordinates(self, grid: Grid):
        return grid.U, grid.V, True

    def sample(self, grid: Grid, rng: np.random.Generator, k: int) -> np.ndarray:
        x = rng.uniform(grid.u[0], grid.u[-1], k)
        y = rng.uniform(grid.v[0], grid.v[-1], k)
        return np.stack([x, y], axis=1)

    def distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return _euclidean(a, b)

    def to_cartesian(self, grid, field, major=None):
        return np.stack([grid.U.ravel(), grid.V.ravel(), field.ravel()], axis=1)


class DiskBuilder(ShapeBuilder):
    """Unit disk in the xy-plane, displaced along z; rows are radius, columns angle."""

    shape = ShapeType.DISK
    radial = False
    reverse_winding = True

    def check_params(self, params: ShapeParams) -> None:
        super().check_params(params)
        check_choice("coords", params.coords, ("polar", "cartesian"))

    def make_grid(self, m: int, n: int, params: ShapeParams) -> Grid:
        return Grid(
            u=_angles(n), v=np.linspace(0.0, 1.0, m), base=np.zeros((m, n)), coords=params.coords
        )

    def coordinates(self, grid: Grid):
        if grid.coords == "cartesian":
            return grid.V * np.cos(grid.U), grid.V * np.sin(grid.U), False
        return grid.U / (2 * np.pi), grid.V, True

    def bump_points(self, grid: Grid) -> np.ndarray:
        r, a = grid.V.ravel(), grid.U.ravel()
        return np.stack([r * np.cos(a), r * np.sin(a)], axis=1)

    def sample(self, grid: Grid, rng: np.random.Generator, k: int) -> np.ndarray:
        r = np.sqrt(rng.uniform(0.0, 1.0, k))
        a = rng.uniform(-np.pi, np.pi, k)
        return np.stack([r * np.cos(a), r * np.sin(a)], axis=1)

    def distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return _euclidean(a, b)

    def to_cartesian(self, grid, field, major=None):
        points = self.bump_points(grid)
        return np.concatenate([points, field.reshape(-1, 1)], axis=1)


class TorusBuilder(ShapeBuilder):
    """Ring torus; rows are the minor (tube) angle, columns the major angle."""

    shape = ShapeType.TORUS
    periodic_rows = True
    min_points = (3, 3)

    def make_grid(self, m: int, n: int, params: ShapeParams) -> Grid:
        r, R = params.minor_radius, params.major_radius
        if not 0 < r < R:
            raise ShapeConfigError(
                f"Torus radii must satisfy 0 < minor_radius < major_radius, got {r} and {R}"
            )
        return Grid(
            u=_angles(n),
            v=_angles(m),
            base=np.full((m, n), float(r)),
            base_major=np.full((m, n), float(R)),
        )

    def sample(self, grid: Grid, rng: np.random.Generator, k: int) -> np.ndarray:
        return rng.uniform(-np.pi, np.pi, (k, 2))

    def distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        # Distance in the (major, minor) angle plane, wrapped on both axes.
        d_major = _wrap(a[:, None, 0] - b[None, :, 0])
        d_minor = _wrap(a[:, None, 1] - b[None, :, 1])
        return np.hypot(d_major, d_minor)

    def to_cartesian(self, grid, field, major=None):
        major = grid.base_major if major is None else major
        theta, phi = grid.U, grid.V
        ring = major + field * np.cos(phi)
        x = ring * np.cos(theta)
        y = ring * np.sin(theta)
        z = field * np.sin(phi)
        return np.stack([x.ravel(), y.ravel(), z.ravel()], axis=1)


class TubeBuilder(ShapeBuilder):
    """Cylinder of height 2*pi around a spine; rows are height, columns angle.

    The base radius is built from an optional radius-vs-height curve
    (``rcurve``) and radius-vs-angle curve (``ecurve``), combined by
    ``curve_mode``. Cross-sections are placed on the spine with
    rotation-minimizing frames; the default spine is the straight z axis.
    """

    shape = ShapeType.CYLINDER
    has_caps = True
    default_rcurve: ClassVar[np.ndarray | None] = None
    default_ecurve: ClassVar[np.ndarray | None] = None
    default_spine: ClassVar[np.ndarray | None] = None

    def check_params(self, params: ShapeParams) -> None:
        super().check_params(params)
        check_choice("curve_mode", params.curve_mode, ("multiply", "add"))

    def make_grid(self, m: int, n: int, params: ShapeParams) -> Grid:
        rcurve = params.rcurve if params.rcurve is not None else self.default_rcurve
        ecurve = params.ecurve if params.ecurve is not None else self.default_ecurve
        spine_in = params.spine if params.spine is not None else self.default_spine

        rc = resample_curve(as_curve(rcurve, "rcurve"), m) if rcurve is not None else None
        ec = (
            resample_periodic_curve(as_curve(ecurve, "ecurve", min_length=1), n)
            if ecurve is not None
            else None
        )
        base = self._combine_curves(rc, ec, m, n, params.curve_mode)
        if base.min() <= 0:
            raise ShapeConfigError(
                f"Base radius of {self.shape.value} must be positive everywhere, "
                f"got minimum {base.min():.4f}"
            )

        if spine_in is None:
            v = np.linspace(-np.pi, np.pi, m)
            spine = np.stack([np.zeros(m), np.zeros(m), v], axis=1)
        else:
            pts = np.asarray(spine_in, dtype=float)
            if pts.ndim != 2 or pts.shape[1] != 3 or len(pts) < 2:
                raise ShapeConfigError(f"'spine' must be a (k, 3) array with k >= 2, got {pts.shape}")
            spine, length = resample_polyline(pts, m)
            v = np.linspace(-length / 2, length / 2, m)

        return Grid(
            u=_angles(n),
            v=v,
            base=base,
            rcurve=rc,
            ecurve=ec,
            spine=spine,
            frames=rotation_minimizing_frames(spine),
        )

    @staticmethod
    def _combine_curves(rc, ec, m: int, n: int, mode: str) -> np.ndarray:
        if mode == "multiply":
            r = np.ones(m) if rc is None else rc
            e = np.ones(n) if ec is None else ec
            return r[:, None] * e[None, :]
        if rc is None and ec is None:
            return np.ones((m, n))
        r = np.zeros(m) if rc is None else rc
        e = np.zeros(n) if ec is None else ec
        return r[:, None] + e[None, :]

    def sample(self, grid: Grid, rng: np.random.Generator, k: int) -> np.ndarray:
        angle = rng.uniform(-np.pi, np.pi, k)
        height = rng.uniform(grid.v[0], grid.v[-1], k)
        return np.stack([angle, height], axis=1)

    def distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        # Distance on the unrolled unit-radius surface, wrapped around the angle.
        d_angle = _wrap(a[:, None, 0] - b[None, :, 0])
        return np.hypot(d_angle, a[:, None, 1] - b[None, :, 1])

    def to_cartesian(self, grid, field, major=None):
        normals, binormals = grid.frames
        c = np.cos(grid.u)[None, :, None]
        s = np.sin(grid.u)[None, :, None]
        offsets = c * normals[:, None, :] + s * binormals[:, None, :]
        points = grid.spine[:, None, :] + field[:, :, None] * offsets
        return points.reshape(-1, 3)

    def cap_centers(self, grid: Grid) -> np.ndarray:
        return np.stack([grid.spine[0], grid.spine[-1]])


class RevolutionBuilder(TubeBuilder):
    """Surface of revolution: radius follows ``rcurve`` along the height."""

    shape = ShapeType.REVOLUTION
    default_rcurve = 0.5 + 0.5 * np.sin(np.linspace(0, np.pi, 64))


class ExtrusionBuilder(TubeBuilder):
    """Extruded profile: radius follows ``ecurve`` around the angle."""

    shape = ShapeType.EXTRUSION
    default_ecurve = 1 + 0.15 * np.sin(4 * np.linspace(-np.pi, np.pi, 64, endpoint=False))


class WormBuilder(TubeBuilder):
    """Tube following a 3D spine."""

    shape = ShapeType.WORM
    default_spine = np.stack(
        [
            0.5 * np.sin(np.linspace(-np.pi, np.pi, 64)),
            np.zeros(64),
            np.linspace(-np.pi, np.pi, 64),
        ],
        axis=1,
    )


_BUILDERS: dict[ShapeType, ShapeBuilder] = {
    b.shape: b
    for b in (
        SphereBuilder(),
        PlaneBuilder(),
        DiskBuilder(),
        TorusBuilder(),
        TubeBuilder(),
        RevolutionBuilder(),
        ExtrusionBuilder(),
        WormBuilder(),
    )
}


def get_builder(shape: ShapeType | str) -> ShapeBuilder:
    """Return the grid builder for a shape.

    Raises:
        ShapeConfigError: If the shape name is unknown
    """
    return _BUILDERS[ShapeType.parse(shape)]
