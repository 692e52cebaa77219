"""Curve resampling and mesh conversion utilities."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import trimesh

from .._errors import ShapeConfigError
from ._safe_ops import normalize_with_norm

if TYPE_CHECKING:
    from .._model import Model


def as_curve(values, name: str, min_length: int = 2) -> np.ndarray:
    """Validate a 1D numeric curve and return it as a float array."""
    curve = np.asarray(values, dtype=float)
    if curve.ndim != 1 or len(curve) < min_length:
        raise ShapeConfigError(
            f"'{name}' must be a 1D vector with at least {min_length} values, "
            f"got shape {curve.shape}"
        )
    if not np.all(np.isfinite(curve)):
        raise ShapeConfigError(f"'{name}' contains non-finite values")
    return curve


def resample_curve(curve: np.ndarray, n: int) -> np.ndarray:
    """Linearly resample an open curve to n samples spanning its full length."""
    return np.interp(np.linspace(0, 1, n), np.linspace(0, 1, len(curve)), curve)


def resample_periodic_curve(curve: np.ndarray, n: int) -> np.ndarray:
    """Linearly resample a closed curve; the sample after the last one is the first."""
    xp = np.arange(len(curve)) / len(curve)
    return np.interp(np.arange(n) / n, xp, curve, period=1.0)


def resample_polyline(points: np.ndarray, n: int) -> tuple[np.ndarray, float]:
    """Resample a 3D polyline to n points evenly spaced in arc length.

    Args:
        points: (k, 3) polyline vertices
        n: Number of output points

    Returns:
        Tuple of ((n, 3) points, total arc length)
    """
    seg = np.linalg.norm(np.diff(points, axis=0), axis=1)
    s = np.concatenate([[0.0], np.cumsum(seg)])
    length = float(s[-1])
    if length <= 0:
        raise ShapeConfigError("'spine' has zero length")

    # Drop repeated points so that the arc length parameter is strictly increasing.
    keep = np.concatenate([[True], seg > 0])
    s, points = s[keep], points[keep]

    target = np.linspace(0, length, n)
    resampled = np.stack([np.interp(target, s, points[:, k]) for k in range(3)], axis=1)
    return resampled, length


def rotation_minimizing_frames(points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Normal and binormal vectors along a curve by the double reflection method.

    The first normal is the x axis projected off the first tangent (y axis
    if the tangent is along x), so that a straight spine along +z gives the
    frames (x, y) everywhere.

    Args:
        points: (m, 3) curve samples

    Returns:
        Tuple of ((m, 3) normals, (m, 3) binormals)
    """
    tangents, _ = normalize_with_norm(np.gradient(points, axis=0))
    m = len(points)

    t0 = tangents[0]
    ref = np.array([1.0, 0.0, 0.0])
    if abs(t0 @ ref) > 0.9:
        ref = np.array([0.0, 1.0, 0.0])
    r0, _ = normalize_with_norm(ref - (ref @ t0) * t0)

    normals = np.zeros((m, 3))
    normals[0] = r0
    for i in range(m - 1):
        v1 = points[i + 1] - points[i]
        c1 = v1 @ v1
        if c1 < 1e-20:
            normals[i + 1] = normals[i]
            continue
        r_l = normals[i] - (2 / c1) * (v1 @ normals[i]) * v1
        t_l = tangents[i] - (2 / c1) * (v1 @ tangents[i]) * v1
        v2 = tangents[i + 1] - t_l
        c2 = v2 @ v2
        normals[i + 1] = r_l if c2 < 1e-20 else r_l - (2 / c2) * (v2 @ r_l) * v2

    binormals = np.cross(tangents, normals)
    return normals, binormals


def model_to_trimesh(model: "Model") -> trimesh.Trimesh:
    """Convert a finalized model to a trimesh.Trimesh without merging vertices."""
    model.finalize()
    mesh = trimesh.Trimesh(
        vertices=model.vertices,
        faces=model.faces,
        vertex_normals=model.normals,
        process=False,
    )
    if model.uvs is not None:
        # Texture coordinates are indexed per face corner, not per vertex.
        mesh.metadata["uv"] = model.uvs
        mesh.metadata["uv_faces"] = model.uv_faces
    return mesh
