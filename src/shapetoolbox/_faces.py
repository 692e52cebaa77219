"""Triangle index buffers, texture coordinates and vertex normals for grid meshes.

Vertices of an (m, n) grid are stored row-major: vertex (i, j) has index
``i * n + j``. Periodic axes are closed by index arithmetic, the seam
column (or row) is never duplicated in the vertex buffer. Texture
coordinates do duplicate the seam, so they live in their own buffer with
their own face indices.
"""

from __future__ import annotations

import numpy as np
from jaxtyping import Float, Int
from loguru import logger

from .utils._safe_ops import normalize_with_norm


def _quad_corners(
    rows: int,
    cols: int,
    row_stride: int,
    row_wrap: int | None,
    col_wrap: int | None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    i, j = np.meshgrid(np.arange(rows), np.arange(cols), indexing="ij")
    i, j = i.ravel(), j.ravel()
    i1 = i + 1 if row_wrap is None else (i + 1) % row_wrap
    j1 = j + 1 if col_wrap is None else (j + 1) % col_wrap
    return i * row_stride + j, i * row_stride + j1, i1 * row_stride + j1, i1 * row_stride + j


def _interleave(a, b, c, d, reverse: bool) -> np.ndarray:
    faces = np.empty((2 * len(a), 3), dtype=np.int64)
    faces[0::2] = np.stack([a, b, c], axis=1)
    faces[1::2] = np.stack([a, c, d], axis=1)
    return faces[:, ::-1].copy() if reverse else faces


def grid_faces(
    m: int,
    n: int,
    periodic_rows: bool = False,
    periodic_cols: bool = True,
    reverse: bool = False,
) -> Int[np.ndarray, "F 3"]:
    """Two triangles per grid quad, 0-indexed.

    With columns as the "east" direction and rows as "north", triangles are
    counter-clockwise when seen from the side the east x north cross
    product points to. ``reverse`` flips the winding.

    Args:
        m: Number of rows
        n: Number of columns
        periodic_rows: Connect the last row back to the first
        periodic_cols: Connect the last column back to the first
        reverse: Flip the winding order

    Returns:
        (F, 3) vertex indices, F = 2 * rows * cols where rows is m or m-1
        and cols is n or n-1 depending on periodicity
    """
    rows = m if periodic_rows else m - 1
    cols = n if periodic_cols else n - 1
    corners = _quad_corners(
        rows, cols, n, m if periodic_rows else None, n if periodic_cols else None
    )
    return _interleave(*corners, reverse=reverse)


def cap_faces(m: int, n: int, reverse: bool = False) -> Int[np.ndarray, "F 3"]:
    """Triangle fans closing both ends of a tube.

    The bottom centre vertex has index m*n and the top centre m*n + 1.
    Bottom faces come first, then top faces, n of each.
    """
    j = np.arange(n)
    j1 = (j + 1) % n
    top = (m - 1) * n
    bottom_faces = np.stack([np.full(n, m * n), j1, j], axis=1)
    top_faces = np.stack([np.full(n, m * n + 1), top + j, top + j1], axis=1)
    faces = np.concatenate([bottom_faces, top_faces]).astype(np.int64)
    return faces[:, ::-1].copy() if reverse else faces


def uv_coordinates(
    m: int,
    n: int,
    periodic_rows: bool = False,
    periodic_cols: bool = True,
    caps: bool = False,
) -> Float[np.ndarray, "K 2"]:
    """Texture coordinates over [0, 1]^2 with duplicated seams.

    Periodic axes get one extra sample so that the texture wraps exactly
    once. With caps, the two centre uvs (0.5, 0) and (0.5, 1) are appended.
    """
    nu = n + 1 if periodic_cols else n
    nv = m + 1 if periodic_rows else m
    U, V = np.meshgrid(np.linspace(0, 1, nu), np.linspace(0, 1, nv))
    uv = np.stack([U.ravel(), V.ravel()], axis=1)
    if caps:
        uv = np.concatenate([uv, [[0.5, 0.0], [0.5, 1.0]]])
    return uv


def uv_faces(
    m: int,
    n: int,
    periodic_rows: bool = False,
    periodic_cols: bool = True,
    reverse: bool = False,
    caps: bool = False,
) -> Int[np.ndarray, "F 3"]:
    """Face indices into the buffer of ``uv_coordinates``, parallel to the vertex faces."""
    nu = n + 1 if periodic_cols else n
    rows = m if periodic_rows else m - 1
    cols = n if periodic_cols else n - 1
    faces = _interleave(*_quad_corners(rows, cols, nu, None, None), reverse=reverse)
    if not caps:
        return faces

    nv = m + 1 if periodic_rows else m
    j = np.arange(n)
    top = (nv - 1) * nu
    bottom_faces = np.stack([np.full(n, nv * nu), j + 1, j], axis=1)
    top_faces = np.stack([np.full(n, nv * nu + 1), top + j, top + j + 1], axis=1)
    cap = np.concatenate([bottom_faces, top_faces]).astype(np.int64)
    if reverse:
        cap = cap[:, ::-1]
    return np.concatenate([faces, cap])


def face_normals(
    vertices: Float[np.ndarray, "N 3"],
    faces: Int[np.ndarray, "F 3"],
) -> Float[np.ndarray, "F 3"]:
    """Unnormalized face normals (cross product of two edges, area weighted)."""
    v0 = vertices[faces[:, 0]]
    return np.cross(vertices[faces[:, 1]] - v0, vertices[faces[:, 2]] - v0)


def vertex_normals(
    vertices: Float[np.ndarray, "N 3"],
    faces: Int[np.ndarray, "F 3"],
) -> Float[np.ndarray, "N 3"]:
    """Per-vertex normals from accumulated face normals.

    Every face adds its (area weighted) normal to its three vertices, then
    each vertex normal is renormalized. Vertices at the same position, such
    as the row of vertices forming a sphere pole, pool their contributions
    and share one normal. Zero-area faces contribute nothing.
    """
    fn = face_normals(vertices, faces)
    n_degenerate = int(np.count_nonzero(np.linalg.norm(fn, axis=1) < 1e-15))
    if n_degenerate:
        logger.debug(f"{n_degenerate} zero-area face(s) skipped in normal computation")

    _, shared = np.unique(np.round(vertices, 9) + 0.0, axis=0, return_inverse=True)
    shared = shared.ravel()
    accum = np.zeros((shared.max() + 1, 3))
    for k in range(3):
        np.add.at(accum, shared[faces[:, k]], fn)

    normals, norm = normalize_with_norm(accum[shared])
    n_orphans = int(np.count_nonzero(norm < 1e-12))
    if n_orphans:
        logger.warning(f"{n_orphans} vertex normal(s) undefined (no non-degenerate faces)")
    return normals
