"""Wavefront OBJ writer and reader for model buffers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

if TYPE_CHECKING:
    from ._model import Model


@dataclass
class ObjData:
    """Buffers read back from an OBJ file; all face indices 0-based."""

    vertices: np.ndarray
    faces: np.ndarray
    uvs: np.ndarray | None = None
    uv_faces: np.ndarray | None = None
    normals: np.ndarray | None = None
    material: tuple[str, str] | None = None


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _header(model: "Model") -> list[str]:
    lines = [
        f"# Created with shapetoolbox: {model.shape.value}, grid {model.m} x {model.n}.",
        "#",
        f"# Number of vertices: {len(model.vertices)}.",
        f"# Number of faces: {len(model.faces)}.",
        f"# Texture (uv) coordinates defined: {_yes_no(model.uvs is not None)}.",
        f"# Vertex normals included: {_yes_no(model.normals is not None)}.",
    ]
    if model.perturbations:
        lines += ["#", "# Perturbations (index | kind | target | enabled):"]
        for i, p in enumerate(model.perturbations):
            lines.append(f"#  {i:3d}  {p.kind:6s}  {p.target:7s}  {_yes_no(p.enabled)}")
            for key, value in p.description.items():
                lines.append(f"#         {key}: {value}")
    return lines


def write_obj(model: "Model", path: Path | str) -> Path:
    """
    Write a model to a Wavefront OBJ file.

    Texture coordinates and the material directives are written iff the
    model has a material; normals iff normal computation was requested.
    Face indices are 1-based, in the vertex/uv/normal form matching the
    buffers present.

    Args:
        model: Model to write (finalized on demand)
        path: Output path; '.obj' is appended if missing

    Returns:
        The path written
    """
    path = Path(path)
    if path.suffix.lower() != ".obj":
        path = path.with_name(path.name + ".obj")

    model.finalize()
    faces = model.faces + 1
    uv_faces = model.uv_faces + 1 if model.uv_faces is not None else None
    has_normals = model.normals is not None

    if uv_faces is not None and has_normals:
        face_rows = np.stack([faces, uv_faces, faces], axis=2).reshape(-1, 9)
        face_fmt = "f %d/%d/%d %d/%d/%d %d/%d/%d"
    elif uv_faces is not None:
        face_rows = np.stack([faces, uv_faces], axis=2).reshape(-1, 6)
        face_fmt = "f %d/%d %d/%d %d/%d"
    elif has_normals:
        face_rows = np.stack([faces, faces], axis=2).reshape(-1, 6)
        face_fmt = "f %d//%d %d//%d %d//%d"
    else:
        face_rows = faces
        face_fmt = "f %d %d %d"

    with path.open(mode="w") as f:
        f.write("\n".join(_header(model)) + "\n")
        if model.params.material is not None:
            mtlfile, mtlname = model.params.material
            f.write(f"\nmtllib {mtlfile}\nusemtl {mtlname}\n")

        f.write("\n# Vertices:\n")
        np.savetxt(f, model.vertices, fmt="v %8.6f %8.6f %8.6f")
        f.write("# End vertices\n")

        if model.uvs is not None:
            f.write("\n# Texture coordinates:\n")
            np.savetxt(f, model.uvs, fmt="vt %8.6f %8.6f")
            f.write("# End texture coordinates\n")

        if has_normals:
            f.write("\n# Normals:\n")
            np.savetxt(f, model.normals, fmt="vn %8.6f %8.6f %8.6f")
            f.write("# End normals\n")

        f.write("\n# Faces:\n")
        np.savetxt(f, face_rows, fmt=face_fmt)
        f.write("# End faces\n")

    logger.debug(f"Wrote {len(model.vertices)} vertices, {len(faces)} faces to {path}")
    return path


def read_obj(path: Path | str) -> ObjData:
    """
    Read the vertex, uv, normal and triangle buffers of an OBJ file.

    Only the subset written by ``write_obj`` is understood: 'v', 'vt', 'vn',
    triangular 'f' lines and the material directives.

    Raises:
        ValueError: On faces that are not triangles
    """
    vertices: list[list[float]] = []
    uvs: list[list[float]] = []
    normals: list[list[float]] = []
    faces: list[list[int]] = []
    uv_faces: list[list[int]] = []
    mtllib = usemtl = None

    with Path(path).open() as f:
        for line in f:
            parts = line.split()
            if not parts or parts[0].startswith("#"):
                continue
            key, values = parts[0], parts[1:]
            if key == "v":
                vertices.append([float(x) for x in values[:3]])
            elif key == "vt":
                uvs.append([float(x) for x in values[:2]])
            elif key == "vn":
                normals.append([float(x) for x in values[:3]])
            elif key == "f":
                if len(values) != 3:
                    raise ValueError(f"Only triangular faces are supported, got: {line.strip()}")
                corners = [v.split("/") for v in values]
                faces.append([int(c[0]) - 1 for c in corners])
                if len(corners[0]) > 1 and corners[0][1]:
                    uv_faces.append([int(c[1]) - 1 for c in corners])
            elif key == "mtllib":
                mtllib = values[0]
            elif key == "usemtl":
                usemtl = values[0]

    return ObjData(
        vertices=np.array(vertices, dtype=float).reshape(-1, 3),
        faces=np.array(faces, dtype=np.int64).reshape(-1, 3),
        uvs=np.array(uvs, dtype=float) if uvs else None,
        uv_faces=np.array(uv_faces, dtype=np.int64) if uv_faces else None,
        normals=np.array(normals, dtype=float) if normals else None,
        material=(mtllib, usemtl) if mtllib is not None else None,
    )
