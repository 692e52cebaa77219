"""Tests for face indices, texture coordinates and vertex normals."""

from __future__ import annotations

import numpy as np
import pytest

from shapetoolbox import ShapeParams, make_shape, make_sine
from shapetoolbox._faces import cap_faces, grid_faces, uv_coordinates, uv_faces, vertex_normals


def _expected_faces(shape: str, m: int, n: int) -> int:
    if shape == "torus":
        return 2 * m * n
    if shape == "plane":
        return 2 * (m - 1) * (n - 1)
    return 2 * (m - 1) * n


class TestFaceCounts:
    @pytest.mark.parametrize(
        "shape", ["sphere", "plane", "disk", "torus", "cylinder", "revolution", "extrusion", "worm"]
    )
    def test_counts_and_index_range(self, shape, small_model):
        model = small_model(shape)
        m, n = model.grid.shape
        faces = model.faces
        assert len(faces) == _expected_faces(shape, m, n)
        assert faces.min() >= 0
        assert faces.max() < m * n
        # Every vertex is used
        assert len(np.unique(faces)) == m * n

    @pytest.mark.parametrize("m, n", [(2, 3), (5, 7), (16, 32)])
    def test_periodic_columns(self, m, n):
        faces = grid_faces(m, n)
        assert faces.shape == (2 * (m - 1) * n, 3)
        # The seam connects the last column to the first
        assert np.any((faces == n - 1).any(axis=1) & (faces == 0).any(axis=1))

    def test_doubly_periodic(self):
        faces = grid_faces(4, 5, periodic_rows=True)
        assert faces.shape == (40, 3)
        # Each vertex belongs to six triangles on a closed grid
        np.testing.assert_array_equal(np.bincount(faces.ravel()), np.full(20, 6))

    def test_triangles_are_not_degenerate_in_index(self):
        faces = grid_faces(6, 9)
        assert np.all(faces[:, 0] != faces[:, 1])
        assert np.all(faces[:, 1] != faces[:, 2])
        assert np.all(faces[:, 0] != faces[:, 2])

    def test_reverse_flips_winding(self):
        np.testing.assert_array_equal(grid_faces(3, 4, reverse=True), grid_faces(3, 4)[:, ::-1])

    def test_caps(self):
        faces = cap_faces(3, 5)
        assert faces.shape == (10, 3)
        assert np.all(faces[:5, 0] == 15)
        assert np.all(faces[5:, 0] == 16)
        assert faces[5:, 1:].min() == 10


class TestWinding:
    @pytest.mark.parametrize("shape", ["sphere", "torus", "cylinder", "revolution", "extrusion"])
    def test_normals_point_outward(self, shape, small_model):
        model = small_model(shape, normals=True)
        m, n = model.grid.shape
        if shape == "sphere":
            # Skip the pole rows where the radial direction is ill-defined
            keep = slice(n, (m - 1) * n)
            outward = model.vertices[keep]
        elif shape == "torus":
            keep = slice(None)
            v = model.vertices
            ring = np.hypot(v[:, 0], v[:, 1])
            centre = np.stack([v[:, 0] / ring, v[:, 1] / ring, np.zeros(len(v))], axis=1)
            outward = v - model.params.major_radius * centre
        else:
            keep = slice(None)
            outward = model.vertices * np.array([1.0, 1.0, 0.0])
        dots = np.einsum("ij,ij->i", model.normals[keep], outward)
        assert np.all(dots > 0)

    @pytest.mark.parametrize("shape", ["plane", "disk"])
    def test_flat_shapes_face_up(self, shape, small_model):
        normals = small_model(shape, normals=True).normals
        np.testing.assert_allclose(normals, np.tile([0.0, 0.0, 1.0], (len(normals), 1)), atol=1e-12)

    def test_caps_face_outward(self, small_model):
        model = small_model("cylinder", caps=True, normals=True)
        m, n = model.grid.shape
        assert model.normals[m * n] == pytest.approx([0.0, 0.0, -1.0])
        assert model.normals[m * n + 1] == pytest.approx([0.0, 0.0, 1.0])


class TestNormals:
    def test_unit_length(self, small_model):
        model = make_sine(small_model("sphere", normals=True), [[4, 0.1]])
        np.testing.assert_allclose(np.linalg.norm(model.normals, axis=1), 1.0)

    def test_sphere_normals_match_radial(self):
        model = make_shape("sphere", ShapeParams(npoints=(64, 128), normals=True))
        v, nrm = model.vertices[128:-128], model.normals[128:-128]
        assert np.einsum("ij,ij->i", v, nrm).min() > 0.99

    def test_poles_get_normals(self, small_model):
        model = small_model("sphere", normals=True)
        n = model.grid.shape[1]
        np.testing.assert_allclose(model.normals[:n], np.tile([0.0, 0.0, -1.0], (n, 1)), atol=1e-9)
        np.testing.assert_allclose(model.normals[-n:], np.tile([0.0, 0.0, 1.0], (n, 1)), atol=1e-9)

    def test_degenerate_face_does_not_crash(self):
        vertices = np.array([[0.0, 0, 0], [1, 0, 0], [0, 1, 0], [2, 0, 0]])
        faces = np.array([[0, 1, 2], [0, 1, 3]])
        normals = vertex_normals(vertices, faces)
        np.testing.assert_allclose(normals[:3], np.tile([0.0, 0.0, 1.0], (3, 1)))
        np.testing.assert_array_equal(normals[3], 0.0)


class TestTextureCoordinates:
    @pytest.mark.parametrize(
        "shape, periodic_rows, periodic_cols, uv_shape",
        [
            ("sphere", False, True, lambda m, n: (m, n + 1)),
            ("plane", False, False, lambda m, n: (m, n)),
            ("torus", True, True, lambda m, n: (m + 1, n + 1)),
        ],
    )
    def test_uv_grid(self, shape, periodic_rows, periodic_cols, uv_shape):
        m, n = 4, 6
        uv = uv_coordinates(m, n, periodic_rows, periodic_cols)
        rows, cols = uv_shape(m, n)
        assert uv.shape == (rows * cols, 2)
        assert uv.min() == 0.0
        assert uv.max() == 1.0

        faces = uv_faces(m, n, periodic_rows, periodic_cols)
        assert faces.max() == rows * cols - 1
        assert len(faces) == len(grid_faces(m, n, periodic_rows, periodic_cols))

    def test_seam_uses_duplicated_texture_column(self):
        m, n = 3, 4
        faces = grid_faces(m, n)
        tex = uv_faces(m, n)
        uv = uv_coordinates(m, n)
        # Seam faces reference vertex column 0 but texture column n (u == 1)
        seam = (faces % n == 0) & (tex % (n + 1) == n)
        assert seam.any()
        assert np.all(uv[tex[seam], 0] == 1.0)

    def test_model_uvs_follow_material(self, small_model):
        plain = small_model("cylinder", caps=True)
        assert plain.uvs is None and plain.uv_faces is None

        textured = small_model("cylinder", caps=True, material=("stimuli.mtl", "stone"))
        m, n = textured.grid.shape
        assert len(textured.uvs) == m * (n + 1) + 2
        assert textured.uv_faces.shape == textured.faces.shape
        assert textured.uv_faces.max() == len(textured.uvs) - 1
