"""Tests for the model aggregate: enable mask, derived fields and lazy buffers."""

from __future__ import annotations

import numpy as np
import pytest
import trimesh

from shapetoolbox import (
    Model,
    PerturbParams,
    Perturbation,
    ShapeConfigError,
    ShapeParams,
    make_bumpy,
    make_noise,
    make_sine,
)


@pytest.fixture
def layered(small_model) -> Model:
    """Sphere with one perturbation of each producer kind."""
    model = small_model("sphere")
    model = make_sine(model, [[4, 0.05]])
    model = make_noise(model, [[2, 1, 0, np.inf, 0.05]], params=PerturbParams(seed=0))
    model = make_bumpy(model, [[5, 0.05, 0.3]], params=PerturbParams(seed=0))
    return model


class TestMask:
    def test_all_enabled_by_default(self, layered):
        np.testing.assert_array_equal(layered.enabled_mask, [True, True, True])
        expected = layered.base + sum(p.field for p in layered.perturbations)
        np.testing.assert_allclose(layered.derived_field, expected)

    @pytest.mark.parametrize("index", [0, 1, 2])
    def test_disabling_removes_exactly_one_field(self, layered, index):
        full = layered.derived_field
        layered.set_enabled(index, False)
        reduced = layered.derived_field
        np.testing.assert_allclose(full - reduced, layered.perturbations[index].field, atol=1e-12)

        layered.set_enabled(index, True)
        np.testing.assert_allclose(layered.derived_field, full)

    def test_set_mask(self, layered):
        layered.set_mask([False, True, False])
        np.testing.assert_allclose(
            layered.derived_field, layered.base + layered.perturbations[1].field
        )
        layered.set_mask([False, False, False])
        np.testing.assert_array_equal(layered.derived_field, layered.base)

    def test_mask_length_must_match(self, layered):
        with pytest.raises(ShapeConfigError, match="3 perturbations"):
            layered.set_mask([True, False])

    def test_bad_index(self, layered):
        with pytest.raises(ShapeConfigError, match="No perturbation 5"):
            layered.set_enabled(5, False)

    def test_multiplicative_fields_stay_additive(self, small_model):
        model = make_sine(small_model("revolution"), [[3, 0.1]])
        model = make_sine(model, [[5, 0.2, 0, 90]], params=PerturbParams(combine="multiply"))
        full = model.derived_field
        model.set_enabled(1, False)
        np.testing.assert_allclose(full - model.derived_field, model.perturbations[1].field)


class TestInvariants:
    def test_fields_are_read_only(self, layered):
        with pytest.raises(ValueError):
            layered.perturbations[0].field[0, 0] = 1.0
        with pytest.raises(ValueError):
            layered.grid.base[0, 0] = 2.0

    def test_field_shape_must_match_grid(self, small_model):
        model = small_model("plane")
        with pytest.raises(ShapeConfigError, match="does not match"):
            model.add_perturbation(Perturbation(kind="custom", field=np.zeros((2, 2))))
        assert model.perturbations == []

    def test_failed_call_does_not_mutate(self, layered):
        before = layered.derived_field.copy()
        with pytest.raises(ShapeConfigError):
            make_sine(layered, [[2, 0.1, 0, 0, 0, 0, 0]])
        with pytest.raises(ShapeConfigError):
            make_noise(layered, params=PerturbParams(combine="divide"))
        assert len(layered.perturbations) == 3
        np.testing.assert_array_equal(layered.derived_field, before)

    def test_shape_params_only_for_new_models(self, layered):
        with pytest.raises(ShapeConfigError, match="shape_params"):
            make_sine(layered, shape_params=ShapeParams(npoints=(4, 4)))

    def test_producers_return_same_model(self, small_model):
        model = small_model("disk")
        assert make_sine(model, [[3, 0.1]]) is model
        assert len(model.perturbations) == 1

    def test_producer_creates_model_from_name(self):
        model = make_sine("torus", [[3, 0.1]], shape_params=ShapeParams(npoints=(6, 8)))
        assert model.grid.shape == (6, 8)
        assert [p.kind for p in model.perturbations] == ["sine"]

    def test_empty_carriers_give_zero_field(self, small_model):
        model = make_sine(small_model("sphere"), [])
        np.testing.assert_array_equal(model.perturbations[0].field, 0.0)


class TestBuffers:
    def test_finalize_is_cached(self, layered):
        v1 = layered.vertices
        assert layered.vertices is v1
        layered.finalize()
        assert layered.vertices is v1

    def test_mask_change_invalidates(self, layered):
        v1 = layered.vertices.copy()
        layered.set_enabled(0, False)
        assert not np.allclose(layered.vertices, v1)
        layered.set_enabled(0, True)
        np.testing.assert_allclose(layered.vertices, v1)

    def test_new_perturbation_invalidates(self, small_model):
        model = small_model("plane")
        flat = model.vertices
        make_sine(model, [[2, 0.1]])
        assert model.vertices is not flat
        assert np.abs(model.vertices[:, 2]).max() > 0

    def test_normals_only_when_requested(self, small_model):
        assert small_model("torus").normals is None
        assert small_model("torus", normals=True).normals.shape == (8 * 12, 3)

    def test_to_trimesh(self, small_model):
        model = small_model("torus", normals=True)
        mesh = model.to_trimesh()
        assert isinstance(mesh, trimesh.Trimesh)
        assert len(mesh.vertices) == len(model.vertices)
        assert len(mesh.faces) == len(model.faces)
        assert mesh.is_watertight
        assert mesh.volume > 0

    def test_direct_flag_edit_invalidates(self):
        model = make_sine("plane", [[1, 0.1]], shape_params=ShapeParams(npoints=(4, 4)))
        assert np.abs(model.vertices[:, 2]).max() > 0

        model.perturbations[0].enabled = False
        np.testing.assert_array_equal(model.derived_field, 0.0)
        np.testing.assert_array_equal(model.vertices[:, 2], 0.0)

    def test_direct_list_edit_invalidates(self, layered):
        full = layered.vertices.copy()
        removed = layered.perturbations.pop()
        np.testing.assert_allclose(
            np.linalg.norm(layered.vertices, axis=1).reshape(layered.grid.shape),
            layered.derived_field,
        )
        layered.perturbations.append(removed)
        np.testing.assert_allclose(layered.vertices, full)
