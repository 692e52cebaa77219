"""Tests for sine carrier/modulator composition and group semantics."""

from __future__ import annotations

import numpy as np
import pytest

from shapetoolbox import ShapeConfigError, SineComponent
from shapetoolbox._components import parse_sine_components
from shapetoolbox._sine import amplitude_bound, compose_sines, sine_field


@pytest.fixture
def xy() -> tuple[np.ndarray, np.ndarray]:
    return np.meshgrid(np.linspace(0, 1, 17), np.linspace(-0.25, 0.25, 9))


def _wave(x, y, f, a, p=0.0, o=0.0):
    o, p = np.deg2rad(o), np.deg2rad(p)
    return a * np.sin(2 * np.pi * f * (x * np.cos(o) + y * np.sin(o)) + p)


class TestPureSine:
    """A single group-0 carrier without modulators is a plain sine."""

    @pytest.mark.parametrize(
        "row",
        [
            [2.0, 0.1, 0.0, 0.0, 0],
            [3.0, 0.2, 30.0, 45.0, 0],
            [5.0, -0.05, 90.0, 90.0, 0],
            [0.5, 0.3, 180.0, 120.0, 0],
        ],
    )
    def test_matches_closed_form(self, xy, row):
        x, y = xy
        out = compose_sines([row], [], x, y)
        np.testing.assert_allclose(out, _wave(x, y, *row[:4]), atol=1e-12)

    def test_no_components_gives_zero(self, xy):
        x, y = xy
        np.testing.assert_array_equal(compose_sines([], [], x, y), np.zeros(x.shape))

    def test_records_and_rows_agree(self, xy):
        x, y = xy
        from_rows = compose_sines([[4, 0.1, 10, 20]], None, x, y)
        from_records = compose_sines(
            [SineComponent(frequency=4, amplitude=0.1, phase=10, angle=20)], None, x, y
        )
        np.testing.assert_array_equal(from_rows, from_records)


class TestGroups:
    """Group 0 is never modulated by group-specific modulators."""

    def test_group_zero_only(self, xy):
        x, y = xy
        out = compose_sines([[2, 0.1], [5, 0.05, 0, 90]], [[1, 1, 0, 0, 3]], x, y)
        expected = _wave(x, y, 2, 0.1) + _wave(x, y, 5, 0.05, 0, 90)
        np.testing.assert_allclose(out, expected, atol=1e-12)

    def test_nonzero_group_without_modulator_is_added(self, xy):
        x, y = xy
        out = compose_sines([[2, 0.1, 0, 0, 1], [3, 0.1, 0, 0, 1]], [], x, y)
        np.testing.assert_allclose(out, _wave(x, y, 2, 0.1) + _wave(x, y, 3, 0.1), atol=1e-12)

    def test_nonzero_group_with_modulator(self, xy):
        x, y = xy
        out = compose_sines([[8, 0.1, 0, 0, 1]], [[1, 1, 90, 0, 1]], x, y)
        expected = _wave(x, y, 8, 0.1) * _wave(x, y, 1, 1, 90)
        np.testing.assert_allclose(out, expected, atol=1e-12)

    def test_zero_amplitude_modulator_removes_only_its_group(self, xy):
        x, y = xy
        carriers = [[2, 0.1, 0, 0, 0], [6, 0.1, 0, 0, 1], [7, 0.05, 0, 45, 1]]
        out = compose_sines(carriers, [[1, 0, 0, 0, 1]], x, y)
        np.testing.assert_allclose(out, _wave(x, y, 2, 0.1), atol=1e-12)

    def test_mixed_groups(self, xy):
        x, y = xy
        carriers = [[2, 0.1, 0, 0, 0], [6, 0.1, 0, 0, 1], [4, 0.1, 0, 90, 2]]
        modulators = [[1, 1, 0, 0, 1], [2, 0.5, 0, 90, 2]]
        out = compose_sines(carriers, modulators, x, y)
        expected = (
            _wave(x, y, 2, 0.1)
            + _wave(x, y, 6, 0.1) * _wave(x, y, 1, 1)
            + _wave(x, y, 4, 0.1, 0, 90) * _wave(x, y, 2, 0.5, 0, 90)
        )
        np.testing.assert_allclose(out, expected, atol=1e-12)

    def test_group_zero_modulator_multiplies_everything(self, xy):
        x, y = xy
        carriers = [[2, 0.1, 0, 0, 0], [6, 0.1, 0, 0, 1]]
        modulators = [[1, 1, 0, 0, 1], [0.5, 1, 90, 0, 0]]
        out = compose_sines(carriers, modulators, x, y)
        expected = (_wave(x, y, 2, 0.1) + _wave(x, y, 6, 0.1) * _wave(x, y, 1, 1)) * _wave(
            x, y, 0.5, 1, 90
        )
        np.testing.assert_allclose(out, expected, atol=1e-12)

    def test_modulators_of_a_group_are_summed(self, xy):
        x, y = xy
        out = compose_sines([[8, 0.1, 0, 0, 1]], [[1, 1, 0, 0, 1], [2, 1, 0, 0, 1]], x, y)
        expected = _wave(x, y, 8, 0.1) * (_wave(x, y, 1, 1) + _wave(x, y, 2, 1))
        np.testing.assert_allclose(out, expected, atol=1e-12)


class TestAmplitudeBound:
    @pytest.mark.parametrize(
        "carriers, modulators, expected",
        [
            ([[2, 0.3]], [], 0.3),
            ([[2, 0.3], [5, -0.4]], [], 0.7),
            ([[8, 0.5, 0, 0, 1]], [[1, 3, 0, 0, 1]], 1.5),
            ([[8, 0.5, 0, 0, 1]], [[1, 3, 0, 0, 2]], 0.5),
            ([[2, 0.2], [8, 0.1, 0, 0, 1]], [[1, 2, 0, 0, 1], [1, 1.5]], 0.6),
            ([[2, 0.2]], [[1, 3, 0, 0, 1]], 0.2),
        ],
    )
    def test_bound(self, carriers, modulators, expected):
        bound = amplitude_bound(
            parse_sine_components(carriers), parse_sine_components(modulators, modulator=True)
        )
        assert bound == pytest.approx(expected)

    def test_bound_holds_on_grid(self, xy):
        x, y = xy
        carriers = [[2, 0.2], [3, 0.1, 0, 90, 1], [5, 0.3, 0, 45, 2]]
        modulators = [[1, 2, 0, 0, 1], [1, 0.5, 0, 90, 2], [1, 1.2]]
        out = compose_sines(carriers, modulators, x, y)
        bound = amplitude_bound(
            parse_sine_components(carriers), parse_sine_components(modulators, modulator=True)
        )
        assert np.abs(out).max() <= bound


class TestDefaults:
    """Missing trailing columns are filled from the default table."""

    @pytest.mark.parametrize(
        "row, expected",
        [
            ([4], SineComponent(4, 0.1, 0, 0, 0)),
            ([4, 0.2], SineComponent(4, 0.2, 0, 0, 0)),
            ([4, 0.2, 10], SineComponent(4, 0.2, 10, 0, 0)),
            ([4, 0.2, 10, 30], SineComponent(4, 0.2, 10, 30, 0)),
            ([4, 0.2, 10, 30, 2], SineComponent(4, 0.2, 10, 30, 2)),
        ],
    )
    def test_carrier_defaults(self, row, expected):
        assert parse_sine_components([row]) == [expected]

    def test_modulator_amplitude_defaults_to_one(self):
        (mod,) = parse_sine_components([[2]], modulator=True)
        assert mod == SineComponent(2, 1.0, 0, 0, 0)

    def test_single_row_vector(self):
        assert parse_sine_components([4, 0.2]) == [SineComponent(4, 0.2)]

    def test_too_many_columns(self):
        with pytest.raises(ShapeConfigError, match="component 0"):
            parse_sine_components([[1, 2, 3, 4, 5, 6]])

    @pytest.mark.parametrize("group", [-1, 1.5])
    def test_bad_group(self, group):
        with pytest.raises(ShapeConfigError, match="group"):
            parse_sine_components([[1, 0.1, 0, 0, 0], [1, 0.1, 0, 0, group]])


def test_high_frequency_is_not_an_error(xy):
    x, y = xy
    out = sine_field([SineComponent(1000.0, 0.1)], x, y)
    assert np.all(np.isfinite(out))
