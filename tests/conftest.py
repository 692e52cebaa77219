"""Pytest configuration and fixtures for shapetoolbox tests."""

from __future__ import annotations

import numpy as np
import pytest

from shapetoolbox import Model, ShapeParams, ShapeType, make_shape


# =============================================================================
# GRID SIZES
# =============================================================================

# Small grids keep every test fast; large enough for seams and poles to matter.
SMALL_NPOINTS: dict[ShapeType, tuple[int, int]] = {
    ShapeType.SPHERE: (9, 16),
    ShapeType.PLANE: (8, 10),
    ShapeType.DISK: (6, 12),
    ShapeType.TORUS: (8, 12),
    ShapeType.CYLINDER: (7, 12),
    ShapeType.REVOLUTION: (7, 12),
    ShapeType.EXTRUSION: (7, 12),
    ShapeType.WORM: (7, 12),
}


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def shape_names() -> list[str]:
    """All shape names, for parametrization."""
    return [s.value for s in ShapeType]


@pytest.fixture
def small_params():
    """Factory for shape parameters on a small grid."""

    def _make(shape: str | ShapeType, **kwargs) -> ShapeParams:
        return ShapeParams(npoints=SMALL_NPOINTS[ShapeType.parse(shape)], **kwargs)

    return _make


@pytest.fixture
def small_model(small_params):
    """Factory for unperturbed models on a small grid."""

    def _make(shape: str | ShapeType, **kwargs) -> Model:
        return make_shape(shape, small_params(shape, **kwargs))

    return _make


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)


# =============================================================================
# PYTEST HOOKS
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
