"""Exceptions raised by shapetoolbox."""

from __future__ import annotations


class ShapeToolboxError(Exception):
    """Base class for all shapetoolbox errors."""


class ShapeConfigError(ShapeToolboxError, ValueError):
    """Invalid configuration: unknown shape, malformed option, bad input kind.

    Raised before the model is touched, so a failed call never leaves a
    partially perturbed model behind.
    """


class AmplitudeError(ShapeConfigError):
    """Perturbation amplitude is not smaller than the base radius."""


class PlacementError(ShapeConfigError):
    """Bump centres could not be placed under the minimum distance constraint.

    Recoverable: retry with fewer bumps or a smaller ``mindist``.
    """
