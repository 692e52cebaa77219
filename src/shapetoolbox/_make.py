"""Producers: build or extend models with sine, noise, bump and custom perturbations."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Sequence

import numpy as np
from loguru import logger

from ._bumps import ProfileFn, compose_bumps, gaussian_profile
from ._components import (
    parse_bump_components,
    parse_noise_components,
    parse_profile_components,
    parse_sine_components,
)
from ._config import PerturbParams, ShapeParams, ShapeType, validate_perturb_params
from ._custom import as_map, load_image_map, resample_map
from ._errors import AmplitudeError, ShapeConfigError
from ._model import Model, Perturbation
from ._noise import compose_noise
from ._sine import amplitude_bound, compose_sines

DEFAULT_CARRIER = [8.0, 0.1, 0.0, 0.0, 0.0]
DEFAULT_NOISE = [8.0, 1.0, 0.0, 30.0, 0.1, 0.0]
DEFAULT_BUMPS = [20.0, 0.1, 0.1]

ModelOrShape = Model | ShapeType | str


def make_shape(
    shape: ShapeType | str = "sphere", shape_params: ShapeParams | None = None
) -> Model:
    """Create an unperturbed model of the given shape."""
    return Model.create(shape, shape_params)


def _resolve(model_or_shape: ModelOrShape, shape_params: ShapeParams | None) -> Model:
    if isinstance(model_or_shape, Model):
        if shape_params is not None:
            raise ShapeConfigError(
                "shape_params can only be given when creating a new model, not when "
                "perturbing an existing one"
            )
        return model_or_shape
    return Model.create(model_or_shape, shape_params)


def _check_params(model: Model, params: PerturbParams | None) -> PerturbParams:
    p = params or PerturbParams()
    validate_perturb_params(p)
    model.base_for(p.target)
    return p


def _check_amplitudes(
    model: Model,
    params: PerturbParams,
    amplitudes: Sequence[float],
    kind: str,
    combined: float | None = None,
) -> None:
    """Reject amplitudes that could make a radius vanish or turn inside out.

    Each component is checked on its own, then ``combined``, the largest
    value the summed and modulated components can reach.

    Raises:
        AmplitudeError: If any |amplitude| is not smaller than the base value
    """
    if not model.builder.radial:
        return
    if params.combine == "multiply":
        limit, what = 1.0, "1 (multiplicative perturbation)"
    else:
        limit = float(model.base_for(params.target).min())
        what = f"the {model.shape.value} base radius ({limit:g})"
    for i, a in enumerate(amplitudes):
        if abs(a) >= limit:
            raise AmplitudeError(
                f"{kind.capitalize()} component {i}: amplitude {a:g} must be smaller than {what}"
            )
    if combined is not None and combined >= limit:
        raise AmplitudeError(
            f"Combined {kind} amplitude {combined:g} (summed per group and scaled by "
            f"the modulators) must be smaller than {what}"
        )


def _append(
    model: Model,
    kind: str,
    field: np.ndarray,
    params: PerturbParams,
    description: dict[str, Any],
) -> Model:
    if params.combine == "multiply":
        field = model.base_for(params.target) * field
    model.add_perturbation(
        Perturbation(
            kind=kind,
            field=np.asarray(field, dtype=float),
            target=params.target,
            description=description,
        )
    )
    return model


def make_sine(
    model_or_shape: ModelOrShape = "sphere",
    carriers: Any = None,
    modulators: Any = None,
    *,
    shape_params: ShapeParams | None = None,
    params: PerturbParams | None = None,
) -> Model:
    """
    Perturb a shape with sinusoidal carriers, optionally amplitude-modulated.

    Args:
        model_or_shape: Existing model to extend, or a shape to create
        carriers: Carrier rows [freq, ampl, phase, angle, group] or
            SineComponents. None uses a single 8-cycle carrier of amplitude 0.1;
            an empty list gives a zero perturbation.
        modulators: Modulator rows in the same format (missing amplitude = 1)
        shape_params: Parameters for a newly created model
        params: Perturbation parameters (combine, target)

    Returns:
        The model with one new perturbation appended

    Raises:
        ShapeConfigError: On malformed component rows or options
        AmplitudeError: If a carrier amplitude reaches the base radius
    """
    model = _resolve(model_or_shape, shape_params)
    p = _check_params(model, params)

    carrier_list = parse_sine_components(DEFAULT_CARRIER if carriers is None else carriers)
    modulator_list = parse_sine_components(modulators, modulator=True)
    _check_amplitudes(
        model,
        p,
        [c.amplitude for c in carrier_list],
        "carrier",
        combined=amplitude_bound(carrier_list, modulator_list),
    )

    x, y, _ = model.builder.coordinates(model.grid)
    field = compose_sines(carrier_list, modulator_list, x, y)

    return _append(
        model,
        "sine",
        field,
        p,
        {
            "carriers": [asdict(c) for c in carrier_list],
            "modulators": [asdict(c) for c in modulator_list],
        },
    )


def make_noise(
    model_or_shape: ModelOrShape = "sphere",
    components: Any = None,
    modulators: Any = None,
    *,
    shape_params: ShapeParams | None = None,
    params: PerturbParams | None = None,
) -> Model:
    """
    Perturb a shape with band-pass filtered noise.

    Args:
        model_or_shape: Existing model to extend, or a shape to create
        components: Noise rows [freq, freq_bw, angle, angle_bw, ampl, group]
            or NoiseComponents. None uses [8, 1, 0, 30, 0.1, 0].
        modulators: Optional sine modulator rows, grouped as in make_sine
        shape_params: Parameters for a newly created model
        params: Perturbation parameters; ``seed`` makes the noise reproducible

    Returns:
        The model with one new perturbation appended
    """
    model = _resolve(model_or_shape, shape_params)
    p = _check_params(model, params)

    comps = parse_noise_components(DEFAULT_NOISE if components is None else components)
    mods = parse_sine_components(modulators, modulator=True)
    _check_amplitudes(
        model, p, [c.amplitude for c in comps], "noise", combined=amplitude_bound(comps, mods)
    )

    x, y, regular = model.builder.coordinates(model.grid)
    rng = np.random.default_rng(p.seed)
    field = compose_noise(comps, x, y, rng, modulators=mods, regular=regular)

    return _append(
        model,
        "noise",
        field,
        p,
        {
            "components": [asdict(c) for c in comps],
            "modulators": [asdict(c) for c in mods],
            "seed": p.seed,
        },
    )


def _bump_field(model: Model, comps, p: PerturbParams, profile: ProfileFn) -> np.ndarray:
    b, grid = model.builder, model.grid
    return compose_bumps(
        comps,
        b.bump_points(grid),
        grid.shape,
        sample=lambda rng, k: b.sample(grid, rng, k),
        distance=b.distance,
        rng=np.random.default_rng(p.seed),
        mindist=p.mindist,
        overlap=p.overlap,
        profile=profile,
    )


def make_bumpy(
    model_or_shape: ModelOrShape = "sphere",
    components: Any = None,
    *,
    shape_params: ShapeParams | None = None,
    params: PerturbParams | None = None,
) -> Model:
    """
    Perturb a shape with randomly placed Gaussian bumps (negative amplitude: dents).

    Args:
        model_or_shape: Existing model to extend, or a shape to create
        components: Rows [count, ampl, sigma] or BumpComponents. None uses
            20 bumps of amplitude 0.1 and sigma 0.1.
        shape_params: Parameters for a newly created model
        params: Perturbation parameters (mindist, overlap, seed, ...)

    Returns:
        The model with one new perturbation appended

    Raises:
        PlacementError: If the bumps cannot be placed ``mindist`` apart
    """
    model = _resolve(model_or_shape, shape_params)
    p = _check_params(model, params)
    comps = parse_bump_components(DEFAULT_BUMPS if components is None else components)

    field = _bump_field(model, comps, p, gaussian_profile)
    return _append(
        model,
        "bump",
        field,
        p,
        {
            "components": [(c.count, c.cutoff, c.params) for c in comps],
            "mindist": p.mindist,
            "overlap": p.overlap,
            "seed": p.seed,
        },
    )


def make_custom(
    model_or_shape: ModelOrShape,
    source: Callable[[np.ndarray, tuple[float, ...]], np.ndarray] | Path | str | Any,
    params_rows: Any = 0.1,
    *,
    shape_params: ShapeParams | None = None,
    params: PerturbParams | None = None,
) -> Model:
    """
    Perturb a shape with a user profile function, a matrix or an image.

    The kind of ``source`` decides the mode:
        callable: radial profile ``f(d, extra)`` placed like bumps; rows of
            ``params_rows`` are [count, cutoff, *extra].
        str or Path: image file, converted to grayscale and flipped so that
            its top row ends up at the last grid row.
        numeric array: height map, row 0 at the first grid row.

    Maps are bilinearly resampled onto the grid and scaled so that their
    largest absolute value equals the amplitude given in ``params_rows``.

    Args:
        model_or_shape: Existing model to extend, or a shape to create
        source: Profile function, image path or 2D matrix
        params_rows: Profile rows, or the peak amplitude for maps
        shape_params: Parameters for a newly created model
        params: Perturbation parameters

    Returns:
        The model with one new perturbation appended
    """
    model = _resolve(model_or_shape, shape_params)
    p = _check_params(model, params)

    if callable(source):
        comps = parse_profile_components(params_rows)
        field = _bump_field(model, comps, p, source)
        description: dict[str, Any] = {
            "profile": getattr(source, "__name__", repr(source)),
            "components": [(c.count, c.cutoff, c.params) for c in comps],
        }
        return _append(model, "custom", field, p, description)

    if isinstance(source, (str, Path)):
        values = load_image_map(source)
        description = {"image": str(source)}
    else:
        values = as_map(source)
        description = {"matrix": values.shape}

    amplitude = np.asarray(params_rows, dtype=float).ravel()
    if len(amplitude) != 1:
        raise ShapeConfigError(
            f"Custom map takes a single amplitude value, got {len(amplitude)} values"
        )
    amplitude = float(amplitude[0])
    _check_amplitudes(model, p, [amplitude], "custom map")

    values = resample_map(values, model.grid.shape)
    peak = np.abs(values).max()
    if peak == 0:
        logger.warning("Custom map is zero everywhere; perturbation contributes nothing")
        field = np.zeros(model.grid.shape)
    else:
        field = amplitude * values / peak

    description["amplitude"] = amplitude
    return _append(model, "custom", field, p, description)
