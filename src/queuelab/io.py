from __future__ import annotations

import math
from typing import List, Mapping, Optional, Union

from .models import FINITE_MODELS, SINGLE_SERVER_MODELS, ModelParameters, QueueModel
from .monte_carlo import SimulationConfig, validate_simulation_config
from .validation import QueueInputError, ValidationFailure, validate_parameters

FormFields = Mapping[str, Optional[str]]


def required_model_fields(model: QueueModel) -> List[str]:
    fields = ["lambda", "mu"]
    if model not in SINGLE_SERVER_MODELS:
        fields.append("s")
    if model in FINITE_MODELS:
        fields.append("k")
    return fields


def _text(fields: FormFields, name: str) -> str:
    raw = fields.get(name)
    return "" if raw is None else str(raw).strip()


def parse_number(name: str, raw: str) -> float:
    if not raw:
        raise QueueInputError("non_numeric", f"{name} is required", name)
    try:
        value = float(raw)
    except ValueError:
        raise QueueInputError("non_numeric", f"{name} must be numeric (got {raw!r})", name) from None
    if not math.isfinite(value):
        raise QueueInputError("non_numeric", f"{name} must be a finite number (got {raw!r})", name)
    return value


def parse_integer(name: str, raw: str) -> int:
    value = parse_number(name, raw)
    if not value.is_integer():
        raise QueueInputError("non_integer", f"{name} must be a whole number (got {raw!r})", name)
    return int(value)


def parse_model_form(fields: FormFields, model: QueueModel) -> Union[ModelParameters, ValidationFailure]:
    """
    Coerce the raw text of a calculator form into ModelParameters.

    Expected keys: lambda, mu, plus s for multi-server models and k for
    finite-capacity models. Keys the model does not use are ignored.
    Returns the validated parameters or the first ValidationFailure.
    """
    try:
        needed = required_model_fields(model)
        lam = parse_number("lambda", _text(fields, "lambda"))
        mu = parse_number("mu", _text(fields, "mu"))
        servers = parse_integer("s", _text(fields, "s")) if "s" in needed else 1
        capacity = parse_integer("k", _text(fields, "k")) if "k" in needed else None

        return validate_parameters(
            ModelParameters(lam=lam, mu=mu, servers=servers, capacity=capacity),
            model,
        )
    except QueueInputError as err:
        return ValidationFailure.from_error(err)


def parse_simulation_form(fields: FormFields) -> Union[SimulationConfig, ValidationFailure]:
    """
    Coerce the Monte Carlo form into a SimulationConfig.

    distribution defaults to "poisson", variables to 1, observations to 100;
    seed is optional.
    """
    try:
        distribution = (_text(fields, "distribution") or "poisson").lower()
        lam = parse_number("lambda", _text(fields, "lambda"))
        variables = parse_integer("variables", _text(fields, "variables") or "1")
        observations = parse_integer("observations", _text(fields, "observations") or "100")
        seed_text = _text(fields, "seed")
        seed = parse_integer("seed", seed_text) if seed_text else None

        return validate_simulation_config(
            SimulationConfig(
                distribution=distribution,  # type: ignore[arg-type]
                lam=lam,
                variable_count=variables,
                observation_count=observations,
                seed=seed,
            )
        )
    except QueueInputError as err:
        return ValidationFailure.from_error(err)


__all__ = [
    "FormFields",
    "required_model_fields",
    "parse_number",
    "parse_integer",
    "parse_model_form",
    "parse_simulation_form",
]
