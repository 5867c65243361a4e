from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Literal, Optional, TypeAlias

from .models import FINITE_MODELS, QUEUE_MODELS, SINGLE_SERVER_MODELS, ModelParameters, QueueModel


ErrorKind: TypeAlias = Literal[
    "non_numeric",
    "non_positive",
    "non_integer",
    "capacity_below_servers",
    "unstable",
    "numerical_degeneracy",
    "exceeds_limit",
    "unsupported_variant",
]


class QueueInputError(ValueError):
    """ValueError tagged with the error condition it signals."""

    def __init__(self, kind: ErrorKind, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind: ErrorKind = kind
        self.field = field


@dataclass(frozen=True)
class ValidationFailure:
    kind: ErrorKind
    message: str
    field: Optional[str] = None

    @classmethod
    def from_error(cls, err: QueueInputError) -> "ValidationFailure":
        return cls(kind=err.kind, message=str(err), field=err.field)


# -----------------------------
# Scalar checks
# -----------------------------
def require_finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise QueueInputError("non_numeric", f"{name} must be a number", name)
    v = float(value)
    if not math.isfinite(v):
        raise QueueInputError("non_numeric", f"{name} must be a finite number", name)
    return v


def require_positive(name: str, value: Any) -> float:
    v = require_finite(name, value)
    if v <= 0:
        raise QueueInputError("non_positive", f"{name} must be > 0", name)
    return v


def require_int_at_least(name: str, value: Any, minimum: int) -> int:
    v = require_finite(name, value)
    if not v.is_integer():
        raise QueueInputError("non_integer", f"{name} must be a whole number", name)
    if v < minimum:
        raise QueueInputError("non_positive", f"{name} must be an integer >= {minimum}", name)
    return int(v)


# -----------------------------
# Queueing parameters
# -----------------------------
def validate_parameters(params: ModelParameters, model: QueueModel) -> ModelParameters:
    """
    Check `params` against the rules of `model` and return a normalized copy
    (integer servers/capacity). Raises QueueInputError on the first violation.
    """
    if model not in QUEUE_MODELS:
        raise QueueInputError("unsupported_variant", f"Unsupported queueing model: {model!r}", "model")

    lam = require_positive("lambda", params.lam)
    mu = require_positive("mu", params.mu)
    servers = require_int_at_least("servers", params.servers, 1)

    if model in SINGLE_SERVER_MODELS and servers != 1:
        raise QueueInputError("unsupported_variant", f"{model} is a single-server model (servers must be 1)", "servers")

    capacity: Optional[int] = None
    if model in FINITE_MODELS:
        if params.capacity is None:
            raise QueueInputError("non_numeric", f"{model} requires a capacity K", "capacity")
        # M/M/1/K needs room for at least one customer; M/M/s/K is bounded by K >= s
        capacity = require_int_at_least("capacity", params.capacity, 1 if model == "M/M/1/K" else 0)
        if capacity < servers:
            raise QueueInputError(
                "capacity_below_servers",
                f"capacity K ({capacity}) must be >= servers s ({servers})",
                "capacity",
            )
    elif lam >= servers * mu:
        raise QueueInputError(
            "unstable",
            f"System unstable: lambda ({lam:g}) must be < servers * mu ({servers * mu:g})",
            "lambda",
        )

    return ModelParameters(lam=lam, mu=mu, servers=servers, capacity=capacity)


__all__ = [
    "ErrorKind",
    "QueueInputError",
    "ValidationFailure",
    "require_finite",
    "require_positive",
    "require_int_at_least",
    "validate_parameters",
]
