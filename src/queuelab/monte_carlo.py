# src/queuelab/monte_carlo.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Optional, Tuple, TypeAlias, Union

import numpy as np
import pandas as pd

from .config import ADVISORY_DEVIATION, MAX_TOTAL_CELLS, POISSON_MAX_ITERATIONS
from .validation import (
    QueueInputError,
    ValidationFailure,
    require_int_at_least,
    require_positive,
)

logger = logging.getLogger(__name__)


# -----------------------------
# Public types
# -----------------------------
Distribution: TypeAlias = Literal["poisson", "exponential"]
DISTRIBUTIONS: Tuple[Distribution, ...] = ("poisson", "exponential")


@dataclass(frozen=True)
class SimulationConfig:
    distribution: Distribution
    lam: float
    variable_count: int = 1
    observation_count: int = 100
    # None draws fresh OS entropy on every call
    seed: Optional[int] = None


@dataclass(frozen=True)
class VariableMean:
    variable_index: int
    mean_simulated: float


@dataclass(frozen=True, eq=False)
class SimulationResult:
    distribution: Distribution
    lam: float
    # shape (observation_count, variable_count), read-only
    samples: np.ndarray
    per_variable_mean: Tuple[VariableMean, ...]
    theoretical_mean: float


SimulationOutcome: TypeAlias = Union[SimulationResult, ValidationFailure]


# -----------------------------
# Validation
# -----------------------------
def validate_simulation_config(cfg: SimulationConfig) -> SimulationConfig:
    if cfg.distribution not in DISTRIBUTIONS:
        raise QueueInputError(
            "unsupported_variant",
            f"Unsupported distribution: {cfg.distribution!r}. Expected one of {list(DISTRIBUTIONS)}",
            "distribution",
        )

    lam = require_positive("lambda", cfg.lam)
    n_vars = require_int_at_least("variable_count", cfg.variable_count, 1)
    n_obs = require_int_at_least("observation_count", cfg.observation_count, 1)
    seed = None if cfg.seed is None else require_int_at_least("seed", cfg.seed, 0)

    if n_vars * n_obs > MAX_TOTAL_CELLS:
        raise QueueInputError(
            "exceeds_limit",
            f"variable_count * observation_count must be <= {MAX_TOTAL_CELLS} (got {n_vars * n_obs})",
            "observation_count",
        )

    return SimulationConfig(
        distribution=cfg.distribution,
        lam=lam,
        variable_count=n_vars,
        observation_count=n_obs,
        seed=seed,
    )


# -----------------------------
# Inverse-transform draws
# -----------------------------
def exponential_variate(u: float, lam: float) -> float:
    """X = -ln(1 - U) / lambda, the inverse of F(x) = 1 - exp(-lambda x)."""
    return -math.log(1.0 - u) / lam


def poisson_cdf(lam: float, upper: float, max_iterations: int = POISSON_MAX_ITERATIONS) -> np.ndarray:
    """
    F(0), F(1), ..., F(k) for the smallest k with F(k) >= upper, walking the
    CDF with p_k = p_(k-1) * lambda / k.

    Raises QueueInputError(numerical_degeneracy) when the walk needs more than
    `max_iterations` steps (e.g. exp(-lambda) underflowed to 0).
    """
    p = math.exp(-lam)
    cumulative = p
    cdf = [cumulative]
    k = 0
    while upper > cumulative:
        if k >= max_iterations:
            logger.warning("Poisson inversion hit %d iterations (lambda=%g, u=%r)", max_iterations, lam, upper)
            raise QueueInputError(
                "numerical_degeneracy",
                f"Computation unstable, check inputs: Poisson inversion did not converge within "
                f"{max_iterations} steps for lambda={lam:g}",
                "lambda",
            )
        k += 1
        p = p * lam / k
        cumulative += p
        cdf.append(cumulative)
    return np.asarray(cdf, dtype=float)


def poisson_variate(u: float, lam: float, max_iterations: int = POISSON_MAX_ITERATIONS) -> int:
    """Smallest k with F(k) >= u."""
    cdf = poisson_cdf(lam, u, max_iterations)
    return int(np.searchsorted(cdf, u, side="left"))


def _draw_column(dist: Distribution, lam: float, n: int, rng: np.random.Generator) -> np.ndarray:
    """One independent uniform per observation, mapped through the inverse CDF."""
    u = rng.random(size=n)

    if dist == "exponential":
        return -np.log(1.0 - u) / lam
    if dist == "poisson":
        # One CDF walk per column, long enough for the largest draw
        cdf = poisson_cdf(lam, float(u.max()))
        return np.searchsorted(cdf, u, side="left").astype(float)
    raise ValueError(f"Unsupported distribution: {dist}")


def theoretical_mean(dist: Distribution, lam: float) -> float:
    if dist == "poisson":
        return float(lam)
    if dist == "exponential":
        return 1.0 / float(lam)
    raise ValueError(f"Unsupported distribution: {dist}")


# -----------------------------
# Public API
# -----------------------------
def run_simulation(cfg: SimulationConfig) -> SimulationResult:
    """
    Generate an observation_count x variable_count matrix of variates,
    column by column, with each column's sample mean.

    Raises QueueInputError on invalid configuration or a non-converging
    Poisson inversion.
    """
    c = validate_simulation_config(cfg)
    n_obs, n_vars = c.observation_count, c.variable_count

    # Fresh generator per call: results of one call never depend on another
    rng = np.random.default_rng(c.seed)

    samples = np.empty((n_obs, n_vars), dtype=float)
    means = []
    for v in range(n_vars):
        col = _draw_column(c.distribution, c.lam, n_obs, rng)
        samples[:, v] = col
        means.append(VariableMean(variable_index=v + 1, mean_simulated=float(np.sum(col)) / n_obs))

    samples.setflags(write=False)
    logger.info(
        "generated %d x %d %s variates (lambda=%g)", n_obs, n_vars, c.distribution, c.lam
    )

    return SimulationResult(
        distribution=c.distribution,
        lam=c.lam,
        samples=samples,
        per_variable_mean=tuple(means),
        theoretical_mean=theoretical_mean(c.distribution, c.lam),
    )


def generate(cfg: SimulationConfig) -> SimulationOutcome:
    """Like run_simulation, but returns a ValidationFailure instead of raising."""
    try:
        return run_simulation(cfg)
    except QueueInputError as err:
        logger.debug("simulation rejected (%s): %s", err.kind, err)
        return ValidationFailure.from_error(err)


# -----------------------------
# Presentation helpers
# -----------------------------
def samples_frame(result: SimulationResult) -> pd.DataFrame:
    """Row-major observation records: id, var_1, var_2, ..."""
    n_obs, n_vars = result.samples.shape
    df = pd.DataFrame(
        result.samples,
        columns=[f"var_{v + 1}" for v in range(n_vars)],
    )
    df.insert(0, "id", np.arange(1, n_obs + 1))
    return df


def mean_deviation(result: SimulationResult) -> Tuple[float, ...]:
    """|mean_simulated - theoretical| / theoretical for each variable."""
    theo = result.theoretical_mean
    return tuple(abs(m.mean_simulated - theo) / theo for m in result.per_variable_mean)


def within_advisory_band(result: SimulationResult, band: float = ADVISORY_DEVIATION) -> Tuple[bool, ...]:
    """Advisory only: does each column's mean sit within `band` of the theory?"""
    return tuple(d < band for d in mean_deviation(result))


def summary_frame(result: SimulationResult, band: float = ADVISORY_DEVIATION) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "variable_index": [m.variable_index for m in result.per_variable_mean],
            "mean_simulated": [m.mean_simulated for m in result.per_variable_mean],
            "theoretical_mean": result.theoretical_mean,
            "relative_deviation": list(mean_deviation(result)),
            "within_band": list(within_advisory_band(result, band)),
        }
    )


__all__ = [
    "Distribution",
    "DISTRIBUTIONS",
    "SimulationConfig",
    "VariableMean",
    "SimulationResult",
    "SimulationOutcome",
    "validate_simulation_config",
    "exponential_variate",
    "poisson_cdf",
    "poisson_variate",
    "theoretical_mean",
    "run_simulation",
    "generate",
    "samples_frame",
    "mean_deviation",
    "within_advisory_band",
    "summary_frame",
]
