# src/queuelab/config.py
from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


# -----------------------------
# Numerical tolerances
# -----------------------------
@dataclass(frozen=True)
class Tolerances:
    """
    Cutoffs and tolerances used by the queueing solvers.

    The defaults were picked empirically for classroom-sized inputs; they are
    kept configurable rather than treated as optimal.
    """
    # Dynamic probability-table cutoff
    min_probability: float = 1e-5
    max_cumulative: float = 0.999995
    max_table_n: int = 1000

    # Fixed M/M/1 table cutoff (n = 0..fixed_table_n)
    fixed_table_n: int = 20

    # |rho - 1| below this takes the rho == 1 branch
    rho_one_tolerance: float = 1e-9

    # Allowed |F_last - 1| before a table is flagged unstable
    cumulative_tolerance: float = 1e-4

    # Effective throughput below this is treated as zero
    zero_throughput: float = 1e-12


DEFAULT_TOLERANCES = Tolerances()


# -----------------------------
# Monte Carlo safety caps
# -----------------------------
POISSON_MAX_ITERATIONS: int = 1000
MAX_TOTAL_CELLS: int = 2_000_000
ADVISORY_DEVIATION: float = 0.15


# -----------------------------
# Environment overrides
# -----------------------------
ENV_PREFIX = "QUEUELAB_"


def _env_value(name: str, cast: Callable[[str], T]) -> Optional[T]:
    """
    Return the parsed value of QUEUELAB_<name>, or None when unset/blank.
    Unparsable values are a configuration error, not something to ignore.
    """
    raw = os.getenv(ENV_PREFIX + name, "").strip()
    if not raw:
        return None
    try:
        value = cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid {ENV_PREFIX}{name}={raw!r}: {exc}") from exc
    if isinstance(value, float) and not math.isfinite(value):
        raise RuntimeError(f"Invalid {ENV_PREFIX}{name}={raw!r}: must be finite")
    return value


def load_tolerances_from_env(base: Optional[Tolerances] = None) -> Tolerances:
    """
    Build Tolerances from QUEUELAB_* environment variables on top of `base`.

    Supported:
      QUEUELAB_MIN_PROBABILITY
      QUEUELAB_MAX_CUMULATIVE
      QUEUELAB_MAX_TABLE_N
      QUEUELAB_RHO_ONE_TOLERANCE
      QUEUELAB_CUMULATIVE_TOLERANCE
    """
    tol = base or DEFAULT_TOLERANCES

    overrides = {
        "min_probability": _env_value("MIN_PROBABILITY", float),
        "max_cumulative": _env_value("MAX_CUMULATIVE", float),
        "max_table_n": _env_value("MAX_TABLE_N", int),
        "rho_one_tolerance": _env_value("RHO_ONE_TOLERANCE", float),
        "cumulative_tolerance": _env_value("CUMULATIVE_TOLERANCE", float),
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    max_n = overrides.get("max_table_n")
    if max_n is not None and max_n < 1:
        raise RuntimeError(f"{ENV_PREFIX}MAX_TABLE_N must be >= 1")

    return replace(tol, **overrides)


__all__ = [
    "Tolerances",
    "DEFAULT_TOLERANCES",
    "POISSON_MAX_ITERATIONS",
    "MAX_TOTAL_CELLS",
    "ADVISORY_DEVIATION",
    "load_tolerances_from_env",
]
