# src/queuelab/models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple, TypeAlias, Union

import pandas as pd

QueueModel: TypeAlias = Literal["M/M/1", "M/M/1/K", "M/M/s", "M/M/s/K"]

QUEUE_MODELS: Tuple[QueueModel, ...] = ("M/M/1", "M/M/1/K", "M/M/s", "M/M/s/K")
FINITE_MODELS: Tuple[QueueModel, ...] = ("M/M/1/K", "M/M/s/K")
SINGLE_SERVER_MODELS: Tuple[QueueModel, ...] = ("M/M/1", "M/M/1/K")


# -----------------------------
# Inputs
# -----------------------------
@dataclass(frozen=True)
class ModelParameters:
    lam: float
    mu: float
    servers: int = 1
    # Total system capacity K (servers + waiting slots); finite models only
    capacity: Optional[int] = None


# -----------------------------
# Outputs
# -----------------------------
@dataclass(frozen=True)
class ProbabilityRow:
    n: int
    pn: float
    fn: float


@dataclass(frozen=True)
class InfiniteQueueResult:
    """Steady-state metrics of an M/M/1 or M/M/s queue."""
    model: QueueModel
    lam: float
    mu: float
    servers: int

    rho: float
    p0: float
    ls: float
    lq: float
    ws: float
    wq: float

    probability_table: Tuple[ProbabilityRow, ...]
    # True when the safety cap ended the table before its cutoff was reached
    table_truncated: bool = False


@dataclass(frozen=True)
class FiniteQueueResult:
    """Steady-state metrics of an M/M/1/K or M/M/s/K queue (arrivals at K are lost)."""
    model: QueueModel
    lam: float
    mu: float
    servers: int
    capacity: int

    rho: float
    p0: float
    ls: float
    lq: float
    ws: float
    wq: float

    pk: float
    effective_lambda: float
    lost_lambda: float

    probability_table: Tuple[ProbabilityRow, ...]


ModelResult: TypeAlias = Union[InfiniteQueueResult, FiniteQueueResult]


# -----------------------------
# Export helpers
# -----------------------------
def result_to_dict(result: ModelResult) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "model": result.model,
        "lambda": result.lam,
        "mu": result.mu,
        "servers": result.servers,
        "rho": result.rho,
        "P0": result.p0,
        "Ls": result.ls,
        "Lq": result.lq,
        "Ws": result.ws,
        "Wq": result.wq,
    }
    if isinstance(result, FiniteQueueResult):
        out.update(
            {
                "capacity": result.capacity,
                "Pk": result.pk,
                "effective_lambda": result.effective_lambda,
                "lost_lambda": result.lost_lambda,
            }
        )
    return out


def probability_table_frame(result: ModelResult) -> pd.DataFrame:
    """Probability table as a DataFrame with columns n, Pn, Fn."""
    rows = result.probability_table
    return pd.DataFrame(
        {
            "n": [r.n for r in rows],
            "Pn": [r.pn for r in rows],
            "Fn": [r.fn for r in rows],
        }
    )


__all__ = [
    "QueueModel",
    "QUEUE_MODELS",
    "FINITE_MODELS",
    "SINGLE_SERVER_MODELS",
    "ModelParameters",
    "ProbabilityRow",
    "InfiniteQueueResult",
    "FiniteQueueResult",
    "ModelResult",
    "result_to_dict",
    "probability_table_frame",
]
