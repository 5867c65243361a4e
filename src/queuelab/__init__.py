# src/queuelab/__init__.py
from __future__ import annotations

# -----------------------------
# Configuration + errors
# -----------------------------
from .config import (
    Tolerances,
    DEFAULT_TOLERANCES,
    POISSON_MAX_ITERATIONS,
    MAX_TOTAL_CELLS,
    ADVISORY_DEVIATION,
    load_tolerances_from_env,
)

from .validation import (
    ErrorKind,
    QueueInputError,
    ValidationFailure,
)

# -----------------------------
# Queueing models
# -----------------------------
from .models import (
    QueueModel,
    QUEUE_MODELS,
    ModelParameters,
    ProbabilityRow,
    InfiniteQueueResult,
    FiniteQueueResult,
    ModelResult,
    result_to_dict,
    probability_table_frame,
)

from .solver import (
    TableCutoff,
    SolveOutcome,
    mm1,
    mm1k,
    mms,
    mmsk,
    solve,
    what_if,
)

# -----------------------------
# Monte Carlo
# -----------------------------
from .monte_carlo import (
    Distribution,
    SimulationConfig,
    SimulationResult,
    VariableMean,
    generate,
    run_simulation,
    samples_frame,
    summary_frame,
)

# -----------------------------
# Form input
# -----------------------------
from .io import parse_model_form, parse_simulation_form

__all__ = [
    # Config
    "Tolerances",
    "DEFAULT_TOLERANCES",
    "POISSON_MAX_ITERATIONS",
    "MAX_TOTAL_CELLS",
    "ADVISORY_DEVIATION",
    "load_tolerances_from_env",
    # Errors
    "ErrorKind",
    "QueueInputError",
    "ValidationFailure",
    # Queueing
    "QueueModel",
    "QUEUE_MODELS",
    "ModelParameters",
    "ProbabilityRow",
    "InfiniteQueueResult",
    "FiniteQueueResult",
    "ModelResult",
    "result_to_dict",
    "probability_table_frame",
    "TableCutoff",
    "SolveOutcome",
    "mm1",
    "mm1k",
    "mms",
    "mmsk",
    "solve",
    "what_if",
    # Monte Carlo
    "Distribution",
    "SimulationConfig",
    "SimulationResult",
    "VariableMean",
    "generate",
    "run_simulation",
    "samples_frame",
    "summary_frame",
    # Form input
    "parse_model_form",
    "parse_simulation_form",
]
