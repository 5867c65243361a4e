# src/queuelab/solver.py
from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Literal, Optional, Tuple, TypeAlias, Union

from .config import DEFAULT_TOLERANCES, Tolerances
from .formulas import (
    is_unit_rho,
    mm1k_ls,
    mm1k_p0,
    mms_lq,
    mms_p0,
    mmsk_lq,
    mmsk_p0,
    offered_load,
)
from .models import (
    FiniteQueueResult,
    InfiniteQueueResult,
    ModelParameters,
    ModelResult,
    ProbabilityRow,
    QueueModel,
)
from .validation import QueueInputError, ValidationFailure, require_finite, validate_parameters

logger = logging.getLogger(__name__)

TableCutoff: TypeAlias = Literal["dynamic", "fixed"]
RateField: TypeAlias = Literal["lam", "mu"]
SolveOutcome: TypeAlias = Union[InfiniteQueueResult, FiniteQueueResult, ValidationFailure]

# Nudged rates never drop below this (keeps what-if inputs strictly positive)
MIN_NUDGED_RATE: float = 0.0001

# Rounding noise allowed below zero before a metric counts as negative
_NEGATIVE_SLACK: float = 1e-9


# -----------------------------
# Internal helpers
# -----------------------------
def _degenerate(message: str) -> QueueInputError:
    logger.warning("numerical degeneracy: %s", message)
    return QueueInputError("numerical_degeneracy", f"Computation unstable, check inputs: {message}")


def _metric(name: str, value: float) -> float:
    """Reject NaN/inf and real negatives; snap rounding noise around zero to 0."""
    if not math.isfinite(value):
        raise _degenerate(f"{name} is not finite")
    if value < 0.0:
        if value < -_NEGATIVE_SLACK:
            raise _degenerate(f"{name} is negative ({value:g})")
        return 0.0
    return float(value)


def _probability(n: int, pn: float) -> float:
    if not math.isfinite(pn) or pn < 0.0 or pn > 1.0:
        raise _degenerate(f"P{n} = {pn!r} is not a probability")
    return pn


def _effective_lambda(lam: float, pk: float, tol: Tolerances) -> Tuple[float, float]:
    effective = lam * (1.0 - pk)
    if effective < tol.zero_throughput:
        raise _degenerate("effective arrival rate is zero")
    return effective, lam - effective


def _table_moment(table: Tuple[ProbabilityRow, ...], offset: int = 0) -> float:
    """sum (n - offset) * P_n over the rows with n > offset."""
    return math.fsum((row.n - offset) * row.pn for row in table if row.n > offset)


def _check_moment(name: str, closed_form: float, from_table: float, tol: Tolerances) -> float:
    """The closed form must agree with the table moment; a mismatch means cancellation."""
    if abs(closed_form - from_table) > tol.cumulative_tolerance * max(1.0, abs(from_table)):
        raise _degenerate(f"{name} = {closed_form:g} disagrees with the table moment {from_table:g}")
    return closed_form


# -----------------------------
# Probability tables
# -----------------------------
def mm1_table(
    rho: float,
    p0: float,
    tolerances: Tolerances = DEFAULT_TOLERANCES,
    cutoff: TableCutoff = "dynamic",
) -> Tuple[Tuple[ProbabilityRow, ...], bool]:
    """
    M/M/1 distribution table with P_n = P_(n-1) * rho.

    "fixed" lists n = 0..fixed_table_n. "dynamic" stops at the first n > 0
    where P_n < min_probability and F_n >= max_cumulative, or at
    max_table_n. Returns (rows, truncated) where truncated means the
    safety cap ended the table before the cutoff was met.
    """
    if cutoff not in ("dynamic", "fixed"):
        raise ValueError(f"Unsupported table cutoff: {cutoff}")

    last_n = tolerances.fixed_table_n if cutoff == "fixed" else tolerances.max_table_n
    rows: List[ProbabilityRow] = []
    cumulative = 0.0
    pn = p0
    for n in range(last_n + 1):
        if n > 0:
            pn *= rho
        _probability(n, pn)
        cumulative += pn
        fn = min(cumulative, 1.0)
        rows.append(ProbabilityRow(n=n, pn=pn, fn=fn))
        if (
            cutoff == "dynamic"
            and n > 0
            and pn < tolerances.min_probability
            and fn >= tolerances.max_cumulative
        ):
            return tuple(rows), False

    truncated = cutoff == "dynamic"
    if truncated:
        logger.debug("M/M/1 table hit the %d-term cap at F=%.6f", last_n, rows[-1].fn)
    return tuple(rows), truncated


def mms_table(
    r: float,
    s: int,
    p0: float,
    tolerances: Tolerances = DEFAULT_TOLERANCES,
) -> Tuple[Tuple[ProbabilityRow, ...], bool]:
    """
    M/M/s distribution table, P_n = P_(n-1) * r / min(n, s), until the
    cumulative probability reaches max_cumulative or n = max_table_n.
    """
    rows: List[ProbabilityRow] = []
    cumulative = 0.0
    pn = p0
    for n in range(tolerances.max_table_n + 1):
        if n > 0:
            pn *= r / min(n, s)
        _probability(n, pn)
        cumulative += pn
        fn = min(cumulative, 1.0)
        rows.append(ProbabilityRow(n=n, pn=pn, fn=fn))
        if fn >= tolerances.max_cumulative:
            return tuple(rows), False

    logger.debug("M/M/s table hit the %d-term cap at F=%.6f", tolerances.max_table_n, rows[-1].fn)
    return tuple(rows), True


def finite_table(
    r: float,
    s: int,
    capacity: int,
    p0: float,
    tolerances: Tolerances = DEFAULT_TOLERANCES,
) -> Tuple[ProbabilityRow, ...]:
    """
    Distribution table n = 0..K for M/M/1/K and M/M/s/K.

    Beyond s the ratio between consecutive states is rho = r/s; at rho == 1
    every state from s to K carries the same probability.
    """
    rho = r / s
    unit = is_unit_rho(rho, tolerances.rho_one_tolerance)

    rows: List[ProbabilityRow] = []
    cumulative = 0.0
    pn = p0
    for n in range(capacity + 1):
        if n > 0:
            pn *= 1.0 if (n > s and unit) else r / min(n, s)
        _probability(n, pn)
        cumulative += pn
        rows.append(ProbabilityRow(n=n, pn=pn, fn=min(cumulative, 1.0)))

    if abs(cumulative - 1.0) > tolerances.cumulative_tolerance:
        raise _degenerate(f"probabilities sum to {cumulative:.6f} instead of 1")
    return tuple(rows)


# -----------------------------
# Model solvers (raise QueueInputError)
# -----------------------------
def mm1(
    params: ModelParameters,
    tolerances: Optional[Tolerances] = None,
    cutoff: TableCutoff = "dynamic",
) -> InfiniteQueueResult:
    tol = tolerances or DEFAULT_TOLERANCES
    p = validate_parameters(params, "M/M/1")
    lam, mu = p.lam, p.mu

    rho = lam / mu
    ls = lam / (mu - lam)
    lq = rho * ls
    ws = ls / lam
    wq = lq / lam
    p0 = 1.0 - rho

    table, truncated = mm1_table(rho, p0, tol, cutoff)

    return InfiniteQueueResult(
        model="M/M/1",
        lam=lam,
        mu=mu,
        servers=1,
        rho=_metric("rho", rho),
        p0=_metric("P0", p0),
        ls=_metric("Ls", ls),
        lq=_metric("Lq", lq),
        ws=_metric("Ws", ws),
        wq=_metric("Wq", wq),
        probability_table=table,
        table_truncated=truncated,
    )


def mm1k(params: ModelParameters, tolerances: Optional[Tolerances] = None) -> FiniteQueueResult:
    tol = tolerances or DEFAULT_TOLERANCES
    p = validate_parameters(params, "M/M/1/K")
    lam, mu = p.lam, p.mu
    k = int(p.capacity or 0)

    try:
        rho = lam / mu
        p0 = mm1k_p0(rho, k, tol.rho_one_tolerance)
        table = finite_table(rho, 1, k, p0, tol)
        ls = _check_moment("Ls", mm1k_ls(rho, k, tol.rho_one_tolerance), _table_moment(table), tol)
        pk = table[-1].pn
        effective, lost = _effective_lambda(lam, pk, tol)
        ws = ls / effective
        wq = ws - 1.0 / mu
        lq = effective * wq
    except (OverflowError, ZeroDivisionError) as exc:
        raise _degenerate(f"M/M/1/K arithmetic failed ({exc})") from exc

    return FiniteQueueResult(
        model="M/M/1/K",
        lam=lam,
        mu=mu,
        servers=1,
        capacity=k,
        rho=_metric("rho", rho),
        p0=_metric("P0", p0),
        ls=_metric("Ls", ls),
        lq=_metric("Lq", lq),
        ws=_metric("Ws", ws),
        wq=_metric("Wq", wq),
        pk=_metric("Pk", pk),
        effective_lambda=_metric("effective_lambda", effective),
        lost_lambda=_metric("lost_lambda", lost),
        probability_table=table,
    )


def mms(params: ModelParameters, tolerances: Optional[Tolerances] = None) -> InfiniteQueueResult:
    tol = tolerances or DEFAULT_TOLERANCES
    p = validate_parameters(params, "M/M/s")
    lam, mu, s = p.lam, p.mu, int(p.servers)

    try:
        r = offered_load(lam, mu)
        rho = r / s
        p0 = mms_p0(r, s)
        lq = mms_lq(r, s, p0)
        wq = lq / lam
        ws = wq + 1.0 / mu
        ls = lam * ws
        table, truncated = mms_table(r, s, p0, tol)
    except (OverflowError, ZeroDivisionError) as exc:
        raise _degenerate(f"M/M/s arithmetic failed ({exc})") from exc

    return InfiniteQueueResult(
        model="M/M/s",
        lam=lam,
        mu=mu,
        servers=s,
        rho=_metric("rho", rho),
        p0=_metric("P0", p0),
        ls=_metric("Ls", ls),
        lq=_metric("Lq", lq),
        ws=_metric("Ws", ws),
        wq=_metric("Wq", wq),
        probability_table=table,
        table_truncated=truncated,
    )


def mmsk(params: ModelParameters, tolerances: Optional[Tolerances] = None) -> FiniteQueueResult:
    tol = tolerances or DEFAULT_TOLERANCES
    p = validate_parameters(params, "M/M/s/K")
    lam, mu, s = p.lam, p.mu, int(p.servers)
    k = int(p.capacity or 0)

    try:
        r = offered_load(lam, mu)
        rho = r / s
        p0 = mmsk_p0(r, s, k, tol.rho_one_tolerance)
        table = finite_table(r, s, k, p0, tol)
        pk = table[-1].pn
        lq = _check_moment(
            "Lq", mmsk_lq(r, s, k, p0, tol.rho_one_tolerance), _table_moment(table, offset=s), tol
        )
        effective, lost = _effective_lambda(lam, pk, tol)
        wq = lq / effective
        ws = wq + 1.0 / mu
        ls = effective * ws
    except (OverflowError, ZeroDivisionError) as exc:
        raise _degenerate(f"M/M/s/K arithmetic failed ({exc})") from exc

    return FiniteQueueResult(
        model="M/M/s/K",
        lam=lam,
        mu=mu,
        servers=s,
        capacity=k,
        rho=_metric("rho", rho),
        p0=_metric("P0", p0),
        ls=_metric("Ls", ls),
        lq=_metric("Lq", lq),
        ws=_metric("Ws", ws),
        wq=_metric("Wq", wq),
        pk=_metric("Pk", pk),
        effective_lambda=_metric("effective_lambda", effective),
        lost_lambda=_metric("lost_lambda", lost),
        probability_table=table,
    )


# -----------------------------
# Public API
# -----------------------------
def solve(
    params: ModelParameters,
    model: QueueModel,
    tolerances: Optional[Tolerances] = None,
    cutoff: TableCutoff = "dynamic",
) -> SolveOutcome:
    """
    Solve `model` for `params`.

    Returns the model's result record, or a ValidationFailure describing the
    first violated input rule or the numerical degeneracy that stopped the
    computation. Expected domain errors are never raised.

    `cutoff` only affects the M/M/1 table.
    """
    try:
        if model == "M/M/1":
            result: ModelResult = mm1(params, tolerances, cutoff)
        elif model == "M/M/1/K":
            result = mm1k(params, tolerances)
        elif model == "M/M/s":
            result = mms(params, tolerances)
        elif model == "M/M/s/K":
            result = mmsk(params, tolerances)
        else:
            raise QueueInputError("unsupported_variant", f"Unsupported queueing model: {model!r}", "model")
    except QueueInputError as err:
        logger.debug("%s rejected (%s): %s", model, err.kind, err)
        return ValidationFailure.from_error(err)
    return result


def what_if(
    params: ModelParameters,
    model: QueueModel,
    field: RateField,
    delta: float,
    tolerances: Optional[Tolerances] = None,
) -> Tuple[ModelParameters, SolveOutcome]:
    """
    Nudge lambda or mu by `delta` (floored at MIN_NUDGED_RATE) and re-solve.

    Returns the nudged parameters together with the new outcome so a caller
    can show the adjusted inputs even when they make the model unstable.
    """
    if field not in ("lam", "mu"):
        raise ValueError(f"Unsupported what-if field: {field}")

    try:
        step = require_finite("delta", delta)
        base = require_finite("lambda" if field == "lam" else "mu", getattr(params, field))
    except QueueInputError as err:
        return params, ValidationFailure.from_error(err)

    nudged = replace(params, **{field: max(MIN_NUDGED_RATE, base + step)})
    return nudged, solve(nudged, model, tolerances)


__all__ = [
    "TableCutoff",
    "RateField",
    "SolveOutcome",
    "MIN_NUDGED_RATE",
    "mm1_table",
    "mms_table",
    "finite_table",
    "mm1",
    "mm1k",
    "mms",
    "mmsk",
    "solve",
    "what_if",
]
