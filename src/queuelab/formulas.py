from __future__ import annotations

from typing import Tuple

# Inside |rho - 1| < SERIES_BAND the finite-capacity closed forms divide an
# O((1-rho)^2) difference by (1-rho)^2; sum the series term by term instead.
SERIES_BAND: float = 1e-4


def factorial(n: int) -> int:
    """
    Iterative n! for non-negative integers.

    Returns -1 for negative n; callers treat that as an internal consistency
    failure since validated inputs never produce it.
    """
    if n < 0:
        return -1
    result = 1
    for i in range(2, n + 1):
        result *= i
    return result


def offered_load(lam: float, mu: float) -> float:
    """Offered load r = lambda / mu (Erlangs)."""
    return float(lam) / float(mu)


def is_unit_rho(rho: float, tolerance: float) -> bool:
    return abs(rho - 1.0) < tolerance


def in_series_band(rho: float) -> bool:
    return abs(rho - 1.0) < SERIES_BAND


def geometric_sums(rho: float, terms: int) -> Tuple[float, float]:
    """
    Returns (sum_{j=0}^{terms-1} rho^j, sum_{j=0}^{terms-1} j rho^j),
    accumulated term by term.
    """
    power = 1.0
    total = 0.0
    weighted = 0.0
    for j in range(terms):
        if j > 0:
            power *= rho
        total += power
        weighted += j * power
    return total, weighted


def erlang_sums(r: float, s: int) -> Tuple[float, float]:
    """
    Returns (sum_{n=0}^{s-1} r^n/n!, r^s/s!).

    Built by recurrence (term *= r/n) so large s does not overflow the way
    r**s / s! would.
    """
    term = 1.0  # r^0/0!
    partial = 0.0
    for n in range(s):
        if n > 0:
            term *= r / n
        partial += term
    # term currently = r^(s-1)/(s-1)!
    term_s = term * r / s
    return partial, term_s


def state_probability(n: int, r: float, s: int, p0: float) -> float:
    """
    Closed form P_n for a birth-death queue with s servers:

      P_n = (r^n / n!) * P0                 n < s
      P_n = (r^n / (s! * s^(n-s))) * P0     n >= s

    Reference closed form: the solvers build tables by recurrence and the
    tests check those rows against this. Intended for small n and s.
    """
    if n < s:
        denom = factorial(n)
    else:
        denom = factorial(s) * s ** (n - s)
    if denom <= 0:
        raise ArithmeticError(f"factorial consistency check failed for n={n}, s={s}")
    return (r**n / denom) * p0


# -----------------------------
# M/M/1/K
# -----------------------------
def mm1k_p0(rho: float, capacity: int, tolerance: float) -> float:
    if is_unit_rho(rho, tolerance):
        return 1.0 / (capacity + 1)
    if in_series_band(rho):
        total, _ = geometric_sums(rho, capacity + 1)
        return 1.0 / total
    return (1.0 - rho) / (1.0 - rho ** (capacity + 1))


def mm1k_ls(rho: float, capacity: int, tolerance: float) -> float:
    """
    Ls = rho * (1 - (K+1) rho^K + K rho^(K+1)) / ((1 - rho)(1 - rho^(K+1)))

    and K/2 when rho == 1. Near rho == 1 the ratio
    sum n rho^n / sum rho^n (n = 0..K) is summed directly.
    """
    k = capacity
    if is_unit_rho(rho, tolerance):
        return k / 2.0
    if in_series_band(rho):
        total, weighted = geometric_sums(rho, k + 1)
        return weighted / total
    num = rho * (1.0 - (k + 1) * rho**k + k * rho ** (k + 1))
    den = (1.0 - rho) * (1.0 - rho ** (k + 1))
    return num / den


# -----------------------------
# M/M/s and M/M/s/K
# -----------------------------
def mms_p0(r: float, s: int) -> float:
    """P0 = 1 / (sum_{n<s} r^n/n! + (r^s/s!) * 1/(1-rho)), requires rho = r/s < 1."""
    rho = r / s
    partial, term_s = erlang_sums(r, s)
    return 1.0 / (partial + term_s / (1.0 - rho))


def mms_lq(r: float, s: int, p0: float) -> float:
    """Lq = P0 * r^s * rho / (s! * (1-rho)^2)."""
    rho = r / s
    _, term_s = erlang_sums(r, s)
    return p0 * term_s * rho / (1.0 - rho) ** 2


def finite_tail_sum(rho: float, slots: int, tolerance: float) -> float:
    """sum_{j=0}^{slots-1} rho^j, i.e. `slots` when rho == 1."""
    if is_unit_rho(rho, tolerance):
        return float(slots)
    if in_series_band(rho):
        total, _ = geometric_sums(rho, slots)
        return total
    return (1.0 - rho**slots) / (1.0 - rho)


def mmsk_p0(r: float, s: int, capacity: int, tolerance: float) -> float:
    rho = r / s
    partial, term_s = erlang_sums(r, s)
    tail = finite_tail_sum(rho, capacity - s + 1, tolerance)
    return 1.0 / (partial + term_s * tail)


def mmsk_lq(r: float, s: int, capacity: int, p0: float, tolerance: float) -> float:
    """
    Lq for M/M/s/K:

      rho != 1: P0 (r^s/s!) rho/(1-rho)^2 * (1 - rho^(K-s+1) - (1-rho)(K-s+1) rho^(K-s))
      rho == 1: P0 (r^s/s!) (K-s)(K-s+1)/2

    Near rho == 1 the queue moment P0 (r^s/s!) sum_{j=1}^{K-s} j rho^j is
    summed directly.
    """
    rho = r / s
    _, term_s = erlang_sums(r, s)
    m = capacity - s
    if is_unit_rho(rho, tolerance):
        return p0 * term_s * (m * (m + 1)) / 2.0
    if in_series_band(rho):
        _, weighted = geometric_sums(rho, m + 1)
        return p0 * term_s * weighted
    bracket = 1.0 - rho ** (m + 1) - (1.0 - rho) * (m + 1) * rho**m
    return p0 * term_s * rho / (1.0 - rho) ** 2 * bracket


__all__ = [
    "factorial",
    "offered_load",
    "SERIES_BAND",
    "is_unit_rho",
    "in_series_band",
    "geometric_sums",
    "erlang_sums",
    "state_probability",
    "mm1k_p0",
    "mm1k_ls",
    "mms_p0",
    "mms_lq",
    "finite_tail_sum",
    "mmsk_p0",
    "mmsk_lq",
]
