import math

import pytest

from queuelab.formulas import (
    erlang_sums,
    factorial,
    geometric_sums,
    finite_tail_sum,
    mm1k_ls,
    mm1k_p0,
    mms_lq,
    mms_p0,
    mmsk_lq,
    mmsk_p0,
    offered_load,
    state_probability,
)

TOL = 1e-9


def test_factorial_values():
    assert factorial(0) == 1
    assert factorial(1) == 1
    assert factorial(5) == 120
    assert factorial(10) == math.factorial(10)


def test_factorial_negative_sentinel():
    assert factorial(-1) == -1


def test_offered_load():
    assert offered_load(2.0, 3.0) == pytest.approx(2.0 / 3.0)


def test_erlang_sums_matches_closed_form():
    partial, term_s = erlang_sums(2.0, 3)
    assert partial == pytest.approx(1.0 + 2.0 + 2.0)
    assert term_s == pytest.approx(8.0 / 6.0)


def test_erlang_sums_large_s_does_not_overflow():
    partial, term_s = erlang_sums(150.0, 200)
    assert math.isfinite(partial)
    assert math.isfinite(term_s)


def test_state_probability_closed_form():
    # n < s and n >= s branches
    assert state_probability(1, 2.0, 3, 0.1) == pytest.approx(0.2)
    assert state_probability(4, 2.0, 3, 0.1) == pytest.approx(16.0 / (6.0 * 3.0) * 0.1)


def test_mm1k_p0_unit_rho_branch():
    assert mm1k_p0(1.0, 4, TOL) == pytest.approx(0.2)
    assert mm1k_ls(1.0, 4, TOL) == pytest.approx(2.0)


def test_mm1k_p0_near_one_uses_unit_branch():
    assert mm1k_p0(1.0 + 1e-12, 9, TOL) == pytest.approx(0.1)


def test_mms_p0_single_server_is_one_minus_rho():
    assert mms_p0(0.8, 1) == pytest.approx(0.2)


def test_mms_lq_two_servers_known_case():
    # lambda=2, mu=3, s=2 -> P0 = 0.5, Lq = 1/12
    r = 2.0 / 3.0
    p0 = mms_p0(r, 2)
    assert p0 == pytest.approx(0.5)
    assert mms_lq(r, 2, p0) == pytest.approx(1.0 / 12.0)


def test_finite_tail_sum():
    assert finite_tail_sum(1.0, 3, TOL) == 3.0
    assert finite_tail_sum(0.5, 3, TOL) == pytest.approx(1.0 + 0.5 + 0.25)


def test_mmsk_p0_single_server_matches_mm1k():
    for rho in (0.5, 1.0, 1.7):
        assert mmsk_p0(rho, 1, 5, TOL) == pytest.approx(mm1k_p0(rho, 5, TOL))


def test_mmsk_lq_unit_rho_and_no_waiting_room():
    # r=2, s=2, K=4, rho=1 -> P0 = 1/9, Lq = 6/9
    p0 = mmsk_p0(2.0, 2, 4, TOL)
    assert p0 == pytest.approx(1.0 / 9.0)
    assert mmsk_lq(2.0, 2, 4, p0, TOL) == pytest.approx(6.0 / 9.0)

    # K == s leaves no queue at all
    p0 = mmsk_p0(1.5, 3, 3, TOL)
    assert mmsk_lq(1.5, 3, 3, p0, TOL) == pytest.approx(0.0, abs=1e-12)


def test_geometric_sums():
    total, weighted = geometric_sums(0.5, 4)
    assert total == pytest.approx(1.0 + 0.5 + 0.25 + 0.125)
    assert weighted == pytest.approx(0.5 + 2 * 0.25 + 3 * 0.125)
    assert geometric_sums(1.0, 6) == (6.0, 15.0)


@pytest.mark.parametrize("eps", [1e-8, -1e-8, 1e-6, 5e-5])
def test_finite_forms_stay_accurate_near_unit_rho(eps):
    rho = 1.0 + eps
    # K = 5: every state close to 1/6, Ls close to 2.5
    assert mm1k_p0(rho, 5, TOL) == pytest.approx(1.0 / 6.0, abs=1e-3)
    assert mm1k_ls(rho, 5, TOL) == pytest.approx(2.5, abs=1e-3)
    assert finite_tail_sum(rho, 5, TOL) == pytest.approx(5.0, abs=1e-2)

    # r = 2 rho, s = 2, K = 6: P0 close to 1/13, Lq close to 20/13
    p0 = mmsk_p0(2.0 * rho, 2, 6, TOL)
    assert p0 == pytest.approx(1.0 / 13.0, abs=1e-3)
    assert mmsk_lq(2.0 * rho, 2, 6, p0, TOL) == pytest.approx(20.0 / 13.0, abs=1e-3)


def test_series_and_closed_forms_agree_at_band_edge():
    inside = 1.0 + 0.99e-4
    outside = 1.0 + 1.01e-4
    assert mm1k_ls(inside, 8, TOL) == pytest.approx(mm1k_ls(outside, 8, TOL), abs=1e-4)
    p_in = mmsk_p0(3.0 * inside, 3, 9, TOL)
    p_out = mmsk_p0(3.0 * outside, 3, 9, TOL)
    assert mmsk_lq(3.0 * inside, 3, 9, p_in, TOL) == pytest.approx(
        mmsk_lq(3.0 * outside, 3, 9, p_out, TOL), abs=1e-4
    )
