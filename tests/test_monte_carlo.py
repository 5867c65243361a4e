import math

import numpy as np
import pytest

from queuelab.config import MAX_TOTAL_CELLS
from queuelab.monte_carlo import (
    SimulationConfig,
    SimulationResult,
    VariableMean,
    exponential_variate,
    generate,
    poisson_cdf,
    poisson_variate,
    run_simulation,
    samples_frame,
    summary_frame,
    within_advisory_band,
)
from queuelab.validation import QueueInputError, ValidationFailure


def test_inverse_transform_single_draws():
    assert exponential_variate(0.5, 2.0) == pytest.approx(math.log(2.0) / 2.0)
    assert exponential_variate(0.0, 3.0) == 0.0
    # F(0) = e^-1 ~ 0.368 < 0.5 <= F(1) ~ 0.736
    assert poisson_variate(0.5, 1.0) == 1
    assert poisson_variate(0.1, 1.0) == 0


def test_poisson_variate_iteration_cap():
    with pytest.raises(QueueInputError) as exc:
        poisson_variate(0.5, 1000.0)
    assert exc.value.kind == "numerical_degeneracy"


def test_exponential_mean_converges():
    res = run_simulation(SimulationConfig(distribution="exponential", lam=2.0, observation_count=100_000, seed=42))
    assert res.samples.shape == (100_000, 1)
    assert res.theoretical_mean == pytest.approx(0.5)
    assert abs(res.per_variable_mean[0].mean_simulated - 0.5) / 0.5 < 0.05
    assert (res.samples >= 0).all()


def test_poisson_samples_are_counts():
    res = run_simulation(SimulationConfig(distribution="poisson", lam=5.0, observation_count=20_000, seed=7))
    assert res.theoretical_mean == 5.0
    assert (res.samples >= 0).all()
    assert np.all(res.samples == np.floor(res.samples))
    assert abs(res.per_variable_mean[0].mean_simulated - 5.0) / 5.0 < 0.05


def test_shape_and_means_per_variable():
    res = run_simulation(
        SimulationConfig(distribution="poisson", lam=3.0, variable_count=4, observation_count=250, seed=1)
    )
    assert res.samples.shape == (250, 4)
    assert [m.variable_index for m in res.per_variable_mean] == [1, 2, 3, 4]
    for m in res.per_variable_mean:
        col = res.samples[:, m.variable_index - 1]
        assert m.mean_simulated == pytest.approx(float(col.mean()))


def test_seed_is_reproducible_and_samples_read_only():
    cfg = SimulationConfig(distribution="exponential", lam=1.5, variable_count=2, observation_count=50, seed=123)
    a = run_simulation(cfg)
    b = run_simulation(cfg)
    assert np.array_equal(a.samples, b.samples)
    with pytest.raises(ValueError):
        a.samples[0, 0] = 1.0


def test_columns_are_independent():
    res = run_simulation(
        SimulationConfig(distribution="exponential", lam=1.0, variable_count=2, observation_count=100, seed=9)
    )
    assert not np.array_equal(res.samples[:, 0], res.samples[:, 1])


@pytest.mark.parametrize(
    "cfg,kind",
    [
        (SimulationConfig(distribution="gamma", lam=1.0), "unsupported_variant"),  # type: ignore[arg-type]
        (SimulationConfig(distribution="poisson", lam=0.0), "non_positive"),
        (SimulationConfig(distribution="poisson", lam=1.0, variable_count=0), "non_positive"),
        (SimulationConfig(distribution="poisson", lam=1.0, observation_count=2.5), "non_integer"),  # type: ignore[arg-type]
        (SimulationConfig(distribution="poisson", lam=1.0, seed=-3), "non_positive"),
        (
            SimulationConfig(distribution="exponential", lam=1.0, variable_count=2, observation_count=MAX_TOTAL_CELLS),
            "exceeds_limit",
        ),
        (SimulationConfig(distribution="poisson", lam=1000.0, observation_count=10, seed=0), "numerical_degeneracy"),
    ],
)
def test_generate_returns_failures(cfg, kind):
    out = generate(cfg)
    assert isinstance(out, ValidationFailure)
    assert out.kind == kind


def test_generate_returns_result():
    out = generate(SimulationConfig(distribution="poisson", lam=2.0, observation_count=10, seed=0))
    assert isinstance(out, SimulationResult)


def test_frames_and_advisory_band():
    res = run_simulation(
        SimulationConfig(distribution="poisson", lam=4.0, variable_count=3, observation_count=40, seed=5)
    )
    df = samples_frame(res)
    assert list(df.columns) == ["id", "var_1", "var_2", "var_3"]
    assert df["id"].tolist() == list(range(1, 41))

    summary = summary_frame(res)
    assert list(summary.columns) == [
        "variable_index",
        "mean_simulated",
        "theoretical_mean",
        "relative_deviation",
        "within_band",
    ]
    assert len(summary) == 3


def test_within_advisory_band_uses_relative_deviation():
    res = SimulationResult(
        distribution="poisson",
        lam=10.0,
        samples=np.zeros((1, 2)),
        per_variable_mean=(VariableMean(1, 11.0), VariableMean(2, 12.0)),
        theoretical_mean=10.0,
    )
    assert within_advisory_band(res) == (True, False)


def test_poisson_cdf_covers_upper_bound():
    cdf = poisson_cdf(2.0, 0.9)
    assert cdf[0] == pytest.approx(math.exp(-2.0))
    assert cdf[-1] >= 0.9
    assert cdf[-2] < 0.9
    assert np.all(np.diff(cdf) >= 0)


def test_poisson_column_matches_single_draws():
    cfg = SimulationConfig(distribution="poisson", lam=7.5, variable_count=2, observation_count=500, seed=3)
    res = run_simulation(cfg)

    rng = np.random.default_rng(3)
    for v in range(2):
        u = rng.random(size=500)
        expected = [poisson_variate(float(x), 7.5) for x in u]
        assert res.samples[:, v].tolist() == expected
