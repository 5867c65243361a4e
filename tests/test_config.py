import pytest

from queuelab.config import DEFAULT_TOLERANCES, Tolerances, load_tolerances_from_env

ENV_NAMES = (
    "QUEUELAB_MIN_PROBABILITY",
    "QUEUELAB_MAX_CUMULATIVE",
    "QUEUELAB_MAX_TABLE_N",
    "QUEUELAB_RHO_ONE_TOLERANCE",
    "QUEUELAB_CUMULATIVE_TOLERANCE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    tol = Tolerances()
    assert tol.min_probability == 1e-5
    assert tol.max_cumulative == 0.999995
    assert tol.max_table_n == 1000
    assert tol.fixed_table_n == 20


def test_env_unset_returns_base():
    assert load_tolerances_from_env() == DEFAULT_TOLERANCES
    base = Tolerances(max_table_n=50)
    assert load_tolerances_from_env(base) == base


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("QUEUELAB_MAX_TABLE_N", "200")
    monkeypatch.setenv("QUEUELAB_MIN_PROBABILITY", "1e-7")
    monkeypatch.setenv("QUEUELAB_CUMULATIVE_TOLERANCE", "  ")

    tol = load_tolerances_from_env()
    assert tol.max_table_n == 200
    assert tol.min_probability == 1e-7
    assert tol.cumulative_tolerance == DEFAULT_TOLERANCES.cumulative_tolerance


@pytest.mark.parametrize(
    "name,value",
    [
        ("QUEUELAB_MAX_TABLE_N", "many"),
        ("QUEUELAB_MAX_TABLE_N", "0"),
        ("QUEUELAB_RHO_ONE_TOLERANCE", "nan"),
    ],
)
def test_env_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        load_tolerances_from_env()
