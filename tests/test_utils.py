import numpy as np
import pytest
from scipy import stats

from proxyconf.exceptions import InvalidParameterError, SingularFitError
from proxyconf.utils import (
    add_const,
    as_generator,
    check_grid,
    check_positive,
    check_positive_int,
    ols_fit,
)


def test_add_const_shapes():
    x = np.arange(5.0)
    X = add_const(x)
    assert X.shape == (5, 2)
    assert np.all(X[:, 0] == 1.0)

    X2 = add_const(np.column_stack([x, x ** 2]))
    assert X2.shape == (5, 3)


def test_ols_fit_matches_linregress(rng):
    x = rng.normal(0, 1, 200)
    y = 1.5 - 0.7 * x + rng.normal(0, 0.5, 200)

    b, se, e, s2 = ols_fit(add_const(x), y)
    ref = stats.linregress(x, y)

    assert b[0] == pytest.approx(ref.intercept)
    assert b[1] == pytest.approx(ref.slope)
    assert se[1] == pytest.approx(ref.stderr)
    assert s2 == pytest.approx((e @ e) / (200 - 2))


def test_ols_fit_exact_recovery():
    x1 = np.array([0.0, 1.0, 2.0, 3.0, 4.0, 5.0])
    x2 = np.array([1.0, 0.0, 2.0, 1.0, 3.0, 2.0])
    y = 1.0 + 2.0 * x1 - 3.0 * x2
    b, _, e, _ = ols_fit(add_const(np.column_stack([x1, x2])), y)
    assert np.allclose(b, [1.0, 2.0, -3.0])
    assert np.allclose(e, 0.0)


def test_ols_fit_singular_design():
    x = np.linspace(0, 1, 20)
    X = add_const(np.column_stack([x, x]))
    with pytest.raises(SingularFitError, match="singular design matrix"):
        ols_fit(X, x + 1)


@pytest.mark.parametrize("n", [2, 3])
def test_ols_fit_needs_residual_dof(n):
    X = add_const(np.column_stack([np.arange(n, dtype=float), np.arange(n) ** 2.0]))
    with pytest.raises(InvalidParameterError):
        ols_fit(X, np.ones(n))


def test_ols_fit_rejects_non_finite():
    x = np.arange(10.0)
    y = x.copy()
    y[3] = np.nan
    with pytest.raises(InvalidParameterError):
        ols_fit(add_const(x), y)


def test_singular_fit_is_linalg_error():
    assert issubclass(SingularFitError, np.linalg.LinAlgError)
    assert issubclass(InvalidParameterError, ValueError)


@pytest.mark.parametrize("value", [0, -1.0, np.inf, np.nan, "1", True])
def test_check_positive_rejects(value):
    with pytest.raises(InvalidParameterError):
        check_positive(value, "sigma")


@pytest.mark.parametrize("value", [0, -3, 2.5, True, None])
def test_check_positive_int_rejects(value):
    with pytest.raises(InvalidParameterError):
        check_positive_int(value, "n")


def test_check_positive_int_accepts_numpy_ints():
    assert check_positive_int(np.int64(7), "n") == 7


def test_check_grid():
    assert check_grid(np.array([0.3, 0.1, 0.2]), "g") == (0.3, 0.1, 0.2)
    for bad in ([], [0.1, -0.2], [0.1, 0.1], [0.1, np.nan]):
        with pytest.raises(InvalidParameterError):
            check_grid(bad, "g")


def test_as_generator_passes_through_generator(rng):
    assert as_generator(rng) is rng
    a = as_generator(5).normal(size=3)
    b = as_generator(5).normal(size=3)
    assert np.array_equal(a, b)
