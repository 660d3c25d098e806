"""
Shared utility functions used across the simulation and estimation modules.
"""

import numbers

import numpy as np

from .exceptions import InvalidParameterError, SingularFitError


def ols_fit(X, y):
    """
    OLS estimation via least squares on the design matrix.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix (should include a constant column if an intercept is desired).
    y : ndarray, shape (n,)
        Outcome vector.

    Returns
    -------
    b : ndarray, shape (k,)
        Coefficient estimates  beta_hat = (X'X)^{-1} X'y.
    se : ndarray, shape (k,)
        Homoskedastic standard errors.
    e : ndarray, shape (n,)
        Residuals  y - X @ b.
    s2 : float
        Estimated error variance  e'e / (n - k).

    Raises
    ------
    InvalidParameterError
        If n <= k (no residual degrees of freedom) or the data are not finite.
    SingularFitError
        If the design matrix is rank deficient.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    n, k = X.shape
    if y.shape != (n,):
        raise InvalidParameterError(
            f"outcome has shape {y.shape}, expected ({n},)"
        )
    if n <= k:
        raise InvalidParameterError(
            f"OLS needs more observations than parameters (n={n}, k={k})"
        )
    if not (np.isfinite(X).all() and np.isfinite(y).all()):
        raise InvalidParameterError("design matrix and outcome must be finite")

    b, _, rank, _ = np.linalg.lstsq(X, y, rcond=None)
    if rank < k:
        raise SingularFitError(f"singular design matrix (rank {rank} < {k})")

    e = y - X @ b
    s2 = (e @ e) / (n - k)
    try:
        bread = np.linalg.inv(X.T @ X)
    except np.linalg.LinAlgError as exc:
        raise SingularFitError("singular design matrix") from exc
    var = s2 * np.diag(bread)
    if not np.isfinite(var).all() or (var < 0).any():
        raise SingularFitError("singular design matrix (non-finite variance)")
    se = np.sqrt(var)
    return b, se, e, s2


def add_const(x):
    """
    Prepend a column of ones (intercept) to the design matrix.

    Parameters
    ----------
    x : ndarray
        1-d array or 2-d matrix of regressors.

    Returns
    -------
    X : ndarray, shape (n, k+1)
        Design matrix with leading ones column.
    """
    x = np.asarray(x, dtype=float)
    x = np.atleast_2d(x).T if x.ndim == 1 else x
    return np.column_stack([np.ones(x.shape[0]), x])


def check_positive(value, name):
    """Return `value` as a float, rejecting non-finite or non-positive input."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameterError(f"{name} must be a real number, got {value!r}")
    value = float(value)
    if not np.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"{name} must be positive and finite, got {value}")
    return value


def check_positive_int(value, name, minimum=1):
    """Return `value` as an int, rejecting anything below `minimum`."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    value = int(value)
    if value < minimum:
        raise InvalidParameterError(f"{name} must be >= {minimum}, got {value}")
    return value


def check_grid(values, name):
    """
    Validate a parameter grid.

    Parameters
    ----------
    values : sequence of float
        Ordered grid values; must be non-empty, positive, finite and distinct.
    name : str
        Name used in error messages.

    Returns
    -------
    tuple of float
        The grid in its original order.
    """
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        raise InvalidParameterError(f"{name} must contain at least one value")
    grid = tuple(check_positive(float(v), name) for v in arr)
    if len(set(grid)) != len(grid):
        raise InvalidParameterError(f"{name} contains duplicate values")
    return grid


def as_generator(seed=None):
    """
    Turn `seed` into a numpy Generator.

    An existing Generator is returned unchanged so that a caller-owned
    stream keeps advancing; an int, SeedSequence or None seeds a new one.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)
