"""
Monte Carlo sweep of the false-positive rate over proxy and outcome noise.

For every (sigma_z, sigma_xy) cell of the grid, K datasets are simulated
and the proxy-adjusted regression is fitted to each. A trial counts as a
false positive when the treatment p-value is below ALPHA. Trials are
produced lazily and reduced per cell, so the serial and the
process-parallel runners share the same aggregation.
"""

import logging
import math
from collections import namedtuple
from concurrent.futures import ProcessPoolExecutor, as_completed
from itertools import chain

import numpy as np
import pandas as pd

from .exceptions import InvalidParameterError, ProxyConfError
from .ols import fit_and_extract
from .simulate import generate_data
from .utils import as_generator, check_grid, check_positive_int

logger = logging.getLogger(__name__)

ALPHA = 0.05
SIGMA_Z_GRID = np.round(0.1 * np.arange(1, 13), 1)
SIGMA_XY_GRID = np.round(1.0 + 0.1 * np.arange(10), 1)
N_REPS = 100
N_OBS = 300
SEED = 42

# intercept, proxy, treatment
N_PARAMS = 3

TABLE_COLUMNS = [
    "sigma_z",
    "sigma_xy",
    "trial_count",
    "false_positive_count",
    "false_positive_percentage",
    "mean_coefficient",
]

TrialResult = namedtuple(
    "TrialResult", ["sigma_z", "sigma_xy", "p_value", "coefficient"]
)
AggregateCell = namedtuple("AggregateCell", TABLE_COLUMNS)


def _validate(sigma_z_grid, sigma_xy_grid, n_reps, n_obs):
    return (
        check_grid(sigma_z_grid, "sigma_z_grid"),
        check_grid(sigma_xy_grid, "sigma_xy_grid"),
        check_positive_int(n_reps, "n_reps"),
        check_positive_int(n_obs, "n_obs", minimum=N_PARAMS + 1),
    )


def run_trial(sigma_z, sigma_xy, n_obs, rng):
    """Simulate one dataset, fit it, and keep the treatment p-value and coefficient."""
    data = generate_data(sigma_xy, sigma_z, n_obs, rng)
    fit = fit_and_extract(data)
    return TrialResult(
        sigma_z=sigma_z,
        sigma_xy=sigma_xy,
        p_value=fit.treatment_p_value,
        coefficient=fit.treatment_coefficient,
    )


def iter_grid(sigma_z_grid, sigma_xy_grid, n_reps):
    """
    Lazily enumerate (i, j, r) index triples in grid order.

    sigma_z is the outer loop, sigma_xy the middle loop and the trial
    index r the inner loop.
    """
    for i in range(len(sigma_z_grid)):
        for j in range(len(sigma_xy_grid)):
            for r in range(n_reps):
                yield i, j, r


def iter_trials(sigma_z_grid, sigma_xy_grid, n_reps, n_obs, rng):
    """
    Lazily run every trial of the sweep on one shared random stream.

    Parameters
    ----------
    sigma_z_grid, sigma_xy_grid : sequence of float
        Validated grids.
    n_reps : int
        Trials per cell.
    n_obs : int
        Sample size per trial.
    rng : numpy.random.Generator
        Shared stream; it advances across trials and cells and is never reseeded.

    Yields
    ------
    TrialResult
    """
    for i, j, r in iter_grid(sigma_z_grid, sigma_xy_grid, n_reps):
        if r == 0:
            logger.debug(
                "cell sigma_z=%.3g sigma_xy=%.3g", sigma_z_grid[i], sigma_xy_grid[j]
            )
        yield run_trial(sigma_z_grid[i], sigma_xy_grid[j], n_obs, rng)


def aggregate_trials(trials, n_reps, keys=None, alpha=ALPHA):
    """
    Group trials by (sigma_z, sigma_xy) and reduce each group to an AggregateCell.

    The reduction is a count of p-values below `alpha` and an exactly
    rounded sum of coefficients (math.fsum), so the result does not
    depend on the order in which trials arrive.

    Parameters
    ----------
    trials : iterable of TrialResult
    n_reps : int
        Expected number of trials per cell.
    keys : iterable of (sigma_z, sigma_xy), optional
        Output order. Defaults to first-seen order.
    alpha : float
        Significance level.

    Returns
    -------
    dict mapping (sigma_z, sigma_xy) -> AggregateCell, in `keys` order.
    """
    groups = {}
    if keys is not None:
        for key in keys:
            groups[key] = ([], [])
    for trial in trials:
        p_values, coefs = groups.setdefault((trial.sigma_z, trial.sigma_xy), ([], []))
        p_values.append(trial.p_value)
        coefs.append(trial.coefficient)

    cells = {}
    for (sigma_z, sigma_xy), (p_values, coefs) in groups.items():
        if len(coefs) != n_reps:
            raise ProxyConfError(
                f"cell sigma_z={sigma_z} sigma_xy={sigma_xy} collected "
                f"{len(coefs)} trials, expected {n_reps}"
            )
        n_false_pos = sum(1 for p in p_values if p < alpha)
        cells[(sigma_z, sigma_xy)] = AggregateCell(
            sigma_z=sigma_z,
            sigma_xy=sigma_xy,
            trial_count=n_reps,
            false_positive_count=n_false_pos,
            false_positive_percentage=n_false_pos / n_reps,
            mean_coefficient=math.fsum(coefs) / n_reps,
        )
    return cells


def run_sweep(sigma_z_grid=SIGMA_Z_GRID, sigma_xy_grid=SIGMA_XY_GRID,
              n_reps=N_REPS, n_obs=N_OBS, rng=None, seed=None):
    """
    Serial sweep on a single random stream.

    Parameters
    ----------
    sigma_z_grid : sequence of float
        Proxy noise levels (outer loop).
    sigma_xy_grid : sequence of float
        Treatment/outcome noise levels (inner loop).
    n_reps : int
        Trials per cell (K).
    n_obs : int
        Sample size per trial (N); must exceed the 3 regression parameters.
    rng : numpy.random.Generator, optional
        Random source owned by the caller; used as-is and advanced.
    seed : int, SeedSequence or numpy.random.Generator, optional
        Seeds the stream once at the start when `rng` is not given.
        Defaults to SEED. Passing both `rng` and `seed` is an error.

    Returns
    -------
    dict mapping (sigma_z, sigma_xy) -> AggregateCell, in grid order.
    """
    sigma_z_grid, sigma_xy_grid, n_reps, n_obs = _validate(
        sigma_z_grid, sigma_xy_grid, n_reps, n_obs
    )
    if rng is not None:
        if seed is not None:
            raise InvalidParameterError("pass either rng or seed, not both")
        if not isinstance(rng, np.random.Generator):
            raise InvalidParameterError(f"rng must be a numpy Generator, got {rng!r}")
    else:
        rng = as_generator(SEED if seed is None else seed)
    keys = [(sz, sxy) for sz in sigma_z_grid for sxy in sigma_xy_grid]
    logger.info(
        "sweep: %d cells x %d reps, n_obs=%d", len(keys), n_reps, n_obs
    )
    trials = iter_trials(sigma_z_grid, sigma_xy_grid, n_reps, n_obs, rng)
    cells = aggregate_trials(trials, n_reps, keys=keys)
    logger.info("sweep finished: %d trials", len(keys) * n_reps)
    return cells


def _collect(futures):
    """Gather results as they finish; on the first failure cancel the rest and re-raise."""
    results = []
    try:
        for future in as_completed(futures):
            results.append(future.result())
    except BaseException:
        for future in futures:
            future.cancel()
        raise
    return results


# Top-level so ProcessPoolExecutor can pickle it.
def _run_cell_worker(i, j, sigma_z, sigma_xy, n_reps, n_obs, seed):
    trials = []
    for r in range(n_reps):
        ss = np.random.SeedSequence([seed, i, j, r])
        trials.append(run_trial(sigma_z, sigma_xy, n_obs, np.random.default_rng(ss)))
    return trials


def run_sweep_parallel(sigma_z_grid=SIGMA_Z_GRID, sigma_xy_grid=SIGMA_XY_GRID,
                       n_reps=N_REPS, n_obs=N_OBS, seed=None, n_jobs=1):
    """
    Sweep with an independent random stream per trial.

    Trial r of cell (i, j) draws from SeedSequence([seed, i, j, r]), so the
    result is identical for any `n_jobs` (but differs from `run_sweep`,
    which shares one stream across all trials).

    Parameters
    ----------
    seed : int, optional
        Non-negative root seed; defaults to SEED.
    n_jobs : int
        Worker processes; 1 runs in-process.

    Returns
    -------
    dict mapping (sigma_z, sigma_xy) -> AggregateCell, in grid order.
    """
    sigma_z_grid, sigma_xy_grid, n_reps, n_obs = _validate(
        sigma_z_grid, sigma_xy_grid, n_reps, n_obs
    )
    seed = check_positive_int(SEED if seed is None else seed, "seed", minimum=0)
    n_jobs = check_positive_int(n_jobs, "n_jobs")

    tasks = [
        (i, j, sz, sxy, n_reps, n_obs, seed)
        for i, sz in enumerate(sigma_z_grid)
        for j, sxy in enumerate(sigma_xy_grid)
    ]
    keys = [(task[2], task[3]) for task in tasks]
    logger.info(
        "parallel sweep: %d cells x %d reps, n_obs=%d, n_jobs=%d",
        len(tasks), n_reps, n_obs, n_jobs,
    )

    if n_jobs == 1:
        batches = [_run_cell_worker(*task) for task in tasks]
    else:
        with ProcessPoolExecutor(max_workers=n_jobs) as pool:
            futures = [pool.submit(_run_cell_worker, *task) for task in tasks]
            batches = _collect(futures)

    return aggregate_trials(chain.from_iterable(batches), n_reps, keys=keys)


def sweep_table(cells):
    """
    Flatten sweep output into a table, one row per cell in grid order.

    Returns
    -------
    pandas.DataFrame with columns TABLE_COLUMNS.
    """
    return pd.DataFrame.from_records(
        [cell._asdict() for cell in cells.values()], columns=TABLE_COLUMNS
    )


def surface(table, value="mean_coefficient"):
    """
    Reshape one column of the sweep table onto the (sigma_z, sigma_xy) plane.

    Parameters
    ----------
    table : pandas.DataFrame
        Output of `sweep_table`.
    value : str
        Column to reshape.

    Returns
    -------
    SZ, SXY : meshgrid arrays, shape (n_sigma_xy, n_sigma_z)
    Z : ndarray
        `value` on the grid (contour-ready).
    """
    if value not in table.columns or value in ("sigma_z", "sigma_xy"):
        raise InvalidParameterError(f"unknown value column {value!r}")
    pivot = table.pivot(index="sigma_xy", columns="sigma_z", values=value)
    SZ, SXY = np.meshgrid(pivot.columns.to_numpy(), pivot.index.to_numpy())
    return SZ, SXY, pivot.to_numpy()
