"""
Data generating process: a confounder observed through a noisy proxy.

DGP:
    confounder ~ N(2000, 500)
    treatment  = confounder + N(0, sigma_xy)
    outcome    = confounder + N(0, sigma_xy)
    proxy      = confounder + N(0, sigma_z)

Treatment has no causal effect on the outcome; any association between
them runs through the confounder. Adjusting for the proxy instead of the
confounder leaves residual confounding that grows with sigma_z.
"""

from collections import namedtuple

import numpy as np
import pandas as pd

from .exceptions import RandomSourceExhaustedError
from .utils import check_positive, check_positive_int

CONFOUNDER_MEAN = 2000.0
CONFOUNDER_SD = 500.0

SimulatedData = namedtuple(
    "SimulatedData", ["confounder", "treatment", "outcome", "proxy"]
)
SimulatedData.__doc__ = """\
One simulated dataset, stored column-wise: each field is a read-only
length-n array and row i across the four fields is one unit."""


def _draw(rng, loc, scale, n):
    values = np.asarray(rng.normal(loc, scale, n), dtype=float)
    if values.shape != (n,) or not np.isfinite(values).all():
        raise RandomSourceExhaustedError(
            f"random source returned {values.shape} values, expected {n} finite draws"
        )
    return values


def generate_data(sigma_xy, sigma_z, n, rng):
    """
    Simulate n units from the proxy-confounding DGP.

    Parameters
    ----------
    sigma_xy : float
        Std dev of the treatment and outcome noise (positive).
    sigma_z : float
        Std dev of the proxy measurement error (positive).
    n : int
        Sample size (positive).
    rng : numpy.random.Generator
        Random source. Draws are taken in the order confounder, treatment
        noise, outcome noise, proxy noise, so a seeded stream reproduces
        the same dataset.

    Returns
    -------
    SimulatedData
        Four read-only arrays of length n.
    """
    sigma_xy = check_positive(sigma_xy, "sigma_xy")
    sigma_z = check_positive(sigma_z, "sigma_z")
    n = check_positive_int(n, "n")

    confounder = _draw(rng, CONFOUNDER_MEAN, CONFOUNDER_SD, n)
    treatment = confounder + _draw(rng, 0.0, sigma_xy, n)
    outcome = confounder + _draw(rng, 0.0, sigma_xy, n)
    proxy = confounder + _draw(rng, 0.0, sigma_z, n)

    for arr in (confounder, treatment, outcome, proxy):
        arr.setflags(write=False)
    return SimulatedData(
        confounder=confounder, treatment=treatment, outcome=outcome, proxy=proxy
    )


def to_frame(data):
    """One row per simulated unit, one column per variable."""
    return pd.DataFrame(data._asdict(), columns=list(SimulatedData._fields))
