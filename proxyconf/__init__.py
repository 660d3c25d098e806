"""
proxyconf -- residual confounding from an imperfect confounder proxy.

Simulates data where a confounder drives both treatment and outcome,
adjusts for a noisy proxy of the confounder by OLS, and sweeps the proxy
and outcome noise to measure how often the (null) treatment effect comes
out significant. Estimators use only numpy / scipy.
"""

from .utils import ols_fit, add_const
from .exceptions import (
    ProxyConfError,
    InvalidParameterError,
    SingularFitError,
    RandomSourceExhaustedError,
)
from . import simulate
from . import ols
from . import sweep
