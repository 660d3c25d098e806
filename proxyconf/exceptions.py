"""
Exception types raised by the simulation, fitting and sweep modules.

Every error aborts the enclosing trial or sweep; nothing is retried and
no NaN placeholder is ever recorded in place of a failed trial.
"""

import numpy as np


class ProxyConfError(Exception):
    """Base class for all errors raised by proxyconf."""


class InvalidParameterError(ProxyConfError, ValueError):
    """A sample size, repetition count, noise level or grid is invalid."""


class SingularFitError(ProxyConfError, np.linalg.LinAlgError):
    """The OLS design matrix is not invertible (or the fit is degenerate)."""


class RandomSourceExhaustedError(ProxyConfError, RuntimeError):
    """The random source failed to produce the requested draws."""
