"""
Proxy-adjusted OLS and coefficient inference.

Fits  outcome = b0 + b1 * proxy + b2 * treatment + eps  and extracts the
treatment coefficient with its two-sided t-test p-value. Under the DGP in
`simulate` the true treatment effect is zero, so a p-value below the
significance level is a false positive.
"""

from collections import namedtuple

import numpy as np
from scipy import stats

from .exceptions import SingularFitError
from .simulate import CONFOUNDER_SD
from .utils import add_const, check_positive, ols_fit

FitResult = namedtuple(
    "FitResult",
    [
        "intercept",
        "proxy_coefficient",
        "treatment_coefficient",
        "treatment_se",
        "treatment_t",
        "treatment_p_value",
    ],
)


def t_test(beta, se, df):
    """
    Two-sided t-test of H0: beta = 0.

    Parameters
    ----------
    beta : float or ndarray
        Coefficient estimate(s).
    se : float or ndarray
        Standard error(s); must be strictly positive.
    df : int
        Residual degrees of freedom n - k.

    Returns
    -------
    t_stat, p_value
    """
    se = np.asarray(se, dtype=float)
    if (se <= 0).any():
        raise SingularFitError("degenerate fit: zero residual variance")
    t_stat = np.asarray(beta, dtype=float) / se
    p_value = 2 * stats.t.sf(np.abs(t_stat), df)
    return t_stat, np.clip(p_value, 0.0, 1.0)


def fit_and_extract(data):
    """
    Regress outcome on proxy and treatment (plus intercept).

    Parameters
    ----------
    data : SimulatedData
        Dataset with at least 4 units.

    Returns
    -------
    FitResult
        Coefficients in fixed positions, plus the treatment coefficient's
        SE, t-statistic and p-value.
    """
    X = add_const(np.column_stack([data.proxy, data.treatment]))
    b, se, _, _ = ols_fit(X, data.outcome)
    n, k = X.shape
    t_stat, p_value = t_test(b[2], se[2], n - k)
    return FitResult(
        intercept=float(b[0]),
        proxy_coefficient=float(b[1]),
        treatment_coefficient=float(b[2]),
        treatment_se=float(se[2]),
        treatment_t=float(t_stat),
        treatment_p_value=float(p_value),
    )


def naive_fit(data):
    """
    Unadjusted regression of outcome on treatment alone.

    Returns
    -------
    dict with keys:
        beta    : [intercept, slope]
        se      : homoskedastic SEs
        p_value : two-sided p-value of the slope
    """
    X = add_const(data.treatment)
    b, se, _, _ = ols_fit(X, data.outcome)
    n, k = X.shape
    _, p_value = t_test(b[1], se[1], n - k)
    return dict(beta=b, se=se, p_value=float(p_value))


def theoretical_bias(sigma_xy, sigma_z, confounder_sd=CONFOUNDER_SD):
    """
    Population treatment coefficient in the proxy-adjusted regression.

    With V = Var(confounder), the normal equations of the population
    regression give

        b_treatment = V sigma_z^2 / (V (sigma_z^2 + sigma_xy^2) + sigma_z^2 sigma_xy^2)

    which tends to 0 as sigma_z -> 0 (perfect proxy) and to
    V / (V + sigma_xy^2) as sigma_z -> infinity (no adjustment at all).
    Since the true effect is zero this is also the asymptotic bias.
    """
    sx2 = check_positive(sigma_xy, "sigma_xy") ** 2
    sz2 = check_positive(sigma_z, "sigma_z") ** 2
    V = check_positive(confounder_sd, "confounder_sd") ** 2
    return V * sz2 / (V * (sz2 + sx2) + sz2 * sx2)
