import numpy as np
import pytest

from proxyconf.simulate import generate_data


@pytest.fixture(scope="function")
def rng():
    return np.random.default_rng(12345)


@pytest.fixture(scope="function")
def simulated_data(rng):
    """
    One dataset from the reference single-trial setting:
    sigma_xy=1, sigma_z=1, n=300.
    """
    return generate_data(sigma_xy=1.0, sigma_z=1.0, n=300, rng=rng)
