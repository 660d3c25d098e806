import numpy as np
import pytest

from proxyconf.exceptions import InvalidParameterError, RandomSourceExhaustedError
from proxyconf.simulate import (
    CONFOUNDER_MEAN,
    CONFOUNDER_SD,
    SimulatedData,
    generate_data,
    to_frame,
)


@pytest.mark.parametrize("n", [1, 4, 300])
def test_shapes(rng, n):
    data = generate_data(sigma_xy=1.0, sigma_z=0.5, n=n, rng=rng)

    assert isinstance(data, SimulatedData)
    for field in data:
        assert field.shape == (n,)
        assert np.isfinite(field).all()


def test_reproducibility():
    d1 = generate_data(1.0, 1.0, 300, np.random.default_rng(7))
    d2 = generate_data(1.0, 1.0, 300, np.random.default_rng(7))

    for a, b in zip(d1, d2):
        assert np.array_equal(a, b)


def test_stream_advances(rng):
    d1 = generate_data(1.0, 1.0, 50, rng)
    d2 = generate_data(1.0, 1.0, 50, rng)
    assert not np.array_equal(d1.confounder, d2.confounder)


def test_records_are_read_only(simulated_data):
    with pytest.raises(ValueError):
        simulated_data.outcome[0] = 0.0


def test_noise_structure():
    sigma_xy, sigma_z = 1.5, 0.3
    data = generate_data(sigma_xy, sigma_z, 20_000, np.random.default_rng(3))

    assert abs(data.confounder.mean() - CONFOUNDER_MEAN) < 25
    assert data.confounder.std() == pytest.approx(CONFOUNDER_SD, rel=0.05)
    assert (data.treatment - data.confounder).std() == pytest.approx(sigma_xy, rel=0.05)
    assert (data.outcome - data.confounder).std() == pytest.approx(sigma_xy, rel=0.05)
    assert (data.proxy - data.confounder).std() == pytest.approx(sigma_z, rel=0.05)

    # Treatment and outcome noise are independent of each other
    corr = np.corrcoef(data.treatment - data.confounder,
                       data.outcome - data.confounder)[0, 1]
    assert abs(corr) < 0.05


@pytest.mark.parametrize("n", [0, -5, 2.5, True])
def test_invalid_sample_size(rng, n):
    with pytest.raises(InvalidParameterError):
        generate_data(1.0, 1.0, n, rng)


@pytest.mark.parametrize("sigma_xy, sigma_z", [(0.0, 1.0), (1.0, 0.0), (-1.0, 1.0), (1.0, np.nan)])
def test_invalid_noise(rng, sigma_xy, sigma_z):
    with pytest.raises(InvalidParameterError):
        generate_data(sigma_xy, sigma_z, 10, rng)


class _ShortRng:
    """Random source that hands back one draw too few."""

    def normal(self, loc, scale, size):
        return np.zeros(size - 1)


class _NanRng:
    def normal(self, loc, scale, size):
        return np.full(size, np.nan)


@pytest.mark.parametrize("source", [_ShortRng(), _NanRng()])
def test_failed_draw_is_fatal(source):
    with pytest.raises(RandomSourceExhaustedError):
        generate_data(1.0, 1.0, 10, source)


def test_to_frame(simulated_data):
    df = to_frame(simulated_data)
    assert list(df.columns) == ["confounder", "treatment", "outcome", "proxy"]
    assert len(df) == 300
    assert np.array_equal(df["proxy"].to_numpy(), simulated_data.proxy)
