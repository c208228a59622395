import math

import numpy as np
import pytest

from stimseq.error import DistributionError
from stimseq.sampling import SAMPLERS, compute_moments
from stimseq.sampling.distributions import (
    get_sampler,
    sample_categorical,
    sample_loguniform,
    sample_normal,
    sample_uniform,
)
from stimseq.sampling.rng import make_stream


@pytest.fixture()
def stream():
    return make_stream(1234)


def test_sampler_table():
    assert set(SAMPLERS) == {"uniform", "normal", "loguniform", "categorical"}
    assert get_sampler("uniform") is sample_uniform
    with pytest.raises(DistributionError):
        get_sampler("poisson")


def test_uniform(stream):
    values = sample_uniform({"min": 100, "max": 200}, stream, 1000)
    assert values.shape == (1000,)
    assert np.all(values >= 100) and np.all(values < 200)


def test_uniform_is_deterministic():
    x = sample_uniform({"min": 0, "max": 1}, make_stream(5), 10)
    y = sample_uniform({"min": 0, "max": 1}, make_stream(5), 10)
    np.testing.assert_array_equal(x, y)


@pytest.mark.parametrize(
    "params", [{"min": 2, "max": 1}, {"min": 1, "max": 1}, {"min": 1}]
)
def test_uniform_invalid(stream, params):
    with pytest.raises(DistributionError):
        sample_uniform(params, stream, 1)


def test_normal_clipping(stream):
    values = sample_normal(
        {"mean": 0, "std": 10, "clip_min": -1, "clip_max": 1}, stream, 1000
    )
    assert values.min() == -1
    assert values.max() == 1


def test_normal_zero_std(stream):
    values = sample_normal({"mean": 3, "std": 0}, stream, 5)
    np.testing.assert_array_equal(values, [3, 3, 3, 3, 3])


def test_normal_negative_std(stream):
    with pytest.raises(DistributionError):
        sample_normal({"mean": 0, "std": -1}, stream, 1)


def test_loguniform(stream):
    values = sample_loguniform({"min": 10, "max": 1000}, stream, 5000)
    assert np.all(values >= 10) and np.all(values <= 1000)
    # Uniform in log space: about half the draws fall below the geometric mean
    assert np.mean(values < 100) == pytest.approx(0.5, abs=0.03)


@pytest.mark.parametrize(
    "params", [{"min": 0, "max": 10}, {"min": -1, "max": 10}, {"min": 10, "max": 5}]
)
def test_loguniform_invalid(stream, params):
    with pytest.raises(DistributionError):
        sample_loguniform(params, stream, 1)


def test_categorical_frequencies(stream):
    params = {"categories": [1000, 1500, 2000], "probabilities": [0.5, 0.3, 0.2]}
    values = sample_categorical(params, stream, 10000)
    for category, probability in zip(params["categories"], params["probabilities"]):
        assert np.mean(values == category) == pytest.approx(probability, abs=0.02)


def test_categorical_normalizes_probabilities(stream):
    values = sample_categorical(
        {"categories": [1, 2], "probabilities": [2, 2]}, stream, 2000
    )
    assert set(np.unique(values)) == {1, 2}
    assert np.mean(values == 1) == pytest.approx(0.5, abs=0.05)


def test_categorical_degenerate(stream):
    values = sample_categorical(
        {"categories": [7, 8], "probabilities": [0.0, 1.0]}, stream, 100
    )
    assert np.all(values == 8)


def test_categorical_mismatched_lengths(stream):
    with pytest.raises(DistributionError):
        sample_categorical({"categories": [1, 2, 3], "probabilities": [0.5, 0.5]}, stream, 1)


def test_compute_moments():
    assert compute_moments({"dist": "uniform", "min": 0, "max": 12}) == {
        "mean": 6,
        "variance": 12,
    }
    assert compute_moments({"dist": "normal", "mean": 5, "std": 2}) == {
        "mean": 5,
        "variance": 4,
    }
    assert compute_moments({"value": 3}) == {"mean": 3, "variance": 0.0}

    categorical = compute_moments(
        {"dist": "categorical", "categories": [0, 1], "probabilities": [0.5, 0.5]}
    )
    assert categorical["mean"] == pytest.approx(0.5)
    assert categorical["variance"] == pytest.approx(0.25)

    loguniform = compute_moments({"dist": "loguniform", "min": 10, "max": 1000})
    assert loguniform["mean"] == pytest.approx(100)
    assert loguniform["variance"] > 0

    unknown = compute_moments({"dist": "gamma"})
    assert math.isnan(unknown["mean"]) and math.isnan(unknown["variance"])
