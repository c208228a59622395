"""
Pure sampling functions for the distributions a numeric field may declare.

Every sampler has the signature ``(params, stream, n_samples) -> ndarray``,
where ``params`` is the field specification (a mapping containing the
distribution parameters) and ``stream`` is a :class:`numpy.random.Generator`.
The samplers hold no state of their own: all randomness comes from ``stream``.
"""

import math

import numpy as np

from ..error import DistributionError


def _require(params, names, dist):
    missing = [name for name in names if name not in params]
    if missing:
        raise DistributionError(
            f"{dist} distribution requires {' and '.join(names)} "
            f"(missing: {', '.join(missing)})."
        )


def sample_uniform(params, stream, n_samples=1):
    _require(params, ["min", "max"], "Uniform")
    if params["min"] >= params["max"]:
        raise DistributionError("min must be less than max.")

    u = stream.random(n_samples)
    return params["min"] + u * (params["max"] - params["min"])


def sample_normal(params, stream, n_samples=1):
    _require(params, ["mean", "std"], "Normal")
    if params["std"] < 0:
        raise DistributionError("std must be non-negative.")

    values = params["mean"] + params["std"] * stream.standard_normal(n_samples)

    if params.get("clip_min") is not None:
        values = np.maximum(values, params["clip_min"])
    if params.get("clip_max") is not None:
        values = np.minimum(values, params["clip_max"])
    return values


def sample_loguniform(params, stream, n_samples=1):
    _require(params, ["min", "max"], "Log-uniform")
    if params["min"] <= 0 or params["max"] <= 0:
        raise DistributionError("Log-uniform min and max must be > 0.")
    if params["min"] >= params["max"]:
        raise DistributionError("min must be less than max.")

    log_min = math.log(params["min"])
    log_max = math.log(params["max"])

    u = stream.random(n_samples)
    return np.exp(log_min + u * (log_max - log_min))


def sample_categorical(params, stream, n_samples=1):
    _require(params, ["categories", "probabilities"], "Categorical")
    categories = np.asarray(params["categories"])
    probabilities = np.asarray(params["probabilities"], dtype=float)

    if len(categories) != len(probabilities):
        raise DistributionError("categories and probabilities must have same length.")
    if len(categories) == 0:
        raise DistributionError("categories must not be empty.")
    if np.any(probabilities < 0) or probabilities.sum() <= 0:
        raise DistributionError("probabilities must be non-negative with a positive sum.")

    cumulative = np.cumsum(probabilities / probabilities.sum())

    # One uniform draw per sample, consumed in order.
    u = stream.random(n_samples)
    indices = np.searchsorted(cumulative, u, side="left")
    # Rounding can leave the last cumulative value fractionally below 1.
    indices = np.minimum(indices, len(categories) - 1)
    return categories[indices]


SAMPLERS = {
    "uniform": sample_uniform,
    "normal": sample_normal,
    "loguniform": sample_loguniform,
    "categorical": sample_categorical,
}


def get_sampler(dist):
    try:
        return SAMPLERS[dist]
    except KeyError:
        raise DistributionError(
            f"Unknown distribution type: {dist} (expected one of {list(SAMPLERS)})."
        )


def compute_moments(params):
    """
    Computes the analytic mean and variance of a field specification
    without drawing any samples.

    Returns
    -------

    A dictionary with keys ``mean`` and ``variance``.
    Unrecognized specifications give ``nan`` for both.
    """
    if "dist" not in params:
        if "value" in params:
            return {"mean": params["value"], "variance": 0.0}
        return {"mean": math.nan, "variance": math.nan}

    dist = params["dist"]

    if dist == "uniform":
        return {
            "mean": (params["min"] + params["max"]) / 2,
            "variance": (params["max"] - params["min"]) ** 2 / 12,
        }
    elif dist == "normal":
        return {"mean": params["mean"], "variance": params["std"] ** 2}
    elif dist == "loguniform":
        log_min = math.log(params["min"])
        log_max = math.log(params["max"])
        mean = math.exp((log_min + log_max) / 2)
        log_var = (log_max - log_min) ** 2 / 12
        return {"mean": mean, "variance": mean**2 * (math.exp(log_var) - 1)}
    elif dist == "categorical":
        categories = np.asarray(params["categories"], dtype=float)
        probabilities = np.asarray(params["probabilities"], dtype=float)
        mean = float(np.sum(categories * probabilities))
        variance = float(np.sum(probabilities * (categories - mean) ** 2))
        return {"mean": mean, "variance": variance}
    return {"mean": math.nan, "variance": math.nan}
