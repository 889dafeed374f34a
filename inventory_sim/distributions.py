# v1
# file: inventory_sim/distributions.py

"""
Builds the two sampling collaborators of the inventory engine: how many orders
arrive in a day and how large each order is.
Distribution specs follow the ``{"dist": name, "params": {...}}`` convention used
in config and are bound to a per-replication numpy Generator.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

import numpy as np

CountSampler = Callable[[], int]
SizeSampler = Callable[[], float]
DistributionSpec = Mapping[str, Any]

COUNT_DISTRIBUTIONS = {"poisson", "binomial", "constant", "fixed"}
SIZE_DISTRIBUTIONS = {
    "gamma",
    "lognorm",
    "lognormal",
    "expon",
    "weibull",
    "weibull_min",
    "uniform",
    "norm",
    "normal",
    "constant",
    "fixed",
}

DEFAULT_DAILY_ORDER_COUNT_DIST: Dict[str, Any] = {"dist": "poisson", "params": {"lam": 4.0}}
DEFAULT_OUTGOING_SIZE_DIST: Dict[str, Any] = {"dist": "gamma", "params": {"shape": 10.0, "scale": 2.0}}

MAX_POSITIVE_RETRIES = 50
POSITIVE_FLOOR = 1e-6


def _require(params: Mapping[str, Any], *names: str, dist_type: str) -> Any:
    for name in names:
        value = params.get(name)
        if value is not None:
            return value
    raise ValueError(f"{dist_type} distribution requires one of {list(names)} parameters.")


def _split_spec(spec: DistributionSpec, supported: set) -> tuple:
    dist_type = str(spec.get("dist", "")).lower()
    if not dist_type:
        raise ValueError(f"Distribution spec {dict(spec)} has no 'dist' entry.")
    if dist_type not in supported:
        raise ValueError(f"Unsupported distribution '{dist_type}'. Supported options: {sorted(supported)}.")
    return dist_type, dict(spec.get("params", {}))


def _draw_count(dist_type: str, params: Dict[str, Any], rng: np.random.Generator) -> int:
    if dist_type == "poisson":
        lam = _require(params, "lam", "lambda", "mu", dist_type=dist_type)
        return int(rng.poisson(lam))
    if dist_type == "binomial":
        n = _require(params, "n", dist_type=dist_type)
        p = _require(params, "p", dist_type=dist_type)
        return int(rng.binomial(n, p))
    return int(_require(params, "value", dist_type=dist_type))


def _draw_size(dist_type: str, params: Dict[str, Any], rng: np.random.Generator) -> float:
    """Draw a raw sample from the requested continuous distribution."""
    if dist_type == "gamma":
        shape = _require(params, "shape", "k", "a", dist_type=dist_type)
        scale = params.get("scale", 1.0)
        return float(rng.gamma(shape, scale))

    if dist_type in {"lognorm", "lognormal"}:
        sigma = _require(params, "s", "sigma", dist_type=dist_type)
        scale = params.get("scale", 1.0)
        return float(rng.lognormal(mean=np.log(scale), sigma=sigma))

    if dist_type == "expon":
        return float(rng.exponential(params.get("scale", 1.0)))

    if dist_type in {"weibull", "weibull_min"}:
        shape = _require(params, "shape", "k", "c", dist_type=dist_type)
        return float(rng.weibull(shape) * params.get("scale", 1.0))

    if dist_type == "uniform":
        low = params.get("low", 0.0)
        high = _require(params, "high", dist_type=dist_type)
        return float(rng.uniform(low, high))

    if dist_type in {"norm", "normal"}:
        return float(rng.normal(loc=params.get("mean", 0.0), scale=params.get("scale", 1.0)))

    return float(_require(params, "value", dist_type=dist_type))


def make_count_sampler(spec: DistributionSpec, rng: np.random.Generator) -> CountSampler:
    """Return a zero-argument sampler of non-negative daily order counts."""
    dist_type, params = _split_spec(spec, COUNT_DISTRIBUTIONS)
    # Missing params surface here rather than on the first BeginDay.
    _draw_count(dist_type, params, np.random.default_rng(0))

    def sample_order_count() -> int:
        count = _draw_count(dist_type, params, rng)
        if count < 0:
            raise ValueError(f"Daily order count must be non-negative, got {count} from {dist_type}.")
        return count

    return sample_order_count


def make_size_sampler(spec: DistributionSpec, rng: np.random.Generator) -> SizeSampler:
    """Return a zero-argument sampler of positive order sizes.

    Non-positive draws (possible with shifted or normal families) are redrawn;
    after ``MAX_POSITIVE_RETRIES`` the sample is clipped to a small epsilon.
    """
    dist_type, params = _split_spec(spec, SIZE_DISTRIBUTIONS)
    loc = float(params.pop("loc", 0.0))
    _draw_size(dist_type, params, np.random.default_rng(0))

    def sample_order_size() -> float:
        for _ in range(MAX_POSITIVE_RETRIES):
            value = loc + _draw_size(dist_type, params, rng)
            if value > 0:
                return float(value)
        logging.warning(
            "Order size sampling for %s produced non-positive values; clipping to epsilon after retries.",
            dist_type,
        )
        return POSITIVE_FLOOR

    return sample_order_size


def resolve_count_sampler(
    source: Union[DistributionSpec, CountSampler, None], rng: Optional[np.random.Generator]
) -> CountSampler:
    """Accept either a distribution spec or an already-built sampler."""
    if source is None:
        source = DEFAULT_DAILY_ORDER_COUNT_DIST
    if callable(source):
        return source
    return make_count_sampler(source, rng if rng is not None else np.random.default_rng())


def resolve_size_sampler(
    source: Union[DistributionSpec, SizeSampler, None], rng: Optional[np.random.Generator]
) -> SizeSampler:
    if source is None:
        source = DEFAULT_OUTGOING_SIZE_DIST
    if callable(source):
        return source
    return make_size_sampler(source, rng if rng is not None else np.random.default_rng())


def describe(source: Any) -> str:
    if source is None:
        return "default"
    if callable(source):
        return getattr(source, "__name__", repr(source))
    return f"{source.get('dist')}({source.get('params', {})})"
