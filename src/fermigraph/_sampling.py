"""Distribution sampling for assumptions.

Every draw is a pure function of the distribution kind, the bounds, and the
uniform variates taken from ``rng``. Output always lies in ``[min, max]`` when
``min <= max``.
"""

from __future__ import annotations

import logging
import math
import random
from typing import TYPE_CHECKING

from ._enums import Distribution

if TYPE_CHECKING:
    from ._models import Assumption, AssumptionNode

logger = logging.getLogger(__name__)

_default_rng = random.Random()

LOG_FLOOR = 1e-4
"""Lower bound applied to lognormal bounds before taking logarithms."""

MAX_NORMAL_ATTEMPTS = 100
"""Rejection-sampling budget of the truncated normal before clamping."""


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def random_normal(mean: float, std_dev: float, rng: random.Random) -> float:
    """Draw a normal deviate with the Box-Muller transform."""
    # 1 - random() lies in (0, 1], keeping log() finite
    u1 = 1.0 - rng.random()
    u2 = rng.random()
    z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    return z0 * std_dev + mean


def sample_uniform(low: float, high: float, rng: random.Random) -> float:
    value = low + rng.random() * (high - low)
    # rounding can land one ulp past high
    return _clamp(value, low, high) if low <= high else value


def sample_normal(low: float, high: float, rng: random.Random) -> float:
    """Draw from a normal truncated to ``[low, high]``.

    The window spans four standard deviations around its midpoint. Draws outside
    the window are rejected up to ``MAX_NORMAL_ATTEMPTS`` times, after which the
    last draw is clamped into the window.
    """
    mean = (low + high) / 2
    std_dev = (high - low) / 4
    value = random_normal(mean, std_dev, rng)
    attempts = 1
    while (value < low or value > high) and attempts < MAX_NORMAL_ATTEMPTS:
        value = random_normal(mean, std_dev, rng)
        attempts += 1
    return _clamp(value, low, high)


def sample_lognormal(low: float, high: float, rng: random.Random) -> float:
    """Draw from a lognormal whose log-space window is ``[ln low, ln high]``.

    Non-positive bounds are floored at ``LOG_FLOOR`` before taking logarithms,
    and the result is clamped into ``[low, high]``.
    """
    log_low = math.log(max(low, LOG_FLOOR))
    log_high = math.log(max(high, LOG_FLOOR))
    log_value = random_normal((log_low + log_high) / 2, (log_high - log_low) / 4, rng)
    return _clamp(math.exp(log_value), low, high)


def sample(
    kind: Distribution | str | None,
    low: float,
    high: float,
    rng: random.Random | None = None,
) -> float:
    """Draw one value from the distribution ``kind`` bounded by ``low`` and ``high``.

    Unknown or unset kinds fall back to uniform.

    Args:
        kind: Distribution to draw from.
        low: Lower bound (the assumption's min).
        high: Upper bound (the assumption's max).
        rng: Source of uniform variates. Defaults to a generator shared
            by the module, seeded from the OS.

    Returns:
        The sampled value.

    """
    if rng is None:
        rng = _default_rng
    match kind:
        case Distribution.NORMAL:
            return sample_normal(low, high, rng)
        case Distribution.LOGNORMAL:
            return sample_lognormal(low, high, rng)
        case Distribution.UNIFORM:
            return sample_uniform(low, high, rng)
        case _:
            logger.debug("Unknown distribution %r, sampling uniform", kind)
            return sample_uniform(low, high, rng)


def sample_assumption(assumption: Assumption | AssumptionNode, rng: random.Random | None = None) -> float:
    """Draw a single value for an assumption."""
    return sample(assumption.distribution, assumption.min, assumption.max, rng)
