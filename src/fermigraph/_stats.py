"""Summary statistics of Monte Carlo samples.

Percentiles use the nearest-rank rule without interpolation: for percentile
``p`` over ``n`` sorted samples the value at index ``floor(p / 100 * n)``,
clamped to ``n - 1``. Standard deviation is the population one (divide by n).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

PERCENTILE_RANKS = (5, 25, 50, 75, 95)


@dataclass(frozen=True, slots=True)
class Percentiles:
    """The five percentiles reported for every sample set."""

    p5: float = 0.0
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p95: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {f"p{rank}": getattr(self, f"p{rank}") for rank in PERCENTILE_RANKS}


@dataclass(frozen=True, slots=True)
class Summary:
    """Mean, population standard deviation and percentiles of a sample set.

    An empty sample set summarizes to all zeros.
    """

    mean: float = 0.0
    std_dev: float = 0.0
    percentiles: Percentiles = field(default_factory=Percentiles)


def nearest_rank(sorted_samples: Sequence[float], p: float) -> float:
    """Return the nearest-rank percentile ``p`` of samples sorted ascending."""
    if not sorted_samples:
        return 0.0
    index = math.floor(p / 100 * len(sorted_samples))
    return sorted_samples[min(index, len(sorted_samples) - 1)]


def summarize(samples: Sequence[float]) -> Summary:
    """Compute mean, population standard deviation and percentiles.

    Args:
        samples: Finite sample values, in any order.

    Returns:
        The summary; all zeros when ``samples`` is empty.

    Example:
        >>> summarize([1, 2, 3, 4, 5, 6, 7, 8, 9, 10]).percentiles.p50
        6

    """
    n = len(samples)
    if n == 0:
        return Summary()

    mean = sum(samples) / n
    variance = sum((value - mean) ** 2 for value in samples) / n
    ordered = sorted(samples)

    return Summary(
        mean=mean,
        std_dev=math.sqrt(variance),
        percentiles=Percentiles(*(nearest_rank(ordered, rank) for rank in PERCENTILE_RANKS)),
    )


@dataclass(frozen=True, slots=True)
class SimulationResult:
    """Samples of one simulated quantity with their summary statistics.

    Attributes:
        samples: One value per iteration that produced a finite number, in
            iteration order.
        mean: Arithmetic mean of the samples.
        std_dev: Population standard deviation of the samples.
        percentiles: Nearest-rank p5/p25/p50/p75/p95.

    """

    samples: tuple[float, ...] = ()
    mean: float = 0.0
    std_dev: float = 0.0
    percentiles: Percentiles = field(default_factory=Percentiles)

    @classmethod
    def from_samples(cls, samples: Sequence[float]) -> SimulationResult:
        summary = summarize(samples)
        return cls(
            samples=tuple(samples),
            mean=summary.mean,
            std_dev=summary.std_dev,
            percentiles=summary.percentiles,
        )

    @property
    def is_empty(self) -> bool:
        """Whether no iteration produced a usable value.

        An empty result summarizes to zeros; callers must not read it as an estimate of 0.
        """
        return len(self.samples) == 0


@dataclass(frozen=True, slots=True)
class NodeSimulationResult(SimulationResult):
    """Simulation result of an intermediate node, keyed by its id."""

    node_id: str = ""

    @classmethod
    def for_node(cls, node_id: str, samples: Sequence[float]) -> NodeSimulationResult:
        summary = summarize(samples)
        return cls(
            samples=tuple(samples),
            mean=summary.mean,
            std_dev=summary.std_dev,
            percentiles=summary.percentiles,
            node_id=node_id,
        )


# =============================================================================
# Presentation helpers
# =============================================================================


@dataclass(frozen=True, slots=True)
class HistogramBin:
    label: str
    count: int
    start: float
    end: float


def create_histogram(samples: Sequence[float], bins: int = 50) -> list[HistogramBin]:
    """Count samples into ``bins`` equal-width bins spanning their range.

    Bins are half-open ``[start, end)`` except the last, which also holds the
    maximum. When every sample is equal they all land in the first bin.
    """
    if not samples or bins <= 0:
        return []

    low = min(samples)
    high = max(samples)
    width = (high - low) / bins

    counts = [0] * bins
    for value in samples:
        index = min(int((value - low) / width), bins - 1) if width > 0 else 0
        counts[index] += 1

    return [
        HistogramBin(
            label=format_number(low + i * width),
            count=count,
            start=low + i * width,
            end=low + (i + 1) * width,
        )
        for i, count in enumerate(counts)
    ]


def format_number(num: float) -> str:
    """Format a number compactly for display (``1.5M``, ``2.0K``, ``3.00e-3``)."""
    magnitude = abs(num)
    if magnitude >= 1e9:
        return f"{num / 1e9:.1f}B"
    if magnitude >= 1e6:
        return f"{num / 1e6:.1f}M"
    if magnitude >= 1e3:
        return f"{num / 1e3:.1f}K"
    if 0 < magnitude < 0.01:
        mantissa, exponent = f"{num:.2e}".split("e")
        return f"{mantissa}e{int(exponent):+d}"
    return f"{num:.2f}"
