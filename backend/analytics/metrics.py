"""
analytics/metrics.py
────────────────────
Relative-rotation indicators plotted on the two chart axes.

- RS-Ratio:    price relative to a benchmark price, scaled around 100.
- RS-Momentum: 100 plus half the day's percent change.

Both carry a small symmetric noise term.  It stands in for a proper
relative-strength / momentum calculation over historical price series,
which the ingestion pipeline does not have yet; its amplitude is a
parameter (``noise_scale``) and the generator can be seeded so results
are reproducible.  Whatever the inputs, published values are clipped to
[INDICATOR_MIN, INDICATOR_MAX].
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

INDICATOR_MIN = 85.0
INDICATOR_MAX = 115.0

# Benchmark index level used when none is configured.
DEFAULT_BENCHMARK_PRICE = 4536.89

# Half-widths of the uniform noise at noise_scale == 1.
RATIO_NOISE = 5.0
MOMENTUM_NOISE = 2.5


@dataclass(frozen=True)
class RSMetrics:
    rs_ratio: float
    rs_momentum: float


def clamp_indicator(value: float) -> float:
    """Clip ``value`` into [INDICATOR_MIN, INDICATOR_MAX]."""
    return float(np.clip(value, INDICATOR_MIN, INDICATOR_MAX))


class MetricsDeriver:
    """
    Turn a (price, percent change) pair into the two bounded indicators.

    Args:
        benchmark_price: Default benchmark for RS-Ratio.
        noise_scale:     Multiplier on the placeholder noise; ``0`` disables it.
        rng:             Numpy generator; a fresh unseeded one by default.

    Example:
        >>> deriver = MetricsDeriver(noise_scale=0)
        >>> deriver.derive(4536.89, 4.0)
        RSMetrics(rs_ratio=100.0, rs_momentum=102.0)
    """

    def __init__(
        self,
        benchmark_price: float = DEFAULT_BENCHMARK_PRICE,
        noise_scale: float = 1.0,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if benchmark_price <= 0:
            raise ValueError("benchmark_price must be positive")
        if noise_scale < 0:
            raise ValueError("noise_scale must not be negative")
        self._benchmark_price = benchmark_price
        self._noise_scale = noise_scale
        self._rng = rng if rng is not None else np.random.default_rng()

    @classmethod
    def seeded(cls, seed: Optional[int], **kwargs) -> "MetricsDeriver":
        return cls(rng=np.random.default_rng(seed), **kwargs)

    def derive(
        self,
        price: float,
        change: float,
        benchmark_price: Optional[float] = None,
    ) -> RSMetrics:
        """
        Compute RS-Ratio and RS-Momentum for one quote.

        Args:
            price:           Last traded price.
            change:          Percent change on the day.
            benchmark_price: Overrides the configured benchmark.

        Returns:
            Both indicators, each within [INDICATOR_MIN, INDICATOR_MAX].

        Raises:
            ValueError: Non-positive benchmark or NaN input.
        """
        benchmark = self._benchmark_price if benchmark_price is None else benchmark_price
        if benchmark <= 0:
            raise ValueError("benchmark_price must be positive")
        if math.isnan(price) or math.isnan(change):
            raise ValueError("price and change must be numbers")

        rs_ratio = price / benchmark * 100 + self._noise(RATIO_NOISE)
        rs_momentum = 100 + change * 0.5 + self._noise(MOMENTUM_NOISE)
        return RSMetrics(
            rs_ratio=clamp_indicator(rs_ratio),
            rs_momentum=clamp_indicator(rs_momentum),
        )

    def _noise(self, half_width: float) -> float:
        if self._noise_scale == 0:
            return 0.0
        amplitude = half_width * self._noise_scale
        return float(self._rng.uniform(-amplitude, amplitude))
