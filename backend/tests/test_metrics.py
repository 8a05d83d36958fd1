"""
tests/test_metrics.py
──────────────────────
Unit tests for the RS-Ratio / RS-Momentum deriver in ``analytics.metrics``.
"""

import math

import numpy as np
import pytest

from analytics.metrics import (
    INDICATOR_MAX,
    INDICATOR_MIN,
    MetricsDeriver,
    clamp_indicator,
)

_PRICES = [0.0, 0.01, 45.0, 812.4, 4536.89, 9000.0, 1e9, math.inf]
_CHANGES = [-math.inf, -100.0, -20.0, -1.5, 0.0, 2.3, 30.0, 1e6]
_BENCHMARKS = [0.5, 100.0, 4536.89, 1e7]


class TestBounds:
    """Published indicators never leave [85, 115]."""

    @pytest.mark.parametrize("noise_scale", [0.0, 1.0, 50.0])
    def test_indicators_within_range_for_any_input(self, noise_scale: float) -> None:
        deriver = MetricsDeriver.seeded(7, noise_scale=noise_scale)
        for price in _PRICES:
            for change in _CHANGES:
                for benchmark in _BENCHMARKS:
                    m = deriver.derive(price, change, benchmark_price=benchmark)
                    assert INDICATOR_MIN <= m.rs_ratio <= INDICATOR_MAX
                    assert INDICATOR_MIN <= m.rs_momentum <= INDICATOR_MAX

    def test_clamp_indicator(self) -> None:
        assert clamp_indicator(-1e12) == INDICATOR_MIN
        assert clamp_indicator(1e12) == INDICATOR_MAX
        assert clamp_indicator(101.5) == 101.5


class TestValues:
    """Deterministic behaviour when noise is disabled or seeded."""

    def test_no_noise_formula(self) -> None:
        deriver = MetricsDeriver(benchmark_price=1000.0, noise_scale=0)
        m = deriver.derive(1062.5, 4.0)
        assert m.rs_ratio == pytest.approx(106.25)
        assert m.rs_momentum == pytest.approx(102.0)

    def test_benchmark_override(self) -> None:
        deriver = MetricsDeriver(benchmark_price=1000.0, noise_scale=0)
        m = deriver.derive(87.5, -2.0, benchmark_price=100.0)
        assert m.rs_ratio == pytest.approx(87.5)
        assert m.rs_momentum == pytest.approx(99.0)

    def test_seeded_generators_agree(self) -> None:
        a = MetricsDeriver.seeded(42).derive(4600.0, 1.2)
        b = MetricsDeriver.seeded(42).derive(4600.0, 1.2)
        assert a == b

    def test_noise_is_bounded_by_amplitude(self) -> None:
        deriver = MetricsDeriver(
            benchmark_price=1000.0, noise_scale=1.0, rng=np.random.default_rng(3)
        )
        for _ in range(200):
            m = deriver.derive(1000.0, 0.0)
            assert 95.0 <= m.rs_ratio <= 105.0
            assert 97.5 <= m.rs_momentum <= 102.5


class TestValidation:
    def test_non_positive_benchmark_rejected(self) -> None:
        with pytest.raises(ValueError):
            MetricsDeriver(benchmark_price=0)
        with pytest.raises(ValueError):
            MetricsDeriver().derive(100.0, 1.0, benchmark_price=-5.0)

    def test_nan_rejected(self) -> None:
        with pytest.raises(ValueError):
            MetricsDeriver().derive(math.nan, 1.0)

    def test_negative_noise_scale_rejected(self) -> None:
        with pytest.raises(ValueError):
            MetricsDeriver(noise_scale=-1.0)
