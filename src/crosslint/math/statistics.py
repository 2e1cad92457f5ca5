"""Descriptive statistics and ordinary least-squares trend fitting."""

import math
import statistics as stdlib_stats
from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class LinearFit:
    """Result of fitting y = slope * x + intercept."""

    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


class Statistics:
    """Statistical analysis methods."""

    @staticmethod
    def mean(values: Sequence[float]) -> float:
        """Compute arithmetic mean."""
        if not values:
            return 0.0
        return stdlib_stats.mean(values)

    @staticmethod
    def stdev(values: Sequence[float]) -> float:
        """Compute sample standard deviation."""
        if len(values) < 2:
            return 0.0
        return stdlib_stats.stdev(values)

    @staticmethod
    def variance(values: Sequence[float]) -> float:
        """Compute population variance."""
        if not values:
            return 0.0
        return float(np.var(np.asarray(values, dtype=float)))

    @staticmethod
    def pstdev(values: Sequence[float]) -> float:
        """Compute population standard deviation."""
        if not values:
            return 0.0
        return float(np.std(np.asarray(values, dtype=float)))

    @staticmethod
    def coefficient_of_variation(values: Sequence[float]) -> float:
        """CV = sigma / mu (population). 0 when the mean is 0."""
        mu = Statistics.mean(values)
        if mu == 0:
            return 0.0
        return Statistics.pstdev(values) / mu

    @staticmethod
    def linear_fit(xs: Sequence[float], ys: Sequence[float]) -> LinearFit:
        """
        Ordinary least squares fit of y = a*x + b.

        R^2 = 1 - SS_res / SS_tot, clamped to [0, 1]; 0 when SS_tot = 0.
        Degenerate inputs (fewer than 2 points, constant x) yield a flat
        line through the mean of y.
        """
        if len(xs) != len(ys):
            raise ValueError("xs and ys must have the same length")
        if not ys:
            return LinearFit(0.0, 0.0, 0.0)

        x = np.asarray(xs, dtype=float)
        y = np.asarray(ys, dtype=float)
        x_mean = x.mean()
        y_mean = y.mean()

        sxx = float(np.sum((x - x_mean) ** 2))
        if len(x) < 2 or sxx == 0:
            return LinearFit(0.0, float(y_mean), 0.0)

        slope = float(np.sum((x - x_mean) * (y - y_mean)) / sxx)
        intercept = float(y_mean - slope * x_mean)

        ss_tot = float(np.sum((y - y_mean) ** 2))
        if ss_tot == 0:
            return LinearFit(slope, intercept, 0.0)
        ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
        r_squared = max(0.0, min(1.0, 1.0 - ss_res / ss_tot))
        return LinearFit(slope, intercept, r_squared)

    @staticmethod
    def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
        """Pearson correlation coefficient; 0 when either series is constant."""
        if len(xs) != len(ys) or len(xs) < 2:
            return 0.0
        x = np.asarray(xs, dtype=float)
        y = np.asarray(ys, dtype=float)
        dx = x - x.mean()
        dy = y - y.mean()
        denom = math.sqrt(float(np.sum(dx**2)) * float(np.sum(dy**2)))
        if denom == 0:
            return 0.0
        return float(np.sum(dx * dy)) / denom

    @staticmethod
    def entropy(counts: Sequence[float]) -> float:
        """Shannon entropy (bits) of a count distribution."""
        total = float(sum(counts))
        if total <= 0:
            return 0.0
        h = 0.0
        for c in counts:
            if c > 0:
                p = c / total
                h -= p * math.log2(p)
        return h

    @staticmethod
    def round_half_up(value: float) -> int:
        """Round to nearest integer with .5 going up (not banker's rounding)."""
        return int(math.floor(value + 0.5))
