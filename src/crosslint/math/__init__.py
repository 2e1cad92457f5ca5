"""Numerical helpers: descriptive statistics and least-squares fits."""

from .statistics import LinearFit, Statistics

__all__ = ["LinearFit", "Statistics"]
