"""Daily metric series, least-squares trends and forecasts."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Sequence

from ..math import LinearFit, Statistics
from .history import days_between
from .models import (
    Commit,
    DataPoint,
    FileHistory,
    ForecastPoint,
    TemporalTrend,
    TrendDirection,
    TrendStrength,
)

MIN_TREND_POINTS = 3

# |slope| below which a metric is considered stable (units per day)
STABLE_EPSILON = {
    "issue_count": 0.1,
    "complexity": 0.5,
    "churn_rate": 10.0,
}


def day_of(moment: datetime) -> date:
    return moment.astimezone(timezone.utc).date()


def _points(series: dict[date, float]) -> list[DataPoint]:
    return [
        DataPoint(date=datetime.combine(day, time.min, tzinfo=timezone.utc), value=value)
        for day, value in sorted(series.items())
    ]


def fit_points(points: Sequence[DataPoint]) -> LinearFit:
    """OLS over x = days since the first point."""
    if not points:
        return LinearFit(0.0, 0.0, 0.0)
    origin = points[0].date
    xs = [days_between(origin, p.date) for p in points]
    return Statistics.linear_fit(xs, [p.value for p in points])


def strength_for(r_squared: float) -> TrendStrength:
    if r_squared < 0.3:
        return TrendStrength.WEAK
    if r_squared < 0.7:
        return TrendStrength.MODERATE
    return TrendStrength.STRONG


def direction_for(metric: str, slope: float) -> TrendDirection:
    if abs(slope) < STABLE_EPSILON[metric]:
        return TrendDirection.STABLE
    return TrendDirection.INCREASING if slope > 0 else TrendDirection.DECREASING


def forecast(points: Sequence[DataPoint], days: int, fit: Optional[LinearFit] = None) -> list[ForecastPoint]:
    """Project the fitted line ``days`` days past the last point.

    Confidence decays as R^2 * exp(-i / (0.3 * days)); the band is
    sqrt(1 - R^2) * predicted * 0.2 either side, floored at 0.
    """
    if len(points) < 2 or days < 1:
        return []
    fit = fit or fit_points(points)
    origin = points[0].date
    last = points[-1].date

    result = []
    for i in range(1, days + 1):
        when = last + timedelta(days=i)
        predicted = max(0.0, fit.predict(days_between(origin, when)))
        uncertainty = math.sqrt(max(0.0, 1 - fit.r_squared)) * predicted * 0.2
        result.append(
            ForecastPoint(
                date=when,
                predicted_value=predicted,
                confidence=fit.r_squared * math.exp(-i / (days * 0.3)),
                upper_bound=predicted + uncertainty,
                lower_bound=max(0.0, predicted - uncertainty),
            )
        )
    return result


def trend_from_points(metric: str, points: list[DataPoint], forecast_days: int) -> Optional[TemporalTrend]:
    if len(points) < MIN_TREND_POINTS:
        return None
    fit = fit_points(points)
    return TemporalTrend(
        metric=metric,
        direction=direction_for(metric, fit.slope),
        strength=strength_for(fit.r_squared),
        slope=fit.slope,
        intercept=fit.intercept,
        r_squared=fit.r_squared,
        data_points=points,
        forecast=forecast(points, forecast_days, fit),
    )


def issue_count_series(histories: Sequence[FileHistory]) -> list[DataPoint]:
    daily: dict[date, float] = defaultdict(float)
    for history in histories:
        for entry in history.issue_history:
            daily[day_of(entry.date)] += entry.total_issues
    return _points(daily)


def complexity_series(histories: Sequence[FileHistory]) -> list[DataPoint]:
    """Mean sampled complexity per day.

    Files without complexity samples contribute an estimate from their
    issue windows: 2 per issue plus 0.1 per added and 0.05 per deleted line.
    """
    totals: dict[date, list[float]] = defaultdict(lambda: [0.0, 0])
    for history in histories:
        if history.complexity_evolution:
            for sample in history.complexity_evolution:
                bucket = totals[day_of(sample.date)]
                bucket[0] += sample.cyclomatic_complexity
                bucket[1] += 1
        else:
            for entry in history.issue_history:
                bucket = totals[day_of(entry.date)]
                bucket[0] += entry.total_issues * 2 + entry.lines_added * 0.1 + entry.lines_deleted * 0.05
                bucket[1] += 1
    return _points({day: total / max(1, n) for day, (total, n) in totals.items()})


def churn_series(commits: Sequence[Commit]) -> list[DataPoint]:
    daily: dict[date, float] = defaultdict(float)
    for commit in commits:
        daily[day_of(commit.date)] += commit.lines_added + commit.lines_deleted
    return _points(daily)


def calculate_trends(
    commits: Sequence[Commit], histories: Sequence[FileHistory], forecast_days: int = 30
) -> list[TemporalTrend]:
    candidates = [
        trend_from_points("issue_count", issue_count_series(histories), forecast_days),
        trend_from_points("complexity", complexity_series(histories), forecast_days),
        trend_from_points("churn_rate", churn_series(commits), forecast_days),
    ]
    return [t for t in candidates if t is not None]
