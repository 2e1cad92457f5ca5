"""Issue-count and hotspot predictions built on trends and file histories."""

from __future__ import annotations

from typing import Optional, Sequence

from ..math import Statistics
from .history import days_between
from .models import (
    FileHistory,
    HotspotCandidate,
    HotspotPrediction,
    IssuePrediction,
    TemporalPattern,
    TemporalTrend,
)
from .trends import fit_points

RECENT_POINTS = 10
TOP_RISK_FILES = 10
HOTSPOT_MIN_RISK = 0.3
HOTSPOT_URGENT_RISK = 0.7
HOTSPOT_TIMED_RISK = 0.5


# ── Issue prediction ───────────────────────────────────────────────


def velocities(points) -> list[float]:
    """Per-day change between consecutive data points."""
    result = []
    for prev, current in zip(points, points[1:]):
        elapsed = days_between(prev.date, current.date)
        result.append((current.value - prev.value) / elapsed if elapsed > 0 else 0.0)
    return result


def velocity_stability(values: Sequence[float]) -> float:
    return 1.0 / (1.0 + Statistics.variance(values))


def complexity_slope(history: FileHistory) -> float:
    samples = history.complexity_evolution
    if len(samples) < 2:
        return 0.0
    origin = samples[0].date
    fit = Statistics.linear_fit(
        [days_between(origin, s.date) for s in samples],
        [s.cyclomatic_complexity for s in samples],
    )
    return fit.slope


def file_risk_score(history: FileHistory) -> float:
    recent = history.issue_history[-5:]
    if not recent:
        return 0.0

    avg_new = sum(e.new_issues for e in recent) / len(recent)
    avg_fixed = sum(e.fixed_issues for e in recent) / len(recent)
    fix_rate = avg_fixed / avg_new if avg_new > 0 else 1.0

    score = avg_new * 0.3 + (1 - fix_rate) * 0.4
    slope = complexity_slope(history)
    if slope >= 0.5:
        score += slope * 0.2
    frequency = len(history.commits) / max(1, len(history.issue_history))
    score += min(1.0, frequency / 10) * 0.1
    return min(1.0, score)


def issue_recommendations(velocity: float, risk_files: list[dict]) -> list[str]:
    recommendations = []
    if velocity > 0.5:
        recommendations.append("Monitor high-velocity files and implement preventive measures")
        recommendations.append("Consider increasing code review rigor to catch issues earlier")
        recommendations.append("Implement additional automated testing to prevent regressions")
    elif velocity < -0.1:
        recommendations.append(
            "Current issue resolution rate is positive - maintain current practices"
        )

    if len(risk_files) > 5:
        top = ", ".join(rf["file"] for rf in risk_files[:3])
        recommendations.append(f"Focus refactoring efforts on high-risk files: {top}")
        recommendations.append(
            "Consider breaking down complex files into smaller, more manageable modules"
        )
    if risk_files and Statistics.mean([rf["riskScore"] for rf in risk_files]) > 0.7:
        recommendations.append(
            "High overall file risk detected - prioritize technical debt reduction"
        )
    return recommendations or ["Continue monitoring trends for emerging patterns"]


def predict_issues(
    trends: Sequence[TemporalTrend], histories: Sequence[FileHistory], horizon_days: int = 30
) -> Optional[IssuePrediction]:
    """Extrapolate the issue_count trend ``horizon_days`` past the last point.

    Confidence = 0.6 * R^2 + 0.25 * velocity stability + 0.15 * coverage,
    clamped to [0.1, 0.9], where coverage is min(1, points / 10).
    """
    trend = next((t for t in trends if t.metric == "issue_count"), None)
    if trend is None or len(trend.data_points) < 3:
        return None

    recent = trend.data_points[-RECENT_POINTS:]
    fit = fit_points(recent)
    last_x = days_between(recent[0].date, recent[-1].date)
    predicted = max(0.0, fit.predict(last_x + horizon_days))

    steps = velocities(recent)
    velocity = Statistics.mean(steps)
    stability = velocity_stability(steps)
    coverage = min(1.0, len(recent) / RECENT_POINTS)
    confidence = max(0.1, min(0.9, 0.6 * fit.r_squared + 0.25 * stability + 0.15 * coverage))

    scored = [
        {"file": h.file_path, "riskScore": file_risk_score(h)}
        for h in histories
        if h.issue_history
    ]
    scored.sort(key=lambda rf: (-rf["riskScore"], rf["file"]))
    risk_files = scored[:TOP_RISK_FILES]

    direction = "increasing" if velocity > 0 else "decreasing"
    return IssuePrediction(
        horizon_days=horizon_days,
        current_value=recent[-1].value,
        predicted_value=predicted,
        velocity=velocity,
        confidence=confidence,
        confidence_factors={
            "trendConsistency": fit.r_squared,
            "velocityStability": stability,
            "dataCoverage": coverage,
        },
        risk_files=risk_files,
        risk_factors=[
            {
                "factor": "issue_velocity",
                "impact": abs(velocity),
                "description": f"Issues {direction} at {abs(velocity):.2f} per day",
                "mitigation": "Monitor high-velocity files and implement preventive measures",
            },
            {
                "factor": "high_risk_files",
                "impact": len(risk_files) / TOP_RISK_FILES,
                "description": f"{len(risk_files)} files identified as high-risk",
                "mitigation": "Focus testing and code review on high-risk files",
            },
        ],
        recommendations=issue_recommendations(velocity, risk_files),
    )


# ── Hotspot prediction ─────────────────────────────────────────────


def complexity_increase(history: FileHistory) -> float:
    """Relative growth of the last two samples over the two before them."""
    samples = history.complexity_evolution
    recent = samples[-2:]
    older = samples[-4:-2]
    if len(samples) < 2 or not older:
        return 0.0
    recent_avg = Statistics.mean([s.cyclomatic_complexity for s in recent])
    older_avg = Statistics.mean([s.cyclomatic_complexity for s in older])
    return max(0.0, (recent_avg - older_avg) / max(1.0, older_avg))


def hotspot_candidate(history: FileHistory, patterns: Sequence[TemporalPattern]) -> HotspotCandidate:
    cf = history.change_frequency
    entries = history.issue_history
    growth = Statistics.mean([e.new_issues for e in entries[-3:]]) if len(entries) > 2 else 0.0
    bonus = sum(p.confidence for p in patterns if history.file_path in p.files)
    increase = complexity_increase(history)

    factors = {
        "changeFrequency": 0.3 * min(1.0, cf),
        "issueGrowth": 0.25 * min(1.0, growth / 5),
        "patternMatch": 0.1 * min(1.0, bonus),
        "complexityGrowth": 0.15 * min(1.0, increase / 5),
    }
    risk = sum(factors.values())
    time_to_hotspot = max(7.0, 60 / cf) if risk > HOTSPOT_TIMED_RISK and cf > 0 else None
    return HotspotCandidate(
        file_path=history.file_path,
        risk=risk,
        factors=factors,
        time_to_hotspot_days=time_to_hotspot,
    )


def hotspot_recommendations(
    candidates: Sequence[HotspotCandidate], patterns: Sequence[TemporalPattern]
) -> list[str]:
    recommendations = []
    urgent = [c for c in candidates if c.risk > HOTSPOT_URGENT_RISK]
    if urgent:
        recommendations.append(
            f"URGENT: {len(urgent)} files at critical risk of becoming hotspots - "
            "immediate intervention needed"
        )
        recommendations.append(f"Focus on: {', '.join(c.file_path for c in urgent[:3])}")
    if any(c.risk > HOTSPOT_TIMED_RISK for c in candidates):
        recommendations.append(
            "Implement preventive measures for high-risk files before they become problematic"
        )
        recommendations.append(
            "Consider code reviews and refactoring for files showing rapid change patterns"
        )
    if sum(1 for p in patterns if p.type.value == "quality_degradation") > 2:
        recommendations.append(
            "Multiple files showing increasing issue density - review development practices"
        )
    return recommendations or ["Continue monitoring for emerging hotspot patterns"]


def predict_hotspots(
    histories: Sequence[FileHistory], patterns: Sequence[TemporalPattern], horizon_days: int = 60
) -> Optional[HotspotPrediction]:
    if not histories:
        return None
    candidates = [hotspot_candidate(h, patterns) for h in histories]
    candidates = [c for c in candidates if c.risk > HOTSPOT_MIN_RISK]
    candidates.sort(key=lambda c: (-c.risk, c.file_path))
    return HotspotPrediction(
        horizon_days=horizon_days,
        candidates=candidates,
        recommendations=hotspot_recommendations(candidates, patterns),
    )
