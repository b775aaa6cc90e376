"""
Dayline Patterns Module

Derives anomaly scores, deviations and near-term predictions from a day's
blocks compared with the user's recent history.
"""

from dayline.patterns.analyzer import (
    InsightRow,
    PatternInsight,
    analyze_patterns,
    format_hour,
    hourly_distributions,
)


__all__ = [
    "InsightRow",
    "PatternInsight",
    "analyze_patterns",
    "format_hour",
    "hourly_distributions",
]
