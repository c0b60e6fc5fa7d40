"""
Analytics: time-series metrics and business intelligence rules
"""
from .intelligence import IntelligenceEngine, IntelligenceReport, build_intelligence
from .metrics import MetricsEngine, MetricsSnapshot, Trend, classify_trend, compute_metrics

__all__ = [
    "IntelligenceEngine",
    "IntelligenceReport",
    "build_intelligence",
    "MetricsEngine",
    "MetricsSnapshot",
    "Trend",
    "classify_trend",
    "compute_metrics",
]
