"""
Unit Tests - Metrics and Business Intelligence
"""
from datetime import date

import pytest

from grovyn_core.analytics.intelligence import (
    build_customer_activity,
    build_intelligence,
    confidence,
    is_inactive,
    reference_midday,
)
from grovyn_core.analytics.metrics import MetricsEngine, Trend, classify_trend
from grovyn_core.finance.settlement import attribute_finance
from grovyn_core.ingestion.commission import attribute_commissions
from grovyn_core.ingestion.orders import normalize_orders
from grovyn_core.pipeline.bootstrap import build_pipeline


def metrics_engine(dataset, settings) -> MetricsEngine:
    book = normalize_orders(dataset, settings)
    commissions = attribute_commissions(book, settings)
    return MetricsEngine(book, commissions, attribute_finance(book, commissions, settings), dataset)


class TestTrend:
    """Tests for 3-day trend classification"""

    def test_increase(self):
        """Test strictly increasing values"""
        assert classify_trend([10, 12, 15]) == Trend.INCREASE

    def test_stable(self):
        """Test flat values"""
        assert classify_trend([15, 15, 15]) == Trend.STABLE

    def test_decline(self):
        """Test strictly decreasing values"""
        assert classify_trend([3, 20, 15, 9]) == Trend.DECLINE

    def test_short_series(self):
        """Test fewer than three points is stable"""
        assert classify_trend([1, 2]) == Trend.STABLE


class TestMetricsEngine:
    """Tests for window aggregation"""

    def test_windows_are_inclusive(self, small_dataset, test_settings):
        """Test windows include both boundary days"""
        engine = metrics_engine(small_dataset, test_settings)
        assert engine.reference_date == date(2025, 6, 30)
        assert engine.aggregate(date(2025, 6, 30), date(2025, 6, 30)).order_count == 4
        assert engine.aggregate(date(2025, 6, 24), date(2025, 6, 30)).order_count == 28

    def test_store_filter(self, small_dataset, test_settings):
        """Test per-store aggregation"""
        engine = metrics_engine(small_dataset, test_settings)
        a = engine.aggregate(date(2025, 6, 24), date(2025, 6, 30), "store_a")
        b = engine.aggregate(date(2025, 6, 24), date(2025, 6, 30), "store_b")
        assert a.order_count + b.order_count == 28

    def test_empty_window(self, small_dataset, test_settings):
        """Test an empty window yields zeros"""
        engine = metrics_engine(small_dataset, test_settings)
        empty = engine.aggregate(date(2025, 1, 1), date(2025, 1, 7))
        assert empty.order_count == 0
        assert empty.revenue == 0.0
        assert empty.repeat_rate == 0.0

    def test_repeat_rate(self, dataset_factory, test_settings):
        """Test repeat rate counts orders of customers with 2+ orders"""
        dataset = dataset_factory([
            {"store": "s1", "customer": "c1", "amount": 100.0},
            {"store": "s1", "customer": "c1", "amount": 100.0},
            {"store": "s1", "customer": "c2", "amount": 100.0},
            {"store": "s1", "customer": "c3", "amount": 100.0},
        ])
        engine = metrics_engine(dataset, test_settings)
        assert engine.aggregate(date(2025, 6, 30), date(2025, 6, 30)).repeat_rate == 50.0

    def test_snapshot(self, booted):
        """Test the booted snapshot is anchored on the reference date"""
        snapshot = booted.metrics
        assert snapshot.reference_date == booted.orders.reference_date
        assert len(snapshot.daily_trend) == 7
        assert snapshot.daily_trend[-1].day == snapshot.reference_date
        assert set(snapshot.trend_3day) == {"revenue", "margin_percent", "repeat_rate", "commission_percent"}
        assert len(snapshot.per_store) == len(booted.dataset.stores)


class TestIntelligence:
    """Tests for customer activity and intelligence rules"""

    def test_confidence_capped(self):
        """Test confidence never exceeds 95"""
        assert confidence(15, 5) == 95
        assert confidence(0, 0) == 70

    def test_customer_activity(self, dataset_factory, test_settings):
        """Test last order wins and inactivity is measured from the reference midday"""
        dataset = dataset_factory([
            {"store": "s1", "customer": "c1", "amount": 300.0, "days_ago": 20},
            {"store": "s2", "customer": "c1", "amount": 300.0, "days_ago": 15},
            {"store": "s1", "customer": "c2", "amount": 50.0, "days_ago": 0},
        ])
        book = normalize_orders(dataset, test_settings)
        activity = build_customer_activity(book)

        assert activity["c1"].order_count == 2
        assert activity["c1"].lifetime_value == 600.0
        assert activity["c1"].last_store_id == "s2"
        assert is_inactive(activity["c1"], reference_midday(book), 14)
        assert not is_inactive(activity["c2"], reference_midday(book), 14)

    def test_reorder_window_starts_at_midnight(self, dataset_factory, test_settings):
        """Test a last order on the morning five days back still counts as recent"""
        dataset = dataset_factory([
            {"store": "s1", "customer": "c1", "amount": 100.0, "days_ago": 9},
            {"store": "s1", "customer": "c1", "amount": 100.0, "days_ago": 7},
            {"store": "s1", "customer": "c1", "amount": 100.0, "days_ago": 5, "hour": 10},
            {"store": "s1", "customer": "c3", "amount": 100.0, "days_ago": 9},
            {"store": "s1", "customer": "c3", "amount": 100.0, "days_ago": 8},
            {"store": "s1", "customer": "c3", "amount": 100.0, "days_ago": 6, "hour": 23},
            {"store": "s1", "customer": "c2", "amount": 100.0, "days_ago": 0},
        ])
        report = build_pipeline(dataset, test_settings).intelligence

        assert "Reorder Prediction" in [i.title for i in report.insights]
        assert report.segments.predicted_reorders == 1

    def test_report(self, booted):
        """Test champion health always fires and actions are capped at three"""
        report = booted.intelligence
        titles = [i.title for i in report.insights]
        assert "Champion Health" in titles
        assert [i.id for i in report.insights] == [f"insight_{n}" for n in range(1, len(titles) + 1)]
        assert len(report.actions) <= 3
        assert all(50 <= i.confidence <= 95 for i in report.insights)
        segments = report.segments
        assert segments.champion + segments.loyal + segments.new == segments.total_customers

    def test_rebuild_is_identical(self, booted, test_settings):
        """Test rebuilding intelligence over frozen results gives the same report"""
        again = build_intelligence(booted.metrics, booted.orders, booted.profit, booted.dataset, test_settings)
        assert again == booted.intelligence
