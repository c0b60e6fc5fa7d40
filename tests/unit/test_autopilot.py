"""
Unit Tests - Priorities, Alerts and Executive Brief
"""
from datetime import date

from grovyn_core.autopilot.alerts import orchestrate_alerts
from grovyn_core.autopilot.brief import attention_bullet, suggest_action
from grovyn_core.autopilot.priority import GLOBAL_KEY, prioritize, store_key
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity

EVALUATED_AT = "2025-06-30T12:00:00.000Z"


def make_insight(domain, severity, type_="TEST", store_id=None, entity_type=None, entity_id=None, message="msg"):
    return Insight(
        domain=domain,
        type=type_,
        severity=severity,
        message=message,
        evaluated_at=EVALUATED_AT,
        store_id=store_id,
        entity_type=entity_type,
        entity_id=entity_id,
    )


class TestPriorityEngine:
    """Tests for cross-domain scoring"""

    def test_base_scores_and_boosts(self, test_settings):
        """Test severity base score plus finance and same-store boosts"""
        health = make_insight(InsightDomain.STORE_HEALTH, Severity.WARNING, store_id="s1")
        stock = make_insight(InsightDomain.INVENTORY, Severity.INFO, store_id="s1")
        loss = make_insight(InsightDomain.FINANCE, Severity.CRITICAL, entity_type=EntityType.BRAND, entity_id="b1")
        ranking = prioritize([health], [], [stock], [], [loss], test_settings)

        assert [s.insight for s in ranking.ranked] == [loss, health, stock]
        assert [s.score for s in ranking.ranked] == [110, 65, 25]
        assert ranking.ranked[0].boosts == ("finance",)
        assert ranking.ranked[1].boosts == ("same_entity",)
        assert [s.rank for s in ranking.ranked] == [1, 2, 3]

    def test_finance_store_entity_keyed_by_entity_id(self):
        """Test finance store insights without a store id use the entity id"""
        insight = make_insight(InsightDomain.FINANCE, Severity.WARNING, entity_type=EntityType.STORE, entity_id="s9")
        assert store_key(insight) == "s9"
        assert store_key(make_insight(InsightDomain.PARTNER, Severity.WARNING)) == GLOBAL_KEY

    def test_monotonic_and_stable(self, test_settings):
        """Test higher severity never ranks below lower and ties keep collection order"""
        first = make_insight(InsightDomain.STORE_HEALTH, Severity.WARNING, store_id="s1", message="first")
        second = make_insight(InsightDomain.WORKFORCE, Severity.WARNING, store_id="s2", message="second")
        info = make_insight(InsightDomain.INVENTORY, Severity.INFO, store_id="s3")
        critical = make_insight(InsightDomain.PARTNER, Severity.CRITICAL, entity_id="AGGREGATOR_A")
        ranking = prioritize([first], [critical], [info], [second], [], test_settings)

        ordered = [s.insight for s in ranking.ranked]
        assert ordered == [critical, first, second, info]
        scores = [s.score for s in ranking.ranked]
        assert scores == sorted(scores, reverse=True)

    def test_top_and_counts(self, booted, test_settings):
        """Test top list size and per-domain counts"""
        ranking = booted.priorities
        assert len(ranking.top) == min(test_settings.autopilot.top_n, ranking.total)
        assert sum(ranking.counts_by_domain().values()) == ranking.total
        for higher, lower in zip(ranking.ranked, ranking.ranked[1:]):
            assert higher.score >= lower.score


class TestAlerts:
    """Tests for executive alert rules"""

    def test_rules(self, test_settings):
        """Test critical, busy store and negative profit alerts"""
        insights = [
            make_insight(InsightDomain.STORE_HEALTH, Severity.WARNING, store_id="s1"),
            make_insight(InsightDomain.WORKFORCE, Severity.WARNING, store_id="s1"),
            make_insight(InsightDomain.WORKFORCE, Severity.WARNING, store_id="s2"),
            make_insight(InsightDomain.INVENTORY, Severity.WARNING, store_id="s2"),
            make_insight(InsightDomain.FINANCE, Severity.CRITICAL, type_="NEGATIVE_PROFIT",
                         entity_type=EntityType.STORE, entity_id="s2"),
        ]
        ranking = prioritize(insights[:1], [], insights[3:4], insights[1:3], insights[4:], test_settings)
        board = orchestrate_alerts(ranking, date(2025, 6, 30))

        messages = [a.message for a in board.alerts]
        assert messages == [
            "1 critical issue(s) require attention.",
            "2 store(s) have 2+ warnings: s1, s2.",
            "Negative profit detected on 1 entity/entities.",
        ]
        assert all(a.channel == "EXECUTIVE_ALERT" for a in board.alerts)
        assert all(a.generated_at == "2025-06-30T07:00:00.000Z" for a in board.alerts)
        assert board.alerts[0].entities[0].type == "STORE"
        assert board.alerts[0].entities[0].id == "s2"

    def test_no_insights_no_alerts(self, test_settings):
        """Test an empty ranking produces no alerts"""
        board = orchestrate_alerts(prioritize([], [], [], [], [], test_settings), date(2025, 6, 30))
        assert len(board) == 0


class TestExecutiveBrief:
    """Tests for the daily brief"""

    def test_suggested_action_table(self):
        """Test insight types map to action phrases"""
        assert suggest_action(make_insight(InsightDomain.INVENTORY, Severity.WARNING, "LOW_STOCK")) == \
            "Reorder ingredient / review store ops"
        assert suggest_action(make_insight(InsightDomain.FINANCE, Severity.INFO, "LOW_ITEM_MARGIN")) == \
            "Review item pricing"
        assert suggest_action(make_insight(InsightDomain.FINANCE, Severity.INFO, "SOMETHING_ELSE")) == \
            "Review and act"

    def test_attention_bullet(self):
        """Test store prefix and truncation"""
        long_message = "x" * 100
        insight = make_insight(InsightDomain.WORKFORCE, Severity.WARNING, store_id="s1", message=long_message)
        bullet = attention_bullet(insight, {"s1": "Kitchen One"})
        assert bullet == "Kitchen One: " + "x" * 80 + "…"

        unnamed = attention_bullet(insight, {})
        assert unnamed.startswith("Store s1: ")
        assert unnamed.endswith("…")
        short = make_insight(InsightDomain.INVENTORY, Severity.INFO, store_id="s2", message="short")
        assert attention_bullet(short, {}) == "Store s2: short…"
        assert attention_bullet(short, {"s2": "Kitchen Two"}) == "Kitchen Two: short"

        partner = make_insight(InsightDomain.PARTNER, Severity.WARNING, message="short")
        assert attention_bullet(partner, {}) == "short"

    def test_brief(self, booted, test_settings):
        """Test brief snapshot and bullets"""
        brief = booted.brief
        snapshot = brief.business_snapshot
        assert brief.generated_at == f"{booted.orders.reference_date.isoformat()}T07:00:00.000Z"
        assert snapshot.total_profit == booted.profit.summary.total_profit
        assert snapshot.stores_at_risk == booted.store_health.stores_at_risk
        assert len(brief.what_needs_attention_today) == min(test_settings.autopilot.brief_bullets,
                                                            booted.priorities.total)
        assert len(brief.suggested_actions) == len(set(brief.suggested_actions))
