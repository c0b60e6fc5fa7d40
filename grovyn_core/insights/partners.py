"""
Partner / Commission Insights

Two rules per partner (DIRECT is never evaluated):
- COMMISSION_IMPACT_INCREASED: this ISO week's commission % above the
  all-time baseline by more than the configured points
- AGGREGATOR_UNDERPERFORMING: high volume with low net revenue, or
  average commission % above the hard cap (critical when both hold)
"""

from typing import List, Optional

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.ingestion.commission import CommissionLedger
from grovyn_core.ingestion.orders import DIRECT
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity, evaluation_timestamp

logger = structlog.get_logger(__name__)


def evaluate_partners(commissions: CommissionLedger, settings: Optional[Settings] = None) -> List[Insight]:
    """Scan partner summaries for commission threshold breaches"""
    settings = settings or get_settings()
    t = settings.insights
    reference_date = commissions.order_book.reference_date
    evaluated_at = evaluation_timestamp(reference_date)
    baseline = commissions.baseline_commission_percent()
    this_week = commissions.orders_in_week_of(reference_date)

    insights = []
    for summary in commissions.summaries:
        partner_id = summary.partner_id
        if partner_id == DIRECT:
            continue

        week = commissions.totals_for(o for o in this_week if o.partner_key == partner_id)
        partner_baseline = baseline.get(partner_id, 0.0)
        if week.commission_percent > partner_baseline + t.commission_increase_points:
            insights.append(Insight(
                domain=InsightDomain.PARTNER,
                type="COMMISSION_IMPACT_INCREASED",
                severity=Severity.WARNING,
                message=(
                    f"This week's commission ({week.commission_percent:.1f}%) is above baseline "
                    f"({partner_baseline:.1f}%) by more than {t.commission_increase_points:g}%."
                ),
                evaluated_at=evaluated_at,
                entity_type=EntityType.PARTNER,
                entity_id=partner_id,
                details={"week_percent": round(week.commission_percent, 2), "baseline_percent": partner_baseline},
            ))

        high_volume_low_revenue = (
            summary.order_count >= t.partner_volume_threshold
            and summary.net_revenue < t.partner_low_net_revenue
        )
        over_cap = summary.average_commission_percent > t.commission_limit_percent
        if high_volume_low_revenue or over_cap:
            if high_volume_low_revenue:
                reason = f"High order volume ({summary.order_count}) but low net revenue ({summary.net_revenue})"
            else:
                reason = (
                    f"Commission % ({summary.average_commission_percent:.1f}%) exceeds limit "
                    f"({t.commission_limit_percent:g}%)"
                )
            insights.append(Insight(
                domain=InsightDomain.PARTNER,
                type="AGGREGATOR_UNDERPERFORMING",
                severity=Severity.CRITICAL if high_volume_low_revenue and over_cap else Severity.WARNING,
                message=reason,
                evaluated_at=evaluated_at,
                entity_type=EntityType.PARTNER,
                entity_id=partner_id,
                details={
                    "order_count": summary.order_count,
                    "net_revenue": summary.net_revenue,
                    "average_commission_percent": summary.average_commission_percent,
                },
            ))

    for insight in insights:
        logger.debug("Insight emitted", domain=insight.domain.value, type=insight.type,
                     severity=insight.severity.value, partner_id=insight.entity_id)
    logger.info("Partner insights evaluated", partners=len(commissions.summaries), insights=len(insights))
    return insights
