"""
Workforce Insights

Shift utilization rules per store:
- STAFF_SHORTAGE above the shortage threshold (critical above 1.3)
- OVERSTAFFING below 0.6 (shifts with no orders are ignored)
- PRODUCTIVITY_RISK when both shifts of a store are short-staffed
"""

from typing import List, Optional

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import SeedDataset
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity, evaluation_timestamp
from grovyn_core.operations.shifts import Shift, ShiftReport

logger = structlog.get_logger(__name__)


def evaluate_workforce(
    shifts: ShiftReport,
    dataset: SeedDataset,
    reference_date,
    settings: Optional[Settings] = None,
) -> List[Insight]:
    """Scan shift utilization for staffing imbalances"""
    settings = settings or get_settings()
    t = settings.insights
    evaluated_at = evaluation_timestamp(reference_date)
    store_names = {store.id: store.name for store in dataset.stores}

    insights = []
    store_ids = list(dict.fromkeys(m.store_id for m in shifts.metrics))
    for store_id in store_ids:
        base = dict(
            domain=InsightDomain.WORKFORCE,
            evaluated_at=evaluated_at,
            store_id=store_id,
            store_name=store_names.get(store_id),
            entity_type=EntityType.STORE,
            entity_id=store_id,
        )
        for m in shifts.metrics_for_store(store_id):
            label = m.shift.value.capitalize()
            if m.utilization > t.shortage_utilization:
                insights.append(Insight(
                    type="STAFF_SHORTAGE",
                    severity=Severity.CRITICAL if m.utilization > t.critical_shortage_utilization else Severity.WARNING,
                    message=(
                        f"{label} shift utilization ({m.utilization:.2f}) exceeds "
                        f"{t.shortage_utilization:g}. Consider adding staff."
                    ),
                    details={"shift": m.shift.value, "utilization": m.utilization},
                    **base,
                ))
            if 0 < m.utilization < t.overstaffing_utilization:
                insights.append(Insight(
                    type="OVERSTAFFING",
                    severity=Severity.INFO,
                    message=(
                        f"{label} shift utilization ({m.utilization:.2f}) below "
                        f"{t.overstaffing_utilization:g}. Underused capacity."
                    ),
                    details={"shift": m.shift.value, "utilization": m.utilization},
                    **base,
                ))

        morning = shifts.metric(store_id, Shift.MORNING)
        evening = shifts.metric(store_id, Shift.EVENING)
        if (
            morning and evening
            and morning.utilization > t.shortage_utilization
            and evening.utilization > t.shortage_utilization
        ):
            insights.append(Insight(
                type="PRODUCTIVITY_RISK",
                severity=Severity.WARNING,
                message=(
                    f"Both morning and evening shifts are overloaded (utilization "
                    f"{morning.utilization:.2f} / {evening.utilization:.2f}). Role capacity may be misaligned."
                ),
                details={"morning": morning.utilization, "evening": evening.utilization},
                **base,
            ))

    for insight in insights:
        logger.debug("Insight emitted", domain=insight.domain.value, type=insight.type,
                     severity=insight.severity.value, store_id=insight.store_id)
    logger.info("Workforce insights evaluated", shifts=len(shifts.metrics), insights=len(insights))
    return insights
