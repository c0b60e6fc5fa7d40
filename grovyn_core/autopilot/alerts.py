"""
Alert Orchestrator

Decides what deserves an executive alert from the ranked insight list.
Alerts are logged and returned; nothing is sent anywhere.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Tuple

import structlog

from grovyn_core.autopilot.priority import GLOBAL_KEY, PriorityRanking, store_key
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity

logger = structlog.get_logger(__name__)

ALERT_CHANNEL = "EXECUTIVE_ALERT"


@dataclass(frozen=True)
class AlertEntity:
    type: str
    id: str


@dataclass(frozen=True)
class Alert:
    channel: str
    severity: Severity
    message: str
    entities: Tuple[AlertEntity, ...]
    generated_at: str


class AlertBoard:
    """Active alerts for one boot"""

    def __init__(self, alerts: List[Alert], generated_at: str):
        self.alerts: Tuple[Alert, ...] = tuple(alerts)
        self.generated_at = generated_at

    def __len__(self) -> int:
        return len(self.alerts)

    def critical(self) -> List[Alert]:
        return [a for a in self.alerts if a.severity == Severity.CRITICAL]


def alert_timestamp(reference_date: date) -> str:
    return f"{reference_date.isoformat()}T07:00:00.000Z"


def _entity(insight: Insight) -> AlertEntity:
    if insight.entity_type is not None:
        entity_type = insight.entity_type.value
    else:
        entity_type = EntityType.STORE.value if insight.store_id else EntityType.PARTNER.value
    return AlertEntity(type=entity_type, id=insight.store_id or insight.entity_id or insight.type)


def orchestrate_alerts(ranking: PriorityRanking, reference_date: date) -> AlertBoard:
    """
    Build executive alerts from the ranked insights.

    Rules, in emission order:
        1. any critical insight -> one critical alert listing every critical entity
        2. stores with 2+ warnings -> one warning alert
        3. any NEGATIVE_PROFIT finance insight -> one critical alert

    Args:
        ranking: Prioritized insights
        reference_date: Latest order date

    Returns:
        AlertBoard
    """
    generated_at = alert_timestamp(reference_date)
    insights = [scored.insight for scored in ranking.ranked]
    alerts = []

    critical = [i for i in insights if i.severity == Severity.CRITICAL]
    if critical:
        alerts.append(Alert(
            channel=ALERT_CHANNEL,
            severity=Severity.CRITICAL,
            message=f"{len(critical)} critical issue(s) require attention.",
            entities=tuple(_entity(i) for i in critical),
            generated_at=generated_at,
        ))

    warnings_by_store: Dict[str, int] = {}
    for insight in insights:
        key = store_key(insight)
        if insight.severity != Severity.WARNING or key == GLOBAL_KEY:
            continue
        warnings_by_store[key] = warnings_by_store.get(key, 0) + 1
    busy_stores = [store_id for store_id, count in warnings_by_store.items() if count >= 2]
    if busy_stores:
        alerts.append(Alert(
            channel=ALERT_CHANNEL,
            severity=Severity.WARNING,
            message=f"{len(busy_stores)} store(s) have 2+ warnings: {', '.join(busy_stores)}.",
            entities=tuple(AlertEntity(type=EntityType.STORE.value, id=s) for s in busy_stores),
            generated_at=generated_at,
        ))

    negative = [
        i for i in insights
        if i.domain == InsightDomain.FINANCE and i.type == "NEGATIVE_PROFIT"
    ]
    if negative:
        alerts.append(Alert(
            channel=ALERT_CHANNEL,
            severity=Severity.CRITICAL,
            message=f"Negative profit detected on {len(negative)} entity/entities.",
            entities=tuple(AlertEntity(type=i.entity_type.value, id=i.entity_id) for i in negative),
            generated_at=generated_at,
        ))

    for alert in alerts:
        logger.warning("Executive alert", channel=alert.channel, severity=alert.severity.value,
                       message=alert.message, entities=len(alert.entities))
    logger.info("Alerts orchestrated", alerts=len(alerts))
    return AlertBoard(alerts, generated_at)
