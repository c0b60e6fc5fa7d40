"""
Priority Engine

Ranks insights from every domain into one list:
- base score by severity (critical 100, warning 60, info 20)
- finance boost (+10)
- same-store boost (+5) when two or more insights share a store key

Sorting is stable, so equal scores keep collection order
(store health, partner, inventory, workforce, finance).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.insights.models import EntityType, Insight, InsightDomain, Severity

logger = structlog.get_logger(__name__)

GLOBAL_KEY = "global"


@dataclass(frozen=True)
class PriorityScore:
    """Ranked insight with its score breakdown"""
    insight: Insight
    base_score: int
    boosts: Tuple[str, ...]
    score: int
    rank: int


class PriorityRanking:
    """Ranked insights, best first"""

    def __init__(self, ranked: List[PriorityScore], top_n: int = 5):
        self.ranked: Tuple[PriorityScore, ...] = tuple(ranked)
        self.top_n = top_n

    @property
    def top(self) -> List[PriorityScore]:
        return list(self.ranked[: self.top_n])

    @property
    def total(self) -> int:
        return len(self.ranked)

    def counts_by_domain(self) -> Dict[str, int]:
        counts = {domain.value: 0 for domain in InsightDomain}
        for scored in self.ranked:
            counts[scored.insight.domain.value] += 1
        return counts


def store_key(insight: Insight) -> str:
    """Store an insight belongs to, or `global`"""
    if insight.store_id:
        return insight.store_id
    if insight.domain == InsightDomain.FINANCE and insight.entity_type == EntityType.STORE and insight.entity_id:
        return insight.entity_id
    return GLOBAL_KEY


def base_score(severity: Severity, settings: Settings) -> int:
    scores = {
        Severity.CRITICAL: settings.autopilot.critical_score,
        Severity.WARNING: settings.autopilot.warning_score,
        Severity.INFO: settings.autopilot.info_score,
    }
    return scores[severity]


def prioritize(
    store_health: Sequence[Insight],
    partner: Sequence[Insight],
    inventory: Sequence[Insight],
    workforce: Sequence[Insight],
    finance: Sequence[Insight],
    settings: Optional[Settings] = None,
) -> PriorityRanking:
    """
    Score and rank insights from all five domains.

    Args:
        store_health: Store health insights
        partner: Partner insights
        inventory: Inventory insights
        workforce: Workforce insights
        finance: Finance insights
        settings: Pipeline settings

    Returns:
        PriorityRanking with ranks 1..n
    """
    settings = settings or get_settings()
    autopilot = settings.autopilot
    collected: List[Insight] = [*store_health, *partner, *inventory, *workforce, *finance]

    per_store: Dict[str, int] = {}
    for insight in collected:
        key = store_key(insight)
        per_store[key] = per_store.get(key, 0) + 1

    scored = []
    for insight in collected:
        base = base_score(insight.severity, settings)
        boosts = []
        score = base
        if insight.domain == InsightDomain.FINANCE:
            boosts.append("finance")
            score += autopilot.finance_boost
        if per_store[store_key(insight)] >= 2:
            boosts.append("same_entity")
            score += autopilot.same_entity_boost
        scored.append((insight, base, tuple(boosts), score))

    scored.sort(key=lambda entry: entry[3], reverse=True)
    ranked = [
        PriorityScore(insight=insight, base_score=base, boosts=boosts, score=score, rank=position)
        for position, (insight, base, boosts, score) in enumerate(scored, start=1)
    ]

    ranking = PriorityRanking(ranked, top_n=autopilot.top_n)
    logger.info(
        "Insights prioritized",
        total=ranking.total,
        by_domain=ranking.counts_by_domain(),
        top_score=ranked[0].score if ranked else None,
    )
    return ranking
