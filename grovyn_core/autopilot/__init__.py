"""
Autopilot: cross-domain priorities, executive alerts and the daily brief
"""
from .alerts import Alert, AlertBoard, AlertEntity, orchestrate_alerts
from .brief import BusinessSnapshot, ExecutiveBrief, compose_brief
from .priority import PriorityRanking, PriorityScore, prioritize

__all__ = [
    "Alert",
    "AlertBoard",
    "AlertEntity",
    "orchestrate_alerts",
    "BusinessSnapshot",
    "ExecutiveBrief",
    "compose_brief",
    "PriorityRanking",
    "PriorityScore",
    "prioritize",
]
