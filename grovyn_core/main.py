"""
Command-Line Entry Point

Boots the pipeline once and prints one read-only view as JSON.
Usage:
    grovyn-core                      # executive brief
    grovyn-core --view alerts
    grovyn-core --view priorities --seed 7 --log-level DEBUG
"""

import argparse
import dataclasses
import json
import sys
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.config.logging import configure_logging
from grovyn_core.exceptions import PipelineError
from grovyn_core.pipeline import PipelineContext, boot

logger = structlog.get_logger(__name__)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, enums, dates and tuples into JSON-ready values"""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return value


# =============================================================================
# VIEWS
# =============================================================================

def brief_view(ctx: PipelineContext) -> Any:
    return ctx.brief


def alerts_view(ctx: PipelineContext) -> Any:
    return {"generated_at": ctx.alerts.generated_at, "alerts": ctx.alerts.alerts}


def priorities_view(ctx: PipelineContext) -> Any:
    ranking = ctx.priorities
    return {
        "total": ranking.total,
        "by_domain": ranking.counts_by_domain(),
        "top": ranking.top,
        "ranked": ranking.ranked,
    }


def health_view(ctx: PipelineContext) -> Any:
    return {
        "status_counts": ctx.store_health.status_counts(),
        "stores": ctx.store_health.results,
    }


def finance_view(ctx: PipelineContext) -> Any:
    return {
        "summary": ctx.profit.summary,
        "stores": ctx.profit.stores,
        "brands": ctx.profit.brands,
        "partners": ctx.commissions.summaries,
        "insights": ctx.finance_insights,
    }


def inventory_view(ctx: PipelineContext) -> Any:
    return {
        "ledger": [row.to_dict() for row in ctx.inventory.rows],
        "insights": ctx.inventory_insights,
    }


def staffing_view(ctx: PipelineContext) -> Any:
    roster = ctx.staffing
    return {
        "stores": [
            {
                "store_id": store_id,
                "role_counts": roster.role_counts(store_id),
                "staff": roster.staff_for(store_id),
                "shifts": ctx.shifts.metrics_for_store(store_id),
            }
            for store_id in roster.store_ids
        ],
        "insights": ctx.workforce_insights,
    }


def metrics_view(ctx: PipelineContext) -> Any:
    return ctx.metrics


def intelligence_view(ctx: PipelineContext) -> Any:
    report = ctx.intelligence
    return {"insights": report.insights, "actions": report.actions, "segments": report.segments}


VIEWS: Dict[str, Callable[[PipelineContext], Any]] = {
    "brief": brief_view,
    "alerts": alerts_view,
    "priorities": priorities_view,
    "health": health_view,
    "finance": finance_view,
    "inventory": inventory_view,
    "staffing": staffing_view,
    "metrics": metrics_view,
    "intelligence": intelligence_view,
}


def build_settings(seed: Optional[int] = None) -> Settings:
    settings = get_settings()
    if seed is None:
        return settings
    return settings.model_copy(update={"seed": settings.seed.model_copy(update={"random_seed": seed})})


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="grovyn-core",
        description="Deterministic retail analytics pipeline",
    )
    parser.add_argument(
        "--view",
        choices=sorted(VIEWS),
        default="brief",
        help="Snapshot to print as JSON",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the global random seed",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (defaults to LOG_LEVEL)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = build_settings(args.seed)
    configure_logging(args.log_level, settings)

    try:
        ctx = boot(settings)
    except PipelineError as e:
        logger.error("Boot failed", error=str(e))
        return 1

    json.dump(to_jsonable(VIEWS[args.view](ctx)), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
