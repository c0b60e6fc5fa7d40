"""
Pipeline Boot

Runs every stage once, in dependency order, against one seed dataset.
Any exception aborts the boot; no partially built context is returned.
"""

import time
from typing import Optional

import structlog

from grovyn_core.analytics.intelligence import build_intelligence
from grovyn_core.analytics.metrics import compute_metrics
from grovyn_core.autopilot.alerts import orchestrate_alerts
from grovyn_core.autopilot.brief import compose_brief
from grovyn_core.autopilot.priority import prioritize
from grovyn_core.config import Settings, get_settings
from grovyn_core.data.generators import generate_seed_data
from grovyn_core.data.models import SeedDataset
from grovyn_core.finance.profit import attribute_profit
from grovyn_core.finance.settlement import attribute_finance
from grovyn_core.ingestion.commission import attribute_commissions
from grovyn_core.ingestion.orders import normalize_orders
from grovyn_core.insights.finance import evaluate_finance
from grovyn_core.insights.inventory import evaluate_inventory
from grovyn_core.insights.partners import evaluate_partners
from grovyn_core.insights.store_health import evaluate_store_health
from grovyn_core.insights.workforce import evaluate_workforce
from grovyn_core.operations.inventory import BillOfMaterialsCatalog, simulate_consumption
from grovyn_core.operations.shifts import compute_shift_metrics
from grovyn_core.operations.staffing import assign_staff
from grovyn_core.pipeline.context import PipelineContext, Stage

logger = structlog.get_logger(__name__)


def build_pipeline(dataset: SeedDataset, settings: Optional[Settings] = None) -> PipelineContext:
    """
    Build every stage over the dataset and freeze the context.

    Args:
        dataset: Validated seed dataset
        settings: Pipeline settings

    Returns:
        Frozen PipelineContext
    """
    settings = settings or get_settings()
    ctx = PipelineContext(dataset, settings)
    started = time.perf_counter()

    ctx.publish(Stage.ORDERS, normalize_orders(dataset, settings))
    ctx.publish(Stage.COMMISSIONS, attribute_commissions(ctx.orders, settings))
    ctx.publish(Stage.FINANCE, attribute_finance(ctx.orders, ctx.commissions, settings))
    ctx.publish(Stage.INVENTORY, simulate_consumption(
        ctx.orders, dataset, BillOfMaterialsCatalog(settings.seed.random_seed), settings
    ))
    ctx.publish(Stage.STAFFING, assign_staff(dataset.stores, settings))
    ctx.publish(Stage.SHIFTS, compute_shift_metrics(ctx.staffing, ctx.orders, dataset))
    ctx.publish(Stage.PROFIT, attribute_profit(
        ctx.finance, ctx.inventory, ctx.shifts, ctx.orders, dataset, settings
    ))
    ctx.publish(Stage.METRICS, compute_metrics(ctx.orders, ctx.commissions, ctx.finance, dataset))
    ctx.publish(Stage.INTELLIGENCE, build_intelligence(ctx.metrics, ctx.orders, ctx.profit, dataset, settings))

    reference_date = ctx.orders.reference_date
    ctx.publish(Stage.STORE_HEALTH, evaluate_store_health(ctx.orders, dataset, settings))
    ctx.publish(Stage.PARTNER_INSIGHTS, evaluate_partners(ctx.commissions, settings))
    ctx.publish(Stage.INVENTORY_INSIGHTS, evaluate_inventory(ctx.inventory, dataset, reference_date, settings))
    ctx.publish(Stage.WORKFORCE_INSIGHTS, evaluate_workforce(ctx.shifts, dataset, reference_date, settings))
    ctx.publish(Stage.FINANCE_INSIGHTS, evaluate_finance(ctx.profit, ctx.finance, ctx.orders, dataset, settings))

    ctx.publish(Stage.PRIORITIES, prioritize(
        ctx.store_health.insights,
        ctx.partner_insights,
        ctx.inventory_insights,
        ctx.workforce_insights,
        ctx.finance_insights,
        settings,
    ))
    ctx.publish(Stage.ALERTS, orchestrate_alerts(ctx.priorities, reference_date))
    ctx.publish(Stage.BRIEF, compose_brief(
        ctx.profit, ctx.store_health, ctx.priorities, dataset, reference_date, settings
    ))

    ctx.freeze()
    logger.info(
        "Pipeline built",
        stages=len(ctx.published),
        reference_date=reference_date.isoformat(),
        insights=ctx.priorities.total,
        alerts=len(ctx.alerts),
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return ctx


def boot(settings: Optional[Settings] = None) -> PipelineContext:
    """Generate the seed dataset and build the pipeline over it"""
    settings = settings or get_settings()
    logger.info("Booting pipeline", app=settings.app_name, env=settings.app_env, seed=settings.seed.random_seed)
    try:
        dataset = generate_seed_data(settings)
        return build_pipeline(dataset, settings)
    except Exception:
        logger.exception("Pipeline boot failed")
        raise
