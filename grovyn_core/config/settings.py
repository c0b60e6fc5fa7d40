"""
Grovyn Core Platform
Centralized Configuration Management

All pipeline constants (seed sizes, partner rates, cost tables and insight
thresholds) live here as Pydantic settings with environment variable
support, so a deployment can retune a rule without touching code.
"""

from datetime import date
from functools import lru_cache
from typing import Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SeedSettings(BaseSettings):
    """Synthetic Seed Universe Configuration"""

    model_config = SettingsConfigDict(env_prefix="SEED_")

    random_seed: int = Field(default=42, description="Global seed for every derived generator")
    cities: int = Field(default=2, ge=1, description="Number of cities")
    stores_per_city: int = Field(default=3, ge=1, description="Stores generated per city")
    brands_per_store: int = Field(default=2, ge=1, description="Brands generated per store")
    items_per_brand: int = Field(default=30, ge=1, description="Catalog items per brand")
    customers: int = Field(default=4000, ge=1, description="Number of customers")
    orders: int = Field(default=5000, ge=1, description="Number of raw orders")

    # Time anchoring
    anchor_date: date = Field(default=date(2025, 6, 30), description="Latest date an order may fall on")
    history_days: int = Field(default=90, ge=1, description="Full order history window in days")
    recent_days: int = Field(default=14, ge=1, description="Recent window holding half the orders")
    operating_hours: str = Field(default="08:00-22:00", description="Default store operating hours")


class CommissionSettings(BaseSettings):
    """Partner Channel and Commission Configuration"""

    model_config = SettingsConfigDict(env_prefix="COMMISSION_")

    partner_rates: Dict[str, float] = Field(
        default={"AGGREGATOR_A": 0.15, "AGGREGATOR_B": 0.18},
        description="Commission rate per partner id",
    )
    channel_rotation: List[str] = Field(
        default=["AGGREGATOR_A", "AGGREGATOR_B", "DIRECT"],
        description="Channel assigned by ingestion index modulo rotation length",
    )

    @field_validator("channel_rotation")
    @classmethod
    def validate_rotation(cls, v: List[str]) -> List[str]:
        """Rotation must not be empty"""
        if not v:
            raise ValueError("channel_rotation must contain at least one channel")
        return v


class FinanceSettings(BaseSettings):
    """Settlement Ledger Configuration"""

    model_config = SettingsConfigDict(env_prefix="FINANCE_")

    discount_order_modulo: int = Field(default=10, ge=1, description="Every Nth ingested order is discounted")
    discount_rate: float = Field(default=0.10, ge=0, le=1, description="Discount fraction of gross")


class CostSettings(BaseSettings):
    """Labor and Ingredient Cost Tables"""

    model_config = SettingsConfigDict(env_prefix="COST_")

    base_hourly_rate: float = Field(default=10.0, description="Labor cost units per hour")
    shift_hours: float = Field(default=7.0, description="Hours per shift")
    ingredient_unit_cost: Dict[str, float] = Field(
        default={
            "ing_chicken": 5.0,
            "ing_rice": 2.0,
            "ing_oil": 3.0,
            "ing_spices": 8.0,
            "ing_packaging": 0.5,
            "ing_vegetables": 2.0,
            "ing_sauce": 4.0,
            "ing_flour": 1.5,
            "ing_dairy": 2.0,
            "ing_lentils": 3.0,
        },
        description="Cost per unit of each ingredient",
    )


class InsightSettings(BaseSettings):
    """Rule Thresholds for Domain Insights and Business Intelligence"""

    model_config = SettingsConfigDict(env_prefix="INSIGHT_")

    # Store health
    order_drop_percent: float = Field(default=20.0, description="Breach when order deviation < -N%")
    load_factor_limit: float = Field(default=0.85, description="Breach when load factor exceeds this")
    failure_rate_limit: float = Field(default=0.05, description="Breach when failure rate exceeds this")
    max_failure_rate: float = Field(default=0.10, description="Upper bound of simulated failure rate")
    default_operating_hours: int = Field(default=14, description="Hours used when a window cannot be parsed")

    # Partner / commission
    commission_increase_points: float = Field(default=3.0, description="Weekly % above baseline")
    commission_limit_percent: float = Field(default=20.0, description="Average commission % hard cap")
    partner_volume_threshold: int = Field(default=500, description="High volume order count")
    partner_low_net_revenue: float = Field(default=50000.0, description="Low net revenue threshold")

    # Inventory
    low_stock_days: float = Field(default=2.0, description="Low stock when days remaining below")
    critical_stock_days: float = Field(default=1.0, description="Critical when days remaining below")
    overstock_multiplier: float = Field(default=2.0, description="Stock above N x weekly consumption")
    waste_order_volume: int = Field(default=30, description="Waste risk when item orders below")
    waste_warning_volume: int = Field(default=10, description="Waste risk is a warning below")

    # Workforce
    shortage_utilization: float = Field(default=1.1, description="Shortage when utilization above")
    critical_shortage_utilization: float = Field(default=1.3, description="Critical shortage above")
    overstaffing_utilization: float = Field(default=0.6, description="Overstaffed when utilization below")

    # Finance
    margin_leakage_points: float = Field(default=5.0, description="Margin below baseline by N points")
    margin_leakage_critical_points: float = Field(default=10.0, description="Critical leakage points")
    low_item_margin_percent: float = Field(default=10.0, description="Low item contribution margin %")

    # Customers
    churn_inactive_days: int = Field(default=14, description="Inactive days before churn risk")
    churn_min_ltv: float = Field(default=500.0, description="Minimum lifetime value for churn risk")
    reorder_min_orders: int = Field(default=3, description="Orders needed for reorder prediction")
    reorder_window_days: int = Field(default=5, description="Recent activity window for reorders")
    champion_min_orders: int = Field(default=10, description="Orders for champion segment")
    loyal_min_orders: int = Field(default=5, description="Orders for loyal segment")
    dormant_segment_threshold: int = Field(default=50, description="Dormant customers before firing")
    low_margin_item_percent: float = Field(default=25.0, description="Item margin flagged by intelligence rules")
    store_gap_points: float = Field(default=1.5, description="Repeat rate gap between stores")


class AutopilotSettings(BaseSettings):
    """Cross-Domain Priority Scoring"""

    model_config = SettingsConfigDict(env_prefix="AUTOPILOT_")

    critical_score: int = Field(default=100, description="Base score for critical insights")
    warning_score: int = Field(default=60, description="Base score for warning insights")
    info_score: int = Field(default=20, description="Base score for info insights")
    finance_boost: int = Field(default=10, description="Boost for finance domain insights")
    same_entity_boost: int = Field(default=5, description="Boost when 2+ insights share a store")
    top_n: int = Field(default=5, ge=1, description="Size of the top priorities list")
    brief_bullets: int = Field(default=5, ge=1, description="Attention bullets in the executive brief")
    bullet_length: int = Field(default=80, ge=10, description="Max characters of a bullet message")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing pipeline configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="grovyn-core", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    seed: SeedSettings = Field(default_factory=SeedSettings)
    commission: CommissionSettings = Field(default_factory=CommissionSettings)
    finance: FinanceSettings = Field(default_factory=FinanceSettings)
    costs: CostSettings = Field(default_factory=CostSettings)
    insights: InsightSettings = Field(default_factory=InsightSettings)
    autopilot: AutopilotSettings = Field(default_factory=AutopilotSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
