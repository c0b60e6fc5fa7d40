"""
Unit Tests - Pipeline Context, Boot and CLI
"""
import json
from datetime import date
from enum import Enum

import pytest

from grovyn_core import main as cli
from grovyn_core.data.models import load_seed_dataset
from grovyn_core.exceptions import SeedDataError, StageAlreadyPublishedError, StageNotReadyError
from grovyn_core.ingestion.orders import normalize_orders
from grovyn_core.pipeline import STAGE_DEPENDENCIES, PipelineContext, Stage, boot, build_pipeline


class TestPipelineContext:
    """Tests for write-once stage slots"""

    def test_read_before_publish(self, small_dataset, test_settings):
        """Test reading an empty slot raises StageNotReadyError"""
        ctx = PipelineContext(small_dataset, test_settings)
        with pytest.raises(StageNotReadyError):
            ctx.get(Stage.ORDERS)
        with pytest.raises(StageNotReadyError):
            _ = ctx.brief

    def test_publish_requires_dependencies(self, small_dataset, test_settings):
        """Test a stage cannot be published before its inputs"""
        ctx = PipelineContext(small_dataset, test_settings)
        with pytest.raises(StageNotReadyError) as exc_info:
            ctx.publish(Stage.COMMISSIONS, object())
        assert exc_info.value.missing == ["orders"]

    def test_publish_is_write_once(self, small_dataset, test_settings):
        """Test a second publish of the same stage fails"""
        ctx = PipelineContext(small_dataset, test_settings)
        book = normalize_orders(small_dataset, test_settings)
        ctx.publish(Stage.ORDERS, book)
        assert ctx.is_ready(Stage.ORDERS)
        with pytest.raises(StageAlreadyPublishedError):
            ctx.publish(Stage.ORDERS, book)

    def test_frozen_context(self, booted):
        """Test a booted context accepts no further results"""
        assert booted.frozen
        with pytest.raises(StageAlreadyPublishedError):
            booted.publish(Stage.ORDERS, None)

    def test_dependencies_are_acyclic(self):
        """Test every dependency is declared earlier in boot order"""
        order = list(Stage)
        for stage, deps in STAGE_DEPENDENCIES.items():
            assert all(order.index(dep) < order.index(stage) for dep in deps)


class TestBoot:
    """Tests for end-to-end boot"""

    def test_all_stages_published(self, booted):
        """Test boot publishes every stage"""
        assert booted.published == list(Stage)

    def test_deterministic(self, booted, test_settings):
        """Test two boots with the same seed agree on every output"""
        again = boot(test_settings)
        assert again.brief == booted.brief
        assert again.alerts.alerts == booted.alerts.alerts
        assert [s.insight for s in again.priorities.ranked] == [s.insight for s in booted.priorities.ranked]
        assert again.profit.stores == booted.profit.stores
        assert again.metrics == booted.metrics

    def test_timestamps_from_reference_date(self, booted):
        """Test exposed timestamps derive from the reference date"""
        reference = booted.orders.reference_date.isoformat()
        assert booted.alerts.generated_at.startswith(reference)
        assert booted.brief.generated_at.startswith(reference)
        assert all(r.evaluated_at.startswith(reference) for r in booted.store_health.results)

    def test_empty_seed_is_fatal(self, small_dataset, test_settings):
        """Test a dataset without usable orders aborts the build"""
        payload = small_dataset.model_dump()
        payload["stores"] = [{"id": "elsewhere", "city_id": "city_1", "name": "Elsewhere"}]
        with pytest.raises(SeedDataError):
            build_pipeline(load_seed_dataset(payload), test_settings)

    def test_staff_lookup(self, booted):
        """Test single-store staff lookup"""
        store_id = booted.dataset.stores[0].id
        assert all(m.store_id == store_id for m in booted.staff_for(store_id))


class TestCli:
    """Tests for the command-line entry point"""

    def test_to_jsonable(self):
        """Test enums, dates and tuples serialize"""
        class Color(str, Enum):
            RED = "red"

        assert cli.to_jsonable({"c": Color.RED, "d": date(2025, 6, 30), "t": (1, 2)}) == {
            "c": "red", "d": "2025-06-30", "t": [1, 2],
        }

    @pytest.mark.parametrize("view", ["brief", "alerts", "health", "inventory", "staffing"])
    def test_views_print_json(self, view, test_settings, monkeypatch, capsys):
        """Test each view prints a JSON document"""
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        assert cli.main(["--view", view, "--log-level", "WARNING"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output

    def test_boot_failure_exit_code(self, test_settings, monkeypatch):
        """Test boot failure exits non-zero"""
        def failing_boot(settings):
            raise SeedDataError("Seed payload is empty")

        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        monkeypatch.setattr(cli, "boot", failing_boot)
        assert cli.main(["--log-level", "ERROR"]) == 1

    def test_seed_override(self, test_settings, monkeypatch):
        """Test --seed replaces only the global seed"""
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        settings = cli.build_settings(7)
        assert settings.seed.random_seed == 7
        assert settings.seed.orders == test_settings.seed.orders
