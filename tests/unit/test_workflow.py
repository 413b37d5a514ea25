"""Unit tests for the plan workflow manager."""

from unittest.mock import MagicMock

import pytest

from waveplan.models import Feature
from waveplan.plan_logging import performance_monitor
from waveplan.workflow import PlanManager
from waveplan.workspace import InMemoryPlanStore


FEATURES = [
    {"id": "AUTH-001", "name": "Login", "priority": "P0", "size": "M", "type": "common"},
    {"id": "FEAT-001", "name": "Dashboard", "priority": "P0", "size": "L", "dependencies": ["AUTH-001"]},
    {"id": "FEAT-002", "name": "Reports", "priority": "P1", "size": "S", "dependencies": ["FEAT-001"]},
]


@pytest.fixture
def store():
    return InMemoryPlanStore()


@pytest.fixture
def manager(tmp_path, store):
    return PlanManager(tmp_path, store=store)


class TestGeneratePlan:
    """Test cases for PlanManager.generate_plan."""

    def test_success(self, manager, store):
        """Test generating and storing a plan from explicit records."""
        result = manager.generate_plan(features=FEATURES)

        assert "error" not in result
        assert result["errors"] == []
        assert result["wave_count"] == 3
        assert result["feature_count"] == 3
        assert result["task_count"] == 18
        assert result["plan_path"] is None
        assert result["markdown_path"] is None
        assert result["next_suggested_step"] == "list_plan_tasks"
        assert result["message"] == "Plan generated: 3 features, 3 waves, ~18 tasks"
        assert store.saves == 1
        assert store.load_plan().total_features == 3

    def test_records_duration_metric(self, manager):
        """Test that the workflow is timed."""
        manager.generate_plan(features=FEATURES)

        metrics = performance_monitor.get_metrics("plan_workflow_duration")["plan_workflow_duration"]
        assert metrics[0]["tags"]["status"] == "success"

    def test_cycles_reported(self, manager):
        """Test that cycles surface in the response without failing."""
        result = manager.generate_plan(features=[
            {"id": "A", "name": "A", "dependencies": ["B"]},
            {"id": "B", "name": "B", "dependencies": ["A"]},
        ])

        assert result["errors"] == []
        assert result["circular_dependencies"] == ["A -> B -> A"]
        assert result["next_suggested_step"] == "plan_status"
        assert "1 circular dependencies need resolution" in result["message"]

    def test_empty_catalog(self, manager, store):
        """Test that a missing catalog produces a structured error."""
        result = manager.generate_plan()

        assert result["error"] == "No features found"
        assert result["errors"] == ["No features found"]
        assert result["next_suggested_step"] == "generate_plan"
        assert store.saves == 0

    def test_save_disabled(self, manager, store):
        result = manager.generate_plan(features=FEATURES, save=False)

        assert result["errors"] == []
        assert store.saves == 0

    def test_markdown_output(self, manager, tmp_path):
        """Test exporting markdown relative to the project root."""
        result = manager.generate_plan(features=FEATURES, output="docs/plan.md")

        path = tmp_path / "docs" / "plan.md"
        assert result["markdown_path"] == str(path.resolve())
        assert "FEAT-001-DB" in path.read_text(encoding="utf-8")

    def test_accepts_feature_objects(self, manager):
        result = manager.generate_plan(features=[Feature(id="A", name="Alpha")])

        assert result["feature_count"] == 1

    def test_store_failure(self, tmp_path):
        """Test that a failing store becomes an error response."""
        store = MagicMock()
        store.save_plan.side_effect = RuntimeError("disk full")
        manager = PlanManager(tmp_path, store=store)

        result = manager.generate_plan(features=FEATURES)

        assert result["error"] == "Failed to generate plan: disk full"
        assert result["next_suggested_step"] == "generate_plan"
        store.save_plan.assert_called_once()

    def test_file_store_by_default(self, tmp_path):
        """Test that the workspace is the default store."""
        manager = PlanManager(tmp_path)

        result = manager.generate_plan(features=FEATURES)

        assert result["plan_path"] == str(manager.workspace.plan_path)
        assert manager.workspace.plan_path.exists()


class TestProfileResolution:
    """Test cases for profile type resolution."""

    def test_explicit(self, manager):
        assert manager.resolve_profile_type("cli") == "cli"

    def test_default(self, manager):
        assert manager.resolve_profile_type() == "app"

    def test_from_project_settings(self, manager):
        """Test falling back to the project's profile type."""
        manager.workspace.project_path.parent.mkdir(parents=True)
        manager.workspace.project_path.write_text('{"profileType": "api"}', encoding="utf-8")

        assert manager.resolve_profile_type() == "api"


class TestPlanStatus:
    """Test cases for PlanManager.plan_status."""

    def test_no_plan(self, manager):
        result = manager.plan_status()

        assert result["exists"] is False
        assert result["next_suggested_step"] == "generate_plan"

    def test_existing_plan(self, manager):
        """Test describing a stored plan."""
        manager.generate_plan(features=FEATURES)

        result = manager.plan_status()

        assert result["exists"] is True
        assert result["issues"] == []
        assert result["wave_count"] == 3
        assert result["message"] == "Plan generated: 3 features in 3 waves"

    def test_corrupt_plan(self, tmp_path):
        """Test that a broken snapshot becomes an error response."""
        manager = PlanManager(tmp_path)
        manager.workspace.plan_path.parent.mkdir(parents=True)
        manager.workspace.plan_path.write_text("{oops", encoding="utf-8")

        result = manager.plan_status()

        assert result["exists"] is False
        assert result["error"].startswith("Failed to load plan:")


class TestRenderMarkdown:
    """Test cases for PlanManager.render_markdown."""

    def test_no_plan(self, manager):
        assert manager.render_markdown()["error"] == "No plan found"

    def test_render_only(self, manager):
        """Test rendering without writing a file."""
        manager.generate_plan(features=FEATURES)

        result = manager.render_markdown()

        assert result["markdown_path"] is None
        assert "| FEAT-001-DB | S | None | §4 |" in result["content"]

    def test_export_matches_render(self, manager, tmp_path):
        """Test that exporting during generation and rendering later give the same task tables."""
        manager.generate_plan(features=FEATURES, output="docs/PLAN.md")

        exported = (tmp_path / "docs" / "PLAN.md").read_text(encoding="utf-8")
        rendered = manager.render_markdown()["content"]

        assert "| AUTH-001-DB | S | None | §4 |" in exported
        assert exported.split("\n", 3)[3] == rendered.split("\n", 3)[3]

    def test_export_with_explicit_profile(self, manager, tmp_path):
        """Test that an explicit profile still selects the test-first order on export."""
        manager.generate_plan(features=FEATURES, output="plan.md", profile_type="app")

        exported = (tmp_path / "plan.md").read_text(encoding="utf-8")

        assert "| AUTH-001-TEST | M | None | §10 |" in exported
        assert "| FEAT-001-DB | S | None | §4 |" in exported

    def test_render_with_profile(self, manager, tmp_path):
        """Test writing a profile-ordered report."""
        manager.generate_plan(features=FEATURES)

        result = manager.render_markdown(output="plan.md", profile_type="api")

        assert "| FEAT-001-TEST | M | None | §10 |" in result["content"]
        assert (tmp_path / "plan.md").exists()


class TestListPlanTasks:
    """Test cases for PlanManager.list_plan_tasks."""

    def test_no_plan(self, manager):
        assert manager.list_plan_tasks()["error"] == "No plan found"

    def test_all_tasks(self, manager):
        """Test expanding every planned feature in plan order."""
        manager.generate_plan(features=FEATURES)

        result = manager.list_plan_tasks()

        assert result["profile_type"] == "app"
        assert result["count"] == 18
        assert result["tasks"][0]["id"] == "AUTH-001-TEST"
        assert result["tasks"][6]["id"] == "FEAT-001-DB"

    def test_single_feature(self, manager):
        manager.generate_plan(features=FEATURES)

        result = manager.list_plan_tasks(profile_type="cli", feature_id="FEAT-002")

        assert [task["id"] for task in result["tasks"]][0] == "FEAT-002-TEST"
        assert result["count"] == 6

    def test_unknown_feature(self, manager):
        manager.generate_plan(features=FEATURES)

        result = manager.list_plan_tasks(feature_id="NOPE")

        assert result["error"] == "Feature 'NOPE' is not in the plan"


class TestDecomposeFeature:
    """Test cases for PlanManager.decompose_feature."""

    def test_explicit_mode(self, manager):
        result = manager.decompose_feature({"id": "FEAT-009", "name": "Search"}, order_mode="tdd")

        assert result["order_mode"] == "tdd"
        assert result["tasks"][0]["id"] == "FEAT-009-TEST"
        assert result["count"] == 6

    def test_mode_from_profile(self, manager):
        """Test that the profile policy picks the order."""
        result = manager.decompose_feature({"id": "AUTH-001", "type": "common"}, profile_type="app")

        assert result["order_mode"] == "tdd"

    def test_invalid_mode(self, manager):
        result = manager.decompose_feature({"id": "X"}, order_mode="waterfall")

        assert result["error"] == "Unknown order mode 'waterfall'"
        assert result["available_modes"] == ["normal", "tdd"]

    def test_missing_id(self, manager):
        result = manager.decompose_feature({"name": "Nameless"})

        assert result["error"].startswith("Failed to decompose feature")


def test_workflow_guide():
    """Test the workflow guidance payload."""
    guide = PlanManager.get_workflow_guide()

    assert [step["tool"] for step in guide["steps"]] == [
        "generate_plan",
        "plan_status",
        "render_plan_markdown",
        "list_plan_tasks",
    ]
    assert guide["tips"]
