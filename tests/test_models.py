from datetime import datetime, timedelta, timezone

import pytest

from ux_agent.models import (
    ACTION_TYPES,
    ClickAction,
    NavigateAction,
    ScrollAction,
    TestStep,
    TypeAction,
    UXReport,
    WaitAction,
    action_from_dict,
)
from conftest import make_issue


class TestActions:
    def test_to_dict_drops_empty_fields_and_keeps_type(self):
        assert ClickAction(text="Save").to_dict() == {"type": "click", "text": "Save"}

    def test_type_is_fixed_per_variant(self):
        assert TypeAction(text="hi").type == "type"
        assert NavigateAction(url="/x").type == "navigate"
        with pytest.raises(TypeError):
            WaitAction(type="click")

    def test_describe_prefers_description(self):
        action = ClickAction(selector="#go", description="Open the dashboard")
        assert action.describe() == "click: Open the dashboard"

    def test_describe_falls_back_to_fields(self):
        assert ScrollAction(direction="up", amount=200).describe() == "scroll: direction=up, amount=200"

    def test_action_from_dict(self):
        action = action_from_dict({"type": "wait", "timeout": 1000, "description": "settle"})
        assert action == WaitAction(timeout=1000, description="settle")

    def test_action_from_dict_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            action_from_dict({"type": "teleport"})

    def test_all_action_types_listed(self):
        assert set(ACTION_TYPES) == {
            "click", "type", "scroll", "wait", "navigate",
            "hover", "press_key", "select", "clear", "screenshot",
        }


class TestReportSerialization:
    def _report(self):
        start = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        return UXReport(
            scenario="Search for a project",
            start_time=start,
            end_time=start + timedelta(seconds=3),
            duration=3000,
            status="partial",
            steps=[
                TestStep(1, ClickAction(text="Search"), "success", 120),
                TestStep(2, WaitAction(timeout=0, description="Error occurred"), "failure", 5, notes="boom"),
            ],
            issues=[make_issue("a", "major", reproduction_steps=["open home", "click search"])],
            summary="Completed 2 steps.",
            recommendations=["Fix it"],
        )

    def test_to_dict_uses_wire_names(self):
        data = self._report().to_dict()
        assert data["startTime"] == "2024-05-01T12:00:00+00:00"
        assert data["steps"][0] == {
            "stepNumber": 1,
            "action": {"type": "click", "text": "Search"},
            "result": "success",
            "duration": 120,
        }
        assert data["issues"][0]["reproductionSteps"] == ["open home", "click search"]

    def test_round_trip(self):
        report = self._report()
        assert UXReport.from_dict(report.to_dict()) == report

    def test_report_is_immutable(self):
        report = self._report()
        with pytest.raises(AttributeError):
            report.status = "passed"

    def test_unknown_report_status_is_rejected(self):
        data = self._report().to_dict()
        data["status"] = "skipped"
        with pytest.raises(ValueError):
            UXReport.from_dict(data)


class TestStepValidation:
    def test_unknown_result_is_rejected(self):
        with pytest.raises(ValueError):
            TestStep(1, WaitAction(), "ok", 10)
