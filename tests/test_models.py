"""Tests for Pydantic models."""

import pytest

from browser_grid.errors import ErrorKind, InvalidArguments, UnknownActionType
from browser_grid.models.actions import (
    ClickAction,
    ErrorMode,
    ErrorPolicy,
    NavigateAction,
    ScreenshotAction,
    TypeAction,
    WaitForUrlAction,
    parse_action,
)
from browser_grid.models.scenario import Scenario, ScenarioPatch


class TestParseAction:
    def test_navigate(self):
        action = parse_action({"action": "navigate", "url": "https://example.com"})
        assert isinstance(action, NavigateAction)
        assert action.wait_until == "load"
        assert action.page_load is True

    def test_element_action_defaults(self):
        action = parse_action({"action": "click", "selector": "#btn"})
        assert isinstance(action, ClickAction)
        assert action.by == "css"
        assert action.timeout is None
        assert action.page_load is False

    def test_camel_case_alias(self):
        action = parse_action({"action": "doubleClick", "selector": "#row"})
        assert action.action == "double_click"

    def test_legacy_names(self):
        assert isinstance(parse_action({"action": "navigate_to", "url": "https://a.test"}), NavigateAction)
        assert isinstance(parse_action({"action": "take_screenshot"}), ScreenshotAction)
        action = parse_action({"action": "wait_for_page_change", "pattern": "**/done"})
        assert isinstance(action, WaitForUrlAction)

    def test_type_accepts_value(self):
        action = parse_action({"action": "type", "selector": "#q", "value": "hello"})
        assert isinstance(action, TypeAction)
        assert action.text == "hello"
        assert action.clear is True

    def test_model_passes_through(self):
        action = ClickAction(selector="#btn")
        assert parse_action(action) is action

    def test_unknown_action(self):
        with pytest.raises(UnknownActionType):
            parse_action({"action": "teleport"})

    def test_missing_tag(self):
        with pytest.raises(UnknownActionType):
            parse_action({"selector": "#btn"})

    def test_not_a_mapping(self):
        with pytest.raises(UnknownActionType):
            parse_action(["click", "#btn"])

    def test_missing_required_field(self):
        with pytest.raises(InvalidArguments) as exc:
            parse_action({"action": "click"})
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENTS
        assert "selector" in exc.value.message

    def test_invalid_selector_kind(self):
        with pytest.raises(InvalidArguments):
            parse_action({"action": "click", "selector": "#btn", "by": "magic"})

    def test_non_positive_timeout(self):
        with pytest.raises(InvalidArguments):
            parse_action({"action": "click", "selector": "#btn", "timeout": 0})

    def test_describe(self):
        assert ClickAction(selector="#btn").describe() == "click on #btn"
        assert ClickAction(selector="#btn", description="Submit form").describe() == "Submit form"
        assert NavigateAction(url="https://a.test").describe() == "navigate"


class TestErrorPolicy:
    def test_defaults_halt(self):
        assert ErrorPolicy().mode is ErrorMode.HALT_ON_FIRST_ERROR

    def test_stop_on_error_wins(self):
        policy = ErrorPolicy(continue_on_error=True, stop_on_error=True)
        assert policy.mode is ErrorMode.HALT_ON_FIRST_ERROR

    def test_continue(self):
        policy = ErrorPolicy(continue_on_error=True, stop_on_error=False)
        assert policy.mode is ErrorMode.CONTINUE_AND_COLLECT

    def test_both_false_halts(self):
        policy = ErrorPolicy(continue_on_error=False, stop_on_error=False)
        assert policy.mode is ErrorMode.HALT_ON_FIRST_ERROR


class TestScenario:
    def test_creation(self):
        scenario = Scenario(name="login")
        assert scenario.scenario_id.startswith("scenario-")
        assert scenario.steps == []
        assert scenario.metadata.total_steps == 0
        assert scenario.metadata.last_used is None

    def test_total_steps_synced_on_validation(self):
        scenario = Scenario.model_validate({
            "name": "login",
            "steps": [
                {"action": "navigate", "url": "https://a.test"},
                {"action": "click", "selector": "#go"},
            ],
            "metadata": {"total_steps": 7},
        })
        assert scenario.metadata.total_steps == 2

    def test_legacy_step_names_are_canonicalised(self):
        scenario = Scenario.model_validate({
            "name": "old",
            "steps": [{"action": "navigate_to", "url": "https://a.test"}],
        })
        assert scenario.steps[0].action == "navigate"

    def test_set_steps_tracks_variables(self):
        scenario = Scenario(name="login")
        scenario.set_steps([
            TypeAction(selector="#user", text="${username}"),
            TypeAction(selector="#pass", text="{{password}}"),
            ClickAction(selector="#submit"),
        ])
        assert scenario.metadata.total_steps == 3
        assert scenario.metadata.variables_used == ["username", "password"]

    def test_serialization_roundtrip(self):
        scenario = Scenario(name="login", variables={"username": "bob"})
        scenario.set_steps([NavigateAction(url="https://a.test"), TypeAction(selector="#u", text="${username}")])
        restored = Scenario.model_validate_json(scenario.model_dump_json())
        assert restored.scenario_id == scenario.scenario_id
        assert [s.action for s in restored.steps] == ["navigate", "type"]
        assert restored.steps[1].text == "${username}"
        assert restored.metadata.total_steps == 2

    def test_summary(self):
        scenario = Scenario(name="login", description="Log in")
        summary = scenario.summary(recording=True)
        assert summary.name == "login"
        assert summary.total_steps == 0
        assert summary.recording is True


class TestScenarioPatch:
    def test_empty_patch(self):
        patch = ScenarioPatch()
        assert patch.name is None
        assert patch.steps is None

    def test_steps_validated(self):
        patch = ScenarioPatch(steps=[{"action": "getTitle"}])
        assert patch.steps[0].action == "get_title"
