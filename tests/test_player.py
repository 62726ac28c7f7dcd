"""Tests for scenario playback."""

import pytest

from browser_grid.errors import ErrorKind, ScenarioNotFound, SessionNotFound, UndefinedVariable
from browser_grid.models.actions import ClickAction, ErrorPolicy, ExecuteScriptAction, NavigateAction, TypeAction
from browser_grid.models.scenario import Scenario, ScenarioPatch
from browser_grid.player import ScenarioPlayer, resolve_steps
from browser_grid.recording import ScenarioRecorder
from browser_grid.scenarios import ScenarioLibrary
from browser_grid.storage import ScenarioStore


def _login(**variables):
    scenario = Scenario(name="login", variables=variables)
    scenario.set_steps([
        NavigateAction(url="https://{{host}}/login"),
        TypeAction(selector="#user", text="${username}"),
        ClickAction(selector="#submit"),
    ])
    return scenario


@pytest.fixture
def library(tmp_path):
    return ScenarioLibrary(ScenarioStore(tmp_path / "scenarios"))


@pytest.fixture
def player(registry, executor, library):
    return ScenarioPlayer(registry, executor, library)


class TestResolveSteps:
    def test_overrides_win_over_defaults(self):
        scenario = _login(host="example.test", username="bob")
        steps = resolve_steps(scenario, {"username": "alice"})
        assert steps[0].url == "https://example.test/login"
        assert steps[1].text == "alice"

    def test_scenario_is_not_modified(self):
        scenario = _login(host="example.test", username="bob")
        resolve_steps(scenario, {"username": "alice"})
        assert scenario.steps[1].text == "${username}"
        assert scenario.variables == {"host": "example.test", "username": "bob"}

    def test_undefined(self):
        with pytest.raises(UndefinedVariable):
            resolve_steps(_login(host="example.test"))


class TestPlay:
    async def test_replay_on_named_session(self, player, registry, library):
        await library.save(_login(host="example.test", username="bob"))
        session = await registry.open(session_id="s2")

        report = await player.play("login", "s2", {"username": "alice"})
        assert report.success is True
        assert report.session_id == "s2"
        assert session.driver.calls == [
            ("navigate", "https://example.test/login"),
            ("type_text", "#user", "alice"),
            ("click", "#submit"),
        ]

    async def test_undefined_variable_dispatches_nothing(self, player, registry, library):
        await library.save(_login(host="example.test"))
        session = await registry.open(session_id="s1")
        with pytest.raises(UndefinedVariable):
            await player.play("login", "s1")
        assert session.driver.calls == []

    async def test_temporary_session(self, player, registry, library, factory, config):
        config.browser.headless = False
        await library.save(_login(host="example.test", username="bob"))

        report = await player.play("login")
        assert report.success is True
        assert report.session_id.startswith("replay-scenario-")
        driver = factory.drivers[-1]
        assert driver.config.headless is True
        assert driver.closed is True
        assert report.session_id not in registry

    async def test_policy_is_respected(self, player, registry, library):
        await library.save(_login(host="example.test", username="bob"))
        session = await registry.open(session_id="s1")
        session.driver.missing.add("#user")

        halted = await player.play("login", "s1")
        assert len(halted.results) == 2
        assert halted.success is False
        assert halted.first_failure.error.kind == ErrorKind.ELEMENT_NOT_FOUND

        collected = await player.play("login", "s1", policy=ErrorPolicy(continue_on_error=True, stop_on_error=False))
        assert len(collected.results) == 3
        assert collected.failed == 1

    async def test_last_used_is_saved(self, player, registry, library):
        scenario = _login(host="example.test", username="bob")
        await library.save(scenario)
        await registry.open(session_id="s1")
        assert scenario.metadata.last_used is None

        await player.play("login", "s1")
        assert scenario.metadata.last_used is not None
        stored = await library.store.load(scenario.scenario_id)
        assert stored.metadata.last_used == scenario.metadata.last_used

    async def test_scenario_stopped_without_saving_stays_off_disk(self, player, registry, executor, library):
        recorder = ScenarioRecorder(registry, library)
        await registry.open(session_id="s1")
        recorder.start_recording("s1", "scratch")
        await executor.run("s1", {"action": "click", "selector": "#go"})
        outcome = await recorder.stop_recording("scratch", save_scenario=False)
        scenario_id = outcome.scenario.scenario_id

        await player.play("scratch", "s1")
        assert outcome.scenario.metadata.last_used is not None
        assert await library.store.load(scenario_id) is None

        await library.update("scratch", ScenarioPatch(description="keep it"))
        assert not library.is_unsaved(scenario_id)
        await player.play("scratch", "s1")
        stored = await library.store.load(scenario_id)
        assert stored.metadata.last_used is not None

    async def test_template_literal_script(self, player, registry, library):
        scenario = Scenario(name="title")
        scenario.set_steps([ExecuteScriptAction(script="return `${document.title} on ${location.host}`")])
        await library.save(scenario)
        assert scenario.metadata.variables_used == []
        session = await registry.open(session_id="s1")

        report = await player.play("title", "s1")
        assert report.success is True
        assert session.driver.calls == [("execute_script", "return `${document.title} on ${location.host}`")]

    async def test_unknown_scenario(self, player):
        with pytest.raises(ScenarioNotFound):
            await player.play("nope")

    async def test_unknown_session(self, player, library):
        await library.save(_login(host="example.test", username="bob"))
        with pytest.raises(SessionNotFound):
            await player.play("login", "ghost")
