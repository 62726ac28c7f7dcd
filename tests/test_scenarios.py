"""Tests for scenario storage and the scenario library."""

import asyncio
import json

import pytest

from browser_grid.errors import (
    ConfirmationRequired,
    InvalidArguments,
    RecordingAlreadyActive,
    ScenarioNotFound,
    StorageError,
)
from browser_grid.models.actions import ClickAction, NavigateAction, TypeAction
from browser_grid.models.scenario import Scenario, ScenarioPatch
from browser_grid.scenarios import ScenarioLibrary
from browser_grid.storage import ScenarioStore


def _scenario(name="login", description=None, **kwargs):
    scenario = Scenario(name=name, description=description, **kwargs)
    scenario.set_steps([
        NavigateAction(url="https://example.test/login"),
        TypeAction(selector="#user", text="${username}"),
        ClickAction(selector="#submit"),
    ])
    return scenario


@pytest.fixture
def store(tmp_path):
    return ScenarioStore(tmp_path / "scenarios")


@pytest.fixture
def library(store):
    return ScenarioLibrary(store)


class TestScenarioStore:
    async def test_save_and_load(self, store):
        scenario = _scenario()
        path = await store.save(scenario)
        assert path == store.directory / f"{scenario.scenario_id}.json"

        loaded = await store.load(scenario.scenario_id)
        assert loaded == scenario

    async def test_file_is_json(self, store):
        scenario = _scenario()
        path = await store.save(scenario)
        data = json.loads(path.read_text())
        assert data["name"] == "login"
        assert data["metadata"]["total_steps"] == 3
        assert data["steps"][1] == {
            "action": "type",
            "timeout": None,
            "description": None,
            "selector": "#user",
            "by": "css",
            "text": "${username}",
            "clear": True,
        }

    async def test_load_missing(self, store):
        assert await store.load("scenario-nope") is None

    async def test_load_corrupt(self, store):
        store.directory.mkdir(parents=True)
        (store.directory / "broken.json").write_text("{not json")
        with pytest.raises(StorageError):
            await store.load("broken")

    async def test_delete(self, store):
        scenario = _scenario()
        await store.save(scenario)
        assert await store.delete(scenario.scenario_id) is True
        assert await store.delete(scenario.scenario_id) is False

    async def test_load_all_skips_unreadable(self, store):
        await store.save(_scenario("a"))
        await store.save(_scenario("b"))
        (store.directory / "junk.json").write_text("[]")
        names = sorted(s.name for s in await store.load_all())
        assert names == ["a", "b"]

    async def test_load_all_without_directory(self, store):
        assert await store.load_all() == []

    async def test_save_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = ScenarioStore(blocker / "scenarios")
        with pytest.raises(StorageError):
            await store.save(_scenario())


class TestLibraryLookup:
    async def test_load(self, store, library):
        await store.save(_scenario("a"))
        await store.save(_scenario("b"))
        assert await library.load() == 2
        assert len(library) == 2

    async def test_get_by_id_and_name(self, library):
        scenario = _scenario()
        await library.save(scenario)
        assert library.get(scenario.scenario_id) is scenario
        assert library.get("login") is scenario

    async def test_duplicate_names_latest_modified_wins(self, library):
        old = _scenario()
        await library.save(old)
        await asyncio.sleep(0.01)
        new = _scenario()
        await library.save(new)
        assert library.get("login") is new

    def test_get_missing(self, library):
        with pytest.raises(ScenarioNotFound):
            library.get("nope")


class TestLibraryList:
    async def test_filter_is_case_insensitive(self, library):
        await library.save(_scenario("Login flow"))
        await library.save(_scenario("checkout", description="Buy after LOGIN"))
        await library.save(_scenario("search"))
        names = {s.name for s in library.list_scenarios("login")}
        assert names == {"Login flow", "checkout"}

    async def test_sorted_newest_first_and_limited(self, library):
        for name in ("one", "two", "three"):
            await library.save(_scenario(name))
            await asyncio.sleep(0.01)
        summaries = library.list_scenarios(limit=2)
        assert [s.name for s in summaries] == ["three", "two"]

    @pytest.mark.parametrize("limit", [0, -1])
    async def test_limit_must_be_positive(self, library, limit):
        await library.save(_scenario("one"))
        with pytest.raises(InvalidArguments):
            library.list_scenarios(limit=limit)

    async def test_drafts_are_flagged(self, library):
        library.add_draft(Scenario(name="draft"))
        (summary,) = library.list_scenarios()
        assert summary.recording is True
        assert summary.total_steps == 0


class TestLibraryUpdate:
    async def test_partial_update(self, library, store):
        scenario = _scenario(variables={"username": "bob", "env": "prod"})
        await library.save(scenario)
        before = scenario.metadata.last_modified
        await asyncio.sleep(0.01)

        updated = await library.update("login", ScenarioPatch(description="Sign in", variables={"username": "alice"}))
        assert updated.name == "login"
        assert updated.description == "Sign in"
        assert updated.variables == {"username": "alice", "env": "prod"}
        assert updated.metadata.last_modified > before
        assert (await store.load(scenario.scenario_id)).description == "Sign in"

    async def test_replace_steps(self, library):
        await library.save(_scenario())
        updated = await library.update("login", ScenarioPatch(steps=[{"action": "type", "selector": "#q", "text": "{{term}}"}]))
        assert updated.metadata.total_steps == 1
        assert updated.metadata.variables_used == ["term"]

    async def test_rename(self, library):
        scenario = _scenario()
        await library.save(scenario)
        await library.update("login", ScenarioPatch(name="sign-in"))
        assert library.find("login") is None
        assert library.get("sign-in").scenario_id == scenario.scenario_id

    async def test_update_draft_rejected(self, library):
        draft = Scenario(name="draft")
        library.add_draft(draft)
        with pytest.raises(RecordingAlreadyActive):
            await library.update("draft", ScenarioPatch(description="x"))

    async def test_failed_write_leaves_memory_untouched(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        library = ScenarioLibrary(ScenarioStore(blocker / "scenarios"))
        scenario = _scenario()
        library.add_draft(scenario)
        library.finish_draft(scenario.scenario_id)
        with pytest.raises(StorageError):
            await library.update("login", ScenarioPatch(description="changed"))
        assert library.get("login").description is None


class TestUnsavedTracking:
    async def test_finished_draft_stays_unsaved(self, library):
        scenario = _scenario()
        library.add_draft(scenario)
        library.finish_draft(scenario.scenario_id)
        assert not library.is_draft(scenario.scenario_id)
        assert library.is_unsaved(scenario.scenario_id)

    async def test_save_and_update_clear_the_flag(self, library):
        saved = _scenario("saved")
        library.add_draft(saved)
        library.finish_draft(saved.scenario_id)
        await library.save(saved)
        assert not library.is_unsaved(saved.scenario_id)

        patched = _scenario("patched")
        library.add_draft(patched)
        library.finish_draft(patched.scenario_id)
        await library.update("patched", ScenarioPatch(description="now on disk"))
        assert not library.is_unsaved(patched.scenario_id)

    async def test_failed_save_keeps_the_flag(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        library = ScenarioLibrary(ScenarioStore(blocker / "scenarios"))
        scenario = _scenario()
        library.add_draft(scenario)
        library.finish_draft(scenario.scenario_id)
        with pytest.raises(StorageError):
            await library.save(scenario)
        assert library.is_unsaved(scenario.scenario_id)


class TestLibraryDelete:
    async def test_requires_confirmation(self, library):
        await library.save(_scenario())
        with pytest.raises(ConfirmationRequired):
            await library.delete("login")
        assert [s.name for s in library.list_scenarios()] == ["login"]

    async def test_delete(self, library, store):
        scenario = _scenario()
        await library.save(scenario)
        await library.delete("login", confirm=True)
        assert library.find("login") is None
        assert await store.load(scenario.scenario_id) is None

    async def test_delete_tolerates_missing_file(self, library):
        scenario = _scenario()
        library.add_draft(scenario)
        library.finish_draft(scenario.scenario_id)
        deleted = await library.delete(scenario.scenario_id, confirm=True)
        assert deleted is scenario
        assert len(library) == 0

    async def test_delete_unknown(self, library):
        with pytest.raises(ScenarioNotFound):
            await library.delete("nope", confirm=True)

    async def test_delete_draft_rejected(self, library):
        library.add_draft(Scenario(name="draft"))
        with pytest.raises(RecordingAlreadyActive):
            await library.delete("draft", confirm=True)

    def test_drop_draft_ignores_finalized(self, library):
        scenario = Scenario(name="kept")
        library.add_draft(scenario)
        library.finish_draft(scenario.scenario_id)
        assert library.drop_draft(scenario.scenario_id) is None
        assert library.get("kept") is scenario
