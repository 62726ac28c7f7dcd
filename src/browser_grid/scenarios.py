"""In-memory scenario library backed by the scenario store."""

import logging

from browser_grid.errors import (
    ConfirmationRequired,
    InvalidArguments,
    RecordingAlreadyActive,
    ScenarioNotFound,
)
from browser_grid.models.scenario import Scenario, ScenarioPatch, ScenarioSummary
from browser_grid.storage import ScenarioStore
from browser_grid.variables import find_variables

logger = logging.getLogger(__name__)


class ScenarioLibrary:
    """Index of every known scenario, including drafts still being recorded.

    Scenarios are looked up by id or by name. Names are not unique; when
    several scenarios share a name, the most recently modified one wins.
    """

    def __init__(self, store: ScenarioStore):
        self.store = store
        self._scenarios: dict[str, Scenario] = {}
        self._drafts: set[str] = set()
        # Scenarios with no file on disk yet: drafts, and recordings stopped without a successful save
        self._unsaved: set[str] = set()

    def __len__(self) -> int:
        return len(self._scenarios)

    async def load(self) -> int:
        """Load every persisted scenario into memory.

        Returns:
            Number of scenarios loaded
        """
        scenarios = await self.store.load_all()
        for scenario in scenarios:
            self._scenarios[scenario.scenario_id] = scenario
        logger.info("Loaded %d scenarios from %s", len(scenarios), self.store.directory)
        return len(scenarios)

    def add_draft(self, scenario: Scenario) -> None:
        """Register a scenario that is being recorded (not yet persisted)."""
        self._scenarios[scenario.scenario_id] = scenario
        self._drafts.add(scenario.scenario_id)
        self._unsaved.add(scenario.scenario_id)

    def finish_draft(self, scenario_id: str) -> None:
        """Mark a draft as finalized; it stays in the library."""
        self._drafts.discard(scenario_id)

    def drop_draft(self, scenario_id: str) -> Scenario | None:
        """Forget an abandoned draft. Finalized scenarios are left alone."""
        if scenario_id not in self._drafts:
            return None
        self._drafts.discard(scenario_id)
        self._unsaved.discard(scenario_id)
        return self._scenarios.pop(scenario_id, None)

    def is_draft(self, scenario_id: str) -> bool:
        return scenario_id in self._drafts

    def is_unsaved(self, scenario_id: str) -> bool:
        """True if the scenario has never been written to the store."""
        return scenario_id in self._unsaved

    def find(self, name_or_id: str) -> Scenario | None:
        """Look up a scenario by id, then by name."""
        scenario = self._scenarios.get(name_or_id)
        if scenario:
            return scenario
        matches = [s for s in self._scenarios.values() if s.name == name_or_id]
        if not matches:
            return None
        return max(matches, key=lambda s: s.metadata.last_modified)

    def get(self, name_or_id: str) -> Scenario:
        """Like find(), but raises ScenarioNotFound."""
        scenario = self.find(name_or_id)
        if scenario is None:
            raise ScenarioNotFound(f"Scenario '{name_or_id}' not found")
        return scenario

    def list_scenarios(self, filter: str | None = None, limit: int = 50) -> list[ScenarioSummary]:
        """Scenarios whose name or description contains ``filter``.

        Args:
            filter: Case-insensitive substring (None or empty matches all)
            limit: Maximum number of entries (newest first), at least 1

        Returns:
            Summaries sorted by last_modified, newest first

        Raises:
            InvalidArguments: limit is zero or negative
        """
        if limit <= 0:
            raise InvalidArguments(f"limit must be a positive integer, got {limit}")
        needle = (filter or "").lower()
        matches = [
            s
            for s in self._scenarios.values()
            if not needle or needle in s.name.lower() or needle in (s.description or "").lower()
        ]
        matches.sort(key=lambda s: s.metadata.last_modified, reverse=True)
        return [s.summary(recording=self.is_draft(s.scenario_id)) for s in matches[:limit]]

    async def save(self, scenario: Scenario) -> None:
        """Persist a scenario and index it."""
        await self.store.save(scenario)
        self._scenarios[scenario.scenario_id] = scenario
        self._unsaved.discard(scenario.scenario_id)
        logger.info("Scenario saved: %s (%s)", scenario.name, scenario.scenario_id)

    async def update(self, name_or_id: str, patch: ScenarioPatch) -> Scenario:
        """Apply a partial update and re-persist.

        Fields left as None are untouched; ``variables`` are merged into the
        existing defaults. The in-memory copy only changes once the write
        succeeds.

        Raises:
            ScenarioNotFound: No such scenario
            RecordingAlreadyActive: The scenario is still being recorded
            StorageError: The updated scenario could not be written
        """
        scenario = self.get(name_or_id)
        if scenario.scenario_id in self._drafts:
            raise RecordingAlreadyActive(f"Scenario '{scenario.name}' is still being recorded")

        updated = scenario.model_copy(deep=True)
        if patch.name is not None:
            updated.name = patch.name
        if patch.description is not None:
            updated.description = patch.description
        if patch.steps is not None:
            updated.set_steps(patch.steps)
        if patch.variables is not None:
            updated.variables = {**updated.variables, **patch.variables}
        updated.metadata.variables_used = find_variables(updated.steps)
        updated.touch()

        await self.store.save(updated)
        self._scenarios[updated.scenario_id] = updated
        self._unsaved.discard(updated.scenario_id)
        logger.info("Scenario updated: %s (%s)", updated.name, updated.scenario_id)
        return updated

    async def delete(self, name_or_id: str, confirm: bool = False) -> Scenario:
        """Remove a scenario from memory and storage.

        Raises:
            ScenarioNotFound: No such scenario
            ConfirmationRequired: confirm is not True
            RecordingAlreadyActive: The scenario is still being recorded
            StorageError: The persisted file exists but could not be removed
        """
        scenario = self.get(name_or_id)
        if not confirm:
            raise ConfirmationRequired(
                f"Confirmation required to delete scenario '{scenario.name}'. Set 'confirm: true' in arguments."
            )
        if scenario.scenario_id in self._drafts:
            raise RecordingAlreadyActive(f"Scenario '{scenario.name}' is still being recorded")

        if not await self.store.delete(scenario.scenario_id):
            logger.debug("No persisted file for scenario %s", scenario.scenario_id)
        self._scenarios.pop(scenario.scenario_id, None)
        self._unsaved.discard(scenario.scenario_id)
        logger.info("Scenario deleted: %s (%s)", scenario.name, scenario.scenario_id)
        return scenario
