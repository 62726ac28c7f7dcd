"""Scenario playback through the action executor."""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from browser_grid.errors import StorageError
from browser_grid.executor import ActionExecutor
from browser_grid.models.actions import BaseAction, ErrorPolicy, ExecutionReport, parse_action
from browser_grid.models.scenario import Scenario
from browser_grid.scenarios import ScenarioLibrary
from browser_grid.session import SessionRegistry
from browser_grid.variables import substitute

logger = logging.getLogger(__name__)


def resolve_steps(scenario: Scenario, overrides: Mapping[str, Any] | None = None) -> list[BaseAction]:
    """Substitute variables into a scenario's steps.

    Values come from ``overrides`` first, then the scenario's stored
    defaults. The scenario itself is never modified.

    Raises:
        UndefinedVariable: A placeholder has no value in either source
    """
    values = {**scenario.variables, **(overrides or {})}
    return [parse_action(substitute(step.model_dump(), values)) for step in scenario.steps]


class ScenarioPlayer:
    """Replays stored scenarios against a session."""

    def __init__(self, registry: SessionRegistry, executor: ActionExecutor, library: ScenarioLibrary):
        self.registry = registry
        self.executor = executor
        self.library = library

    async def play(
        self,
        name_or_id: str,
        session_id: str | None = None,
        variables: Mapping[str, Any] | None = None,
        policy: ErrorPolicy | None = None,
    ) -> ExecutionReport:
        """Replay a scenario.

        When no session is named, a temporary headless session is opened for
        the replay and closed afterwards.

        Args:
            name_or_id: Scenario name or id
            session_id: Session to replay against
            variables: Placeholder values overriding the scenario defaults
            policy: Error policy (defaults to halting on the first error)

        Returns:
            ExecutionReport of the replayed steps

        Raises:
            ScenarioNotFound: No such scenario
            UndefinedVariable: A placeholder has no value (nothing is dispatched)
            SessionNotFound: session_id names no live session
            DriverInitializationError: The temporary session could not be started
        """
        scenario = self.library.get(name_or_id)
        steps = resolve_steps(scenario, variables)

        temporary = None
        if session_id is None:
            browser_config = self.registry.config.browser.model_copy(update={"headless": True})
            session = await self.registry.open(
                browser_config,
                session_id=f"replay-{scenario.scenario_id}-{uuid.uuid4().hex[:8]}",
            )
            temporary = session.session_id
            session_id = temporary
        else:
            self.registry.resolve(session_id)

        logger.info("Replaying scenario %s (%d steps) on session %s", scenario.name, len(steps), session_id)
        try:
            report = await self.executor.execute(session_id, steps, policy, source="playback")
        finally:
            if temporary:
                await self.registry.close(temporary)

        scenario.metadata.last_used = datetime.utcnow()
        if not self.library.is_unsaved(scenario.scenario_id):
            try:
                await self.library.store.save(scenario)
            except StorageError as e:
                logger.warning("Could not record last use of scenario %s: %s", scenario.name, e.message)

        logger.info(
            "Scenario replay finished: %s (%d succeeded, %d failed)",
            scenario.name,
            report.succeeded,
            report.failed,
        )
        return report
