"""Scenario recording: capture the actions issued against a session."""

import logging

from browser_grid.errors import (
    NoActiveRecording,
    RecordingAlreadyActive,
    ScenarioNotFound,
    SessionNotFound,
    StorageError,
)
from browser_grid.models.scenario import ActiveRecording, RecordingOutcome, Scenario
from browser_grid.scenarios import ScenarioLibrary
from browser_grid.session import SessionRegistry

logger = logging.getLogger(__name__)


class ScenarioRecorder:
    """Moves sessions between the idle and recording states.

    While a session is recording, the executor appends every action issued
    against it to ``session.recording.steps``; the recorder only starts and
    finalizes recordings.
    """

    def __init__(self, registry: SessionRegistry, library: ScenarioLibrary):
        self.registry = registry
        self.library = library
        # scenario_id -> session_id of every recording in progress
        self._active: dict[str, str] = {}
        registry.add_close_listener(self._on_session_closed)

    def start_recording(
        self,
        session_id: str | None,
        name: str,
        description: str | None = None,
    ) -> Scenario:
        """Begin recording a new scenario on a session.

        Args:
            session_id: Session to record (defaults to the default session)
            name: Scenario name
            description: Optional scenario description

        Returns:
            The new, empty draft scenario

        Raises:
            SessionNotFound: Unknown session
            RecordingAlreadyActive: The session is already recording
        """
        session = self.registry.resolve(session_id)
        if session.recording is not None:
            raise RecordingAlreadyActive(
                f"Recording already in progress for session '{session.session_id}' "
                f"(scenario '{session.recording.scenario_name}')"
            )

        scenario = Scenario(name=name, description=description, session_id=session.session_id)
        session.recording = ActiveRecording(scenario_id=scenario.scenario_id, scenario_name=name)
        self.library.add_draft(scenario)
        self._active[scenario.scenario_id] = session.session_id

        logger.info(
            "Scenario recording started: %s (%s) on session %s",
            name,
            scenario.scenario_id,
            session.session_id,
        )
        return scenario

    def is_recording(self, scenario_id: str) -> bool:
        return scenario_id in self._active

    def _find_active(self, name: str) -> tuple[str, str] | None:
        for scenario_id, session_id in self._active.items():
            scenario = self.library.find(scenario_id)
            if scenario_id == name or (scenario and scenario.name == name):
                return scenario_id, session_id
        return None

    async def stop_recording(self, name: str, save_scenario: bool = True) -> RecordingOutcome:
        """Finalize a recording and optionally persist it.

        The recording entry is discarded whether or not saving succeeds; a
        failed save leaves the finalized scenario in the library and is
        reported through ``RecordingOutcome.save_error``.

        Args:
            name: Name (or id) of the scenario being recorded
            save_scenario: Persist the finalized scenario

        Raises:
            ScenarioNotFound: No scenario by that name exists
            NoActiveRecording: The scenario exists but is not being recorded
        """
        active = self._find_active(name)
        if active is None:
            if self.library.find(name) is None:
                raise ScenarioNotFound(f"Scenario '{name}' not found")
            raise NoActiveRecording(f"No active recording found for scenario '{name}'")
        scenario_id, session_id = active

        try:
            session = self.registry.resolve(session_id)
        except SessionNotFound:
            session = None
        if session is None or session.recording is None or session.recording.scenario_id != scenario_id:
            self._active.pop(scenario_id, None)
            self.library.drop_draft(scenario_id)
            raise NoActiveRecording(f"Session '{session_id}' is no longer recording scenario '{name}'")

        recording = session.recording
        session.recording = None
        del self._active[scenario_id]
        self.library.finish_draft(scenario_id)

        scenario = self.library.get(scenario_id)
        scenario.set_steps(recording.steps)
        scenario.metadata.duration = recording.elapsed()
        scenario.touch()

        saved = False
        save_error = None
        if save_scenario:
            try:
                await self.library.save(scenario)
                saved = True
            except StorageError as e:
                save_error = e.message
                logger.error("Scenario %s finalized but not saved: %s", scenario.name, e.message)

        logger.info(
            "Scenario recording stopped: %s (%d steps, %.1fs)",
            scenario.name,
            scenario.metadata.total_steps,
            scenario.metadata.duration,
        )
        return RecordingOutcome(scenario=scenario, saved=saved, save_error=save_error)

    def _on_session_closed(self, session_id: str, recording: ActiveRecording | None) -> None:
        # Abandoned recordings are dropped, never materialized
        for scenario_id, owner in list(self._active.items()):
            if owner == session_id:
                del self._active[scenario_id]
                self.library.drop_draft(scenario_id)
                logger.info("Discarded recording of scenario %s with session %s", scenario_id, session_id)
