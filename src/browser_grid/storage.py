"""Durable scenario storage: one JSON file per scenario."""

import logging
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from browser_grid.errors import StorageError
from browser_grid.models.scenario import Scenario

logger = logging.getLogger(__name__)


class ScenarioStore:
    """Reads and writes scenarios under ``<directory>/<scenario_id>.json``.

    Writes replace the whole file; concurrent writers to the same scenario
    are last-writer-wins.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _scenario_file(self, scenario_id: str) -> Path:
        """Get the file path for a scenario."""
        return self.directory / f"{scenario_id}.json"

    async def save(self, scenario: Scenario) -> Path:
        """Create or overwrite a scenario's file.

        Raises:
            StorageError: The file could not be written
        """
        path = self._scenario_file(scenario.scenario_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "w") as f:
                await f.write(scenario.model_dump_json(indent=2))
        except OSError as e:
            raise StorageError(f"Failed to save scenario '{scenario.name}': {e}") from e

        logger.debug("Scenario saved: %s -> %s", scenario.name, path)
        return path

    async def load(self, scenario_id: str) -> Scenario | None:
        """Read one scenario.

        Returns:
            The Scenario, or None if no file exists

        Raises:
            StorageError: The file exists but cannot be read or parsed
        """
        path = self._scenario_file(scenario_id)
        if not path.exists():
            return None

        try:
            async with aiofiles.open(path) as f:
                content = await f.read()
            return Scenario.model_validate_json(content)
        except (OSError, ValidationError) as e:
            raise StorageError(f"Failed to read scenario file {path}: {e}") from e

    async def delete(self, scenario_id: str) -> bool:
        """Remove a scenario's file.

        Returns:
            True if a file was removed, False if it was already missing

        Raises:
            StorageError: The file exists but could not be removed
        """
        path = self._scenario_file(scenario_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete scenario file {path}: {e}") from e
        return True

    async def load_all(self) -> list[Scenario]:
        """Read every stored scenario, skipping unreadable files."""
        if not self.directory.exists():
            return []

        scenarios = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                scenario = await self.load(path.stem)
            except StorageError as e:
                logger.warning("Skipping scenario file: %s", e)
                continue
            if scenario:
                scenarios.append(scenario)
        return scenarios
