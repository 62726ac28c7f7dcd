"""browser-grid - Concurrent browser sessions with scenario record and replay."""

from browser_grid.config import BrowserConfig, Config
from browser_grid.driver import DriverAdapter, PlaywrightDriver
from browser_grid.errors import BrowserGridError, ErrorKind
from browser_grid.executor import ActionExecutor
from browser_grid.grid import BrowserGrid, OperationResult
from browser_grid.history import ActionHistory
from browser_grid.logs import configure_logging
from browser_grid.models import ErrorPolicy, ExecutionReport, Scenario
from browser_grid.player import ScenarioPlayer
from browser_grid.plugins import PluginRegistry, ToolPlugin
from browser_grid.recording import ScenarioRecorder
from browser_grid.scenarios import ScenarioLibrary
from browser_grid.session import Session, SessionRegistry
from browser_grid.storage import ScenarioStore

__version__ = "0.1.0"

__all__ = [
    "ActionExecutor",
    "ActionHistory",
    "BrowserConfig",
    "BrowserGrid",
    "BrowserGridError",
    "Config",
    "DriverAdapter",
    "ErrorKind",
    "ErrorPolicy",
    "ExecutionReport",
    "OperationResult",
    "PlaywrightDriver",
    "PluginRegistry",
    "Scenario",
    "ScenarioLibrary",
    "ScenarioPlayer",
    "ScenarioRecorder",
    "ScenarioStore",
    "Session",
    "SessionRegistry",
    "ToolPlugin",
    "configure_logging",
]
