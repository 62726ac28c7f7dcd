"""Data models for browser-grid."""

from browser_grid.models.actions import (
    Action,
    ActionResult,
    BaseAction,
    ErrorDetail,
    ErrorMode,
    ErrorPolicy,
    ExecutionReport,
    parse_action,
)
from browser_grid.models.scenario import (
    ActiveRecording,
    RecordingOutcome,
    Scenario,
    ScenarioMetadata,
    ScenarioPatch,
    ScenarioSummary,
)
from browser_grid.models.session import ConsoleLogEntry, SessionSummary

__all__ = [
    "Action",
    "ActionResult",
    "ActiveRecording",
    "BaseAction",
    "ConsoleLogEntry",
    "ErrorDetail",
    "ErrorMode",
    "ErrorPolicy",
    "ExecutionReport",
    "RecordingOutcome",
    "Scenario",
    "ScenarioMetadata",
    "ScenarioPatch",
    "ScenarioSummary",
    "SessionSummary",
    "parse_action",
]
