"""Error taxonomy shared by every component.

Components raise subclasses of :class:`BrowserGridError`; the executor and
the :class:`~browser_grid.grid.BrowserGrid` boundary turn them into
structured results carrying the :class:`ErrorKind`.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error kinds reported in results."""

    SESSION_NOT_FOUND = "SessionNotFound"
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    DRIVER_INITIALIZATION_ERROR = "DriverInitializationError"
    ELEMENT_NOT_FOUND = "ElementNotFound"
    TIMEOUT = "Timeout"
    SCRIPT_EXECUTION_ERROR = "ScriptExecutionError"
    NAVIGATION_ERROR = "NavigationError"
    INVALID_SELECTOR = "InvalidSelector"
    UNKNOWN_ACTION_TYPE = "UnknownActionType"
    INVALID_ARGUMENTS = "InvalidArguments"
    DRIVER_ERROR = "DriverError"
    RECORDING_ALREADY_ACTIVE = "RecordingAlreadyActive"
    NO_ACTIVE_RECORDING = "NoActiveRecording"
    SCENARIO_NOT_FOUND = "ScenarioNotFound"
    CONFIRMATION_REQUIRED = "ConfirmationRequired"
    UNDEFINED_VARIABLE = "UndefinedVariable"
    STORAGE_ERROR = "StorageError"
    DUPLICATE_PLUGIN = "DuplicatePlugin"
    UNKNOWN_TOOL = "UnknownTool"
    INTERNAL_ERROR = "InternalError"


class BrowserGridError(Exception):
    """Base class for all recoverable errors."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionNotFound(BrowserGridError):
    kind = ErrorKind.SESSION_NOT_FOUND


class DuplicateIdentifier(BrowserGridError):
    kind = ErrorKind.DUPLICATE_IDENTIFIER


class DriverInitializationError(BrowserGridError):
    kind = ErrorKind.DRIVER_INITIALIZATION_ERROR


class ElementNotFound(BrowserGridError):
    kind = ErrorKind.ELEMENT_NOT_FOUND


class ActionTimeout(BrowserGridError):
    kind = ErrorKind.TIMEOUT


class ScriptExecutionError(BrowserGridError):
    kind = ErrorKind.SCRIPT_EXECUTION_ERROR


class NavigationError(BrowserGridError):
    kind = ErrorKind.NAVIGATION_ERROR


class InvalidSelector(BrowserGridError):
    kind = ErrorKind.INVALID_SELECTOR


class UnknownActionType(BrowserGridError):
    kind = ErrorKind.UNKNOWN_ACTION_TYPE


class InvalidArguments(BrowserGridError):
    kind = ErrorKind.INVALID_ARGUMENTS


class DriverError(BrowserGridError):
    """Driver failure that does not fit a more specific kind."""

    kind = ErrorKind.DRIVER_ERROR


class RecordingAlreadyActive(BrowserGridError):
    kind = ErrorKind.RECORDING_ALREADY_ACTIVE


class NoActiveRecording(BrowserGridError):
    kind = ErrorKind.NO_ACTIVE_RECORDING


class ScenarioNotFound(BrowserGridError):
    kind = ErrorKind.SCENARIO_NOT_FOUND


class ConfirmationRequired(BrowserGridError):
    kind = ErrorKind.CONFIRMATION_REQUIRED


class UndefinedVariable(BrowserGridError):
    kind = ErrorKind.UNDEFINED_VARIABLE


class StorageError(BrowserGridError):
    kind = ErrorKind.STORAGE_ERROR


class DuplicatePlugin(BrowserGridError):
    kind = ErrorKind.DUPLICATE_PLUGIN


class UnknownTool(BrowserGridError):
    kind = ErrorKind.UNKNOWN_TOOL
