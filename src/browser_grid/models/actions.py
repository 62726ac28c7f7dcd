"""Action descriptors, per-action results and execution reports."""

from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError

from browser_grid.errors import ErrorKind, InvalidArguments, UnknownActionType

SelectorKind = Literal["css", "xpath", "id", "name", "className", "tagName", "text"]


class BaseAction(BaseModel):
    """Fields shared by every action descriptor."""

    # Actions that wait on page loads get the longer navigation timeout
    page_load: ClassVar[bool] = False

    action: str
    timeout: int | None = Field(default=None, gt=0, description="Timeout in milliseconds.")
    description: str | None = Field(default=None, description="Human-readable note, used in reports only.")

    def describe(self) -> str:
        """Short description for reports."""
        if self.description:
            return self.description
        selector = getattr(self, "selector", None)
        return f"{self.action} on {selector}" if selector else self.action


class ElementAction(BaseAction):
    selector: str = Field(min_length=1, description="Element selector.")
    by: SelectorKind = Field(default="css", description="How to interpret the selector.")


class NavigateAction(BaseAction):
    page_load: ClassVar[bool] = True

    action: Literal["navigate"] = "navigate"
    url: str = Field(min_length=1, description="The URL to navigate to.")
    wait_until: Literal["commit", "domcontentloaded", "load", "networkidle"] = "load"


class ClickAction(ElementAction):
    action: Literal["click"] = "click"


class DoubleClickAction(ElementAction):
    action: Literal["double_click"] = "double_click"


class RightClickAction(ElementAction):
    action: Literal["right_click"] = "right_click"


class HoverAction(ElementAction):
    action: Literal["hover"] = "hover"


class TypeAction(ElementAction):
    action: Literal["type"] = "type"
    text: str = Field(validation_alias=AliasChoices("text", "value"), description="Text to type.")
    clear: bool = Field(default=True, description="Clear the field before typing.")


class PressAction(ElementAction):
    action: Literal["press"] = "press"
    key: str = Field(min_length=1, description="Key to press (e.g. 'Enter', 'Tab').")


class SelectOptionAction(ElementAction):
    action: Literal["select_option"] = "select_option"
    value: str | None = None
    label: str | None = None
    index: int | None = None


class DragAndDropAction(ElementAction):
    action: Literal["drag_and_drop"] = "drag_and_drop"
    target_selector: str = Field(min_length=1, description="Drop target selector.")
    target_by: SelectorKind = "css"


class FormField(BaseModel):
    selector: str = Field(min_length=1, description="Field selector.")
    value: str = Field(default="", description="Value to fill in.")
    by: SelectorKind = "css"


class FillFormAction(BaseAction):
    """Fill several fields in order, then optionally submit the form.

    Without ``submit_selector`` the first submit button on the page is clicked.
    """

    action: Literal["fill_form"] = "fill_form"
    fields: dict[str, FormField] = Field(min_length=1, description="Fields to fill, keyed by a display name.")
    submit: bool = Field(
        default=False,
        validation_alias=AliasChoices("submit", "submit_after", "submitAfter"),
        description="Submit the form after filling.",
    )
    submit_selector: str | None = Field(
        default=None,
        validation_alias=AliasChoices("submit_selector", "submitSelector"),
        description="Submit button selector (CSS).",
    )


class CheckElementExistsAction(ElementAction):
    action: Literal["check_element_exists"] = "check_element_exists"


class ListElementsAction(BaseAction):
    """List matching elements; interactive elements when no selector is given."""

    action: Literal["list_elements"] = "list_elements"
    selector: str | None = Field(default=None, description="Elements to list. Default: buttons, inputs and links.")
    by: SelectorKind = "css"
    limit: int = Field(
        default=50,
        ge=1,
        le=500,
        validation_alias=AliasChoices("limit", "element_limit", "elementLimit"),
        description="Maximum number of elements to return.",
    )
    include_hidden: bool = Field(
        default=False,
        validation_alias=AliasChoices("include_hidden", "includeHidden"),
    )


class ExecuteScriptAction(BaseAction):
    action: Literal["execute_script"] = "execute_script"
    script: str = Field(min_length=1, description="JavaScript to execute.")
    args: list[Any] = Field(default_factory=list, description="Arguments passed to the script.")


class ScreenshotAction(BaseAction):
    page_load: ClassVar[bool] = True

    action: Literal["screenshot"] = "screenshot"
    filename: str | None = Field(default=None, description="Optional file to write the PNG to.")
    full_page: bool = False
    selector: str | None = Field(default=None, description="Optional element to capture.")
    by: SelectorKind = "css"


class WaitAction(BaseAction):
    """Wait for an element state, or sleep for ``duration_ms`` when no selector is given."""

    action: Literal["wait"] = "wait"
    selector: str | None = None
    by: SelectorKind = "css"
    state: Literal["attached", "detached", "visible", "hidden"] = "visible"
    duration_ms: int | None = Field(default=None, ge=0)


class WaitForUrlAction(BaseAction):
    page_load: ClassVar[bool] = True

    action: Literal["wait_for_url"] = "wait_for_url"
    pattern: str = Field(min_length=1, description="URL glob or substring to wait for.")


class GetTextAction(ElementAction):
    action: Literal["get_text"] = "get_text"


class GetTitleAction(BaseAction):
    action: Literal["get_title"] = "get_title"


class GetUrlAction(BaseAction):
    action: Literal["get_url"] = "get_url"


ACTION_MODELS: dict[str, type[BaseAction]] = {
    "navigate": NavigateAction,
    "click": ClickAction,
    "double_click": DoubleClickAction,
    "right_click": RightClickAction,
    "hover": HoverAction,
    "type": TypeAction,
    "press": PressAction,
    "select_option": SelectOptionAction,
    "drag_and_drop": DragAndDropAction,
    "fill_form": FillFormAction,
    "check_element_exists": CheckElementExistsAction,
    "list_elements": ListElementsAction,
    "execute_script": ExecuteScriptAction,
    "screenshot": ScreenshotAction,
    "wait": WaitAction,
    "wait_for_url": WaitForUrlAction,
    "get_text": GetTextAction,
    "get_title": GetTitleAction,
    "get_url": GetUrlAction,
}

# camelCase names and legacy names from older scenario files
ACTION_ALIASES = {
    "navigate_to": "navigate",
    "navigateTo": "navigate",
    "doubleClick": "double_click",
    "rightClick": "right_click",
    "typeText": "type",
    "selectOption": "select_option",
    "dragAndDrop": "drag_and_drop",
    "fillForm": "fill_form",
    "checkElementExists": "check_element_exists",
    "element_exists": "check_element_exists",
    "listElements": "list_elements",
    "get_interactive_elements": "list_elements",
    "getInteractiveElements": "list_elements",
    "executeScript": "execute_script",
    "take_screenshot": "screenshot",
    "takeScreenshot": "screenshot",
    "wait_for_page_change": "wait_for_url",
    "waitForUrl": "wait_for_url",
    "getText": "get_text",
    "getTitle": "get_title",
    "getUrl": "get_url",
}

Action = Annotated[
    Union[
        NavigateAction,
        ClickAction,
        DoubleClickAction,
        RightClickAction,
        HoverAction,
        TypeAction,
        PressAction,
        SelectOptionAction,
        DragAndDropAction,
        FillFormAction,
        CheckElementExistsAction,
        ListElementsAction,
        ExecuteScriptAction,
        ScreenshotAction,
        WaitAction,
        WaitForUrlAction,
        GetTextAction,
        GetTitleAction,
        GetUrlAction,
    ],
    Field(discriminator="action"),
]

_action_adapter = TypeAdapter(Action)


def normalize_action_name(name: str) -> str:
    """Map aliases onto canonical action names."""
    return ACTION_ALIASES.get(name, name)


def normalize_action_data(data: Any) -> Any:
    """Rewrite the ``action`` tag of a raw descriptor to its canonical name."""
    if isinstance(data, dict) and isinstance(data.get("action"), str):
        name = normalize_action_name(data["action"])
        if name != data["action"]:
            data = {**data, "action": name}
    return data


def parse_action(data: Any) -> BaseAction:
    """Validate a raw action descriptor.

    Raises:
        UnknownActionType: The descriptor has no recognised ``action`` tag
        InvalidArguments: Required parameters are missing or malformed
    """
    if isinstance(data, BaseAction):
        return data
    if not isinstance(data, dict):
        raise UnknownActionType(f"Action descriptor must be a mapping, got {type(data).__name__}")

    name = data.get("action")
    if not isinstance(name, str) or normalize_action_name(name) not in ACTION_MODELS:
        raise UnknownActionType(f"Unknown action: {name!r}")

    try:
        return _action_adapter.validate_python(normalize_action_data(data))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'action'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidArguments(f"Invalid '{normalize_action_name(name)}' action: {problems}") from e


class ErrorMode(str, Enum):
    """How a sequence reacts to a failing action."""

    HALT_ON_FIRST_ERROR = "halt_on_first_error"
    CONTINUE_AND_COLLECT = "continue_and_collect"


class ErrorPolicy(BaseModel):
    """Caller-facing error flags for sequence execution."""

    continue_on_error: bool = False
    stop_on_error: bool = True

    @property
    def mode(self) -> ErrorMode:
        # stop_on_error wins; continuing requires stop_on_error=False and continue_on_error=True
        if not self.stop_on_error and self.continue_on_error:
            return ErrorMode.CONTINUE_AND_COLLECT
        return ErrorMode.HALT_ON_FIRST_ERROR


class ErrorDetail(BaseModel):
    kind: ErrorKind
    message: str


class ActionResult(BaseModel):
    """Outcome of one attempted action."""

    index: int
    action: str
    description: str | None = None
    success: bool
    message: str = ""
    data: Any = None
    error: ErrorDetail | None = None
    duration_ms: float | None = None


class ExecutionReport(BaseModel):
    """Ordered results of an action sequence."""

    session_id: str | None = None
    mode: ErrorMode
    success: bool
    results: list[ActionResult] = Field(default_factory=list)
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    message: str = ""

    @property
    def first_failure(self) -> ActionResult | None:
        return next((r for r in self.results if not r.success), None)
