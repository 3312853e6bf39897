"""Argument schema for the generate tool.

The pydantic models here are the single source of truth for which fields a
caller may send, their types and ranges, and the JSON schema advertised to
MCP clients. ``validate_arguments`` wraps them with default injection, the
unknown-field policy and cross-field rules, and turns every failure into a
structured ``ValidationError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Annotated, Any, Literal, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from responses_bridge.errors import FieldIssue, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from responses_bridge.config import Settings

_ModelT = TypeVar("_ModelT", bound=BaseModel)

Effort = Literal["minimal", "low", "medium", "high"]
Verbosity = Literal["low", "medium", "high"]

#: Current tag for the built-in web search tool.
WEB_SEARCH_TYPE = "web_search_preview"
#: Object ``type`` values rewritten to ``WEB_SEARCH_TYPE``.
LEGACY_WEB_SEARCH_TYPES = frozenset({"web_search"})
#: Shorthand strings that all mean built-in web search.
WEB_SEARCH_ALIASES = frozenset(
    {"web_search", "web_search_preview", "web-search", "websearch"}
)


# --- Tool declarations ---


class _PassThrough(BaseModel):
    """Object whose undeclared keys are kept verbatim."""

    model_config = ConfigDict(extra="allow")


class FunctionTool(_PassThrough):
    type: Literal["function"]
    name: str = Field(min_length=1)
    description: str | None = None
    parameters: dict[str, Any] | None = None
    strict: bool | None = None


class WebSearchTool(_PassThrough):
    type: Literal["web_search_preview", "web_search"]


class FileSearchTool(_PassThrough):
    type: Literal["file_search"]
    vector_store_ids: list[str] = Field(min_length=1)


class McpTool(_PassThrough):
    """Remote MCP server the model may call."""

    type: Literal["mcp"]
    server_label: str = Field(min_length=1)
    server_url: str = Field(min_length=1)
    require_approval: Any = None

    @field_validator("require_approval")
    @classmethod
    def check_require_approval(cls, v: Any) -> Any:
        if v is None or isinstance(v, dict) or v in ("never", "auto", "manual"):
            return v
        raise PydanticCustomError(
            "require_approval",
            "must be 'never', 'auto', 'manual' or an object",
        )


class HostedTool(_PassThrough):
    """Any other built-in tool, identified only by its type tag."""

    type: str = Field(min_length=1)


def _tool_tag(value: Any) -> str | None:
    if isinstance(value, str):
        return "shorthand"
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if not isinstance(kind, str):
        return None
    if kind == "function":
        return "function"
    if kind == WEB_SEARCH_TYPE or kind in LEGACY_WEB_SEARCH_TYPES:
        return "web_search"
    if kind == "file_search":
        return "file_search"
    if kind == "mcp":
        return "mcp"
    return "hosted"


_TOOL_TAGS = frozenset({"shorthand", "function", "web_search", "file_search", "mcp", "hosted"})

ToolDeclaration = Union[FunctionTool, WebSearchTool, FileSearchTool, McpTool, HostedTool]

ToolEntry = Annotated[
    Union[
        Annotated[str, Tag("shorthand")],
        Annotated[FunctionTool, Tag("function")],
        Annotated[WebSearchTool, Tag("web_search")],
        Annotated[FileSearchTool, Tag("file_search")],
        Annotated[McpTool, Tag("mcp")],
        Annotated[HostedTool, Tag("hosted")],
    ],
    Discriminator(
        _tool_tag,
        custom_error_type="invalid_tool",
        custom_error_message="tool must be a name string or an object with a string 'type'",
    ),
]


def is_web_search_entry(entry: str | ToolDeclaration) -> bool:
    if isinstance(entry, str):
        return entry in WEB_SEARCH_ALIASES
    return isinstance(entry, WebSearchTool)


# --- Nested options ---


class ReasoningOptions(_PassThrough):
    effort: Effort | None = None


class TextOptions(_PassThrough):
    verbosity: Verbosity | None = None
    format: Any = None


# --- Shape checks for loosely typed fields ---


def _is_str_or_object_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, (str, dict)) for v in value)


def _check_content(value: Any) -> Any:
    if value is None or isinstance(value, (str, dict)) or _is_str_or_object_list(value):
        return value
    raise PydanticCustomError(
        "content_shape",
        "must be a string, an object, or a list of strings/objects",
    )


# --- Arguments ---


class GenerateArguments(BaseModel):
    """Arguments of the generate tool; unknown keys are forwarded."""

    model_config = ConfigDict(extra="allow")

    model: str = Field(default="gpt-5", min_length=1, description="Model to use.")

    # Primary content, one of these is required
    input: Any = Field(default=None, description="Responses API input.")
    messages: list[dict[str, Any]] | None = Field(
        default=None, description="Chat-style messages, forwarded as input."
    )
    prompt: str | None = Field(default=None, description="Plain prompt, forwarded as input.")
    instructions: Any = Field(default=None, description="System/developer instructions.")

    # Sampling and length
    temperature: float | None = Field(default=None, ge=0, le=2)
    top_p: float | None = Field(default=None, ge=0, le=1)
    max_output_tokens: int | None = Field(default=None, gt=0)
    max_tokens: int | None = Field(
        default=None, gt=0, description="Legacy alias of max_output_tokens."
    )
    stop: Any = None
    frequency_penalty: float | None = Field(default=None, ge=-2, le=2)
    presence_penalty: float | None = Field(default=None, ge=-2, le=2)

    # Reasoning and output shape
    verbosity: Verbosity | None = Field(
        default=None, description="Deprecated; migrated to text.verbosity."
    )
    reasoning: ReasoningOptions | None = None
    reasoning_effort: Effort | None = Field(
        default=None, description="Legacy alias of reasoning.effort."
    )
    text: TextOptions | None = None
    response_format: Any = Field(
        default=None, description="Legacy structured output; migrated to text.format."
    )
    response_format_original: dict[str, Any] | None = None

    # Tools
    web_search: bool = Field(
        default=True, description="Inject built-in web search when no tools are given."
    )
    tools: list[ToolEntry] | None = None
    tool_choice: Any = None
    parallel_tool_calls: bool | None = None
    max_tool_calls: int | None = Field(default=None, gt=0)

    # Logging and reproducibility
    logprobs: bool | None = None
    top_logprobs: int | None = Field(default=None, ge=0, le=20)
    seed: int | None = None
    user: str | None = None
    metadata: dict[str, Any] | None = None

    # Conversation state and delivery
    previous_response_id: str | None = None
    store: bool | None = None
    include: list[str] | None = None
    truncation: str | None = None
    service_tier: str | None = None
    stream: bool | None = Field(default=None, description="Always sent as false.")

    extra: dict[str, Any] | None = Field(
        default=None, description="Merged into the request last, overriding other fields."
    )

    @model_validator(mode="before")
    @classmethod
    def inject_defaults(cls, data: Any, info: ValidationInfo) -> Any:
        """Populate configured defaults for absent fields."""
        settings = (info.context or {}).get("settings")
        if settings is None or not isinstance(data, dict):
            return data
        data = dict(data)
        data.setdefault("model", settings.default_model)
        data.setdefault("web_search", settings.default_web_search)
        if settings.default_reasoning_effort is not None and not _has_effort(data):
            reasoning = data.get("reasoning")
            if isinstance(reasoning, dict):
                data["reasoning"] = {**reasoning, "effort": settings.default_reasoning_effort}
            else:
                data["reasoning_effort"] = settings.default_reasoning_effort
        return data

    @field_validator("model")
    @classmethod
    def check_model(cls, v: str, info: ValidationInfo) -> str:
        v = v.strip()
        if not v:
            raise PydanticCustomError("model_blank", "must be a non-empty string")
        settings = (info.context or {}).get("settings")
        allowed = settings.allowed_models if settings is not None else ()
        if allowed and v not in allowed:
            raise PydanticCustomError(
                "model_not_allowed",
                "must be one of: {allowed}",
                {"allowed": ", ".join(allowed)},
            )
        return v

    @field_validator("input", "instructions")
    @classmethod
    def check_content(cls, v: Any) -> Any:
        return _check_content(v)

    @field_validator("stop")
    @classmethod
    def check_stop(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, list) and all(isinstance(s, str) for s in v):
            return v
        raise PydanticCustomError("stop_shape", "must be a string or a list of strings")

    @field_validator("tool_choice")
    @classmethod
    def check_tool_choice(cls, v: Any) -> Any:
        if v is None or isinstance(v, dict) or v in ("none", "auto", "required"):
            return v
        raise PydanticCustomError(
            "tool_choice_shape", "must be 'none', 'auto', 'required' or an object"
        )

    @field_validator("response_format")
    @classmethod
    def check_response_format(cls, v: Any) -> Any:
        if v is None or isinstance(v, (str, dict)):
            return v
        raise PydanticCustomError("response_format_shape", "must be a string or an object")


class StrictGenerateArguments(GenerateArguments):
    """Arguments of the generate tool; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")


class ListModelsArguments(BaseModel):
    model_config = ConfigDict(extra="forbid")

    prefix: str | None = Field(default=None, description="Model id prefix to match.")


def _has_effort(data: Mapping[str, Any]) -> bool:
    if data.get("reasoning_effort") is not None:
        return True
    reasoning = data.get("reasoning")
    return isinstance(reasoning, dict) and reasoning.get("effort") is not None


def arguments_model(settings: Settings) -> type[GenerateArguments]:
    return StrictGenerateArguments if settings.strict else GenerateArguments


def argument_json_schema(settings: Settings) -> dict[str, Any]:
    """JSON schema advertised for the generate tool."""
    schema = arguments_model(settings).model_json_schema()
    props = schema.get("properties", {})
    if "model" in props:
        props["model"]["default"] = settings.default_model
        if settings.allowed_models:
            props["model"]["enum"] = list(settings.allowed_models)
    if "web_search" in props:
        props["web_search"]["default"] = settings.default_web_search
    return schema


# --- Validation entry point ---


def _format_loc(loc: tuple[int | str, ...]) -> str:
    path = ""
    prev: int | str | None = None
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif isinstance(prev, int) and part in _TOOL_TAGS:
            # Tagged-union branch name, not a real key.
            pass
        else:
            path += f".{part}" if path else str(part)
        prev = part
    return path


def _issues_from_pydantic(exc: PydanticValidationError) -> Iterator[FieldIssue]:
    for error in exc.errors(include_url=False):
        if error["type"] == "extra_forbidden":
            reason = "unknown field"
        else:
            reason = error["msg"]
        yield FieldIssue(_format_loc(error["loc"]), reason)


def _effective_effort(args: GenerateArguments) -> tuple[str, str | None]:
    if args.reasoning is not None and args.reasoning.effort is not None:
        return "reasoning.effort", args.reasoning.effort
    return "reasoning_effort", args.reasoning_effort


def _web_search_source(args: GenerateArguments) -> str | None:
    # The flag only matters when no tool list is given.
    if args.tools is not None:
        return "tools" if any(is_web_search_entry(t) for t in args.tools) else None
    return "web_search" if args.web_search else None


def _cross_field_issues(args: GenerateArguments) -> Iterator[FieldIssue]:
    effort_field, effort = _effective_effort(args)
    if effort == "minimal":
        web_field = _web_search_source(args)
        if web_field is not None:
            fix = (
                "set web_search to false"
                if web_field == "web_search"
                else "remove the web search entry from tools"
            )
            yield FieldIssue(
                effort_field,
                f"'minimal' cannot be combined with web search ({web_field}); {fix}",
                related=(web_field,),
            )


def _parse(
    model_cls: type[_ModelT], arguments: Any, context: dict[str, Any] | None = None
) -> _ModelT:
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ValidationError(
            [FieldIssue("", f"arguments must be an object, got {type(arguments).__name__}")]
        )
    try:
        return model_cls.model_validate(dict(arguments), context=context)
    except PydanticValidationError as e:
        raise ValidationError(
            _issues_from_pydantic(e),
            hint="Check the tool's input schema for accepted fields and ranges.",
        ) from e


def validate_list_models_arguments(arguments: Any) -> ListModelsArguments:
    return _parse(ListModelsArguments, arguments)


def validate_arguments(arguments: Any, settings: Settings) -> GenerateArguments:
    """Validate raw tool arguments and inject configured defaults.

    Args:
        arguments: Untrusted mapping delivered by the transport.
        settings: Deployment settings (argument policy, defaults, model set).

    Returns:
        The validated arguments model.

    Raises:
        ValidationError: With one ``FieldIssue`` per violated constraint.
    """
    parsed = _parse(arguments_model(settings), arguments, {"settings": settings})

    issues = list(_cross_field_issues(parsed))
    if issues:
        raise ValidationError(issues)
    return parsed
