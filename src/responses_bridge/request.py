"""Request normalization: validated arguments to one canonical request body."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
from typing import TYPE_CHECKING, Any

from responses_bridge.errors import NormalizationError
from responses_bridge.schema import (
    LEGACY_WEB_SEARCH_TYPES,
    WEB_SEARCH_ALIASES,
    WEB_SEARCH_TYPE,
    WebSearchTool,
    validate_arguments,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from responses_bridge.config import Settings
    from responses_bridge.schema import GenerateArguments, ToolDeclaration

logger = logging.getLogger(__name__)

#: Tool list injected when the caller gives none and web search is enabled.
DEFAULT_TOOLS: tuple[dict[str, Any], ...] = ({"type": WEB_SEARCH_TYPE},)

_JSON_FORMAT_TAGS = frozenset({"json", "json_object"})


@dataclass
class CanonicalRequest:
    """The single body sent to the Responses API.

    Every modelled field is an attribute; ``None`` means absent. Keys the
    schema does not model live in ``extensions`` and are merged last.
    """

    model: str
    input: Any
    instructions: Any = None
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    stop: str | list[str] | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    reasoning: dict[str, Any] | None = None
    text: dict[str, Any] | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: Any = None
    parallel_tool_calls: bool | None = None
    max_tool_calls: int | None = None
    logprobs: bool | None = None
    top_logprobs: int | None = None
    seed: int | None = None
    user: str | None = None
    metadata: dict[str, Any] | None = None
    previous_response_id: str | None = None
    store: bool | None = None
    include: list[str] | None = None
    truncation: str | None = None
    service_tier: str | None = None
    stream: bool | None = None
    response_format_original: Any = None
    extensions: dict[str, Any] = field(default_factory=dict)

    def set(self, key: str, value: Any) -> None:
        """Assign a modelled attribute, or an extension for anything else."""
        if key in CANONICAL_FIELDS:
            setattr(self, key, value)
        else:
            self.extensions[key] = value

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extensions":
                continue
            value = getattr(self, f.name)
            if value is not None:
                body[f.name] = value
        body.update(self.extensions)
        return body


CANONICAL_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(CanonicalRequest) if f.name != "extensions"
)


def _resolve_content(
    input_value: Any,
    messages: list[dict[str, Any]] | None,
    prompt: str | None,
) -> Any:
    if input_value is not None:
        return input_value
    if messages:
        return messages
    if prompt is not None:
        return prompt
    if messages is not None:
        raise NormalizationError(
            "messages is empty; provide prompt or input instead",
            fields=("messages",),
            hint="Pass at least one message, or use prompt/input.",
        )
    raise NormalizationError(
        "One of input, messages or prompt is required",
        fields=("input", "messages", "prompt"),
        hint="Pass input='...', prompt='...' or messages=[{...}].",
    )


def expand_tool(entry: str | ToolDeclaration) -> dict[str, Any]:
    """Return the canonical object form of one tool entry."""
    if isinstance(entry, str):
        if entry in WEB_SEARCH_ALIASES:
            return {"type": WEB_SEARCH_TYPE}
        return {"type": entry}
    data = entry.model_dump(exclude_unset=True)
    if isinstance(entry, WebSearchTool) and data.get("type") in LEGACY_WEB_SEARCH_TYPES:
        data["type"] = WEB_SEARCH_TYPE
    return data


def normalize_tools(
    tools: Sequence[str | ToolDeclaration] | None, *, web_search: bool
) -> list[dict[str, Any]] | None:
    if tools is None:
        return [dict(t) for t in DEFAULT_TOOLS] if web_search else None
    return [expand_tool(t) for t in tools]


def _response_format_to_text(response_format: Any) -> tuple[str | None, Any]:
    """Map a legacy response_format to (text.format, original to keep)."""
    if isinstance(response_format, str):
        return ("json", None) if response_format == "json" else (None, None)
    if isinstance(response_format, dict):
        kind = response_format.get("type")
        if kind is None:
            kind = response_format.get("format")
        if kind in _JSON_FORMAT_TAGS:
            return "json", None
        if kind == "json_schema":
            # text.format has no slot for the schema itself.
            return "json", response_format
    return None, None


def _merged_text(request: CanonicalRequest, key: str, value: Any) -> dict[str, Any]:
    text = dict(request.text) if isinstance(request.text, dict) else {}
    text[key] = value
    return text


def normalize_request(arguments: GenerateArguments) -> CanonicalRequest:
    """Resolve aliases and defaults into a ``CanonicalRequest``.

    Steps run in a fixed order because later ones read fields earlier ones
    write. Only content resolution can fail.

    Raises:
        NormalizationError: When no usable content field was given.
    """
    data = arguments.model_dump(exclude_unset=True, exclude={"tools"})
    tools = arguments.tools if "tools" in arguments.model_fields_set else None

    content = _resolve_content(
        data.pop("input", None), data.pop("messages", None), data.pop("prompt", None)
    )
    request = CanonicalRequest(model=data.pop("model", arguments.model), input=content)

    max_tokens = data.pop("max_tokens", None)
    reasoning_effort = data.pop("reasoning_effort", None)
    verbosity = data.pop("verbosity", None)
    stream = data.pop("stream", None)
    web_search = data.pop("web_search", arguments.web_search)
    response_format = data.pop("response_format", None)
    extra = data.pop("extra", None)

    for key, value in data.items():
        request.set(key, value)

    if request.max_output_tokens is None and max_tokens is not None:
        request.max_output_tokens = max_tokens

    if request.reasoning is None and reasoning_effort is not None:
        request.reasoning = {"effort": reasoning_effort}

    if verbosity is not None:
        request.text = _merged_text(request, "verbosity", verbosity)

    if stream is not None:
        request.stream = False

    request.tools = normalize_tools(tools, web_search=web_search)

    if response_format is not None:
        fmt, original = _response_format_to_text(response_format)
        if fmt is not None:
            request.text = _merged_text(request, "format", fmt)
        if original is not None:
            request.response_format_original = original
        if fmt is None:
            logger.debug("Dropping unrecognized response_format: %r", response_format)

    if isinstance(extra, dict):
        for key, value in extra.items():
            request.set(key, value)
            if value is None:
                # An explicit null is sent as null, not dropped.
                request.extensions[key] = None
        if request.stream:
            request.stream = False

    return request


def build_canonical_request(
    arguments: Mapping[str, Any] | None, settings: Settings
) -> CanonicalRequest:
    """Validate raw tool arguments and normalize them in one step."""
    return normalize_request(validate_arguments(arguments, settings))
