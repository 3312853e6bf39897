"""Normalization tests: aliases, defaults and the canonical body shape."""

from __future__ import annotations

from typing import Any

import pytest

from responses_bridge.config import ApiKey, Settings
from responses_bridge.errors import NormalizationError
from responses_bridge.request import (
    CANONICAL_FIELDS,
    CanonicalRequest,
    build_canonical_request,
    expand_tool,
    normalize_request,
)
from responses_bridge.schema import validate_arguments

pytestmark = pytest.mark.unit

DEFAULT_TOOLS = [{"type": "web_search_preview"}]


def _body(args: dict[str, Any], settings: Settings) -> dict[str, Any]:
    return build_canonical_request(args, settings).to_body()


# =============================================================================
# Primary content resolution
# =============================================================================


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("input", "Summarize X"),
        ("input", [{"role": "user", "content": "hi"}]),
        ("prompt", "Summarize X"),
        ("messages", [{"role": "user", "content": "hi"}]),
    ],
)
def test_single_content_field_becomes_input(field: str, value: Any, settings: Settings) -> None:
    body = _body({field: value}, settings)

    assert body["input"] == value
    assert "messages" not in body
    assert "prompt" not in body


def test_input_wins_over_messages_and_prompt(settings: Settings) -> None:
    body = _body(
        {"input": "direct", "messages": [{"role": "user"}], "prompt": "p"}, settings
    )
    assert body["input"] == "direct"


def test_messages_win_over_prompt(settings: Settings) -> None:
    messages = [{"role": "user", "content": "m"}]
    assert _body({"messages": messages, "prompt": "p"}, settings)["input"] == messages


def test_empty_messages_fall_back_to_prompt(settings: Settings) -> None:
    assert _body({"messages": [], "prompt": "p"}, settings)["input"] == "p"


def test_empty_messages_alone_fail(settings: Settings) -> None:
    with pytest.raises(NormalizationError) as exc:
        build_canonical_request({"messages": []}, settings)
    assert exc.value.fields == ("messages",)
    assert "messages" in str(exc.value)


def test_no_content_fails_naming_all_three_fields(settings: Settings) -> None:
    with pytest.raises(NormalizationError) as exc:
        build_canonical_request({"model": "gpt-5"}, settings)

    assert exc.value.fields == ("input", "messages", "prompt")
    for name in ("input", "messages", "prompt"):
        assert name in str(exc.value)


# =============================================================================
# Aliases
# =============================================================================


def test_max_tokens_alias_is_absorbed(settings: Settings) -> None:
    body = _body({"prompt": "p", "max_tokens": 10}, settings)
    assert body["max_output_tokens"] == 10
    assert "max_tokens" not in body


def test_explicit_max_output_tokens_wins_over_alias(settings: Settings) -> None:
    body = _body({"prompt": "p", "max_tokens": 10, "max_output_tokens": 20}, settings)
    assert body["max_output_tokens"] == 20
    assert "max_tokens" not in body


def test_reasoning_effort_is_wrapped(settings: Settings) -> None:
    body = _body({"prompt": "p", "reasoning_effort": "high"}, settings)
    assert body["reasoning"] == {"effort": "high"}
    assert "reasoning_effort" not in body


def test_structured_reasoning_wins_over_flat_effort(settings: Settings) -> None:
    body = _body(
        {
            "prompt": "p",
            "reasoning": {"effort": "low", "summary": "auto"},
            "reasoning_effort": "high",
        },
        settings,
    )
    assert body["reasoning"] == {"effort": "low", "summary": "auto"}


def test_no_reasoning_unless_defaulted(settings: Settings) -> None:
    assert "reasoning" not in _body({"prompt": "p"}, settings)

    defaulted = Settings(api_key=ApiKey("k", "env"), default_reasoning_effort="medium")
    assert _body({"prompt": "p"}, defaulted)["reasoning"] == {"effort": "medium"}


def test_configured_effort_merges_into_reasoning_object() -> None:
    s = Settings(api_key=ApiKey("k", "env"), default_reasoning_effort="high")
    body = _body({"input": "x", "reasoning": {"summary": "auto"}}, s)
    assert body["reasoning"] == {"summary": "auto", "effort": "high"}
    assert "reasoning_effort" not in body


def test_verbosity_moves_into_text_options(settings: Settings) -> None:
    body = _body(
        {"prompt": "p", "verbosity": "low", "text": {"format": {"type": "text"}}},
        settings,
    )
    assert body["text"] == {"format": {"type": "text"}, "verbosity": "low"}
    assert "verbosity" not in body


# =============================================================================
# Streaming
# =============================================================================


@pytest.mark.parametrize("stream", [True, False])
def test_stream_is_never_true(stream: bool, settings: Settings) -> None:
    assert _body({"prompt": "p", "stream": stream}, settings)["stream"] is False


def test_stream_absent_stays_absent(settings: Settings) -> None:
    assert "stream" not in _body({"prompt": "p"}, settings)


def test_extra_cannot_turn_streaming_on(settings: Settings) -> None:
    body = _body({"prompt": "p", "extra": {"stream": True}}, settings)
    assert body["stream"] is False


# =============================================================================
# Tools
# =============================================================================


def test_absent_tools_get_web_search_default(settings: Settings) -> None:
    assert _body({"prompt": "p"}, settings)["tools"] == DEFAULT_TOOLS


def test_web_search_flag_off_skips_default_tools(settings: Settings) -> None:
    body = _body({"prompt": "p", "web_search": False}, settings)
    assert "tools" not in body
    assert "web_search" not in body


@pytest.mark.parametrize("name", ["web_search", "web_search_preview", "web-search", "websearch"])
def test_web_search_shorthand_spellings_expand(name: str, settings: Settings) -> None:
    assert _body({"prompt": "p", "tools": [name]}, settings)["tools"] == DEFAULT_TOOLS


def test_unknown_shorthand_becomes_type_tag(settings: Settings) -> None:
    body = _body({"prompt": "p", "tools": ["code_interpreter"]}, settings)
    assert body["tools"] == [{"type": "code_interpreter"}]


def test_legacy_web_search_object_is_retagged_keeping_keys(settings: Settings) -> None:
    body = _body(
        {"prompt": "p", "tools": [{"type": "web_search", "search_context_size": "high"}]},
        settings,
    )
    assert body["tools"] == [{"type": "web_search_preview", "search_context_size": "high"}]


def test_object_tools_pass_through_verbatim(settings: Settings) -> None:
    tools = [
        {"type": "function", "name": "f", "parameters": {"type": "object"}, "strict": True},
        {"type": "file_search", "vector_store_ids": ["vs_1"], "max_num_results": 3},
        {
            "type": "mcp",
            "server_label": "docs",
            "server_url": "https://mcp.example",
            "require_approval": "never",
        },
    ]
    assert _body({"prompt": "p", "tools": tools}, settings)["tools"] == tools


def test_explicit_empty_tools_stay_empty(settings: Settings) -> None:
    assert _body({"prompt": "p", "tools": []}, settings)["tools"] == []


def test_expand_tool_shorthand() -> None:
    assert expand_tool("websearch") == {"type": "web_search_preview"}
    assert expand_tool("image_generation") == {"type": "image_generation"}


# =============================================================================
# response_format migration
# =============================================================================


@pytest.mark.parametrize(
    "response_format",
    ["json", {"type": "json"}, {"type": "json_object"}, {"format": "json"}],
)
def test_json_response_format_maps_to_text_format(
    response_format: Any, settings: Settings
) -> None:
    body = _body({"prompt": "p", "response_format": response_format}, settings)
    assert body["text"] == {"format": "json"}
    assert "response_format" not in body
    assert "response_format_original" not in body


def test_json_schema_response_format_keeps_original(settings: Settings) -> None:
    rf = {"type": "json_schema", "json_schema": {"name": "x", "schema": {"type": "object"}}}
    body = _body({"prompt": "p", "response_format": rf}, settings)

    assert body["text"] == {"format": "json"}
    assert body["response_format_original"] == rf


@pytest.mark.parametrize("response_format", ["xml", {"type": "text"}, {}])
def test_unrecognized_response_format_is_dropped(
    response_format: Any, settings: Settings
) -> None:
    body = _body({"prompt": "p", "response_format": response_format}, settings)
    assert "response_format" not in body
    assert "text" not in body


def test_response_format_preserves_other_text_keys(settings: Settings) -> None:
    body = _body(
        {"prompt": "p", "verbosity": "high", "response_format": "json"}, settings
    )
    assert body["text"] == {"verbosity": "high", "format": "json"}


# =============================================================================
# Pass-through and extension merge
# =============================================================================


def test_declared_fields_pass_through(settings: Settings) -> None:
    args = {
        "prompt": "p",
        "instructions": "be brief",
        "temperature": 0.2,
        "top_p": 0.9,
        "metadata": {"run": "1"},
        "parallel_tool_calls": False,
        "previous_response_id": "resp_1",
    }
    body = _body(args, settings)
    for key in ("instructions", "temperature", "top_p", "metadata", "previous_response_id"):
        assert body[key] == args[key]
    assert body["parallel_tool_calls"] is False


def test_permissive_unknown_fields_pass_through(settings: Settings) -> None:
    request = build_canonical_request({"prompt": "p", "background": True}, settings)
    assert request.extensions == {"background": True}
    assert request.to_body()["background"] is True


def test_extra_overrides_canonical_keys(settings: Settings) -> None:
    body = _body(
        {
            "prompt": "p",
            "temperature": 0.1,
            "extra": {"temperature": 0.7, "prompt_cache_key": "abc"},
        },
        settings,
    )
    assert body["temperature"] == 0.7
    assert body["prompt_cache_key"] == "abc"
    assert "extra" not in body


def test_extra_null_is_forwarded_as_null(settings: Settings) -> None:
    body = _body(
        {"prompt": "p", "temperature": 0.3, "extra": {"temperature": None, "background": None}},
        settings,
    )
    assert "temperature" in body
    assert body["temperature"] is None
    assert body["background"] is None


def test_extra_is_merged_after_response_format(settings: Settings) -> None:
    body = _body(
        {"prompt": "p", "response_format": "json", "extra": {"text": {"format": "plain"}}},
        settings,
    )
    assert body["text"] == {"format": "plain"}


# =============================================================================
# End-to-end shape and idempotence
# =============================================================================


def test_minimal_call_canonical_shape(settings: Settings) -> None:
    body = _body({"model": "gpt-5", "input": "Summarize X"}, settings)
    assert body == {
        "model": "gpt-5",
        "input": "Summarize X",
        "tools": [{"type": "web_search_preview"}],
    }


@pytest.mark.parametrize("policy", ["strict", "permissive"])
def test_normalizing_canonical_request_is_idempotent(policy: str) -> None:
    s = Settings(api_key=ApiKey("k", "env"), argument_policy=policy)  # type: ignore[arg-type]
    canonical = {
        "model": "gpt-5-mini",
        "input": [{"role": "user", "content": "hi"}],
        "instructions": "be brief",
        "max_output_tokens": 200,
        "reasoning": {"effort": "low"},
        "text": {"verbosity": "low", "format": "json"},
        "tools": [{"type": "web_search_preview"}, {"type": "function", "name": "f"}],
        "stream": False,
    }

    once = _body(canonical, s)
    twice = _body(once, s)

    assert once == canonical
    assert twice == once


def test_idempotence_only_adds_default_tools(settings: Settings) -> None:
    canonical = {"model": "gpt-5", "input": "x", "temperature": 1.0}
    assert _body(canonical, settings) == {**canonical, "tools": DEFAULT_TOOLS}


def test_normalize_request_accepts_validated_model(settings: Settings) -> None:
    request = normalize_request(validate_arguments({"prompt": "p"}, settings))
    assert isinstance(request, CanonicalRequest)
    assert request.input == "p"


def test_canonical_request_set_routes_unknown_keys() -> None:
    request = CanonicalRequest(model="m", input="x")
    request.set("seed", 3)
    request.set("background", True)

    assert request.seed == 3
    assert request.extensions == {"background": True}
    assert "extensions" not in CANONICAL_FIELDS
    assert request.to_body() == {"model": "m", "input": "x", "seed": 3, "background": True}
