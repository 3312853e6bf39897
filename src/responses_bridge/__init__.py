"""responses-bridge: MCP tools backed by the OpenAI Responses API.

Public API:
    - validate_arguments(): Check raw tool arguments against the schema
    - normalize_request(): Resolve aliases into a CanonicalRequest
    - build_canonical_request(): Both steps at once
    - extract_text(): Flatten a Responses API result to text
    - ToolDispatcher: Run the ``gpt5`` and ``openai_models`` tools
    - Settings: Configuration dataclass
"""

from __future__ import annotations

import logging

from responses_bridge.config import ApiKey, Settings, resolve_api_key
from responses_bridge.dispatcher import GENERATE_TOOL, MODELS_TOOL, ToolDispatcher
from responses_bridge.errors import (
    BridgeError,
    ConfigurationError,
    FieldIssue,
    NormalizationError,
    UnknownError,
    UpstreamError,
    ValidationError,
)
from responses_bridge.request import (
    CanonicalRequest,
    build_canonical_request,
    normalize_request,
)
from responses_bridge.response import extract_text
from responses_bridge.result import ToolResult, format_error
from responses_bridge.schema import validate_arguments

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("responses-bridge")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("responses_bridge").addHandler(logging.NullHandler())

# Re-export for convenience
__all__ = [
    "GENERATE_TOOL",
    "MODELS_TOOL",
    "ApiKey",
    "BridgeError",
    "CanonicalRequest",
    "ConfigurationError",
    "FieldIssue",
    "NormalizationError",
    "Settings",
    "ToolDispatcher",
    "ToolResult",
    "UnknownError",
    "UpstreamError",
    "ValidationError",
    "build_canonical_request",
    "extract_text",
    "format_error",
    "normalize_request",
    "resolve_api_key",
    "validate_arguments",
]
