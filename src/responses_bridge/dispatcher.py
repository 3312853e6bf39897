"""Tool dispatch: one invocation in, one ToolResult out."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import json
import logging
from typing import TYPE_CHECKING, Any

from responses_bridge.client import ResponsesClient
from responses_bridge.errors import BridgeError, UnknownError, ValidationError
from responses_bridge.request import build_canonical_request
from responses_bridge.response import extract_text
from responses_bridge.result import ToolResult, format_error
from responses_bridge.schema import validate_list_models_arguments

if TYPE_CHECKING:
    from responses_bridge.config import Settings

logger = logging.getLogger(__name__)

GENERATE_TOOL = "gpt5"
MODELS_TOOL = "openai_models"
NO_MODELS_FOUND = "(none found)"


def _argument_keys(arguments: Any) -> list[str]:
    return sorted(str(k) for k in arguments) if isinstance(arguments, Mapping) else []


def _as_bridge_error(exc: Exception) -> BridgeError:
    if isinstance(exc, BridgeError):
        return exc
    err = UnknownError(str(exc) or type(exc).__name__)
    err.__cause__ = exc
    return err


class ToolDispatcher:
    """Runs the bridge's tools and converts every failure into a result.

    Nothing raised while serving a call reaches the transport, except
    cancellation.
    """

    def __init__(self, settings: Settings, client: ResponsesClient | None = None) -> None:
        self.settings = settings
        self.client = client if client is not None else ResponsesClient(settings)

    async def dispatch(self, name: str, arguments: Mapping[str, Any] | None) -> ToolResult:
        if name == GENERATE_TOOL:
            return await self.generate_text(arguments)
        if name == MODELS_TOOL:
            return await self._list_models_from_arguments(arguments)
        logger.warning("Unknown tool requested: %s", name)
        return ToolResult.failure(
            f"Error: Unknown tool: {name} (available: {GENERATE_TOOL}, {MODELS_TOOL})"
        )

    async def generate_text(self, arguments: Mapping[str, Any] | None) -> ToolResult:
        """Validate, normalize, call the Responses API and extract its text."""
        body: dict[str, Any] | None = None
        try:
            body = build_canonical_request(arguments, self.settings).to_body()
            response = await self.client.create_response(body)
            text = extract_text(response)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            err = _as_bridge_error(e)
            self._log_failure(GENERATE_TOOL, err, body=body, arguments=arguments)
            return ToolResult.failure(
                format_error(err, include_details=self.settings.error_details)
            )
        return ToolResult.success(text)

    async def list_models(self, prefix: str | None = None) -> ToolResult:
        """List model ids starting with *prefix* (default from settings)."""
        prefix = self.settings.models_prefix if prefix is None else prefix
        try:
            ids = [i for i in await self.client.list_model_ids() if i.startswith(prefix)]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            err = _as_bridge_error(e)
            self._log_failure(MODELS_TOOL, err, body={"prefix": prefix})
            return ToolResult.failure(
                format_error(err, include_details=self.settings.error_details)
            )
        return ToolResult.success(", ".join(ids) or NO_MODELS_FOUND)

    async def _list_models_from_arguments(
        self, arguments: Mapping[str, Any] | None
    ) -> ToolResult:
        try:
            parsed = validate_list_models_arguments(arguments)
        except ValidationError as e:
            keys = _argument_keys(arguments)
            self._log_failure(MODELS_TOOL, e, body={"argument_keys": keys})
            return ToolResult.failure(format_error(e))
        return await self.list_models(parsed.prefix)

    def _attempted_body(self, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
        """Recompute the request body for the log, or describe the raw input."""
        try:
            return build_canonical_request(arguments, self.settings).to_body()
        except BridgeError:
            return {"argument_keys": _argument_keys(arguments)}

    def _log_failure(
        self,
        tool: str,
        err: BridgeError,
        *,
        body: dict[str, Any] | None = None,
        arguments: Mapping[str, Any] | None = None,
    ) -> None:
        if body is None:
            body = self._attempted_body(arguments)
        logger.warning(
            "%s failed: %s; attempted request: %s",
            tool,
            err,
            json.dumps(body, ensure_ascii=False, default=str),
            exc_info=isinstance(err, UnknownError),
        )

    async def aclose(self) -> None:
        await self.client.aclose()
