"""OpenAI client adapter and upstream error classification.

Everything that touches the network goes through ``ResponsesClient`` so that
SDK exceptions are classified exactly once, here, into ``UpstreamError`` or
``UnknownError``.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any

import httpx
import openai

from responses_bridge.errors import (
    BridgeError,
    UnknownError,
    UpstreamError,
    _walk_exception_chain,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from responses_bridge.config import Settings

# SDK request options that must never be filled from a request body.
_REQUEST_OPTIONS = frozenset({"extra_headers", "extra_query", "extra_body", "timeout"})


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _auth_hint(status_code: int | None) -> str | None:
    if status_code in {401, 403}:
        return "Check credentials/permissions (try setting OPENAI_API_KEY)."
    return None


def classify_upstream_error(exc: BaseException, *, phase: str) -> BridgeError:
    """Map an exception raised by a downstream call into the bridge taxonomy."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    if isinstance(exc, UpstreamError):
        if exc.phase is None:
            exc.phase = phase
        return exc
    if isinstance(exc, BridgeError):
        return exc

    for e in _walk_exception_chain(exc):
        if isinstance(e, openai.APIError):
            status_code = e.status_code if isinstance(e, openai.APIStatusError) else None
            return UpstreamError(
                f"OpenAI {phase} failed: {e.message}",
                hint=_auth_hint(status_code),
                status_code=status_code,
                code=e.code if isinstance(e.code, str) else None,
                param=e.param if isinstance(e.param, str) else None,
                details=e.body,
                phase=phase,
            )
        if isinstance(e, httpx.HTTPError):
            status_code = extract_status_code(e)
            return UpstreamError(
                f"OpenAI {phase} failed: {e}" if str(e) else f"OpenAI {phase} failed",
                hint=_auth_hint(status_code),
                status_code=status_code,
                phase=phase,
            )

    return UnknownError(str(exc) or type(exc).__name__)


def split_body(method: Callable[..., Any], body: dict[str, Any]) -> dict[str, Any]:
    """Build SDK call kwargs, routing unknown body keys through ``extra_body``."""
    params = inspect.signature(method).parameters
    kwargs: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in body.items():
        if key in params and key not in _REQUEST_OPTIONS:
            kwargs[key] = value
        else:
            extra[key] = value
    if extra:
        kwargs["extra_body"] = extra
    return kwargs


class ResponsesClient:
    """OpenAI Responses API access for the bridge's two operations."""

    def __init__(self, settings: Settings, client: Any = None) -> None:
        self.settings = settings
        self._client: Any = client

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            api_key = self.settings.require_api_key()
            # No retries in the bridge; a failed call is reported as-is.
            self._client = openai.AsyncOpenAI(
                api_key=api_key,
                base_url=self.settings.base_url,
                max_retries=0,
            )
        return self._client

    async def create_response(self, body: dict[str, Any]) -> Any:
        client = self._get_client()
        try:
            kwargs = split_body(client.responses.create, body)
            return await client.responses.create(**kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise classify_upstream_error(e, phase="generate") from e

    async def list_model_ids(self) -> list[str]:
        client = self._get_client()
        try:
            return [
                model.id
                async for model in client.models.list()
                if isinstance(getattr(model, "id", None), str)
            ]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise classify_upstream_error(e, phase="models") from e

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        close = getattr(client, "close", None)
        if close is not None:
            await close()
