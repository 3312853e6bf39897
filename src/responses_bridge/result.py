"""Tool results and single-line failure diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Literal

from responses_bridge.errors import BridgeError, UpstreamError


@dataclass(frozen=True)
class TextPart:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ToolResult:
    """Content parts returned for one tool call plus the error flag.

    Callers tell success from failure by ``is_error`` only.
    """

    content: tuple[TextPart, ...]
    is_error: bool = False

    @classmethod
    def success(cls, text: str) -> ToolResult:
        return cls(content=(TextPart(text),))

    @classmethod
    def failure(cls, text: str) -> ToolResult:
        return cls(content=(TextPart(text),), is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(part.text for part in self.content)


def _compact(details: Any) -> str:
    try:
        return json.dumps(details, ensure_ascii=False, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return repr(details)


def format_error(err: BaseException, *, include_details: bool = True) -> str:
    """Render *err* as one diagnostic line.

    Example:
        ``Error: OpenAI generate failed: bad tool (status=400, code=invalid_value,
        param=tools[0].type) details={"message":"bad tool"}``
    """
    message = str(err) or type(err).__name__
    pieces = [f"Error: {message}"]

    if isinstance(err, UpstreamError):
        meta = []
        if err.status_code is not None:
            meta.append(f"status={err.status_code}")
        if err.code:
            meta.append(f"code={err.code}")
        if err.param:
            meta.append(f"param={err.param}")
        if meta:
            pieces.append(f"({', '.join(meta)})")

    if isinstance(err, BridgeError) and err.hint:
        pieces.append(f"hint: {err.hint}")

    if include_details and isinstance(err, UpstreamError) and err.details is not None:
        pieces.append(f"details={_compact(err.details)}")

    return " ".join(" ".join(pieces).split())
