"""Response extraction: flatten a Responses API result to one string."""

from __future__ import annotations

from collections.abc import Mapping
import json
import pprint
from typing import Any


def _field(obj: Any, name: str) -> Any:
    """Read *name* from a mapping or an SDK model without raising."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except Exception:
        # SDK computed properties can fail on partial payloads.
        return None


def _item_text(item: Any) -> str:
    content = _field(item, "content")
    if not isinstance(content, (list, tuple)):
        return ""
    texts = []
    for part in content:
        text = _field(part, "text")
        if isinstance(text, str) and text:
            texts.append(text)
    return "\n".join(texts)


def dump_response(response: Any) -> str:
    """Pretty-print an unrecognized response for diagnosis."""
    payload = response
    model_dump = getattr(response, "model_dump", None)
    if callable(model_dump):
        try:
            payload = model_dump(mode="json")
        except Exception:
            payload = response
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return pprint.pformat(payload)


def extract_text(response: Any) -> str:
    """Return the text of *response*.

    Priority: a top-level ``output_text`` string, then the text parts of each
    ``output`` item joined by newlines, then an indented dump of the whole
    response. Missing text yields ``""``; this never raises.
    """
    output_text = _field(response, "output_text")
    if isinstance(output_text, str):
        return output_text

    output = _field(response, "output")
    if isinstance(output, (list, tuple)):
        return "\n".join(t for t in (_item_text(item) for item in output) if t)

    return dump_response(response)
