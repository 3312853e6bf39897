"""Exception hierarchy for responses-bridge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class BridgeError(Exception):
    """Base exception for all responses-bridge errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(BridgeError):
    """Settings validation or secret resolution failed."""


@dataclass(frozen=True)
class FieldIssue:
    """One violated constraint: where it happened and why."""

    path: str
    reason: str
    #: Other fields involved in a cross-field rule.
    related: tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}" if self.path else self.reason


class ValidationError(BridgeError):
    """Tool arguments have a malformed or unsupported shape.

    Issues are kept in the order they were detected so the rendered message is
    stable for identical input.
    """

    def __init__(self, issues: Iterable[FieldIssue], *, hint: str | None = None) -> None:
        self.issues: tuple[FieldIssue, ...] = tuple(issues)
        summary = "; ".join(str(i) for i in self.issues) or "invalid arguments"
        super().__init__(f"Invalid arguments: {summary}", hint=hint)

    @property
    def fields(self) -> tuple[str, ...]:
        """Every field named by any issue, in first-seen order."""
        seen: dict[str, None] = {}
        for issue in self.issues:
            for name in (issue.path, *issue.related):
                if name:
                    seen.setdefault(name, None)
        return tuple(seen)


class NormalizationError(BridgeError):
    """Arguments are well-formed but cannot produce a request."""

    def __init__(
        self,
        message: str,
        *,
        fields: tuple[str, ...] = (),
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.fields = fields


class UpstreamError(BridgeError):
    """The downstream API rejected or failed the request.

    Everything the SDK exposed about the failure is kept so the dispatcher can
    report it without probing the original exception again.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        code: str | None = None,
        param: str | None = None,
        details: Any = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.code = code
        self.param = param
        self.details = details
        self.phase = phase


class UnknownError(BridgeError):
    """Any other fault, stringified at the dispatcher boundary."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
