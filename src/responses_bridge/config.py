"""Configuration: frozen Settings plus API key resolution."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from dotenv import dotenv_values

from responses_bridge.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

ArgumentPolicy = Literal["strict", "permissive"]
ReasoningEffort = Literal["minimal", "low", "medium", "high"]

API_KEY_ENV_VAR = "OPENAI_API_KEY"
ENV_FILE_VAR = "RESPONSES_BRIDGE_ENV_FILE"

DEFAULT_MODEL = "gpt-5"
DEFAULT_MODELS_PREFIX = "gpt-5"

_POLICIES: tuple[str, ...] = ("strict", "permissive")
_EFFORTS: tuple[str, ...] = ("minimal", "low", "medium", "high")
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ApiKey:
    """A resolved secret and where it came from."""

    value: str | None
    #: ``".env:<path>"``, ``"env"`` or ``"not-found"``.
    source: str

    def __bool__(self) -> bool:
        return bool(self.value)

    def __str__(self) -> str:
        return f"ApiKey(value={'[REDACTED]' if self.value else None}, source={self.source!r})"

    __repr__ = __str__


def default_env_candidates() -> tuple[Path, ...]:
    """Return the ``.env`` locations checked for the API key, in order."""
    here = Path(__file__).resolve().parent
    candidates: list[Path] = []
    explicit = os.environ.get(ENV_FILE_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend(
        [
            Path.cwd() / ".env",
            here / ".env",
            here.parents[1] / ".env",
        ]
    )
    # Keep order, drop duplicates when cwd is the project root.
    unique: dict[Path, None] = {}
    for p in candidates:
        unique.setdefault(p.resolve(), None)
    return tuple(unique)


def resolve_api_key(candidates: Sequence[Path] | None = None) -> ApiKey:
    """Resolve ``OPENAI_API_KEY`` from a ``.env`` file, then the environment.

    A file value wins over the process environment. A missing key is not an
    error here; callers that need the key raise when it is absent.
    """
    paths = default_env_candidates() if candidates is None else tuple(candidates)
    for path in paths:
        if not path.is_file():
            continue
        value = dotenv_values(path).get(API_KEY_ENV_VAR)
        if value and value.strip():
            return ApiKey(value.strip(), f".env:{path}")

    env_value = os.environ.get(API_KEY_ENV_VAR, "").strip()
    if env_value:
        return ApiKey(env_value, "env")
    return ApiKey(None, "not-found")


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigurationError(
        f"{name} must be a boolean, got {raw!r}",
        hint="Use one of: true/false, 1/0, yes/no, on/off.",
    )


@dataclass(frozen=True)
class Settings:
    """Immutable bridge configuration, established once at startup.

    Example:
        settings = Settings(argument_policy="strict", allowed_models=("gpt-5",))
    """

    api_key: ApiKey = ApiKey(None, "not-found")
    #: ``strict`` rejects unknown argument fields, ``permissive`` forwards them.
    argument_policy: ArgumentPolicy = "permissive"
    default_model: str = DEFAULT_MODEL
    #: When non-empty, ``model`` must be one of these identifiers.
    allowed_models: tuple[str, ...] = ()
    #: Injected as ``reasoning_effort`` when the caller gives no effort.
    default_reasoning_effort: ReasoningEffort | None = None
    default_web_search: bool = True
    models_prefix: str = DEFAULT_MODELS_PREFIX
    #: Append the raw upstream error body to failure diagnostics.
    error_details: bool = True
    base_url: str | None = None

    def __post_init__(self) -> None:
        """Validate field values for clear errors at startup."""
        if self.argument_policy not in _POLICIES:
            raise ConfigurationError(
                f"Unknown argument policy: {self.argument_policy!r}",
                hint="Supported policies: 'strict', 'permissive'",
            )
        if not self.default_model.strip():
            raise ConfigurationError(
                "default_model must be a non-empty string",
                hint="Pass default_model='gpt-5'.",
            )
        if self.allowed_models and self.default_model not in self.allowed_models:
            raise ConfigurationError(
                f"default_model {self.default_model!r} is not in allowed_models",
                hint="Add the default model to allowed_models or change it.",
            )
        if (
            self.default_reasoning_effort is not None
            and self.default_reasoning_effort not in _EFFORTS
        ):
            raise ConfigurationError(
                f"Unknown reasoning effort: {self.default_reasoning_effort!r}",
                hint=f"Supported efforts: {', '.join(_EFFORTS)}",
            )
        if self.default_reasoning_effort == "minimal" and self.default_web_search:
            raise ConfigurationError(
                "default reasoning effort 'minimal' requires web search disabled",
                hint="Set RESPONSES_BRIDGE_WEB_SEARCH=false or pick another effort.",
            )

    @property
    def strict(self) -> bool:
        return self.argument_policy == "strict"

    def require_api_key(self) -> str:
        """Return the API key or raise when none was resolved."""
        if not self.api_key.value:
            raise ConfigurationError(
                "OpenAI API key not found",
                hint=f"Set {API_KEY_ENV_VAR} in a .env file or the environment.",
            )
        return self.api_key.value

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        api_key: ApiKey | None = None,
    ) -> Settings:
        """Build settings from ``RESPONSES_BRIDGE_*`` environment variables."""
        env = os.environ if environ is None else environ
        key = resolve_api_key() if api_key is None else api_key

        allowed_raw = env.get("RESPONSES_BRIDGE_ALLOWED_MODELS", "")
        allowed = tuple(m.strip() for m in allowed_raw.split(",") if m.strip())

        effort_raw = env.get("RESPONSES_BRIDGE_REASONING_EFFORT", "").strip()
        web_search_raw = env.get("RESPONSES_BRIDGE_WEB_SEARCH")
        details_raw = env.get("RESPONSES_BRIDGE_ERROR_DETAILS")

        settings = cls(
            api_key=key,
            argument_policy=env.get("RESPONSES_BRIDGE_POLICY", "permissive")
            .strip()
            .lower(),  # type: ignore[arg-type]
            default_model=env.get("RESPONSES_BRIDGE_DEFAULT_MODEL", DEFAULT_MODEL).strip(),
            allowed_models=allowed,
            default_reasoning_effort=effort_raw or None,  # type: ignore[arg-type]
            default_web_search=(
                True
                if web_search_raw is None
                else _parse_bool("RESPONSES_BRIDGE_WEB_SEARCH", web_search_raw)
            ),
            models_prefix=env.get("RESPONSES_BRIDGE_MODELS_PREFIX", DEFAULT_MODELS_PREFIX),
            error_details=(
                True
                if details_raw is None
                else _parse_bool("RESPONSES_BRIDGE_ERROR_DETAILS", details_raw)
            ),
            base_url=env.get("OPENAI_BASE_URL") or None,
        )
        logger.debug("Loaded settings: %s", settings)
        return settings
