"""Pytest configuration and fixtures.

Provides environment isolation, shared settings, and test doubles for the
OpenAI client. Environment fixtures are autouse unless noted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from typing import Any

import pytest

from responses_bridge.config import ApiKey, Settings

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class FakeResponsesClient:
    """ResponsesClient test double.

    Records every body sent downstream and returns (or raises) a configured
    value, so dispatcher behavior can be verified without network calls.
    """

    response: Any = field(default_factory=lambda: {"output_text": "ok"})
    model_ids: list[str] = field(default_factory=list)
    error: BaseException | None = None
    bodies: list[dict[str, Any]] = field(default_factory=list)
    list_calls: int = 0
    closed: bool = False

    async def create_response(self, body: dict[str, Any]) -> Any:
        self.bodies.append(body)
        if self.error is not None:
            raise self.error
        return self.response

    async def list_model_ids(self) -> list[str]:
        self.list_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.model_ids)

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_bridge_env(request, monkeypatch):
    """Ensure a clean environment for each test.

    Clears OPENAI_* and RESPONSES_BRIDGE_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith(("OPENAI_", "RESPONSES_BRIDGE_")):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


# =============================================================================
# Shared Fixtures
# =============================================================================

TEST_KEY = ApiKey("sk-test", "env")


@pytest.fixture
def settings() -> Settings:
    """Permissive settings with a dummy key."""
    return Settings(api_key=TEST_KEY)


@pytest.fixture
def strict_settings() -> Settings:
    """Strict settings with a dummy key."""
    return Settings(api_key=TEST_KEY, argument_policy="strict")


@pytest.fixture
def fake_client() -> FakeResponsesClient:
    return FakeResponsesClient()


@pytest.fixture
def openai_api_key():
    """Return OPENAI_API_KEY or skip the test if unavailable."""
    key = os.getenv("OPENAI_API_KEY")
    if not key:
        pytest.skip("OPENAI_API_KEY not set")
    return key
