"""Pytest fixtures for vibesafu tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

_ISOLATED_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "VIBESAFU_ANTHROPIC_API_KEY",
    "VIBESAFU_TRIAGE_ENABLED",
    "VIBESAFU_LOG_LEVEL",
    "VIBESAFU_CLAUDE_SETTINGS_PATH",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point vibesafu at a throwaway home and strip credentials from the environment.

    Also routes structlog through stdlib logging so nothing is printed on
    stdout, which carries the hook response.
    """
    from vibesafu.config import get_settings

    for var in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    home = tmp_path / "vibesafu-home"
    monkeypatch.setenv("VIBESAFU_HOME", str(home))
    monkeypatch.setenv("VIBESAFU_LOG_TO_FILE", "false")

    structlog.reset_defaults()
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    get_settings.cache_clear()

    yield home

    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def settings(tmp_path):
    """Settings with an API key and a temporary Claude settings file."""
    from vibesafu.config import Settings

    return Settings(
        anthropic_api_key="test-anthropic-key",
        claude_settings_path=tmp_path / "claude" / "settings.json",
        log_to_file=False,
        environment="test",
    )


@pytest.fixture
def settings_without_key(tmp_path):
    """Settings with no API key configured."""
    from vibesafu.config import Settings

    return Settings(
        claude_settings_path=tmp_path / "claude" / "settings.json",
        log_to_file=False,
        environment="test",
    )


def _text_response(text: str) -> MagicMock:
    block = MagicMock()
    block.type = "text"
    block.text = text
    response = MagicMock()
    response.content = [block]
    return response


@pytest.fixture
def mock_anthropic_client():
    """Mock ``anthropic.AsyncAnthropic`` returning an allow decision."""
    client = MagicMock()
    client.messages = MagicMock()
    client.messages.create = AsyncMock(
        return_value=_text_response('{"decision": "allow", "reason": "routine"}')
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def text_response():
    """Factory for fake Messages API responses with a single text block."""
    return _text_response


@pytest.fixture
def make_request():
    """Factory for PermissionRequest payloads."""

    def _make(command: str, tool_name: str = "Bash", **overrides) -> dict:
        payload = {
            "session_id": "test-session",
            "transcript_path": "/tmp/transcript",
            "cwd": "/tmp/project",
            "permission_mode": "default",
            "hook_event_name": "PermissionRequest",
            "tool_name": tool_name,
            "tool_input": {"command": command},
        }
        payload.update(overrides)
        return payload

    return _make

