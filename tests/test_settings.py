import pytest

from changelog_api.config.settings import Settings
from changelog_api.errors import ConfigurationError


def test_validate_required_lists_every_missing_credential() -> None:
    config = Settings(LLM_PROVIDER="openai", OPENAI_API_KEY=None, RATE_LIMIT_BACKEND="unkey", UNKEY_ROOT_KEY=None)

    with pytest.raises(ConfigurationError) as excinfo:
        config.validate_required()

    assert str(excinfo.value) == "Missing required configuration: OPENAI_API_KEY, UNKEY_ROOT_KEY"


def test_memory_backend_needs_no_unkey_key() -> None:
    config = Settings(LLM_PROVIDER="anthropic", ANTHROPIC_API_KEY="sk-ant", RATE_LIMIT_BACKEND="memory")

    assert config.validate_required() is config
    assert config.missing_credentials() == []


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_MAX_PAGES", "3")
    monkeypatch.setenv("ANONYMOUS_RATE_LIMIT", "7")

    config = Settings()

    assert config.GITHUB_MAX_PAGES == 3
    assert config.ANONYMOUS_RATE_LIMIT == 7
