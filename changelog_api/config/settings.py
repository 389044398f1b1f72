"""Application settings and configuration"""

from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from changelog_api.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields in .env
    )

    # Application
    APP_NAME: str = "Changelog Generator"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    USER_AGENT: str = "Changelog-Generator"

    # GitHub API
    GITHUB_TOKEN: Optional[str] = None  # Shared service token for anonymous requests
    GITHUB_API_BASE_URL: str = "https://api.github.com"
    GITHUB_PAGE_TIMEOUT_SECONDS: float = 10.0
    GITHUB_FETCH_BUDGET_SECONDS: float = 30.0
    GITHUB_MAX_PAGES: int = 10
    GITHUB_PAGE_SIZE: int = 100

    # Repository listing for signed-in users
    GITHUB_REPOS_TIMEOUT_SECONDS: float = 15.0
    GITHUB_REPOS_BUDGET_SECONDS: float = 60.0
    GITHUB_REPOS_MAX: int = 200

    # Sessions resolved from GitHub OAuth tokens
    GITHUB_SESSION_TTL_SECONDS: int = 8 * 60 * 60

    # LLM API for changelog and email generation
    LLM_PROVIDER: Literal["openai", "anthropic"] = "openai"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-20241022"
    ANTHROPIC_MAX_TOKENS: int = 8192
    LLM_MAX_TOKENS: int = 15000
    LLM_TEMPERATURE: float = 0.7

    # Prompt shaping
    PROMPT_MAX_PRS: int = 200
    PR_BODY_MAX_CHARS: int = 500

    # Rate limiting
    RATE_LIMIT_BACKEND: Literal["unkey", "memory"] = "unkey"
    UNKEY_ROOT_KEY: Optional[str] = None
    UNKEY_API_URL: str = "https://api.unkey.dev"
    RATE_LIMIT_NAMESPACE: str = "generator"
    EMAIL_RATE_LIMIT_NAMESPACE: str = "email-generator"
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    ANONYMOUS_RATE_LIMIT: int = 5
    AUTHENTICATED_RATE_LIMIT: int = 20
    EMAIL_RATE_LIMIT: int = 10

    def missing_credentials(self) -> List[str]:
        """Names of credentials required by the selected backends but not set"""
        missing: List[str] = []
        if self.LLM_PROVIDER == "openai" and not self.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")
        if self.LLM_PROVIDER == "anthropic" and not self.ANTHROPIC_API_KEY:
            missing.append("ANTHROPIC_API_KEY")
        if self.RATE_LIMIT_BACKEND == "unkey" and not self.UNKEY_ROOT_KEY:
            missing.append("UNKEY_ROOT_KEY")
        return missing

    def validate_required(self) -> "Settings":
        """
        Fail fast when a backend is selected without its credential

        Raises:
            ConfigurationError: listing every missing variable
        """
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )
        return self


settings = Settings()
