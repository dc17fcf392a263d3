"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blueshift.core.exceptions import ConfigurationError

# Load .env file and override existing env vars
load_dotenv(override=True)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Default platform credentials
    cf_username: str = Field(default="")
    cf_password: str = Field(default="")

    # Environments file
    config_path: str = "./config.yml"

    # Push tool
    push_command: str = "cf"
    push_mock: bool = False  # Set to True to simulate pushes locally
    push_timeout: int = 600

    # Optional event handlers
    health_check_enabled: bool = False
    health_check_endpoint: str = "/health"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "DEBUG"
    log_format: Literal["console", "json"] = "console"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


class SilentDeploySettings(BaseSettings):
    """Silent deployment trigger, read from the environment on every call."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    silent_deploy_environment: str = ""
    silent_deploy_url: str = ""

    def matches(self, environment: str) -> bool:
        return bool(
            self.silent_deploy_url
            and self.silent_deploy_environment
            and self.silent_deploy_environment.lower() == environment.lower()
        )


class EnvironmentConfig(BaseModel):
    """A named group of foundations."""

    name: str
    foundations: list[str]
    authenticate: bool = False
    domain: str = ""
    skip_ssl: bool = False
    custom_params: dict[str, Any] = Field(default_factory=dict)
    instances: int = Field(default=1, ge=1)

    @field_validator("foundations")
    @classmethod
    def _require_foundations(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one foundation is required")
        return value


class MatcherConfig(BaseModel):
    """An extra failure signature for the error classifier."""

    pattern: str
    description: str
    solution: str = ""
    code: str = ""


class DeployConfig(BaseModel):
    """Deployment configuration shared by every request."""

    username: str = ""
    password: str = ""
    environments: dict[str, EnvironmentConfig] = Field(default_factory=dict)
    matchers: list[MatcherConfig] = Field(default_factory=list)

    @field_validator("environments")
    @classmethod
    def _normalize_names(
        cls, value: dict[str, EnvironmentConfig]
    ) -> dict[str, EnvironmentConfig]:
        return {name.lower(): environment for name, environment in value.items()}

    def get_environment(self, name: str) -> EnvironmentConfig | None:
        """Look up an environment by name, ignoring case."""
        return self.environments.get(name.lower())


def parse_environments(raw: list[dict[str, Any]]) -> dict[str, EnvironmentConfig]:
    """Validate the ``environments`` list of a config file."""
    environments: dict[str, EnvironmentConfig] = {}
    for entry in raw:
        try:
            environment = EnvironmentConfig.model_validate(entry)
        except ValidationError as e:
            raise ConfigurationError(f"invalid environment: {e}") from e

        key = environment.name.lower()
        if key in environments:
            raise ConfigurationError(f"duplicate environment: {environment.name}")
        environments[key] = environment
    return environments


def load_deploy_config(settings: Settings, path: str | Path | None = None) -> DeployConfig:
    """Load environments from YAML and combine them with default credentials.

    Raises:
        ConfigurationError: If credentials are missing or the file is invalid
    """
    missing = []
    if not settings.cf_username:
        missing.append("CF_USERNAME")
    if not settings.cf_password:
        missing.append("CF_PASSWORD")
    if missing:
        raise ConfigurationError(f"missing environment variables: {', '.join(missing)}")

    config_file = Path(path or settings.config_path)
    try:
        with open(config_file) as f:
            document = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {config_file}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid config file {config_file}: {e}") from e

    raw_environments = document.get("environments")
    if not isinstance(raw_environments, list) or not raw_environments:
        raise ConfigurationError("config file must define a list of environments")

    try:
        matchers = [MatcherConfig.model_validate(m) for m in document.get("matchers") or []]
    except ValidationError as e:
        raise ConfigurationError(f"invalid matcher: {e}") from e

    return DeployConfig(
        username=settings.cf_username,
        password=settings.cf_password,
        environments=parse_environments(raw_environments),
        matchers=matchers,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
