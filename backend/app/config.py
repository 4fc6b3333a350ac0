from functools import lru_cache
import logging
import sys
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid."""
    pass


class Settings(BaseSettings):
    """Application configuration pulled from environment variables or .env file."""

    # Docker endpoint, empty means DOCKER_HOST or the local socket
    docker_host: str = ""
    docker_timeout: int = 30

    # Live stats streaming
    stats_queue_size: int = 8

    # Summary
    top_containers_limit: int = 10

    # Container actions
    action_stop_timeout: int = 10

    # Logs websocket: number of lines to replay before following, or "all"
    logs_tail: str = "all"

    # CORS settings
    # Comma-separated list of allowed origins, or "*" for all (not recommended)
    cors_allowed_origins: str = DEFAULT_CORS_ORIGINS

    # Environment (development, staging, production)
    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    def validate_required(self) -> list[str]:
        """Validate configuration settings.

        Returns a list of error messages for invalid settings.
        """
        errors: list[str] = []
        warnings: list[str] = []

        if self.docker_timeout <= 0:
            errors.append("DOCKER_TIMEOUT must be a positive number of seconds")

        if self.stats_queue_size <= 0:
            errors.append("STATS_QUEUE_SIZE must be at least 1")

        if self.top_containers_limit <= 0:
            errors.append("TOP_CONTAINERS_LIMIT must be at least 1")

        if self.action_stop_timeout < 0:
            errors.append("ACTION_STOP_TIMEOUT cannot be negative")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(sorted(VALID_LOG_LEVELS))}")

        if self.logs_tail != "all" and not self.logs_tail.isdigit():
            errors.append("LOGS_TAIL must be 'all' or a non-negative integer")

        if not self.docker_host:
            warnings.append("DOCKER_HOST not set, falling back to environment or local socket")

        # production requires explicit origins
        if self.environment.lower() == "production":
            if self.cors_allowed_origins == DEFAULT_CORS_ORIGINS:
                errors.append(
                    "CORS_ALLOWED_ORIGINS still points at the localhost dev servers. "
                    "List the dashboard origin(s) explicitly in production."
                )
            if self.cors_allowed_origins == "*":
                errors.append(
                    "CORS_ALLOWED_ORIGINS='*' allows any site to drive container actions. "
                    "List the dashboard origin(s) explicitly in production."
                )

        for warning in warnings:
            logger.warning(f"Config warning: {warning}")

        return errors


def validate_config_on_startup(settings: Settings) -> None:
    """Validate configuration and exit if critical settings are invalid."""
    errors = settings.validate_required()

    if errors:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        print("\nConfiguration Error:", file=sys.stderr)
        print("The following settings are missing or invalid:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        print("\nPlease check your .env file or environment variables.", file=sys.stderr)
        raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    logger.info("Configuration validated successfully")


@lru_cache
def get_settings() -> Settings:
    return Settings()
