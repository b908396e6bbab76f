# converter/config.py
import logging
import sys
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings
import structlog

from converter.dependencies import DEFAULT_VERSION


class Settings(BaseSettings):
    app_name: str = "n8n Workflow Converter"
    log_level: str = Field(default="WARNING")

    # Pin for packages missing from the known-safe version table
    default_dependency_version: str = Field(default=DEFAULT_VERSION)

    # Placeholder written for each environment variable, formatted with
    # ``name`` (as found) and ``lower`` (lower-cased)
    env_placeholder_pattern: str = Field(default="your_{lower}_here")

    apply_defaults: bool = Field(default=True)

    class Config:
        env_prefix = "CONVERTER_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def configure_logging(verbose: bool = False) -> None:
    """Route structlog through stdlib logging on stderr."""
    settings = get_settings()
    level = logging.INFO if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
