import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from typing_extensions import Self


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by ROOMSHARE_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        config_file = os.environ.get("ROOMSHARE_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class Server(BaseModel):
    """Server configuration (nested in Config, uses env_nested_delimiter)."""

    name: str = "Roomshare"
    version: str = "0.1.0"
    description: str = "Roommate application approval workflow"
    host: str = "0.0.0.0"
    port: int = 8000


class DatabaseConfig(BaseModel):
    """Database configuration (nested in Config, uses env_nested_delimiter).

    An empty url means "SQLite file under ROOMSHARE_DATA_DIR"; Config's
    model_validator fills it in.
    """

    url: str = ""
    echo: bool = False
    auto_migrate: bool = True  # run alembic upgrade at startup


class LoggingConfig(BaseModel):
    """Logging configuration (nested in Config, uses env_nested_delimiter)."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    logfire_token: str | None = None  # send spans to logfire when set

    @property
    def file(self) -> str | None:
        """Get log file path from ROOMSHARE_LOG_FILE env var."""
        return os.environ.get("ROOMSHARE_LOG_FILE")


class WorkerConfig(BaseModel):
    """Background worker configuration (nested in Config, uses env_nested_delimiter).

    Controls the outbox workers that deliver notifications.
    """

    enabled: bool = True
    poll_interval: float = 0.5  # Seconds between outbox polls when idle
    stale_claim_interval: float = 60.0  # Seconds between stale-claim sweeps


class JwtConfig(BaseModel):
    secret: str = ""  # Must be set in production
    algorithm: str = "HS256"
    audience: str = "authenticated"


class AuthConfig(BaseModel):
    jwt: JwtConfig = JwtConfig()


class WorkflowConfig(BaseModel):
    """Roommate application workflow knobs."""

    application_ttl_days: int = Field(default=14, ge=1)
    reaper_cron: str = "*/5 * * * *"
    reaper_batch_size: int = Field(default=100, ge=1)


class CollaboratorsConfig(BaseModel):
    """Base URLs of the marketplace services this one calls."""

    listings_url: str = "http://localhost:8001"
    rentals_url: str = "http://localhost:8002"
    messaging_url: str | None = None  # None: notifications are only logged
    timeout_seconds: float = 10.0


class Config(BaseSettings):
    server: Server = Server()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    worker: WorkerConfig = WorkerConfig()
    auth: AuthConfig = AuthConfig()
    workflow: WorkflowConfig = WorkflowConfig()
    collaborators: CollaboratorsConfig = CollaboratorsConfig()

    model_config = {
        "env_prefix": "ROOMSHARE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows ROOMSHARE_DATABASE__URL override
    }

    @model_validator(mode="after")
    def derive_database_url(self) -> Self:
        """Default to a SQLite file in ROOMSHARE_DATA_DIR (cwd if unset)."""
        if not self.database.url:
            data_dir = Path(os.environ.get("ROOMSHARE_DATA_DIR", ".")).expanduser()
            self.database = DatabaseConfig(
                url=f"sqlite+aiosqlite:///{data_dir / 'roomshare.db'}",
                echo=self.database.echo,
                auto_migrate=self.database.auto_migrate,
            )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - ROOMSHARE_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called early in application startup so every module logger
    picks up the handlers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(config.level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
