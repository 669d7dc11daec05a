from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from credo.domain.constants import DEFAULT_NAMESPACE


def _config_dir() -> Path:
    # Evaluated lazily so tests can redirect HOME.
    return Path.home() / ".config/credo"


class AppConfig(BaseSettings):
    """
    Configuration model for credo.
    Supports loading from:
    1. Environment variables (CREDO_*)
    2. Config file (~/.config/credo/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="CREDO_",
        extra="ignore",
        validate_default=True,
    )

    # Paths
    data_file: Path = Field(default_factory=lambda: _config_dir() / "data.json")
    catalog_path: Path | None = None
    log_dir: Path = Field(default_factory=lambda: _config_dir() / "logs")
    backup_dir: Path = Field(default_factory=Path.cwd)

    # Storage
    namespace: str = DEFAULT_NAMESPACE

    # Server
    server_host: str = "127.0.0.1"
    server_port: int = 8777

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        toml_file = _config_dir() / "config.toml"
        if toml_file.exists():
            # CLI overrides beat env, env beats the file.
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_file", "log_dir", "backup_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("catalog_path", mode="before")
    @classmethod
    def resolve_catalog(cls, v: Any) -> Path | None:
        if v:
            return Path(v).expanduser().resolve()
        return None


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/credo/config.toml (if exists)
    3. Environment variables (CREDO_*)
    4. cli_overrides (passed from Typer, None values dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
