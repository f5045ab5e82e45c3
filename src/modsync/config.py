"""Runtime settings loaded from an optional TOML file and the environment."""

from __future__ import annotations

from pathlib import Path
from typing import Any

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from modsync.core.errors import ConfigurationError

DEFAULT_DATA_DIR = Path.home() / ".modsync"


class Settings(BaseSettings):
    """All tunables of the sync and translation pipeline.

    Each field reads the environment variable named by its alias. Defaults
    stay under DeepL's documented limits (50 requests/second) and Steam's
    100-item batch ceiling.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        env_ignore_empty=True,
        allow_inf_nan=False,
    )

    deepl_api_key: str | None = Field(default=None, validation_alias="DEEPL_API_KEY")
    deepl_server_url: str | None = Field(default=None, validation_alias="DEEPL_SERVER_URL")
    steam_api_key: str | None = Field(default=None, validation_alias="STEAM_API_KEY")
    workshop_path: Path | None = Field(default=None, validation_alias="WORKSHOP_DATA_PATH")
    data_dir: Path = Field(default=DEFAULT_DATA_DIR, validation_alias="MODSYNC_DATA_DIR")
    target_lang: str = Field(default="en", min_length=1, validation_alias="MODSYNC_TARGET_LANG")

    max_calls_per_second: int = Field(
        default=45, gt=0, validation_alias="TRANSLATION_MAX_PER_SECOND",
    )
    max_calls_per_minute: int = Field(
        default=50, gt=0, validation_alias="TRANSLATION_MAX_PER_MINUTE",
    )
    min_call_interval: float = Field(
        default=1.0, ge=0, validation_alias="TRANSLATION_MIN_INTERVAL",
    )
    max_retries: int = Field(default=3, ge=0, validation_alias="TRANSLATION_MAX_RETRIES")
    backoff_base_delay: float = Field(
        default=1.0, gt=0, validation_alias="TRANSLATION_BACKOFF_BASE",
    )

    cache_ttl_days: float = Field(default=7.0, gt=0, validation_alias="TRANSLATION_CACHE_TTL_DAYS")
    staleness_days: float = Field(default=7.0, gt=0, validation_alias="TRANSLATION_STALENESS_DAYS")
    memory_ttl_seconds: float = Field(
        default=3600.0, gt=0, validation_alias="TRANSLATION_MEMORY_TTL",
    )

    fetch_batch_size: int = Field(default=100, gt=0, le=100, validation_alias="CATALOG_BATCH_SIZE")

    @field_validator("workshop_path", "data_dir")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @field_validator("target_lang")
    @classmethod
    def lower_target_lang(cls, v: str) -> str:
        return v.lower()

    @model_validator(mode="after")
    def check_budget_consistency(self) -> Settings:
        if self.max_calls_per_second > self.max_calls_per_minute:
            raise ValueError("max_calls_per_second cannot exceed max_calls_per_minute")
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
        # Environment first: it overrides values read from the config file
        return env_settings, init_settings

    @property
    def translation_enabled(self) -> bool:
        return bool(self.deepl_api_key)

    @property
    def catalog_db_path(self) -> Path:
        return self.data_dir / "catalog.db"

    @property
    def cache_db_path(self) -> Path:
        return self.data_dir / "cache.db"

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_days * 86400

    @classmethod
    def load(cls, path: str | Path | None = None) -> Settings:
        """Build settings from a TOML file's ``[modsync]`` table and the environment.

        Environment variables win over file values.

        Raises:
            ConfigurationError: If the file is missing or malformed, or any
                value fails validation.
        """
        values: dict[str, Any] = {}
        if path is not None:
            path = Path(path)
            try:
                with path.open("rb") as f:
                    data = tomllib.load(f)
            except FileNotFoundError:
                raise ConfigurationError(f"Config file not found: {path}") from None
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid config file {path}: {e}") from e
            values = data.get("modsync", {})
            unknown = set(values) - set(cls.model_fields)
            if unknown:
                raise ConfigurationError(
                    f"Unknown settings in {path}: {', '.join(sorted(unknown))}"
                )

        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Invalid settings: {problems}") from e
