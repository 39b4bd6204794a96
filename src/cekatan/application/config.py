from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cekatan.domain.constants import (
    BATCH_SIZE,
    MAX_ATTEMPTS_PER_PAGE,
    MAX_CONSECUTIVE_ERRORS,
    NEW_CARD_INTERLEAVE_RATIO,
    NEW_CARDS_FALLBACK_LIMIT,
    REQUEST_TIMEOUT,
    SCAN_DELAY_SECONDS,
)


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/cekatan/config.toml",
        Path.home() / ".cekatan.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for cekatan.
    Supports loading from:
    1. Environment variables (CEKATAN_*)
    2. Config file (~/.config/cekatan/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="CEKATAN_",
        extra="ignore",
    )

    # Paths
    checkpoint_dir: Path = Field(
        default_factory=lambda: Path.home() / ".config/cekatan/checkpoints"
    )

    # Scheduling
    batch_size: int = Field(default=BATCH_SIZE, ge=1)
    new_cards_fallback_limit: int = Field(default=NEW_CARDS_FALLBACK_LIMIT, ge=0)
    interleave_ratio: int = Field(default=NEW_CARD_INTERLEAVE_RATIO, ge=1)

    # Auto-scan
    scan_delay_seconds: float = Field(default=SCAN_DELAY_SECONDS, ge=0)
    max_attempts_per_page: int = Field(default=MAX_ATTEMPTS_PER_PAGE, ge=1)
    max_consecutive_errors: int = Field(default=MAX_CONSECUTIVE_ERRORS, ge=1)
    include_next_page: bool = False
    ai_mode: Literal["extract", "generate"] = "extract"

    # Collaborators
    drafter_url: str = "http://localhost:3000/api/draft"
    creator_url: str = "http://localhost:3000/api/cards/batch"
    request_timeout: float = REQUEST_TIMEOUT

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

        # First existing file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        # Init (CLI) beats env beats file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("checkpoint_dir", mode="before")
    @classmethod
    def resolve_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/cekatan/config.toml (if exists)
    3. Environment variables (CEKATAN_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
