"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (DISCORDAGE__DISCORD__BOT_TOKEN=...)
  2. discordage.yaml        (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. Without a bot token the user and guild
endpoints still answer, but every Discord call comes back 401 and is
reported as an upstream error.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir("discordage")


def _find_config_file() -> str | None:
    """Return the path of the first discordage.yaml found, or None."""
    candidates = [
        Path("discordage.yaml"),
        Path(platformdirs.user_config_dir("discordage")) / "discordage.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["*"]


class DiscordSettings(BaseModel):
    api_base_url: str = "https://discord.com/api/v10"
    bot_token: str = ""
    timeout_seconds: float = 5.0
    user_agent: str = "SocialAgeChecker/1.0"
    guild_page_size: int = 200


class RecaptchaSettings(BaseModel):
    enabled: bool = True
    secret_key: str = ""
    verify_url: str = "https://www.google.com/recaptcha/api/siteverify"


class CacheSettings(BaseModel):
    backend: Literal["file", "memory"] = "file"
    directory: str = _DEFAULT_CACHE_DIR
    ttl_seconds: int = 3600


class GuildPreviewSettings(BaseModel):
    max_retries: int = 3
    default_retry_after_seconds: float = 1.0
    # What to answer when every attempt was rate limited
    exhausted_policy: Literal["too_many_requests", "degrade"] = "too_many_requests"


class AgeSettings(BaseModel):
    policy: Literal["day_bucket", "calendar"] = "day_bucket"


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: DISCORDAGE__SERVER__PORT=9090
        env_prefix="DISCORDAGE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    discord: DiscordSettings = DiscordSettings()
    recaptcha: RecaptchaSettings = RecaptchaSettings()
    cache: CacheSettings = CacheSettings()
    guild_preview: GuildPreviewSettings = GuildPreviewSettings()
    age: AgeSettings = AgeSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
