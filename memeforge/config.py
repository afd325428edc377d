"""Settings, paths and credential resolution for memeforge.

The data directory respects ``MEMEFORGE_HOME``, then
``XDG_DATA_HOME/memeforge``, and falls back to ``~/.memeforge``.
Credentials are read from the environment once, by the driver, and handed
to the service adapters as plain values.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field

from memeforge._yaml import load_yaml_model
from memeforge.errors import ConfigurationFailure
from memeforge.services._retry import NO_RETRY, RetryPolicy
from memeforge.services.generation import DEFAULT_MODEL
from memeforge.services.imgflip import IMGFLIP_BASE_URL


@lru_cache(maxsize=1)
def get_home_dir() -> Path:
    """Return the memeforge data directory.

    Resolution order:
    1. ``MEMEFORGE_HOME`` environment variable
    2. ``XDG_DATA_HOME/memeforge`` (if ``XDG_DATA_HOME`` is set)
    3. ``~/.memeforge``
    """
    env = os.environ.get("MEMEFORGE_HOME")
    if env:
        return Path(env)
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "memeforge"
    return Path.home() / ".memeforge"


def get_global_env_path() -> Path:
    return get_home_dir() / ".env"


def get_default_config_path() -> Path:
    return get_home_dir() / "config.yaml"


class GenerationConfig(BaseModel):
    model: str = DEFAULT_MODEL
    base_url: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    system_prompt: str = ""
    timeout_seconds: Annotated[float, Field(gt=0, le=600)] = 30.0


class ImgflipConfig(BaseModel):
    base_url: str = IMGFLIP_BASE_URL
    username_env: str = "IMGFLIP_USERNAME"
    password_env: str = "IMGFLIP_PASSWORD"
    timeout_seconds: Annotated[float, Field(gt=0, le=600)] = 15.0


class RetryConfig(BaseModel):
    max_retries: Annotated[int, Field(ge=0, le=5)] = 2
    base_delay_seconds: Annotated[float, Field(ge=0)] = 0.2
    max_delay_seconds: Annotated[float, Field(ge=0)] = 2.0

    def to_policy(self) -> RetryPolicy:
        if self.max_retries == 0:
            return NO_RETRY
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.base_delay_seconds,
            max_delay=self.max_delay_seconds,
        )


class Settings(BaseModel):
    generation: GenerationConfig = GenerationConfig()
    imgflip: ImgflipConfig = ImgflipConfig()
    retry: RetryConfig = RetryConfig()
    max_templates: Annotated[int, Field(ge=1, le=100)] = 10


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from *path*, or the default config file, or defaults.

    An explicit *path* must exist; the default file is optional.
    """
    if path is not None:
        return load_yaml_model(path, Settings, ConfigurationFailure)
    default = get_default_config_path()
    if default.is_file():
        return load_yaml_model(default, Settings, ConfigurationFailure)
    return Settings()


def load_dotenv_files(base_dir: Path | None = None) -> None:
    """Load .env files, local first, then global as fallback.

    Uses ``override=False`` so existing env vars always win.
    """
    from dotenv import load_dotenv

    local_env = (base_dir or Path.cwd()) / ".env"
    if local_env.is_file():
        load_dotenv(local_env, override=False)
    global_env = get_global_env_path()
    if global_env.is_file():
        load_dotenv(global_env, override=False)


@dataclass(frozen=True)
class Credentials:
    generation_api_key: str | None = None
    imgflip_username: str | None = None
    imgflip_password: str | None = None

    @classmethod
    def from_env(
        cls, settings: Settings, environ: Mapping[str, str] | None = None
    ) -> Credentials:
        """Read the env vars named by *settings*. Empty values count as unset."""
        env = os.environ if environ is None else environ
        return cls(
            generation_api_key=env.get(settings.generation.api_key_env) or None,
            imgflip_username=env.get(settings.imgflip.username_env) or None,
            imgflip_password=env.get(settings.imgflip.password_env) or None,
        )
