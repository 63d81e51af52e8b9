"""Environment-driven application settings.

Values come from the process environment (the entry point loads a
``.env`` file first). Unparseable numbers fall back to the defaults
in ``constants``.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants as c
from .model import AutomationConfig, ViewingTimeConfig


def _env_str(key: str, default: str) -> str:
    return os.environ.get(key, default)


def _env_float(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """Process-wide settings.

    Attributes:
        imouse_base_url: Scheme and host of the actuation server
        imouse_port: Port of the actuation server
        imouse_timeout: Request timeout for actuation calls (seconds)
        openai_api_key: Key for the vision service
        openai_model: Vision model name
        openai_base_url: Base URL of the OpenAI-compatible API
        default_post_interval_seconds: Post interval for new configs
        default_scroll_delay_seconds: Scroll delay for new configs
        delay_jitter_min: Lower jitter multiplier
        delay_jitter_max: Upper jitter multiplier
        skip_probability: Humanization skip chance per cycle
        data_dir: Directory holding devices.json and automation.json
    """

    imouse_base_url: str = c.IMOUSE_BASE_URL
    imouse_port: int = c.IMOUSE_PORT
    imouse_timeout: float = c.IMOUSE_TIMEOUT_SEC
    openai_api_key: str = ""
    openai_model: str = c.OPENAI_MODEL
    openai_base_url: str = c.OPENAI_BASE_URL
    default_post_interval_seconds: float = c.DEFAULT_POST_INTERVAL_SECONDS
    default_scroll_delay_seconds: float = c.DEFAULT_SCROLL_DELAY_SECONDS
    delay_jitter_min: float = c.DELAY_JITTER_MIN
    delay_jitter_max: float = c.DELAY_JITTER_MAX
    skip_probability: float = c.SKIP_PROBABILITY
    data_dir: str = c.DATA_DIR

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create config from environment variables."""
        return cls(
            imouse_base_url=_env_str("IMOUSE_BASE_URL", c.IMOUSE_BASE_URL),
            imouse_port=int(_env_float("IMOUSE_PORT", c.IMOUSE_PORT)),
            imouse_timeout=_env_float("IMOUSE_TIMEOUT", c.IMOUSE_TIMEOUT_SEC),
            openai_api_key=_env_str("OPENAI_API_KEY", ""),
            openai_model=_env_str("OPENAI_MODEL", c.OPENAI_MODEL),
            openai_base_url=_env_str("OPENAI_BASE_URL", c.OPENAI_BASE_URL),
            default_post_interval_seconds=_env_float(
                "DEFAULT_POST_INTERVAL_SECONDS", c.DEFAULT_POST_INTERVAL_SECONDS
            ),
            default_scroll_delay_seconds=_env_float(
                "DEFAULT_SCROLL_DELAY_SECONDS", c.DEFAULT_SCROLL_DELAY_SECONDS
            ),
            delay_jitter_min=_env_float("DELAY_JITTER_MIN", c.DELAY_JITTER_MIN),
            delay_jitter_max=_env_float("DELAY_JITTER_MAX", c.DELAY_JITTER_MAX),
            skip_probability=_env_float("SKIP_PROBABILITY", c.SKIP_PROBABILITY),
            data_dir=_env_str("DATA_DIR", c.DATA_DIR),
        )

    @property
    def imouse_url(self) -> str:
        return f"{self.imouse_base_url}:{self.imouse_port}/api"

    @property
    def devices_path(self) -> Path:
        return Path(self.data_dir) / c.DEVICES_FILE

    @property
    def automation_path(self) -> Path:
        return Path(self.data_dir) / c.AUTOMATION_FILE

    def default_automation(self) -> AutomationConfig:
        """Automation record used when none has been saved yet."""
        return AutomationConfig(
            post_interval_seconds=self.default_post_interval_seconds,
            scroll_delay_seconds=self.default_scroll_delay_seconds,
        )


@dataclass(frozen=True)
class EngineConfig:
    """Timing parameters of one engine run.

    Attributes:
        post_interval_seconds: Base pause between devices
        scroll_delay_seconds: Base pause between scroll and screenshot
        delay_jitter_min: Lower jitter multiplier
        delay_jitter_max: Upper jitter multiplier
        skip_probability: Humanization skip chance per cycle
        viewing_time: Dwell-time ranges, None for no dwell pause
    """

    post_interval_seconds: float = c.DEFAULT_POST_INTERVAL_SECONDS
    scroll_delay_seconds: float = c.DEFAULT_SCROLL_DELAY_SECONDS
    delay_jitter_min: float = c.DELAY_JITTER_MIN
    delay_jitter_max: float = c.DELAY_JITTER_MAX
    skip_probability: float = c.SKIP_PROBABILITY
    viewing_time: Optional[ViewingTimeConfig] = None

    @classmethod
    def build(
        cls,
        automation: AutomationConfig,
        app_config: Optional[AppConfig] = None,
    ) -> "EngineConfig":
        """Combine per-automation timing with process-wide humanization."""
        app_config = app_config or AppConfig()
        return cls(
            post_interval_seconds=automation.post_interval_seconds,
            scroll_delay_seconds=automation.scroll_delay_seconds,
            delay_jitter_min=app_config.delay_jitter_min,
            delay_jitter_max=app_config.delay_jitter_max,
            skip_probability=app_config.skip_probability,
            viewing_time=automation.viewing_time,
        )
