"""Tests for environment settings and run parameters.

Verifies that:
- Defaults apply when the environment is empty
- Environment variables override defaults, bad numbers fall back
- Engine parameters combine the automation record with humanization
"""

from pathlib import Path

import pytest

from otgcontrol.core.config import AppConfig, EngineConfig
from otgcontrol.core.model import (
    AutomationConfig,
    ViewingTimeConfig,
    ViewingTimeRange,
)

ENV_KEYS = [
    "IMOUSE_BASE_URL",
    "IMOUSE_PORT",
    "IMOUSE_TIMEOUT",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "DEFAULT_POST_INTERVAL_SECONDS",
    "DEFAULT_SCROLL_DELAY_SECONDS",
    "DELAY_JITTER_MIN",
    "DELAY_JITTER_MAX",
    "SKIP_PROBABILITY",
    "DATA_DIR",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestAppConfig:
    """Test environment loading."""

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        config = AppConfig.from_env()

        assert config.imouse_url == "http://localhost:9911/api"
        assert config.openai_api_key == ""
        assert config.openai_model == "gpt-4o"
        assert config.skip_probability == 0.1
        assert (config.delay_jitter_min, config.delay_jitter_max) == (0.8, 1.2)
        assert config.devices_path == Path("./data") / "devices.json"

    def test_overrides(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("IMOUSE_BASE_URL", "http://10.0.0.5")
        clean_env.setenv("IMOUSE_PORT", "9000")
        clean_env.setenv("OPENAI_API_KEY", "sk-abc")
        clean_env.setenv("SKIP_PROBABILITY", "0.25")
        clean_env.setenv("DATA_DIR", "/var/lib/otg")

        config = AppConfig.from_env()

        assert config.imouse_url == "http://10.0.0.5:9000/api"
        assert config.openai_api_key == "sk-abc"
        assert config.skip_probability == 0.25
        assert config.automation_path == Path("/var/lib/otg/automation.json")

    def test_bad_number_falls_back(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("DEFAULT_POST_INTERVAL_SECONDS", "soon")
        assert AppConfig.from_env().default_post_interval_seconds == 10.0

    def test_default_automation_uses_timing_defaults(self) -> None:
        config = AppConfig(default_post_interval_seconds=20, default_scroll_delay_seconds=2)

        automation = config.default_automation()

        assert automation.post_interval_seconds == 20
        assert automation.scroll_delay_seconds == 2
        assert automation.triggers == []


class TestEngineConfig:
    """Test run parameter assembly."""

    def test_build(self) -> None:
        viewing = ViewingTimeConfig(
            relevant=ViewingTimeRange(5, 10),
            non_relevant=ViewingTimeRange(1, 2),
        )
        automation = AutomationConfig(
            post_interval_seconds=15,
            scroll_delay_seconds=4,
            viewing_time=viewing,
        )
        app = AppConfig(delay_jitter_min=0.9, delay_jitter_max=1.1, skip_probability=0.0)

        config = EngineConfig.build(automation, app)

        assert config == EngineConfig(
            post_interval_seconds=15,
            scroll_delay_seconds=4,
            delay_jitter_min=0.9,
            delay_jitter_max=1.1,
            skip_probability=0.0,
            viewing_time=viewing,
        )

    def test_build_with_default_app_config(self) -> None:
        config = EngineConfig.build(AutomationConfig())
        assert config.skip_probability == 0.1
        assert config.viewing_time is None
