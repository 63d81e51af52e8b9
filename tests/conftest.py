"""Shared fixtures and factories for the test suite."""

import random
import time
from typing import Callable, Optional
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication

from otgcontrol.core.logging import LogBuffer, Logger
from otgcontrol.core.model import (
    ActionType,
    AutomationConfig,
    Device,
    InstagramCoords,
    NormalizedCoords,
    OperationResult,
    Platform,
    TikTokCoords,
    Trigger,
)
from otgcontrol.core.timing import TimingPolicy


class RecordingSleeper:
    """Sleep replacement that records durations instead of blocking."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total_ms(self) -> float:
        return sum(self.calls) * 1000


def make_device(
    device_id: str = "dev1",
    label: Optional[str] = None,
    width: int = 360,
    height: int = 640,
    screen_width: Optional[int] = 1080,
    screen_height: Optional[int] = 1920,
    tiktok: Optional[TikTokCoords] = None,
    instagram: Optional[InstagramCoords] = None,
) -> Device:
    """Device with a calibrated TikTok like button by default."""
    if tiktok is None:
        tiktok = TikTokCoords(like=NormalizedCoords(0.9, 0.5))
    return Device(
        id=device_id,
        label=label or f"Phone {device_id}",
        width=width,
        height=height,
        screen_width=screen_width,
        screen_height=screen_height,
        tiktok=tiktok,
        instagram=instagram or InstagramCoords(),
    )


def make_trigger(
    action: ActionType = ActionType.LIKE,
    keywords: Optional[list[str]] = None,
    trigger_id: str = "t1",
    **kwargs,
) -> Trigger:
    return Trigger(
        id=trigger_id,
        action=action,
        keywords=keywords or ["dance"],
        **kwargs,
    )


def make_actuation() -> MagicMock:
    """Actuation mock on which every call succeeds."""
    actuation = MagicMock()
    actuation.tap.return_value = OperationResult.ok()
    actuation.swipe.return_value = OperationResult.ok()
    actuation.type_text.return_value = OperationResult.ok()
    actuation.screenshot.return_value = OperationResult.ok("data:image/jpeg;base64,AAAA")
    return actuation


def make_persistence(
    config: AutomationConfig,
    devices: list[Device],
) -> MagicMock:
    """Persistence mock serving one config and a device list."""
    persistence = MagicMock()
    persistence.load_config.return_value = config
    persistence.load_devices.return_value = devices
    persistence.set_running_status.return_value = OperationResult.ok()
    by_id = {d.id: d for d in devices}
    persistence.get_device.side_effect = by_id.get
    persistence.get_triggers_for_device.side_effect = lambda device_id: [
        t for t in config.triggers if t.applies_to(device_id)
    ]
    return persistence


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll until predicate is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture(scope="session")
def qt_app() -> QCoreApplication:
    """Qt application instance for QObject-based components."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def timing(sleeper: RecordingSleeper) -> TimingPolicy:
    """Seeded timing policy that never blocks."""
    return TimingPolicy(rng=random.Random(1234), sleeper=sleeper)


@pytest.fixture
def logger() -> Logger:
    """Isolated logger so tests can inspect entries."""
    return Logger(LogBuffer())


@pytest.fixture
def platform() -> Platform:
    return Platform.TIKTOK
