"""Core automation engine and utilities.

This package provides the core functionality for OTG Control:
- Data models (Device, Trigger, AutomationConfig, CycleResult, etc.)
- Coordinate conversion and humanized timing
- Trigger matching and action execution
- Automation engine with state machine
- Logging with circular buffer
- Adapters for iMouseXP, OpenAI vision and JSON storage
"""

from .constants import (
    COMBO_PAUSE_MS,
    DEFAULT_POST_INTERVAL_SECONDS,
    DEFAULT_SCROLL_DELAY_SECONDS,
    DELAY_JITTER_MAX,
    DELAY_JITTER_MIN,
    LOG_BUFFER_SIZE,
    RECENT_ERRORS_MAX,
    SKIP_PROBABILITY,
)
from .model import (
    ActionType,
    AutomationConfig,
    AutomationStatus,
    ControlResult,
    CycleResult,
    Device,
    EngineState,
    EngineStats,
    EngineStatus,
    InstagramCoords,
    NormalizedCoords,
    OperationResult,
    Platform,
    PlatformCoords,
    TikTokCoords,
    Trigger,
    ViewingTimeConfig,
    ViewingTimeRange,
    VisionResult,
)

__all__ = [
    # Constants
    "RECENT_ERRORS_MAX",
    "LOG_BUFFER_SIZE",
    "DEFAULT_POST_INTERVAL_SECONDS",
    "DEFAULT_SCROLL_DELAY_SECONDS",
    "DELAY_JITTER_MIN",
    "DELAY_JITTER_MAX",
    "SKIP_PROBABILITY",
    "COMBO_PAUSE_MS",
    # Models
    "Platform",
    "ActionType",
    "AutomationStatus",
    "EngineStatus",
    "NormalizedCoords",
    "PlatformCoords",
    "TikTokCoords",
    "InstagramCoords",
    "Device",
    "Trigger",
    "ViewingTimeRange",
    "ViewingTimeConfig",
    "AutomationConfig",
    "VisionResult",
    "OperationResult",
    "CycleResult",
    "ControlResult",
    "EngineState",
    "EngineStats",
]
