"""Core data models for OTG Control.

Defines devices and their per-platform calibration points, triggers,
the automation configuration record, capability results and the
records produced by the automation loop.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from .constants import (
    DEFAULT_POST_INTERVAL_SECONDS,
    DEFAULT_SCROLL_DELAY_SECONDS,
    DEFAULT_TRIGGER_PROBABILITY,
    RECENT_ERRORS_MAX,
)


class Platform(str, Enum):
    """Short-video platforms the engine knows how to drive."""

    TIKTOK = "tiktok"
    """Third action is *save*; comment sheet closes with a back button"""

    INSTAGRAM = "instagram"
    """Third action is *share*; comment sheet closes with a close button"""


class ActionType(str, Enum):
    """Actions a trigger can request."""

    LIKE = "LIKE"
    COMMENT = "COMMENT"
    SAVE = "SAVE"
    SHARE = "SHARE"
    LIKE_AND_COMMENT = "LIKE_AND_COMMENT"
    LIKE_AND_SAVE = "LIKE_AND_SAVE"
    NO_ACTION = "NO_ACTION"
    """Watch only: the viewing-time pause is the whole point"""

    SKIP = "SKIP"


class AutomationStatus(str, Enum):
    """Persisted running flag of the automation config."""

    STOPPED = "stopped"
    RUNNING = "running"


class EngineStatus(str, Enum):
    """Engine state machine states."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


def parse_action(value: Union[str, ActionType]) -> Union[ActionType, str]:
    """Convert a stored action name to ActionType.

    Unrecognized names are returned unchanged so that the action
    executor can report them instead of the loader rejecting them.
    """
    if isinstance(value, ActionType):
        return value
    try:
        return ActionType(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class NormalizedCoords:
    """A point expressed as fractions of the device width and height.

    Attributes:
        x_norm: Horizontal position in [0, 1]
        y_norm: Vertical position in [0, 1]
    """

    x_norm: float
    y_norm: float

    def to_dict(self) -> dict[str, float]:
        return {"x_norm": float(self.x_norm), "y_norm": float(self.y_norm)}

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "NormalizedCoords":
        return NormalizedCoords(
            x_norm=float(payload["x_norm"]),
            y_norm=float(payload["y_norm"]),
        )


@dataclass
class PlatformCoords(ABC):
    """Calibrated tap targets shared by every platform.

    Concrete platforms add their third action (save or share) and the
    control that dismisses the comment sheet; both are reachable through
    ``secondary`` and ``close_button``.
    """

    like: Optional[NormalizedCoords] = None
    comment: Optional[NormalizedCoords] = None
    comment_input_field: Optional[NormalizedCoords] = None
    comment_send_button: Optional[NormalizedCoords] = None

    platform: ClassVar[Platform]
    secondary_action: ClassVar[ActionType]

    @property
    @abstractmethod
    def secondary(self) -> Optional[NormalizedCoords]:
        """Tap target of the platform's third action."""

    @property
    @abstractmethod
    def close_button(self) -> Optional[NormalizedCoords]:
        """Control that dismisses the comment sheet."""

    @classmethod
    def point_names(cls) -> list[str]:
        """Names of all calibratable points of this platform."""
        return [f.name for f in fields(cls)]

    def with_point(
        self,
        name: str,
        coords: Optional[NormalizedCoords],
    ) -> "PlatformCoords":
        """Return a copy with one point replaced.

        Raises:
            ValueError: If the platform has no point with that name
        """
        if name not in self.point_names():
            raise ValueError(
                f"Unknown {self.platform.value} coordinate: {name}"
            )
        return replace(self, **{name: coords})

    def to_dict(self) -> dict[str, dict[str, float]]:
        result = {}
        for name in self.point_names():
            point = getattr(self, name)
            if point is not None:
                result[name] = point.to_dict()
        return result

    @classmethod
    def from_dict(cls, payload: Optional[dict[str, Any]]) -> "PlatformCoords":
        payload = payload or {}
        kwargs = {
            name: NormalizedCoords.from_dict(payload[name])
            for name in cls.point_names()
            if payload.get(name) is not None
        }
        return cls(**kwargs)


@dataclass
class TikTokCoords(PlatformCoords):
    save: Optional[NormalizedCoords] = None
    comment_back_button: Optional[NormalizedCoords] = None

    platform: ClassVar[Platform] = Platform.TIKTOK
    secondary_action: ClassVar[ActionType] = ActionType.SAVE

    @property
    def secondary(self) -> Optional[NormalizedCoords]:
        return self.save

    @property
    def close_button(self) -> Optional[NormalizedCoords]:
        return self.comment_back_button


@dataclass
class InstagramCoords(PlatformCoords):
    share: Optional[NormalizedCoords] = None
    comment_close_button: Optional[NormalizedCoords] = None

    platform: ClassVar[Platform] = Platform.INSTAGRAM
    secondary_action: ClassVar[ActionType] = ActionType.SHARE

    @property
    def secondary(self) -> Optional[NormalizedCoords]:
        return self.share

    @property
    def close_button(self) -> Optional[NormalizedCoords]:
        return self.comment_close_button


@dataclass
class Device:
    """A remote touch device known to the actuation server.

    Attributes:
        id: Identifier used by the actuation server
        label: Human-readable name
        width: Logical display width (points)
        height: Logical display height (points)
        screen_width: Physical/touch width, authoritative for gestures
        screen_height: Physical/touch height, authoritative for gestures
        tiktok: Calibrated points for TikTok
        instagram: Calibrated points for Instagram
        state: Connection state reported by the server
        group: Group name reported by the server
    """

    id: str
    label: str
    width: int
    height: int
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    tiktok: TikTokCoords = field(default_factory=TikTokCoords)
    instagram: InstagramCoords = field(default_factory=InstagramCoords)
    state: Optional[str] = None
    group: Optional[str] = None

    def effective_size(self) -> tuple[int, int]:
        """Screen dimensions when known, else logical dimensions."""
        if self.screen_width and self.screen_height:
            return (self.screen_width, self.screen_height)
        return (self.width, self.height)

    def coords_for(self, platform: Platform) -> PlatformCoords:
        """Calibrated points for the given platform."""
        if Platform(platform) == Platform.INSTAGRAM:
            return self.instagram
        return self.tiktok

    def with_coords(self, coords: PlatformCoords) -> "Device":
        """Return a copy with one platform's points replaced."""
        if coords.platform == Platform.INSTAGRAM:
            return replace(self, instagram=coords)
        return replace(self, tiktok=coords)

    def has_like(self, platform: Platform) -> bool:
        return self.coords_for(platform).like is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "width": self.width,
            "height": self.height,
            "screen_width": self.screen_width,
            "screen_height": self.screen_height,
            "coords": {
                Platform.TIKTOK.value: self.tiktok.to_dict(),
                Platform.INSTAGRAM.value: self.instagram.to_dict(),
            },
            "state": self.state,
            "group": self.group,
        }

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "Device":
        coords = payload.get("coords") or {}
        return Device(
            id=str(payload["id"]),
            label=str(payload.get("label") or payload["id"]),
            width=int(payload["width"]),
            height=int(payload["height"]),
            screen_width=_optional_int(payload.get("screen_width")),
            screen_height=_optional_int(payload.get("screen_height")),
            tiktok=TikTokCoords.from_dict(coords.get(Platform.TIKTOK.value)),
            instagram=InstagramCoords.from_dict(
                coords.get(Platform.INSTAGRAM.value)
            ),
            state=payload.get("state"),
            group=payload.get("group"),
        )


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


@dataclass
class Trigger:
    """A rule mapping matched keywords to an action.

    Attributes:
        id: Unique identifier
        action: Requested action (raw string if not a known ActionType)
        keywords: Lowercase keywords, any of which triggers the rule
        device_ids: Device scope; empty means every selected device
        comment_templates: Candidate texts for COMMENT actions
        comment_language: Language of the templates ('fr' or 'en')
        probability: Execution probability and selection weight in [0, 1]
    """

    id: str
    action: Union[ActionType, str]
    keywords: list[str]
    device_ids: list[str] = field(default_factory=list)
    comment_templates: list[str] = field(default_factory=list)
    comment_language: Optional[str] = None
    probability: Optional[float] = None

    @property
    def weight(self) -> float:
        """Probability with the unset default applied."""
        if self.probability is None:
            return DEFAULT_TRIGGER_PROBABILITY
        return self.probability

    @property
    def action_name(self) -> str:
        if isinstance(self.action, ActionType):
            return self.action.value
        return str(self.action)

    def applies_to(self, device_id: str) -> bool:
        """Whether the trigger's device scope includes this device."""
        return not self.device_ids or device_id in self.device_ids

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "action": self.action_name,
            "keywords": list(self.keywords),
            "probability": self.weight,
        }
        if self.device_ids:
            payload["device_ids"] = list(self.device_ids)
        if self.comment_templates:
            payload["comment_templates"] = list(self.comment_templates)
        if self.comment_language:
            payload["comment_language"] = self.comment_language
        return payload

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "Trigger":
        probability = payload.get("probability")
        return Trigger(
            id=str(payload["id"]),
            action=parse_action(payload["action"]),
            keywords=[str(k) for k in payload.get("keywords", [])],
            device_ids=[str(d) for d in payload.get("device_ids") or []],
            comment_templates=list(payload.get("comment_templates") or []),
            comment_language=payload.get("comment_language"),
            probability=None if probability is None else float(probability),
        )


@dataclass(frozen=True)
class ViewingTimeRange:
    """Dwell-time bounds in seconds."""

    min_seconds: float
    max_seconds: float

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "ViewingTimeRange":
        return ViewingTimeRange(
            min_seconds=float(payload["min_seconds"]),
            max_seconds=float(payload["max_seconds"]),
        )


@dataclass(frozen=True)
class ViewingTimeConfig:
    """Dwell-time ranges for relevant vs non-relevant content."""

    relevant: ViewingTimeRange
    non_relevant: ViewingTimeRange

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "ViewingTimeConfig":
        return ViewingTimeConfig(
            relevant=ViewingTimeRange.from_dict(payload["relevant"]),
            non_relevant=ViewingTimeRange.from_dict(payload["non_relevant"]),
        )


@dataclass
class AutomationConfig:
    """The single mutable automation record.

    Attributes:
        name: Display name of the automation
        platform: Platform whose coordinates and prompts are used
        device_ids: Selected devices, processed in this order
        post_interval_seconds: Base pause between devices
        scroll_delay_seconds: Base pause between scroll and screenshot
        viewing_time: Optional dwell-time ranges
        triggers: Keyword rules
        running: Persisted running flag
    """

    name: str = "Automation"
    platform: Platform = Platform.TIKTOK
    device_ids: list[str] = field(default_factory=list)
    post_interval_seconds: float = DEFAULT_POST_INTERVAL_SECONDS
    scroll_delay_seconds: float = DEFAULT_SCROLL_DELAY_SECONDS
    viewing_time: Optional[ViewingTimeConfig] = None
    triggers: list[Trigger] = field(default_factory=list)
    running: AutomationStatus = AutomationStatus.STOPPED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "platform": self.platform.value,
            "device_ids": list(self.device_ids),
            "post_interval_seconds": self.post_interval_seconds,
            "scroll_delay_seconds": self.scroll_delay_seconds,
            "viewing_time": (
                self.viewing_time.to_dict() if self.viewing_time else None
            ),
            "triggers": [t.to_dict() for t in self.triggers],
            "running": self.running.value,
        }

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "AutomationConfig":
        viewing_time = payload.get("viewing_time")
        return AutomationConfig(
            name=str(payload.get("name", "Automation")),
            platform=Platform(payload.get("platform", Platform.TIKTOK.value)),
            device_ids=[str(d) for d in payload.get("device_ids", [])],
            post_interval_seconds=float(
                payload.get("post_interval_seconds", DEFAULT_POST_INTERVAL_SECONDS)
            ),
            scroll_delay_seconds=float(
                payload.get("scroll_delay_seconds", DEFAULT_SCROLL_DELAY_SECONDS)
            ),
            viewing_time=(
                ViewingTimeConfig.from_dict(viewing_time) if viewing_time else None
            ),
            triggers=[Trigger.from_dict(t) for t in payload.get("triggers", [])],
            running=AutomationStatus(
                payload.get("running", AutomationStatus.STOPPED.value)
            ),
        )


@dataclass(frozen=True)
class VisionResult:
    """What the classification service saw on a screenshot."""

    caption: str
    topics: list[str] = field(default_factory=list)

    def analysis_text(self) -> str:
        """Lowercase search text built from caption and topics."""
        return " ".join([self.caption, *self.topics]).lower()


@dataclass
class OperationResult:
    """Outcome of a capability call or an action.

    Attributes:
        success: True if the operation succeeded
        error: Human-readable reason when it did not
        data: Payload of successful reads (screenshot, vision result, ...)
    """

    success: bool
    error: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        """Create a failed result with an error message."""
        return cls(success=False, error=error)

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


@dataclass(frozen=True)
class CycleResult:
    """Immutable record of one device pass."""

    device_id: str
    device_label: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    success: bool = False
    scrolled: bool = False
    analyzed: bool = False
    vision_result: Optional[VisionResult] = None
    analysis_text: Optional[str] = None
    matched_trigger: Optional[Trigger] = None
    skipped_by_probability: bool = False
    skipped_by_humanization: bool = False
    viewing_time_ms: int = 0
    action_executed: Optional[Union[ActionType, str]] = None
    action_success: Optional[bool] = None
    error: Optional[str] = None


@dataclass
class ControlResult:
    """Outcome of an engine control call (start/stop)."""

    success: bool
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str) -> "ControlResult":
        return cls(success=False, error=error)

    def __bool__(self) -> bool:
        return self.success


@dataclass
class EngineState:
    """Runtime state owned by the engine controller.

    Attributes:
        status: Current state machine state
        current_device_id: Device being processed, if any
        current_device_label: Label of that device
        cycle_count: Completed device passes since start
        errors: Most recent errors, oldest evicted first
        started_at: When the current/last run started
        last_cycle_result: Result of the latest device pass
    """

    status: EngineStatus = EngineStatus.IDLE
    current_device_id: Optional[str] = None
    current_device_label: Optional[str] = None
    cycle_count: int = 0
    errors: deque[str] = field(
        default_factory=lambda: deque(maxlen=RECENT_ERRORS_MAX)
    )
    started_at: Optional[datetime] = None
    last_cycle_result: Optional[CycleResult] = None

    def clear_current_device(self) -> None:
        self.current_device_id = None
        self.current_device_label = None


@dataclass(frozen=True)
class EngineStats:
    """Read-only snapshot returned by the engine's stats()."""

    status: EngineStatus
    cycle_count: int
    uptime_seconds: Optional[int]
    current_device: Optional[str]
    recent_errors: list[str]
    last_cycle_result: Optional[CycleResult] = None
