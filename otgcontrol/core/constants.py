"""Global constants for the automation engine and its collaborators."""

from typing import Final

# Engine bookkeeping
RECENT_ERRORS_MAX: Final[int] = 10
"""Capacity of the engine's recent-error list (FIFO eviction)"""

LOG_BUFFER_SIZE: Final[int] = 200
"""Maximum entries kept by the log ring buffer"""

STATS_POLL_INTERVAL_MS: Final[int] = 1000
"""How often the control panel refreshes engine statistics"""

# Timing defaults
DEFAULT_POST_INTERVAL_SECONDS: Final[float] = 10.0
"""Pause between two devices in the round-robin loop"""

DEFAULT_SCROLL_DELAY_SECONDS: Final[float] = 3.0
"""Pause between the scroll gesture and the screenshot"""

# Humanization
DELAY_JITTER_MIN: Final[float] = 0.8
"""Lower multiplier applied to base delays"""

DELAY_JITTER_MAX: Final[float] = 1.2
"""Upper multiplier applied to base delays"""

SKIP_PROBABILITY: Final[float] = 0.1
"""Chance that a whole device cycle is skipped"""

DEFAULT_TRIGGER_PROBABILITY: Final[float] = 1.0
"""Execution probability / selection weight of a trigger without one"""

# Scroll gesture geometry (fractions of the effective screen)
SCROLL_START_X_RATIO: Final[float] = 0.5
SCROLL_START_Y_RATIO: Final[float] = 0.7
SCROLL_LENGTH_RATIO: Final[float] = 0.5
SCROLL_DIRECTION: Final[str] = "up"

# Action pacing (milliseconds)
COMBO_PAUSE_MS: Final[int] = 500
"""Fixed pause between the two halves of LIKE_AND_* actions"""

COMMENT_OPEN_WAIT_MS: Final[int] = 800
COMMENT_OPEN_VARIANCE_MS: Final[int] = 400
"""Wait for the comment sheet to slide in"""

COMMENT_FOCUS_WAIT_MS: Final[int] = 300
COMMENT_FOCUS_VARIANCE_MS: Final[int] = 200
"""Wait for keyboard focus after tapping the input field"""

COMMENT_READ_WAIT_MS: Final[int] = 300
COMMENT_READ_VARIANCE_MS: Final[int] = 300
"""Pause between typing and sending"""

COMMENT_POST_WAIT_MS: Final[int] = 1200
COMMENT_POST_VARIANCE_MS: Final[int] = 600
"""Wait for the posted comment animation to settle"""

COMMENT_CLOSE_WAIT_MS: Final[int] = 500
COMMENT_CLOSE_VARIANCE_MS: Final[int] = 300
"""Wait for the transition back to the feed"""

# iMouseXP actuation server
IMOUSE_BASE_URL: Final[str] = "http://localhost"
IMOUSE_PORT: Final[int] = 9911
IMOUSE_TIMEOUT_SEC: Final[float] = 15.0
IMOUSE_SUCCESS_CODES: Final[tuple[int, ...]] = (200, 0)

# Vision classification service
OPENAI_BASE_URL: Final[str] = "https://api.openai.com/v1"
OPENAI_MODEL: Final[str] = "gpt-4o"
VISION_MAX_TOKENS: Final[int] = 500
VISION_TIMEOUT_SEC: Final[float] = 60.0

# Persistence
DATA_DIR: Final[str] = "./data"
DEVICES_FILE: Final[str] = "devices.json"
AUTOMATION_FILE: Final[str] = "automation.json"
