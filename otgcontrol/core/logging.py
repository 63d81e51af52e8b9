"""Thread-safe logging system with circular buffer.

Provides a logging interface for the automation engine that:
- Uses a circular buffer (max 200 entries) to prevent memory growth
- Is thread-safe for loop thread -> UI thread communication
- Tags entries with the engine status and the device being driven
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from threading import Lock
from typing import Any, Callable, Optional

from .constants import LOG_BUFFER_SIZE


class LogLevel(Enum):
    """Log entry severity levels."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class LogEntry:
    """A single log entry.

    Attributes:
        timestamp: When the entry was created
        level: Severity level
        message: Log message content
        status: Engine status at the time (if applicable)
        device_id: Device the message is about (if applicable)
    """

    timestamp: datetime
    level: LogLevel
    message: str
    status: Optional[str] = None
    device_id: Optional[str] = None

    def format(self) -> str:
        """Format the log entry as a string."""
        time_str = self.timestamp.strftime("%H:%M:%S")
        parts = [f"[{time_str}]"]

        if self.level in (LogLevel.WARNING, LogLevel.ERROR):
            parts.append(self.level.name)

        if self.status:
            parts.append(f"[{self.status}]")

        if self.device_id:
            parts.append(f"[{self.device_id}]")

        parts.append(self.message)

        return " ".join(parts)


@dataclass
class LogBuffer:
    """Thread-safe circular buffer for log entries.

    Uses a deque with maxlen to automatically discard old entries.
    Thread-safe for multiple writers and readers.
    """

    max_size: int = LOG_BUFFER_SIZE
    _buffer: deque[LogEntry] = field(default_factory=lambda: deque(maxlen=LOG_BUFFER_SIZE))
    _lock: Lock = field(default_factory=Lock)
    _listeners: list[Callable[[LogEntry], None]] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Reinitialize buffer with correct maxlen if max_size differs."""
        if self._buffer.maxlen != self.max_size:
            self._buffer = deque(maxlen=self.max_size)

    def add(self, entry: LogEntry) -> None:
        """Add a log entry to the buffer (thread-safe)."""
        with self._lock:
            self._buffer.append(entry)
            listeners = list(self._listeners)

        # Notify listeners (outside lock to prevent deadlock)
        for listener in listeners:
            try:
                listener(entry)
            except Exception:
                pass  # a broken sink must not break the automation loop

    def get_all(self) -> list[LogEntry]:
        """Get all entries in the buffer (thread-safe)."""
        with self._lock:
            return list(self._buffer)

    def get_recent(self, count: int) -> list[LogEntry]:
        """Get the most recent N entries (thread-safe)."""
        with self._lock:
            if count >= len(self._buffer):
                return list(self._buffer)
            return list(self._buffer)[-count:]

    def clear(self) -> None:
        """Clear all entries (thread-safe)."""
        with self._lock:
            self._buffer.clear()

    def add_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Add a listener to be notified of new entries."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Remove a listener."""
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def __len__(self) -> int:
        """Return current buffer size."""
        with self._lock:
            return len(self._buffer)


class Logger:
    """Main logging interface for the automation engine.

    Provides convenience methods for logging at different levels
    with optional context (engine status, device id).
    """

    def __init__(self, buffer: Optional[LogBuffer] = None) -> None:
        """Initialize logger with optional existing buffer."""
        self._buffer = buffer if buffer is not None else LogBuffer()
        self._current_status: Optional[str] = None

    @property
    def buffer(self) -> LogBuffer:
        """Access the underlying log buffer."""
        return self._buffer

    def set_status(self, status: Optional[str]) -> None:
        """Set the engine status for subsequent log entries."""
        self._current_status = status

    def _log(
        self,
        level: LogLevel,
        message: str,
        device_id: Optional[str] = None,
    ) -> LogEntry:
        """Internal logging method."""
        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            message=message,
            status=self._current_status,
            device_id=device_id,
        )
        self._buffer.add(entry)
        return entry

    def debug(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a debug message."""
        return self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an info message."""
        return self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a warning message."""
        return self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an error message."""
        return self._log(LogLevel.ERROR, message, **kwargs)

    def state_change(self, old_status: str, new_status: str) -> LogEntry:
        """Log an engine status transition."""
        self.set_status(new_status)
        return self.info(f"Status: {old_status} -> {new_status}")

    def cycle_summary(
        self,
        device_id: str,
        success: bool,
        action: Optional[str] = None,
        error: Optional[str] = None,
    ) -> LogEntry:
        """Log the outcome of one device pass."""
        outcome = "ok" if success else "failed"
        msg = f"Cycle {outcome}"
        if action:
            msg += f", action={action}"
        if error:
            msg += f" ({error})"
        if success:
            return self.info(msg, device_id=device_id)
        return self.warning(msg, device_id=device_id)


# Global logger instance for convenience
_global_logger: Optional[Logger] = None


def get_logger() -> Logger:
    """Get the global logger instance, creating one if needed."""
    global _global_logger
    if _global_logger is None:
        _global_logger = Logger()
    return _global_logger


def set_logger(logger: Logger) -> None:
    """Set the global logger instance."""
    global _global_logger
    _global_logger = logger
