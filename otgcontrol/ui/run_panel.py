"""Run panel for OTG Control automation.

Shows engine status, statistics, controls, recent errors and the log.
"""

from typing import Optional

from PySide6.QtCore import Signal, Slot
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from otgcontrol.core.constants import LOG_BUFFER_SIZE, RECENT_ERRORS_MAX
from otgcontrol.core.logging import LogBuffer, LogEntry
from otgcontrol.core.model import EngineStats

from .widgets import ControlButtons, StatsDisplay, StatusIndicator


class LogView(QPlainTextEdit):
    """Log viewer with circular buffer display."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setReadOnly(True)
        self.setMaximumBlockCount(LOG_BUFFER_SIZE)  # Circular buffer
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.WidgetWidth)
        self.setStyleSheet(
            "font-family: Consolas, Monaco, monospace; font-size: 11px;"
        )

    def add_entry(self, entry: LogEntry) -> None:
        """Add a log entry."""
        self.appendPlainText(entry.format())

    def set_entries(self, entries: list[LogEntry]) -> None:
        """Set all log entries."""
        self.clear()
        for entry in entries:
            self.appendPlainText(entry.format())


class RunPanel(QWidget):
    """Control panel for the automation engine."""

    start_requested = Signal()
    stop_requested = Signal()
    emergency_stop_requested = Signal()

    # Log entries arrive on the loop thread; re-emitted to reach the UI thread
    _log_entry_received = Signal(object)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setMinimumWidth(350)

        self._is_running = False
        self._setup_ui()
        self._connect_signals()

    def _setup_ui(self) -> None:
        """Setup the UI layout."""
        layout = QVBoxLayout(self)
        layout.setSpacing(8)

        # Status section
        status_frame = QFrame()
        status_frame.setFrameStyle(QFrame.Shape.StyledPanel)
        status_layout = QHBoxLayout(status_frame)

        self._status = StatusIndicator()
        status_layout.addWidget(self._status)
        status_layout.addStretch()

        self._stats = StatsDisplay()
        status_layout.addWidget(self._stats)

        layout.addWidget(status_frame)

        self._controls = ControlButtons()
        layout.addWidget(self._controls)

        errors_label = QLabel("Recent errors")
        errors_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(errors_label)

        self._errors = QListWidget()
        self._errors.setMaximumHeight(120)
        layout.addWidget(self._errors)

        log_label = QLabel("Log")
        log_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(log_label)

        self._log_view = LogView()
        layout.addWidget(self._log_view, 1)

    def _connect_signals(self) -> None:
        """Connect internal signals."""
        self._controls.start_clicked.connect(self.start_requested.emit)
        self._controls.stop_clicked.connect(self.stop_requested.emit)
        self._controls.emergency_clicked.connect(self.emergency_stop_requested.emit)
        self._log_entry_received.connect(self._log_view.add_entry)

    # State updates

    @Slot(str)
    def set_status(self, status: str) -> None:
        """Update displayed engine status.

        Args:
            status: EngineStatus value
        """
        self._status.set_state(status)
        self._controls.set_state(status)
        self._is_running = status != "idle"

    def set_stats(self, stats: EngineStats) -> None:
        """Refresh counters and the recent-error list from a snapshot."""
        self._stats.set_stats(stats)
        self.set_status(stats.status.value)

        errors = stats.recent_errors[-RECENT_ERRORS_MAX:]
        current = [self._errors.item(i).text() for i in range(self._errors.count())]
        if current != errors:
            self._errors.clear()
            self._errors.addItems(errors)

    # Logging

    def add_log_entry(self, entry: LogEntry) -> None:
        """Queue a log entry for display (safe from any thread)."""
        self._log_entry_received.emit(entry)

    def set_log_buffer(self, buffer: LogBuffer) -> None:
        """Set log buffer and display existing entries.

        Args:
            buffer: Log buffer to use
        """
        self._log_view.set_entries(buffer.get_all())
        buffer.add_listener(self.add_log_entry)

    def clear_log(self) -> None:
        """Clear the log view."""
        self._log_view.clear()

    # Window behavior

    def closeEvent(self, event) -> None:
        """Handle close event - request stop if running."""
        if self._is_running:
            self.stop_requested.emit()
        event.accept()
