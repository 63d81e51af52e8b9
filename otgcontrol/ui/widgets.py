"""Common UI widgets for OTG Control.

Provides reusable UI components used across the application.
"""

from typing import Optional

from PySide6.QtCore import Signal
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import (
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QWidget,
)

from otgcontrol.core.model import EngineStats, EngineStatus


def format_uptime(seconds: Optional[int]) -> str:
    """Render an uptime as H:MM:SS, or a dash when never started."""
    if seconds is None:
        return "-"
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


class WarningBanner(QFrame):
    """A dismissible warning banner with yellow background.

    Used for start warnings (skipped devices, scroll-only mode).
    """

    dismissed = Signal()

    def __init__(
        self,
        message: str,
        dismissible: bool = True,
        parent: Optional[QWidget] = None,
    ) -> None:
        """Initialize the warning banner.

        Args:
            message: Warning message to display
            dismissible: Whether to show close button
            parent: Parent widget
        """
        super().__init__(parent)

        self.setAutoFillBackground(True)
        self.setFrameStyle(QFrame.Shape.StyledPanel)

        # Yellow background
        palette = self.palette()
        palette.setColor(QPalette.ColorRole.Window, QColor(255, 243, 205))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(133, 100, 4))
        self.setPalette(palette)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)

        self._label = QLabel(message)
        self._label.setWordWrap(True)
        layout.addWidget(self._label, 1)

        if dismissible:
            close_btn = QPushButton("×")
            close_btn.setFixedSize(24, 24)
            close_btn.setFlat(True)
            close_btn.clicked.connect(self._on_dismiss)
            layout.addWidget(close_btn)

    def _on_dismiss(self) -> None:
        """Handle dismiss button click."""
        self.hide()
        self.dismissed.emit()

    def set_message(self, message: str) -> None:
        """Update the warning message."""
        self._label.setText(message)

    def show_warnings(self, warnings: list[str]) -> None:
        """Show a list of warnings, or hide the banner if there are none."""
        if not warnings:
            self.hide()
            return
        self.set_message("\n".join(f"⚠️ {w}" for w in warnings))
        self.show()


class StatusIndicator(QWidget):
    """Status indicator showing the engine state."""

    STATE_COLORS = {
        EngineStatus.IDLE.value: QColor(128, 128, 128),      # Gray
        EngineStatus.RUNNING.value: QColor(40, 167, 69),     # Green
        EngineStatus.STOPPING.value: QColor(255, 152, 0),    # Orange
    }

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self._dot = QLabel("●")
        self._dot.setFixedWidth(20)
        layout.addWidget(self._dot)

        self._text = QLabel()
        layout.addWidget(self._text, 1)

        self.set_state(EngineStatus.IDLE.value)

    def set_state(self, state: str) -> None:
        """Update the displayed state.

        Args:
            state: Engine status value (idle, running, stopping)
        """
        self._text.setText(state.capitalize())
        color = self.STATE_COLORS.get(state, QColor(128, 128, 128))
        self._dot.setStyleSheet(f"color: {color.name()};")


class StatsDisplay(QWidget):
    """Cycle count, uptime and current device."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        layout = QGridLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._cycles = QLabel("0")
        self._cycles.setStyleSheet("font-size: 18px; font-weight: bold;")
        self._uptime = QLabel("-")
        self._device = QLabel("-")

        layout.addWidget(QLabel("Cycles:"), 0, 0)
        layout.addWidget(self._cycles, 0, 1)
        layout.addWidget(QLabel("Uptime:"), 1, 0)
        layout.addWidget(self._uptime, 1, 1)
        layout.addWidget(QLabel("Device:"), 2, 0)
        layout.addWidget(self._device, 2, 1)

    def set_stats(self, stats: EngineStats) -> None:
        self._cycles.setText(str(stats.cycle_count))
        self._uptime.setText(format_uptime(stats.uptime_seconds))
        self._device.setText(stats.current_device or "-")


class ControlButtons(QWidget):
    """Start / Stop / Emergency stop buttons."""

    start_clicked = Signal()
    stop_clicked = Signal()
    emergency_clicked = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self._start_btn = QPushButton("Start")
        self._start_btn.setStyleSheet(
            "background-color: #28a745; color: white; font-weight: bold;"
        )
        self._start_btn.clicked.connect(self.start_clicked.emit)
        layout.addWidget(self._start_btn)

        self._stop_btn = QPushButton("Stop")
        self._stop_btn.clicked.connect(self.stop_clicked.emit)
        layout.addWidget(self._stop_btn)

        self._emergency_btn = QPushButton("Emergency stop")
        self._emergency_btn.setStyleSheet("background-color: #dc3545; color: white;")
        self._emergency_btn.clicked.connect(self.emergency_clicked.emit)
        layout.addWidget(self._emergency_btn)

        self.set_state(EngineStatus.IDLE.value)

    def set_state(self, state: str) -> None:
        """Enable the buttons that make sense in this engine state."""
        self._start_btn.setEnabled(state == EngineStatus.IDLE.value)
        self._stop_btn.setEnabled(state == EngineStatus.RUNNING.value)
        # Emergency stop stays available whenever a loop might be alive
        self._emergency_btn.setEnabled(state != EngineStatus.IDLE.value)
