"""Main window for OTG Control.

Combines all UI components into the main application window:
- Device selection and platform choice
- Timing settings
- Run panel integration
"""

from typing import Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtWidgets import (
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from otgcontrol.core.logging import get_logger
from otgcontrol.core.model import Device, EngineStats, EngineStatus, Platform

from .run_panel import RunPanel
from .widgets import WarningBanner


class MainWindow(QMainWindow):
    """Main application window.

    Contains:
    - Device list, platform selector and timing (left panel)
    - Run panel with status and controls (right panel)
    """

    start_automation = Signal()
    stop_automation = Signal()
    emergency_stop = Signal()
    refresh_devices = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.setWindowTitle("OTG Control")
        self.setMinimumSize(800, 600)

        self._logger = get_logger()
        self._devices: list[Device] = []

        self._setup_ui()
        self._connect_signals()

    def _setup_ui(self) -> None:
        """Setup the main UI layout."""
        central = QWidget()
        self.setCentralWidget(central)

        main_layout = QVBoxLayout(central)

        # Start warnings (shown if needed)
        self._warning_banner = WarningBanner("", dismissible=True)
        self._warning_banner.hide()
        main_layout.addWidget(self._warning_banner)

        splitter = QSplitter(Qt.Orientation.Horizontal)

        # Left: configuration
        config_panel = QWidget()
        config_layout = QVBoxLayout(config_panel)

        form = QFormLayout()
        self._platform_combo = QComboBox()
        for platform in Platform:
            self._platform_combo.addItem(platform.value.capitalize(), platform.value)
        form.addRow("Platform:", self._platform_combo)

        self._post_interval = QDoubleSpinBox()
        self._post_interval.setRange(0.0, 3600.0)
        self._post_interval.setSuffix(" s")
        form.addRow("Post interval:", self._post_interval)

        self._scroll_delay = QDoubleSpinBox()
        self._scroll_delay.setRange(0.0, 600.0)
        self._scroll_delay.setSuffix(" s")
        form.addRow("Scroll delay:", self._scroll_delay)
        config_layout.addLayout(form)

        devices_label = QLabel("Devices")
        devices_label.setStyleSheet("font-weight: bold;")
        config_layout.addWidget(devices_label)

        self._device_list = QListWidget()
        config_layout.addWidget(self._device_list, 1)

        self._refresh_btn = QPushButton("Refresh devices")
        config_layout.addWidget(self._refresh_btn)

        splitter.addWidget(config_panel)

        # Right: run panel
        self._run_panel = RunPanel()
        splitter.addWidget(self._run_panel)

        splitter.setSizes([320, 480])
        main_layout.addWidget(splitter)

    def _connect_signals(self) -> None:
        """Connect UI signals."""
        self._run_panel.start_requested.connect(self.start_automation.emit)
        self._run_panel.stop_requested.connect(self.stop_automation.emit)
        self._run_panel.emergency_stop_requested.connect(self.emergency_stop.emit)
        self._refresh_btn.clicked.connect(self.refresh_devices.emit)
        self._platform_combo.currentIndexChanged.connect(self._on_platform_changed)

        self._run_panel.set_log_buffer(self._logger.buffer)

    # Configuration accessors

    def selected_platform(self) -> Platform:
        return Platform(self._platform_combo.currentData())

    def selected_device_ids(self) -> list[str]:
        """Checked devices, in list order."""
        ids = []
        for i in range(self._device_list.count()):
            item = self._device_list.item(i)
            if item.checkState() == Qt.CheckState.Checked:
                ids.append(item.data(Qt.ItemDataRole.UserRole))
        return ids

    def timing_settings(self) -> tuple[float, float]:
        """(post interval, scroll delay) in seconds."""
        return self._post_interval.value(), self._scroll_delay.value()

    def set_configuration(
        self,
        platform: Platform,
        post_interval_seconds: float,
        scroll_delay_seconds: float,
    ) -> None:
        index = self._platform_combo.findData(Platform(platform).value)
        if index >= 0:
            self._platform_combo.setCurrentIndex(index)
        self._post_interval.setValue(post_interval_seconds)
        self._scroll_delay.setValue(scroll_delay_seconds)

    def set_devices(self, devices: list[Device], selected_ids: list[str]) -> None:
        """Fill the device list, checking the selected devices.

        Devices without a like point for the current platform are
        flagged; the engine skips them on start.
        """
        self._devices = list(devices)
        platform = self.selected_platform()
        selected = set(selected_ids)

        self._device_list.clear()
        for device in devices:
            text = device.label
            if not device.has_like(platform):
                text += f"  (no {platform.value} like point)"
            item = QListWidgetItem(text)
            item.setData(Qt.ItemDataRole.UserRole, device.id)
            item.setFlags(item.flags() | Qt.ItemFlag.ItemIsUserCheckable)
            item.setCheckState(
                Qt.CheckState.Checked if device.id in selected
                else Qt.CheckState.Unchecked
            )
            self._device_list.addItem(item)

    @Slot(int)
    def _on_platform_changed(self, _index: int) -> None:
        self.set_devices(self._devices, self.selected_device_ids())

    # State updates from engine

    @Slot(str)
    def update_status(self, status: str) -> None:
        """Update UI for new engine status.

        Args:
            status: EngineStatus value
        """
        self._run_panel.set_status(status)
        editable = status == EngineStatus.IDLE.value
        self._platform_combo.setEnabled(editable)
        self._post_interval.setEnabled(editable)
        self._scroll_delay.setEnabled(editable)
        self._device_list.setEnabled(editable)
        self._refresh_btn.setEnabled(editable)

    def update_stats(self, stats: EngineStats) -> None:
        self._run_panel.set_stats(stats)
        self.update_status(stats.status.value)

    def show_warnings(self, warnings: list[str]) -> None:
        self._warning_banner.show_warnings(warnings)

    # Dialogs

    def show_error_dialog(self, title: str, message: str) -> None:
        """Show error dialog.

        Args:
            title: Dialog title
            message: Error message
        """
        QMessageBox.critical(self, title, message)
