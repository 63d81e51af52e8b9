"""Application controller that wires UI to automation engine.

Handles all signal connections between MainWindow and AutomationEngine,
saves the operator's settings before a start and polls engine stats.
"""

from typing import Optional

from PySide6.QtCore import QObject, QTimer, Slot

from otgcontrol.core.adapters import ImouseClient, JsonStore, refresh_devices
from otgcontrol.core.constants import STATS_POLL_INTERVAL_MS
from otgcontrol.core.engine import AutomationEngine
from otgcontrol.core.logging import get_logger
from otgcontrol.ui.main_window import MainWindow


class ApplicationController(QObject):
    """Controller that connects UI to automation engine.

    Responsibilities:
    - Wire signals between MainWindow and AutomationEngine
    - Persist device selection, platform and timing before starting
    - Refresh the device list from the actuation server
    - Poll engine statistics once per second
    """

    def __init__(
        self,
        window: MainWindow,
        engine: AutomationEngine,
        store: JsonStore,
        imouse: ImouseClient,
        parent: Optional[QObject] = None,
    ) -> None:
        """Initialize the controller.

        Args:
            window: Main application window
            engine: Automation engine
            store: Config and device storage
            imouse: Actuation client, used for device refresh
            parent: Parent QObject
        """
        super().__init__(parent)

        self._window = window
        self._engine = engine
        self._store = store
        self._imouse = imouse
        self._logger = get_logger()

        self._stats_timer = QTimer(self)
        self._stats_timer.setInterval(STATS_POLL_INTERVAL_MS)
        self._stats_timer.timeout.connect(self._poll_stats)

        self._connect_signals()
        self._load_into_window()
        self._stats_timer.start()

    def _connect_signals(self) -> None:
        """Connect all signals between window and engine."""
        # Window -> Controller -> Engine
        self._window.start_automation.connect(self._on_start_requested)
        self._window.stop_automation.connect(self._on_stop_requested)
        self._window.emergency_stop.connect(self._on_emergency_stop)
        self._window.refresh_devices.connect(self._on_refresh_devices)

        # Engine -> Controller -> Window
        self._engine.status_changed.connect(self._window.update_status)

    def _load_into_window(self) -> None:
        config = self._store.load_config()
        self._window.set_configuration(
            config.platform,
            config.post_interval_seconds,
            config.scroll_delay_seconds,
        )
        self._window.set_devices(self._store.load_devices(), config.device_ids)

    def _save_from_window(self) -> bool:
        """Store the window's settings; False (after a dialog) on failure."""
        post_interval, scroll_delay = self._window.timing_settings()
        for result in (
            self._store.update_platform(self._window.selected_platform()),
            self._store.update_selected_devices(self._window.selected_device_ids()),
            self._store.update_timing_settings(post_interval, scroll_delay),
        ):
            if not result:
                self._window.show_error_dialog("Cannot save settings", result.error or "")
                return False
        return True

    # Start/Stop handlers

    @Slot()
    def _on_start_requested(self) -> None:
        """Handle start request from UI."""
        if not self._save_from_window():
            return

        result = self._engine.start()
        if not result:
            self._logger.error(f"Start failed: {result.error}")
            self._window.show_error_dialog("Cannot start", result.error or "")
            return

        self._window.show_warnings(result.warnings)
        self._poll_stats()

    @Slot()
    def _on_stop_requested(self) -> None:
        """Handle stop request."""
        result = self._engine.stop()
        if not result:
            self._logger.warning(f"Stop ignored: {result.error}")

    @Slot()
    def _on_emergency_stop(self) -> None:
        """Handle emergency stop request."""
        self._engine.emergency_stop()
        self._poll_stats()

    @Slot()
    def _on_refresh_devices(self) -> None:
        """Pull devices from the actuation server into the list."""
        selected = self._window.selected_device_ids()
        result = refresh_devices(self._imouse, self._store)
        if not result:
            self._window.show_error_dialog("Device refresh failed", result.error or "")
            return
        self._logger.info(f"Found {len(result.data)} device(s)")
        self._window.set_devices(result.data, selected)

    @Slot()
    def _poll_stats(self) -> None:
        self._window.update_stats(self._engine.stats())

    def shutdown(self) -> None:
        """Stop polling and halt the engine before exit."""
        self._stats_timer.stop()
        if self._engine.is_running():
            self._engine.stop()
