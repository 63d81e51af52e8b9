"""UI components for OTG Control.

This package provides PySide6-based UI components:
- MainWindow: Main application window
- RunPanel: Control panel with status, stats and log
- Common widgets: Banners, indicators, buttons
"""

from .main_window import MainWindow
from .run_panel import LogView, RunPanel
from .widgets import (
    ControlButtons,
    StatsDisplay,
    StatusIndicator,
    WarningBanner,
)

__all__ = [
    # Main window
    "MainWindow",
    # Run panel
    "RunPanel",
    "LogView",
    # Widgets
    "WarningBanner",
    "StatusIndicator",
    "StatsDisplay",
    "ControlButtons",
]
