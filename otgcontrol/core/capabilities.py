"""Contracts of the collaborators the automation core depends on.

Implementations live in ``core.adapters``; tests substitute mocks.
None of these calls may raise: failures come back as OperationResult.
"""

from typing import Optional, Protocol

from .model import (
    AutomationConfig,
    AutomationStatus,
    Device,
    OperationResult,
    Platform,
    Trigger,
)


class ActuationCapability(Protocol):
    """Synthetic input and screen capture on a remote device."""

    def tap(self, device_id: str, x: int, y: int) -> OperationResult:
        ...

    def swipe(
        self,
        device_id: str,
        x: int,
        y: int,
        direction: str,
        length: int,
    ) -> OperationResult:
        ...

    def type_text(self, device_id: str, text: str) -> OperationResult:
        ...

    def screenshot(self, device_id: str) -> OperationResult:
        """Capture the screen; ``data`` is an image data URL."""
        ...


class ClassificationCapability(Protocol):
    """Describes screenshot content for trigger matching."""

    def classify(self, image: str, platform: Platform) -> OperationResult:
        """Classify an image; ``data`` is a VisionResult."""
        ...


class PersistenceCapability(Protocol):
    """Storage of the automation record and the device list."""

    def load_config(self) -> AutomationConfig:
        ...

    def set_running_status(self, status: AutomationStatus) -> OperationResult:
        """Record the running flag without touching the rest of the record."""
        ...

    def load_devices(self) -> list[Device]:
        ...

    def get_device(self, device_id: str) -> Optional[Device]:
        ...

    def get_triggers_for_device(self, device_id: str) -> list[Trigger]:
        ...
