"""JSON file storage for devices and the automation record.

``devices.json`` holds a list of devices; ``automation.json`` holds the
single AutomationConfig. Missing files read as defaults, writes go to a
temp file that is then renamed over the target.
"""

import json
import time
import uuid
from dataclasses import replace
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Optional, Sequence, Union

from ..constants import AUTOMATION_FILE, DEVICES_FILE
from ..coords import is_valid_normalized, normalize
from ..logging import Logger, get_logger
from ..model import (
    ActionType,
    AutomationConfig,
    AutomationStatus,
    Device,
    NormalizedCoords,
    OperationResult,
    Platform,
    Trigger,
)
from ..triggers import parse_keywords


class StoreError(Exception):
    """A storage file exists but cannot be read or parsed."""


def generate_trigger_id() -> str:
    """Unique id of the form ``trigger_<ms>_<random>``."""
    return f"trigger_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


def create_trigger(
    action: ActionType,
    keywords: str,
    probability: Optional[float] = None,
    device_ids: Optional[Sequence[str]] = None,
    comment_templates: Optional[Sequence[str]] = None,
    comment_language: Optional[str] = None,
) -> Trigger:
    """Build a trigger from operator input (comma-separated keywords).

    Raises:
        ValueError: If no keyword remains after parsing
    """
    parsed = parse_keywords(keywords)
    if not parsed:
        raise ValueError("At least one keyword is required")
    return Trigger(
        id=generate_trigger_id(),
        action=action,
        keywords=parsed,
        device_ids=list(device_ids or []),
        comment_templates=[t for t in (comment_templates or []) if t.strip()],
        comment_language=comment_language,
        probability=probability,
    )


class JsonStore:
    """Persistence for devices and automation config.

    Thread-safe: all reads and read-modify-write helpers run under one
    re-entrant lock, so the engine thread and the UI can share it.

    Args:
        data_dir: Directory holding both JSON files
        default_config: Record returned while automation.json is missing
        logger: Logger instance (uses global if None)
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        default_config: Optional[AutomationConfig] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.devices_path = self.data_dir / DEVICES_FILE
        self.automation_path = self.data_dir / AUTOMATION_FILE
        self._default_config = default_config or AutomationConfig()
        self._logger = logger or get_logger()
        self._lock = RLock()

    # File primitives

    def _read_json(self, path: Path) -> Optional[Any]:
        """Parsed file content, None if the file does not exist.

        Raises:
            StoreError: If the file cannot be read or is not valid JSON
        """
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read {path.name}: {e}") from e

    def _write_json(self, path: Path, data: Any) -> OperationResult:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(path.suffix + ".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(path)
        except OSError as e:
            self._logger.error(f"Write failed for {path.name}: {e}")
            return OperationResult.fail(f"Write failed: {e}")
        return OperationResult.ok()

    # Automation config

    def _read_config(self) -> AutomationConfig:
        """Stored automation record; defaults only when the file is missing.

        Raises:
            StoreError: If automation.json is unreadable or malformed
        """
        payload = self._read_json(self.automation_path)
        if payload is None:
            return AutomationConfig.from_dict(self._default_config.to_dict())
        try:
            return AutomationConfig.from_dict(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StoreError(f"Malformed {self.automation_path.name}: {e}") from e

    def load_config(self) -> AutomationConfig:
        """Stored automation record; defaults when missing or unreadable."""
        with self._lock:
            try:
                return self._read_config()
            except StoreError as e:
                self._logger.warning(f"Invalid automation.json, using defaults: {e}")
                return AutomationConfig.from_dict(self._default_config.to_dict())

    def save_config(self, config: AutomationConfig) -> OperationResult:
        with self._lock:
            return self._write_json(self.automation_path, config.to_dict())

    def _update_config(
        self,
        mutate: Callable[[AutomationConfig], Optional[str]],
    ) -> OperationResult:
        """Read, mutate in place and save; mutate returns an error or None.

        An unreadable automation.json is left untouched rather than
        overwritten with defaults.
        """
        with self._lock:
            try:
                config = self._read_config()
            except StoreError as e:
                self._logger.error(f"Cannot update automation.json: {e}")
                return OperationResult.fail(f"Cannot update automation.json: {e}")
            error = mutate(config)
            if error:
                return OperationResult.fail(error)
            return self.save_config(config)

    def set_running_status(self, status: AutomationStatus) -> OperationResult:
        def mutate(config: AutomationConfig) -> None:
            config.running = AutomationStatus(status)

        return self._update_config(mutate)

    def update_selected_devices(self, device_ids: Sequence[str]) -> OperationResult:
        def mutate(config: AutomationConfig) -> None:
            config.device_ids = list(device_ids)

        return self._update_config(mutate)

    def update_platform(self, platform: Platform) -> OperationResult:
        def mutate(config: AutomationConfig) -> None:
            config.platform = Platform(platform)

        return self._update_config(mutate)

    def update_timing_settings(
        self,
        post_interval_seconds: Optional[float] = None,
        scroll_delay_seconds: Optional[float] = None,
    ) -> OperationResult:
        """Change the pauses; None leaves a value untouched."""
        def mutate(config: AutomationConfig) -> None:
            if post_interval_seconds is not None:
                config.post_interval_seconds = float(post_interval_seconds)
            if scroll_delay_seconds is not None:
                config.scroll_delay_seconds = float(scroll_delay_seconds)

        return self._update_config(mutate)

    # Triggers

    def get_triggers(self) -> list[Trigger]:
        return self.load_config().triggers

    def get_triggers_for_device(self, device_id: str) -> list[Trigger]:
        """Triggers with no device scope or a scope including the device."""
        return [t for t in self.get_triggers() if t.applies_to(device_id)]

    def upsert_trigger(self, trigger: Trigger) -> OperationResult:
        """Replace the trigger with the same id, or append it."""
        if not trigger.keywords:
            return OperationResult.fail("Invalid trigger: at least one keyword is required")
        if trigger.probability is not None and not 0.0 <= trigger.probability <= 1.0:
            return OperationResult.fail("Invalid trigger: probability must be within [0, 1]")

        def mutate(config: AutomationConfig) -> None:
            for i, existing in enumerate(config.triggers):
                if existing.id == trigger.id:
                    config.triggers[i] = trigger
                    return
            config.triggers.append(trigger)

        return self._update_config(mutate)

    def remove_trigger(self, trigger_id: str) -> OperationResult:
        def mutate(config: AutomationConfig) -> Optional[str]:
            remaining = [t for t in config.triggers if t.id != trigger_id]
            if len(remaining) == len(config.triggers):
                return f"Trigger not found: {trigger_id}"
            config.triggers = remaining
            return None

        return self._update_config(mutate)

    # Devices

    def load_devices(self) -> list[Device]:
        """Stored devices; empty when missing or unreadable."""
        with self._lock:
            try:
                payload = self._read_json(self.devices_path)
                if payload is None:
                    return []
                return [Device.from_dict(d) for d in payload]
            except (StoreError, KeyError, TypeError, ValueError) as e:
                self._logger.warning(f"Invalid devices.json, ignoring it: {e}")
                return []

    def save_devices(self, devices: Sequence[Device]) -> OperationResult:
        with self._lock:
            return self._write_json(self.devices_path, [d.to_dict() for d in devices])

    def get_device(self, device_id: str) -> Optional[Device]:
        for device in self.load_devices():
            if device.id == device_id:
                return device
        return None

    def merge_devices(self, fresh: Sequence[Device]) -> OperationResult:
        """Replace the device list with a server listing.

        Stored labels and calibrations survive for devices still listed;
        devices no longer listed are dropped.
        """
        with self._lock:
            existing = {d.id: d for d in self.load_devices()}
            merged = []
            for device in fresh:
                old = existing.get(device.id)
                if old is not None:
                    device = replace(
                        device,
                        label=old.label or device.label,
                        tiktok=old.tiktok,
                        instagram=old.instagram,
                    )
                merged.append(device)
            return self.save_devices(merged)

    def _update_device(
        self,
        device_id: str,
        mutate: Callable[[Device], Device],
    ) -> OperationResult:
        with self._lock:
            devices = self.load_devices()
            for i, device in enumerate(devices):
                if device.id == device_id:
                    devices[i] = mutate(device)
                    return self.save_devices(devices)
            return OperationResult.fail(f"Device not found: {device_id}")

    def update_device_coords(
        self,
        device_id: str,
        platform: Platform,
        point: str,
        coords: Optional[NormalizedCoords],
    ) -> OperationResult:
        """Set (or clear, with None) one calibrated point of one platform."""
        if coords is not None and not is_valid_normalized(coords):
            return OperationResult.fail("Invalid coordinates: values must be within [0, 1]")

        def mutate(device: Device) -> Device:
            updated = device.coords_for(platform).with_point(point, coords)
            return device.with_coords(updated)

        try:
            return self._update_device(device_id, mutate)
        except ValueError as e:
            return OperationResult.fail(str(e))

    def set_coords_from_pixels(
        self,
        device_id: str,
        platform: Platform,
        point: str,
        x: float,
        y: float,
    ) -> OperationResult:
        """Calibrate a point from a pixel position on the effective screen."""
        device = self.get_device(device_id)
        if device is None:
            return OperationResult.fail(f"Device not found: {device_id}")
        width, height = device.effective_size()
        if width <= 0 or height <= 0:
            return OperationResult.fail(f"Device {device.label} has no known resolution")
        return self.update_device_coords(
            device_id, platform, point, normalize(x, y, width, height)
        )

    def update_device_label(self, device_id: str, label: str) -> OperationResult:
        return self._update_device(device_id, lambda d: replace(d, label=label))

    def remove_device(self, device_id: str) -> OperationResult:
        with self._lock:
            devices = self.load_devices()
            remaining = [d for d in devices if d.id != device_id]
            if len(remaining) == len(devices):
                return OperationResult.fail(f"Device not found: {device_id}")
            return self.save_devices(remaining)
