"""Concrete collaborators of the automation core.

This module provides implementations of the capability contracts:
- ImouseClient: actuation through the iMouseXP HTTP API
- VisionClient: screenshot classification through OpenAI
- JsonStore: devices and automation config as JSON files
"""

from ..model import Device, OperationResult
from .imouse import ImouseClient, device_from_listing
from .store import JsonStore, StoreError, create_trigger
from .vision import VisionClient, build_prompt


def refresh_devices(client: ImouseClient, store: JsonStore) -> OperationResult:
    """Pull the device list from the server and merge it into the store.

    Stored labels and calibrations are kept for devices still connected.

    Returns:
        Success with the merged device list as data, or the failure
    """
    listing = client.list_devices()
    if not listing:
        return OperationResult.fail(
            listing.error or "Failed to get devices from iMouseXP"
        )

    devices: list[Device] = listing.data
    merged = store.merge_devices(devices)
    if not merged:
        return merged
    return OperationResult.ok(store.load_devices())


__all__ = [
    "ImouseClient",
    "device_from_listing",
    "VisionClient",
    "build_prompt",
    "JsonStore",
    "StoreError",
    "create_trigger",
    "refresh_devices",
]
