"""Conversion between normalized and pixel coordinates.

Normalized coordinates are fractions of a device's width and height,
so one calibration works at any resolution. Pixel values round half
up, matching how the actuation server rounds gesture positions.
"""

import math

from .model import Device, NormalizedCoords


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def normalize(x: float, y: float, width: float, height: float) -> NormalizedCoords:
    """Convert pixel coordinates to normalized ones, clamped to [0, 1].

    Args:
        x: Horizontal pixel position
        y: Vertical pixel position
        width: Reference width (must be > 0)
        height: Reference height (must be > 0)
    """
    return NormalizedCoords(
        x_norm=max(0.0, min(1.0, x / width)),
        y_norm=max(0.0, min(1.0, y / height)),
    )


def denormalize(
    coords: NormalizedCoords,
    width: float,
    height: float,
) -> tuple[int, int]:
    """Convert normalized coordinates to pixels in a width x height space."""
    return (
        round_half_up(coords.x_norm * width),
        round_half_up(coords.y_norm * height),
    )


def to_device_pixels(device: Device, coords: NormalizedCoords) -> tuple[int, int]:
    """Pixel position on the device's effective screen."""
    width, height = device.effective_size()
    return denormalize(coords, width, height)


def is_valid_normalized(coords: NormalizedCoords) -> bool:
    """Check that both components lie in [0, 1]."""
    return 0.0 <= coords.x_norm <= 1.0 and 0.0 <= coords.y_norm <= 1.0
