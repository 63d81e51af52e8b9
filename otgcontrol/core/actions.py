"""Gesture sequences for trigger actions.

Each action resolves calibrated normalized points on the device,
converts them to pixels on the effective screen and drives the
actuation capability, pacing multi-step sequences like a person would.
"""

from typing import Optional, Union

from .capabilities import ActuationCapability
from .constants import (
    COMBO_PAUSE_MS,
    COMMENT_CLOSE_VARIANCE_MS,
    COMMENT_CLOSE_WAIT_MS,
    COMMENT_FOCUS_VARIANCE_MS,
    COMMENT_FOCUS_WAIT_MS,
    COMMENT_OPEN_VARIANCE_MS,
    COMMENT_OPEN_WAIT_MS,
    COMMENT_POST_VARIANCE_MS,
    COMMENT_POST_WAIT_MS,
    COMMENT_READ_VARIANCE_MS,
    COMMENT_READ_WAIT_MS,
)
from .coords import to_device_pixels
from .logging import Logger, get_logger
from .model import ActionType, Device, NormalizedCoords, OperationResult, Platform, Trigger
from .timing import TimingPolicy
from .triggers import TriggerMatcher


class ActionExecutor:
    """Runs LIKE / COMMENT / SAVE / SHARE and their combinations.

    Args:
        actuation: Device input capability
        timing: Source of pacing delays
        matcher: Used to pick a random comment template
        logger: Logger instance (uses global if None)
    """

    def __init__(
        self,
        actuation: ActuationCapability,
        timing: TimingPolicy,
        matcher: Optional[TriggerMatcher] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._actuation = actuation
        self._timing = timing
        self._matcher = matcher or TriggerMatcher(timing.rng)
        self._logger = logger or get_logger()

    def execute(
        self,
        action: Union[ActionType, str],
        device: Device,
        platform: Platform,
        trigger: Optional[Trigger] = None,
    ) -> OperationResult:
        """Execute one action on a device.

        Args:
            action: Action kind; unknown strings fail
            device: Target device
            platform: Platform whose calibration is used
            trigger: Selected trigger, source of comment templates

        Returns:
            Result of the action (the failing step's error on failure)
        """
        if action == ActionType.LIKE:
            return self.like(device, platform)

        if action in (ActionType.SAVE, ActionType.SHARE):
            return self.secondary(device, platform)

        if action == ActionType.COMMENT:
            return self.comment(device, platform, trigger)

        if action == ActionType.LIKE_AND_SAVE:
            result = self.like(device, platform)
            if not result:
                return result
            self._timing.sleep_ms(COMBO_PAUSE_MS)
            return self.secondary(device, platform)

        if action == ActionType.LIKE_AND_COMMENT:
            result = self.like(device, platform)
            if not result:
                return result
            self._timing.sleep_ms(COMBO_PAUSE_MS)
            return self.comment(device, platform, trigger)

        if action == ActionType.NO_ACTION:
            self._logger.info("NO_ACTION: watching only", device_id=device.id)
            return OperationResult.ok()

        if action == ActionType.SKIP:
            self._logger.info("Action is SKIP, no action executed", device_id=device.id)
            return OperationResult.ok()

        name = action.value if isinstance(action, ActionType) else action
        return OperationResult.fail(f"Unknown action type: {name}")

    def like(self, device: Device, platform: Platform) -> OperationResult:
        """Tap the platform's like button."""
        point = device.coords_for(platform).like
        if point is None:
            return OperationResult.fail(
                f"Like coordinates not configured for {Platform(platform).value}"
            )
        return self._tap_named(device, point, "LIKE")

    def secondary(self, device: Device, platform: Platform) -> OperationResult:
        """Tap the platform's third action (save or share)."""
        coords = device.coords_for(platform)
        name = coords.secondary_action.value
        point = coords.secondary
        if point is None:
            return OperationResult.fail(
                f"{name.capitalize()} coordinates not configured for {coords.platform.value}"
            )
        return self._tap_named(device, point, name)

    def comment(
        self,
        device: Device,
        platform: Platform,
        trigger: Optional[Trigger],
    ) -> OperationResult:
        """Open the comment sheet, type a template, send and close."""
        coords = device.coords_for(platform)
        if coords.comment is None:
            return OperationResult.fail(
                f"Comment coordinates not configured for {coords.platform.value}"
            )

        templates = trigger.comment_templates if trigger else []
        text = self._matcher.pick_comment(templates)
        if text is None:
            self._logger.warning(
                "No comment templates available, skipping comment",
                device_id=device.id,
            )
            return OperationResult.fail("No comment templates configured")

        result = self._tap(device, coords.comment)
        if not result:
            self._logger.error(
                f"Failed to open comment field: {result.error}", device_id=device.id
            )
            return result
        self._pause(COMMENT_OPEN_WAIT_MS, COMMENT_OPEN_VARIANCE_MS)

        if coords.comment_input_field is not None:
            result = self._tap(device, coords.comment_input_field)
            if not result:
                self._logger.error(
                    f"Failed to focus comment input: {result.error}",
                    device_id=device.id,
                )
                return result
            self._pause(COMMENT_FOCUS_WAIT_MS, COMMENT_FOCUS_VARIANCE_MS)

        self._logger.info(f'Typing comment: "{text}"', device_id=device.id)
        result = self._actuation.type_text(device.id, text)
        if not result:
            self._logger.error(
                f"Failed to type comment: {result.error}", device_id=device.id
            )
            return result
        self._pause(COMMENT_READ_WAIT_MS, COMMENT_READ_VARIANCE_MS)

        if coords.comment_send_button is not None:
            result = self._tap(device, coords.comment_send_button)
            if not result:
                self._logger.error(
                    f"Failed to send comment: {result.error}", device_id=device.id
                )
                return result
        self._pause(COMMENT_POST_WAIT_MS, COMMENT_POST_VARIANCE_MS)

        # The comment is already posted; a failed close only gets logged
        if coords.close_button is not None:
            result = self._tap(device, coords.close_button)
            if not result:
                self._logger.warning(
                    f"Failed to close comment sheet: {result.error}",
                    device_id=device.id,
                )
        self._pause(COMMENT_CLOSE_WAIT_MS, COMMENT_CLOSE_VARIANCE_MS)

        self._logger.info("COMMENT executed successfully", device_id=device.id)
        return OperationResult.ok()

    def _tap(self, device: Device, point: NormalizedCoords) -> OperationResult:
        x, y = to_device_pixels(device, point)
        return self._actuation.tap(device.id, x, y)

    def _tap_named(
        self,
        device: Device,
        point: NormalizedCoords,
        name: str,
    ) -> OperationResult:
        x, y = to_device_pixels(device, point)
        self._logger.info(f"Executing {name} at ({x}, {y})", device_id=device.id)
        result = self._actuation.tap(device.id, x, y)
        if not result:
            self._logger.error(
                f"{name.capitalize()} failed: {result.error}", device_id=device.id
            )
            return result
        self._logger.info(f"{name} executed successfully", device_id=device.id)
        return OperationResult.ok()

    def _pause(self, base_ms: int, variance_ms: int) -> None:
        self._timing.sleep_ms(self._timing.random_delay(base_ms, variance_ms))
