"""Single device cycle.

scroll -> delay -> screenshot -> classify -> dwell -> match -> act
"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from .actions import ActionExecutor
from .capabilities import (
    ActuationCapability,
    ClassificationCapability,
    PersistenceCapability,
)
from .config import EngineConfig
from .constants import (
    SCROLL_DIRECTION,
    SCROLL_LENGTH_RATIO,
    SCROLL_START_X_RATIO,
    SCROLL_START_Y_RATIO,
)
from .coords import round_half_up
from .logging import Logger, get_logger
from .model import CycleResult, Device, Platform, VisionResult
from .timing import TimingPolicy
from .triggers import TriggerMatcher


def scroll_gesture(device: Device) -> tuple[int, int, str, int]:
    """Start point, direction and length of the next-video swipe.

    Starts at the horizontal center 70% down the effective screen and
    swipes up by half the screen height.
    """
    width, height = device.effective_size()
    return (
        round_half_up(width * SCROLL_START_X_RATIO),
        round_half_up(height * SCROLL_START_Y_RATIO),
        SCROLL_DIRECTION,
        round_half_up(height * SCROLL_LENGTH_RATIO),
    )


class CycleExecutor:
    """Runs one pass over one device and reports it as a CycleResult.

    ``run`` never raises: every failure ends up in the result's error.

    Args:
        actuation: Device input and screenshot capability
        classifier: Screenshot classification capability
        persistence: Device and trigger lookup
        timing: Delays and probability draws
        matcher: Trigger matching (shares timing's random source if None)
        actions: Action executor (built from the above if None)
        logger: Logger instance (uses global if None)
    """

    def __init__(
        self,
        actuation: ActuationCapability,
        classifier: ClassificationCapability,
        persistence: PersistenceCapability,
        timing: TimingPolicy,
        matcher: Optional[TriggerMatcher] = None,
        actions: Optional[ActionExecutor] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._actuation = actuation
        self._classifier = classifier
        self._persistence = persistence
        self._timing = timing
        self._matcher = matcher or TriggerMatcher(timing.rng)
        self._logger = logger or get_logger()
        self._actions = actions or ActionExecutor(
            actuation, timing, self._matcher, self._logger
        )

    def run(
        self,
        device_id: str,
        config: EngineConfig,
        platform: Platform,
    ) -> CycleResult:
        """Execute a full cycle for one device.

        Args:
            device_id: Device to drive
            config: Timing parameters of the current run
            platform: Platform whose calibration and prompt are used

        Returns:
            The finished CycleResult
        """
        result = CycleResult(
            device_id=device_id,
            device_label=device_id,
            started_at=datetime.now(),
        )
        try:
            result = self._run(result, config, Platform(platform))
        except Exception as e:
            result = replace(result, error=f"Cycle error: {e}")
            self._logger.error(result.error, device_id=device_id)
        return replace(result, finished_at=datetime.now())

    def _run(
        self,
        result: CycleResult,
        config: EngineConfig,
        platform: Platform,
    ) -> CycleResult:
        device_id = result.device_id
        log = self._logger

        device = self._persistence.get_device(device_id)
        if device is None:
            result = replace(result, error=f"Device not found: {device_id}")
            log.error(result.error, device_id=device_id)
            return result
        result = replace(result, device_label=device.label)

        if self._timing.should_skip(config.skip_probability):
            log.info("Cycle skipped for humanization", device_id=device_id)
            return replace(result, skipped_by_humanization=True, success=True)

        log.info("Scrolling to next video...", device_id=device_id)
        x, y, direction, length = scroll_gesture(device)
        scrolled = self._actuation.swipe(device_id, x, y, direction, length)
        if not scrolled:
            result = replace(result, error=f"Scroll failed: {scrolled.error}")
            log.error(result.error, device_id=device_id)
            return result
        result = replace(result, scrolled=True)

        scroll_delay = self._timing.jitter(
            config.scroll_delay_seconds * 1000,
            config.delay_jitter_min,
            config.delay_jitter_max,
        )
        log.info(
            f"Waiting {scroll_delay / 1000:.1f}s for video to load...",
            device_id=device_id,
        )
        self._timing.sleep_ms(scroll_delay)

        log.info("Taking screenshot...", device_id=device_id)
        shot = self._actuation.screenshot(device_id)
        if not shot or not shot.data:
            error = shot.error if not shot else "empty image"
            result = replace(result, error=f"Screenshot failed: {error}")
            log.error(result.error, device_id=device_id)
            return result

        log.info("Analyzing screenshot...", device_id=device_id)
        analysis = self._classifier.classify(shot.data, platform)
        if not analysis or not isinstance(analysis.data, VisionResult):
            error = analysis.error if not analysis else "no result"
            result = replace(
                result,
                analyzed=False,
                error=f"Vision analysis failed: {error}",
            )
            log.error(result.error, device_id=device_id)
            return replace(result, success=True)

        vision: VisionResult = analysis.data
        text = vision.analysis_text()
        result = replace(
            result, analyzed=True, vision_result=vision, analysis_text=text
        )
        log.info(f'Analysis: "{vision.caption}"', device_id=device_id)
        log.info(f"Topics: {', '.join(vision.topics)}", device_id=device_id)

        triggers = self._persistence.get_triggers_for_device(device_id)
        matches = self._matcher.find_all_matching(triggers, text, device_id)

        viewing = config.viewing_time
        viewing_ms = self._timing.viewing_time(
            bool(matches),
            viewing.relevant if viewing else None,
            viewing.non_relevant if viewing else None,
        )
        result = replace(result, viewing_time_ms=viewing_ms)
        if viewing_ms > 0:
            log.info(
                f"Watching for {viewing_ms / 1000:.1f}s "
                f"({'relevant' if matches else 'non-relevant'})",
                device_id=device_id,
            )
            self._timing.sleep_ms(viewing_ms)

        trigger = self._matcher.select_weighted(matches)
        if trigger is None:
            log.info("No trigger matched", device_id=device_id)
            return replace(result, success=True)

        result = replace(result, matched_trigger=trigger)
        log.info(
            f"Trigger matched: action={trigger.action_name}, "
            f"keywords=[{', '.join(trigger.keywords)}]",
            device_id=device_id,
        )

        if not self._timing.should_execute(trigger.weight):
            log.info(
                f"Action skipped by probability ({trigger.weight})",
                device_id=device_id,
            )
            return replace(result, skipped_by_probability=True, success=True)

        outcome = self._actions.execute(trigger.action, device, platform, trigger)
        result = replace(
            result,
            action_executed=trigger.action,
            action_success=outcome.success,
        )
        if not outcome:
            result = replace(
                result,
                error=f"Action {trigger.action_name} failed: {outcome.error}",
            )
            log.warning(result.error, device_id=device_id)

        return replace(result, success=True)
