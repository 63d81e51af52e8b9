"""Randomized delays and probability draws.

Every pause in the automation loop goes through a TimingPolicy, so
tests can replace both the random source and the sleep function.
"""

import random
import time
from typing import Callable, Optional

from .coords import round_half_up
from .model import ViewingTimeRange


class TimingPolicy:
    """Humanized timing: jittered delays and probability draws.

    Args:
        rng: Random source (a fresh ``random.Random`` if None)
        sleeper: Function sleeping for a number of seconds
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        self._rng = rng or random.Random()
        self._sleeper = sleeper

    @property
    def rng(self) -> random.Random:
        """The random source, shared with trigger selection."""
        return self._rng

    def jitter(self, base_ms: float, min_mult: float, max_mult: float) -> int:
        """Scale a base delay by a uniform factor in [min_mult, max_mult]."""
        return round_half_up(base_ms * self._rng.uniform(min_mult, max_mult))

    def random_delay(self, base_ms: float, variance_ms: float) -> int:
        """Base delay plus a uniform extra in [0, variance_ms]."""
        return round_half_up(base_ms + self._rng.uniform(0, variance_ms))

    def should_skip(self, probability: float) -> bool:
        """Cycle-level humanization draw."""
        return self._rng.random() < probability

    def should_execute(self, probability: float) -> bool:
        """Trigger-level execution draw."""
        return self._rng.random() < probability

    def viewing_time(
        self,
        has_match: bool,
        relevant: Optional[ViewingTimeRange],
        non_relevant: Optional[ViewingTimeRange],
    ) -> int:
        """Dwell time in milliseconds, 0 when the range is not configured."""
        chosen = relevant if has_match else non_relevant
        if chosen is None:
            return 0
        seconds = self._rng.uniform(chosen.min_seconds, chosen.max_seconds)
        return round_half_up(seconds * 1000)

    def sleep_ms(self, ms: float) -> None:
        """Block for ``ms`` milliseconds; non-positive values return at once."""
        if ms <= 0:
            return
        self._sleeper(ms / 1000.0)
