"""Keyword trigger matching and weighted selection."""

import random
from typing import Optional, Sequence

from .model import Trigger


def parse_keywords(text: str) -> list[str]:
    """Split comma-separated keyword input into a trimmed lowercase list.

    Empty items are dropped, so ``"Dance, ,MUSIC"`` gives
    ``["dance", "music"]``.
    """
    return [k.strip().lower() for k in text.split(",") if k.strip()]


class TriggerMatcher:
    """Finds the triggers a screenshot description fires and picks one.

    Args:
        rng: Random source used for selection and comment picks
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    @staticmethod
    def matches(trigger: Trigger, text: str) -> bool:
        """True if any keyword is a case-insensitive substring of text."""
        haystack = text.lower()
        return any(k.lower() in haystack for k in trigger.keywords if k)

    def find_all_matching(
        self,
        triggers: Sequence[Trigger],
        text: str,
        device_id: str,
    ) -> list[Trigger]:
        """All triggers scoped to the device whose keywords match, in order."""
        return [
            t for t in triggers
            if t.applies_to(device_id) and self.matches(t, text)
        ]

    def select_weighted(self, matches: Sequence[Trigger]) -> Optional[Trigger]:
        """Roulette-wheel pick weighted by trigger probability.

        Unset probabilities weigh 1. When every weight is zero the first
        match is returned.
        """
        if not matches:
            return None
        if len(matches) == 1:
            return matches[0]

        total = sum(t.weight for t in matches)
        if total <= 0:
            return matches[0]

        remaining = self._rng.random() * total
        for trigger in matches:
            if trigger.weight <= 0:
                continue
            remaining -= trigger.weight
            if remaining < 0:
                return trigger
        # Floating-point residue can leave remaining a hair above zero
        return next(t for t in reversed(matches) if t.weight > 0)

    def pick_comment(self, templates: Sequence[str]) -> Optional[str]:
        """Uniformly random template, None when there are none."""
        if not templates:
            return None
        return self._rng.choice(list(templates))
