"""Tests for the action executor.

Verifies that:
- Taps land on calibrated points scaled to the effective screen
- Missing calibration fails with a platform-specific message
- Combination actions stop after a failed like
- The comment sequence runs in order and tolerates a failed close
"""

from unittest.mock import MagicMock, call

import pytest

from otgcontrol.core.actions import ActionExecutor
from otgcontrol.core.logging import Logger
from otgcontrol.core.model import (
    ActionType,
    InstagramCoords,
    NormalizedCoords,
    OperationResult,
    Platform,
    TikTokCoords,
)
from otgcontrol.core.timing import TimingPolicy

from conftest import make_actuation, make_device, make_trigger


@pytest.fixture
def actuation() -> MagicMock:
    return make_actuation()


@pytest.fixture
def executor(
    actuation: MagicMock, timing: TimingPolicy, logger: Logger
) -> ActionExecutor:
    return ActionExecutor(actuation, timing, logger=logger)


@pytest.fixture
def tiktok_full() -> TikTokCoords:
    """Every TikTok point calibrated."""
    return TikTokCoords(
        like=NormalizedCoords(0.9, 0.5),
        comment=NormalizedCoords(0.9, 0.6),
        comment_input_field=NormalizedCoords(0.5, 0.95),
        comment_send_button=NormalizedCoords(0.9, 0.95),
        save=NormalizedCoords(0.9, 0.7),
        comment_back_button=NormalizedCoords(0.1, 0.05),
    )


class TestSingleTaps:
    """Test LIKE, SAVE and SHARE."""

    def test_like_uses_screen_pixels(
        self, executor: ActionExecutor, actuation: MagicMock
    ) -> None:
        """Like at (0.9, 0.5) on a 1080x1920 screen taps (972, 960)."""
        device = make_device()

        result = executor.execute(ActionType.LIKE, device, Platform.TIKTOK)

        assert result.success
        actuation.tap.assert_called_once_with("dev1", 972, 960)

    def test_like_not_configured(
        self, executor: ActionExecutor, actuation: MagicMock
    ) -> None:
        device = make_device(tiktok=TikTokCoords())

        result = executor.execute(ActionType.LIKE, device, Platform.TIKTOK)

        assert not result.success
        assert result.error == "Like coordinates not configured for tiktok"
        actuation.tap.assert_not_called()

    def test_save_on_tiktok(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
    ) -> None:
        device = make_device(tiktok=tiktok_full)

        result = executor.execute(ActionType.SAVE, device, Platform.TIKTOK)

        assert result.success
        actuation.tap.assert_called_once_with("dev1", 972, 1344)

    def test_share_missing_on_instagram(
        self, executor: ActionExecutor
    ) -> None:
        device = make_device(
            instagram=InstagramCoords(like=NormalizedCoords(0.9, 0.5))
        )

        result = executor.execute(ActionType.SHARE, device, Platform.INSTAGRAM)

        assert result.error == "Share coordinates not configured for instagram"

    def test_tap_failure_propagates(
        self, executor: ActionExecutor, actuation: MagicMock
    ) -> None:
        actuation.tap.return_value = OperationResult.fail("HTTP 500: boom")

        result = executor.execute(ActionType.LIKE, make_device(), Platform.TIKTOK)

        assert not result.success
        assert result.error == "HTTP 500: boom"


class TestComboActions:
    """Test LIKE_AND_SAVE and LIKE_AND_COMMENT."""

    def test_like_and_save_taps_both(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
    ) -> None:
        device = make_device(tiktok=tiktok_full)

        result = executor.execute(ActionType.LIKE_AND_SAVE, device, Platform.TIKTOK)

        assert result.success
        assert actuation.tap.call_args_list == [
            call("dev1", 972, 960),
            call("dev1", 972, 1344),
        ]

    def test_like_and_comment_stops_after_failed_like(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
    ) -> None:
        """A failed like never opens the comment sheet."""
        actuation.tap.return_value = OperationResult.fail("tap refused")
        device = make_device(tiktok=tiktok_full)
        trigger = make_trigger(
            ActionType.LIKE_AND_COMMENT, comment_templates=["Nice!"]
        )

        result = executor.execute(
            ActionType.LIKE_AND_COMMENT, device, Platform.TIKTOK, trigger
        )

        assert not result.success
        assert actuation.tap.call_count == 1
        actuation.type_text.assert_not_called()

    def test_combo_pause_between_halves(
        self,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
        logger: Logger,
    ) -> None:
        timing = MagicMock(spec=TimingPolicy)
        executor = ActionExecutor(actuation, timing, logger=logger)

        executor.execute(
            ActionType.LIKE_AND_SAVE, make_device(tiktok=tiktok_full), Platform.TIKTOK
        )

        timing.sleep_ms.assert_called_once_with(500)


class TestComment:
    """Test the comment sequence."""

    def test_full_sequence_order(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
    ) -> None:
        """Open, focus, type, send, then close."""
        device = make_device(tiktok=tiktok_full)
        trigger = make_trigger(ActionType.COMMENT, comment_templates=["Nice!"])

        result = executor.execute(ActionType.COMMENT, device, Platform.TIKTOK, trigger)

        assert result.success
        assert actuation.mock_calls == [
            call.tap("dev1", 972, 1152),
            call.tap("dev1", 540, 1824),
            call.type_text("dev1", "Nice!"),
            call.tap("dev1", 972, 1824),
            call.tap("dev1", 108, 96),
        ]

    def test_optional_points_are_skipped(
        self, executor: ActionExecutor, actuation: MagicMock
    ) -> None:
        device = make_device(
            tiktok=TikTokCoords(comment=NormalizedCoords(0.9, 0.6))
        )
        trigger = make_trigger(ActionType.COMMENT, comment_templates=["Nice!"])

        result = executor.execute(ActionType.COMMENT, device, Platform.TIKTOK, trigger)

        assert result.success
        assert actuation.tap.call_count == 1
        actuation.type_text.assert_called_once_with("dev1", "Nice!")

    def test_close_failure_is_not_fatal(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
    ) -> None:
        ok = OperationResult.ok()
        actuation.tap.side_effect = [ok, ok, ok, OperationResult.fail("gone")]
        device = make_device(tiktok=tiktok_full)
        trigger = make_trigger(ActionType.COMMENT, comment_templates=["Nice!"])

        result = executor.execute(ActionType.COMMENT, device, Platform.TIKTOK, trigger)

        assert result.success
        assert actuation.tap.call_count == 4

    def test_input_field_failure_aborts(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
    ) -> None:
        actuation.tap.side_effect = [OperationResult.ok(), OperationResult.fail("no focus")]
        device = make_device(tiktok=tiktok_full)
        trigger = make_trigger(ActionType.COMMENT, comment_templates=["Nice!"])

        result = executor.execute(ActionType.COMMENT, device, Platform.TIKTOK, trigger)

        assert result.error == "no focus"
        actuation.type_text.assert_not_called()

    def test_no_templates(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        tiktok_full: TikTokCoords,
        logger: Logger,
    ) -> None:
        device = make_device(tiktok=tiktok_full)
        trigger = make_trigger(ActionType.COMMENT)

        result = executor.execute(ActionType.COMMENT, device, Platform.TIKTOK, trigger)

        assert result.error == "No comment templates configured"
        actuation.tap.assert_not_called()
        assert any(
            "No comment templates available" in e.message
            for e in logger.buffer.get_all()
        )

    def test_comment_not_configured_on_instagram(
        self, executor: ActionExecutor
    ) -> None:
        trigger = make_trigger(ActionType.COMMENT, comment_templates=["Nice!"])

        result = executor.execute(
            ActionType.COMMENT, make_device(), Platform.INSTAGRAM, trigger
        )

        assert result.error == "Comment coordinates not configured for instagram"


class TestPassiveAndUnknown:
    """Test actions without gestures."""

    @pytest.mark.parametrize("action", [ActionType.NO_ACTION, ActionType.SKIP])
    def test_no_gesture(
        self,
        executor: ActionExecutor,
        actuation: MagicMock,
        action: ActionType,
    ) -> None:
        result = executor.execute(action, make_device(), Platform.TIKTOK)

        assert result.success
        assert actuation.mock_calls == []

    def test_unknown_action(self, executor: ActionExecutor) -> None:
        result = executor.execute("FOLLOW", make_device(), Platform.TIKTOK)

        assert not result.success
        assert result.error == "Unknown action type: FOLLOW"
