"""Tests for per-platform calibration points.

Verifies that:
- The shared base cannot be used without a platform
- Each platform maps its third action and close control
"""

import pytest

from otgcontrol.core.model import (
    ActionType,
    InstagramCoords,
    NormalizedCoords,
    PlatformCoords,
    TikTokCoords,
)


class TestPlatformCoords:
    """Test the platform-specific coordinate sets."""

    def test_base_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            PlatformCoords()

    def test_tiktok_points(self) -> None:
        save = NormalizedCoords(0.9, 0.7)
        back = NormalizedCoords(0.1, 0.05)
        coords = TikTokCoords(save=save, comment_back_button=back)

        assert coords.secondary is save
        assert coords.close_button is back
        assert TikTokCoords.secondary_action == ActionType.SAVE

    def test_instagram_points(self) -> None:
        share = NormalizedCoords(0.9, 0.8)
        close = NormalizedCoords(0.95, 0.4)
        coords = InstagramCoords(share=share, comment_close_button=close)

        assert coords.secondary is share
        assert coords.close_button is close
        assert InstagramCoords.secondary_action == ActionType.SHARE

    def test_with_point_rejects_other_platform_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown tiktok coordinate: share"):
            TikTokCoords().with_point("share", NormalizedCoords(0.5, 0.5))
