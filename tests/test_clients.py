"""Tests for the iMouseXP and OpenAI HTTP clients.

Verifies that:
- Commands are posted with the expected envelope and rounded pixels
- Transport, HTTP and server errors become failed results
- Screenshots come back as JPEG data URLs
- Vision answers are parsed into VisionResult
"""

import json
from typing import Any, Optional
from unittest.mock import MagicMock, patch

import pytest
import requests

from otgcontrol.core.adapters import refresh_devices
from otgcontrol.core.adapters.imouse import ImouseClient, device_from_listing
from otgcontrol.core.adapters.store import JsonStore
from otgcontrol.core.adapters.vision import VisionClient, build_prompt
from otgcontrol.core.logging import Logger
from otgcontrol.core.model import NormalizedCoords, Platform, VisionResult

from conftest import make_device

IMOUSE_URL = "http://localhost:9911/api"


def mock_response(
    body: Any = None,
    status_code: int = 200,
    reason: str = "OK",
    invalid_json: bool = False,
) -> MagicMock:
    """A requests.Response stand-in."""
    response = MagicMock()
    response.ok = status_code < 400
    response.status_code = status_code
    response.reason = reason
    if invalid_json:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = body
    return response


def envelope(data: Optional[dict] = None, status: int = 200, **extra: Any) -> dict:
    return {"status": status, "data": data or {}, **extra}


@pytest.fixture
def client(logger: Logger) -> ImouseClient:
    return ImouseClient(IMOUSE_URL, timeout=5, logger=logger)


@pytest.fixture
def vision(logger: Logger) -> VisionClient:
    return VisionClient("sk-test", model="gpt-4o", logger=logger)


class TestImouseCommands:
    """Test request construction."""

    def test_tap_posts_click(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope())

            result = client.tap("dev1", 972.5, 960.2)

        assert result.success
        post.assert_called_once_with(
            IMOUSE_URL,
            json={
                "fun": "/mouse/click",
                "data": {"id": "dev1", "x": 973, "y": 960, "button": "left", "count": 1},
            },
            timeout=5,
        )

    def test_swipe_payload(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope())

            client.swipe("dev1", 540, 1344, "up", 960)

        assert post.call_args.kwargs["json"] == {
            "fun": "/mouse/swipe",
            "data": {"id": "dev1", "x": 540, "y": 1344, "direction": "up", "length": 960},
        }

    def test_type_text_payload(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope())

            client.type_text("dev1", "Nice!")

        assert post.call_args.kwargs["json"]["data"] == {"id": "dev1", "key": "Nice!"}

    def test_screenshot_data_url(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope({"image": "QUJD"}))

            result = client.screenshot("dev1")

        assert result.data == "data:image/jpeg;base64,QUJD"
        assert post.call_args.kwargs["json"]["data"] == {
            "id": "dev1", "binary": False, "jpg": True,
        }

    def test_screenshot_without_image(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope({}))

            result = client.screenshot("dev1")

        assert result.error == "No screenshot data returned"

    def test_status_zero_is_success(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope(status=0))
            assert client.tap("dev1", 1, 1).success


class TestImouseErrors:
    """Test error mapping."""

    def test_transport_error(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.side_effect = requests.ConnectionError("refused")

            result = client.tap("dev1", 1, 1)

        assert result.error == "Request failed: refused"

    def test_http_error(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(status_code=502, reason="Bad Gateway")

            result = client.tap("dev1", 1, 1)

        assert result.error == "HTTP 502: Bad Gateway"

    def test_invalid_json(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(invalid_json=True)

            result = client.tap("dev1", 1, 1)

        assert result.error.startswith("Invalid response from iMouseXP")

    def test_server_message(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(
                envelope(status=500, message="device offline")
            )

            result = client.tap("dev1", 1, 1)

        assert result.error == "device offline"

    def test_server_code_fallback(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope({"code": 7}, status=500))

            result = client.tap("dev1", 1, 1)

        assert result.error == "iMouseXP error code: 7"

    def test_non_object_body(self, client: ImouseClient) -> None:
        """A JSON array or string is rejected instead of crashing."""
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(["unexpected"])

            result = client.tap("dev1", 1, 1)

        assert result.error == "Invalid response from iMouseXP: expected a JSON object"

    def test_non_object_listing_data(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response({"status": 200, "data": ["AA:BB"]})

            result = client.list_devices()

        assert result.error == "Malformed device listing: expected an object"

    def test_non_object_screenshot_data(self, client: ImouseClient) -> None:
        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response({"status": 200, "data": "QUJD"})

            result = client.screenshot("dev1")

        assert result.error == "No screenshot data returned"


class TestDeviceListing:
    """Test /device/get mapping and store refresh."""

    LISTING = {
        "list": [
            {
                "deviceid": "AA:BB",
                "device_name": "iPhone 12",
                "width": "390.0",
                "height": 844,
                "imgw": 1170,
                "imgh": 2532,
                "state": 1,
                "gname": "feed",
            }
        ]
    }

    def test_entry_mapping(self) -> None:
        device = device_from_listing(self.LISTING["list"][0])

        assert device.id == "AA:BB"
        assert device.label == "iPhone 12"
        assert (device.width, device.height) == (390, 844)
        assert device.effective_size() == (1170, 2532)
        assert device.state == "1"
        assert device.group == "feed"

    def test_missing_screen_size(self) -> None:
        device = device_from_listing({"deviceid": "x", "width": 360, "height": 640})
        assert device.effective_size() == (360, 640)
        assert device.label == "x"

    def test_refresh_merges_into_store(
        self, client: ImouseClient, tmp_path, logger: Logger
    ) -> None:
        store = JsonStore(tmp_path, logger=logger)
        store.save_devices([make_device("AA:BB", label="Work phone")])

        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.return_value = mock_response(envelope(self.LISTING))

            result = refresh_devices(client, store)

        assert result.success
        (device,) = result.data
        assert device.label == "Work phone"
        assert device.screen_width == 1170
        assert device.tiktok.like == NormalizedCoords(0.9, 0.5)

    def test_refresh_failure(
        self, client: ImouseClient, tmp_path, logger: Logger
    ) -> None:
        store = JsonStore(tmp_path, logger=logger)

        with patch("otgcontrol.core.adapters.imouse.requests.post") as post:
            post.side_effect = requests.Timeout("timed out")

            result = refresh_devices(client, store)

        assert not result.success
        assert store.load_devices() == []


def completion(content: Optional[str]) -> dict:
    return {"choices": [{"message": {"content": content}}]}


class TestVisionClient:
    """Test OpenAI classification."""

    def test_parses_answer(self, vision: VisionClient) -> None:
        answer = json.dumps({"caption": "A girl dancing", "topics": ["dance", "music"]})
        with patch("otgcontrol.core.adapters.vision.requests.post") as post:
            post.return_value = mock_response(completion(answer))

            result = vision.classify("QUJD", Platform.TIKTOK)

        assert result.data == VisionResult("A girl dancing", ["dance", "music"])

    def test_request_shape(self, vision: VisionClient) -> None:
        answer = json.dumps({"caption": "x", "topics": []})
        with patch("otgcontrol.core.adapters.vision.requests.post") as post:
            post.return_value = mock_response(completion(answer))

            vision.classify("QUJD", Platform.INSTAGRAM)

        args, kwargs = post.call_args
        assert args[0] == "https://api.openai.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        body = kwargs["json"]
        assert body["model"] == "gpt-4o"
        assert body["response_format"] == {"type": "json_object"}
        content = body["messages"][0]["content"]
        assert "Instagram Reels" in content[0]["text"]
        assert content[1]["image_url"] == {
            "url": "data:image/jpeg;base64,QUJD",
            "detail": "low",
        }

    def test_missing_api_key(self, logger: Logger) -> None:
        with patch("otgcontrol.core.adapters.vision.requests.post") as post:
            result = VisionClient("", logger=logger).classify("QUJD", Platform.TIKTOK)

        assert result.error == "OpenAI API key not configured"
        post.assert_not_called()

    def test_api_error_message(self, vision: VisionClient) -> None:
        with patch("otgcontrol.core.adapters.vision.requests.post") as post:
            post.return_value = mock_response(
                {"error": {"message": "Rate limit reached"}},
                status_code=429,
                reason="Too Many Requests",
            )

            result = vision.classify("QUJD", Platform.TIKTOK)

        assert result.error == "OpenAI API error: Rate limit reached"

    def test_empty_content(self, vision: VisionClient) -> None:
        with patch("otgcontrol.core.adapters.vision.requests.post") as post:
            post.return_value = mock_response(completion(None))

            result = vision.classify("QUJD", Platform.TIKTOK)

        assert result.error == "No response content from OpenAI"

    def test_unparseable_content(self, vision: VisionClient) -> None:
        with patch("otgcontrol.core.adapters.vision.requests.post") as post:
            post.return_value = mock_response(completion("I see a cat"))

            result = vision.classify("QUJD", Platform.TIKTOK)

        assert result.error == "Failed to parse vision response: I see a cat"

    def test_transport_error(self, vision: VisionClient) -> None:
        with patch("otgcontrol.core.adapters.vision.requests.post") as post:
            post.side_effect = requests.Timeout("read timed out")

            result = vision.classify("QUJD", Platform.TIKTOK)

        assert result.error == "OpenAI request failed: read timed out"

    def test_prompt_names_platform(self) -> None:
        assert "TikTok" in build_prompt(Platform.TIKTOK)
