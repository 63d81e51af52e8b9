"""iMouseXP actuation server client.

Every call is a POST of ``{"fun": <endpoint>, "data": {...}}`` to the
server's single ``/api`` URL. The server answers with a JSON envelope
whose ``status`` is 200 (or 0 on some versions) on success.
"""

from typing import Any, Optional

import requests

from ..constants import IMOUSE_SUCCESS_CODES, IMOUSE_TIMEOUT_SEC
from ..coords import round_half_up
from ..logging import Logger, get_logger
from ..model import Device, OperationResult


def device_from_listing(entry: dict[str, Any]) -> Device:
    """Map one ``/device/get`` entry to a Device.

    ``width``/``height`` are logical points; ``imgw``/``imgh`` are the
    touch resolution and become the screen dimensions when present.
    """
    device_id = str(entry["deviceid"])
    return Device(
        id=device_id,
        label=str(entry.get("device_name") or device_id),
        width=int(float(entry.get("width") or 0)),
        height=int(float(entry.get("height") or 0)),
        screen_width=int(entry["imgw"]) if entry.get("imgw") else None,
        screen_height=int(entry["imgh"]) if entry.get("imgh") else None,
        state=None if entry.get("state") is None else str(entry["state"]),
        group=entry.get("gname"),
    )


class ImouseClient:
    """Drives devices through the iMouseXP HTTP API.

    Args:
        url: Full API URL (``http://host:port/api``)
        timeout: Request timeout in seconds
        logger: Logger instance (uses global if None)
    """

    def __init__(
        self,
        url: str,
        timeout: float = IMOUSE_TIMEOUT_SEC,
        logger: Optional[Logger] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._logger = logger or get_logger()

    def _post(self, fun: str, data: Optional[dict[str, Any]] = None) -> OperationResult:
        """Send one command; the result's data is the envelope's ``data``."""
        try:
            response = requests.post(
                self.url,
                json={"fun": fun, "data": data or {}},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return OperationResult.fail(f"Request failed: {e}")

        if not response.ok:
            return OperationResult.fail(f"HTTP {response.status_code}: {response.reason}")

        try:
            body = response.json()
        except ValueError as e:
            return OperationResult.fail(f"Invalid response from iMouseXP: {e}")
        if not isinstance(body, dict):
            return OperationResult.fail(
                "Invalid response from iMouseXP: expected a JSON object"
            )

        if body.get("status") in IMOUSE_SUCCESS_CODES:
            return OperationResult.ok(body.get("data"))

        payload = body.get("data") if isinstance(body.get("data"), dict) else {}
        return OperationResult.fail(
            body.get("message")
            or body.get("msg")
            or f"iMouseXP error code: {payload.get('code', 'unknown')}"
        )

    def list_devices(self) -> OperationResult:
        """Connected devices; data is a list of Device."""
        result = self._post("/device/get")
        if not result:
            return result
        data = result.data or {}
        if not isinstance(data, dict):
            return OperationResult.fail("Malformed device listing: expected an object")
        entries = data.get("list") or []
        try:
            devices = [device_from_listing(e) for e in entries]
        except (KeyError, TypeError, ValueError) as e:
            return OperationResult.fail(f"Malformed device listing: {e}")
        return OperationResult.ok(devices)

    def tap(self, device_id: str, x: int, y: int) -> OperationResult:
        """Single left click at pixel (x, y)."""
        x, y = round_half_up(x), round_half_up(y)
        self._logger.debug(f"Click at ({x}, {y})", device_id=device_id)
        return self._post(
            "/mouse/click",
            {"id": device_id, "x": x, "y": y, "button": "left", "count": 1},
        )

    def swipe(
        self,
        device_id: str,
        x: int,
        y: int,
        direction: str,
        length: int,
    ) -> OperationResult:
        """Swipe from (x, y) in a direction by ``length`` pixels."""
        payload = {
            "id": device_id,
            "x": round_half_up(x),
            "y": round_half_up(y),
            "direction": direction,
            "length": round_half_up(length),
        }
        self._logger.debug(
            f"Swipe from ({payload['x']}, {payload['y']}) {direction} {payload['length']}px",
            device_id=device_id,
        )
        return self._post("/mouse/swipe", payload)

    def type_text(self, device_id: str, text: str) -> OperationResult:
        """Keyboard input; the server only handles basic ASCII."""
        return self._post("/key/sendkey", {"id": device_id, "key": text})

    def screenshot(self, device_id: str) -> OperationResult:
        """JPEG screenshot; data is a ``data:image/jpeg;base64,...`` URL."""
        result = self._post(
            "/pic/screenshot",
            {"id": device_id, "binary": False, "jpg": True},
        )
        if not result:
            return result
        data = result.data or {}
        image = data.get("image") if isinstance(data, dict) else None
        if not image:
            return OperationResult.fail("No screenshot data returned")
        return OperationResult.ok(f"data:image/jpeg;base64,{image}")
