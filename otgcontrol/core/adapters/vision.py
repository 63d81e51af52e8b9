"""OpenAI vision client for classifying feed screenshots."""

import json
from typing import Any, Optional

import requests

from ..constants import OPENAI_BASE_URL, OPENAI_MODEL, VISION_MAX_TOKENS, VISION_TIMEOUT_SEC
from ..logging import Logger, get_logger
from ..model import OperationResult, Platform, VisionResult

_APP_NAMES = {
    Platform.TIKTOK: "TikTok",
    Platform.INSTAGRAM: "Instagram Reels",
}

VISION_PROMPT = """Analyze this screenshot from a short-form video app (like {app}).

Describe what you see in the video content and identify key topics/themes.

Respond ONLY with valid JSON in this exact format:
{{
  "caption": "A brief 1-2 sentence description of the video content",
  "topics": ["topic1", "topic2", "topic3"],
  "contentType": "dance|comedy|tutorial|music|food|fitness|fashion|gaming|pets|nature|other",
  "hasText": true/false,
  "textContent": "any visible text in the video (empty string if none)"
}}

Focus on identifying:
- What activity or content is shown (dancing, cooking, talking, etc.)
- People characteristics if relevant (but keep it general)
- The mood or style of the content
- Any visible hashtags or text overlays

Keep topics as single lowercase words when possible (e.g., "dance", "girl", "music", "funny", "cooking")."""


def build_prompt(platform: Platform) -> str:
    """Classification prompt naming the platform's app."""
    return VISION_PROMPT.format(app=_APP_NAMES[Platform(platform)])


def as_data_url(image: str) -> str:
    """Accept either a data URL or bare base64 JPEG data."""
    if image.startswith("data:"):
        return image
    return f"data:image/jpeg;base64,{image}"


def parse_vision_content(content: str) -> VisionResult:
    """Parse the model's JSON answer.

    Raises:
        ValueError: If the content is not a JSON object
    """
    parsed = json.loads(content)
    if not isinstance(parsed, dict):
        raise ValueError("expected a JSON object")
    topics = parsed.get("topics") or []
    return VisionResult(
        caption=str(parsed.get("caption") or ""),
        topics=[str(t) for t in topics],
    )


class VisionClient:
    """OpenAI-compatible chat completion client with image input.

    Args:
        api_key: Bearer token; an empty key makes every call fail
        model: Model name
        base_url: API root (``.../v1``)
        timeout: Request timeout in seconds
        logger: Logger instance (uses global if None)
    """

    def __init__(
        self,
        api_key: str,
        model: str = OPENAI_MODEL,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = VISION_TIMEOUT_SEC,
        logger: Optional[Logger] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._logger = logger or get_logger()

    def _request_body(self, image_url: str, platform: Platform) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": build_prompt(platform)},
                        {
                            "type": "image_url",
                            "image_url": {"url": image_url, "detail": "low"},
                        },
                    ],
                }
            ],
            "max_tokens": VISION_MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }

    def classify(self, image: str, platform: Platform) -> OperationResult:
        """Describe a screenshot; data is a VisionResult."""
        if not self.api_key:
            return OperationResult.fail("OpenAI API key not configured")

        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=self._request_body(as_data_url(image), platform),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return OperationResult.fail(f"OpenAI request failed: {e}")

        if not response.ok:
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = response.reason
            return OperationResult.fail(f"OpenAI API error: {message}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None
        if not content:
            return OperationResult.fail("No response content from OpenAI")

        try:
            result = parse_vision_content(content)
        except ValueError:
            return OperationResult.fail(f"Failed to parse vision response: {content}")

        self._logger.debug(f"Vision: {result.caption}")
        return OperationResult.ok(result)
