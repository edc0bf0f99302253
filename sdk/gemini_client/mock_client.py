import asyncio
import copy
import os
from typing import Any, Dict, List, Optional, Sequence

from .protocol import GenerateContents

DEFAULT_RESPONSE_DELAY = 0.0

# 1x1 transparent PNG.
MOCK_IMAGE_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

DEFAULT_RESPONSE: Dict[str, Any] = {
    "candidates": [
        {
            "content": {
                "role": "model",
                "parts": [
                    {"text": "Here is your image."},
                    {"inlineData": {"mimeType": "image/png", "data": MOCK_IMAGE_BASE64}},
                ],
            },
            "finishReason": "STOP",
        }
    ]
}


class MockGeminiImageClient:
    """
    An in-memory stand-in for `GeminiImageClient`.

    Responses are served in order and cycle once exhausted. Every `contents`
    value received is kept in `calls` so tests can assert on the exact payload.
    """

    def __init__(
        self,
        responses: Optional[Sequence[Dict[str, Any]]] = None,
        error: Optional[Exception] = None,
        response_delay: Optional[float] = None,
    ):
        if response_delay is not None:
            self.response_delay = response_delay
        else:
            env_delay = os.getenv("MOCK_RESPONSE_DELAY")
            self.response_delay = (
                float(env_delay) if env_delay is not None else DEFAULT_RESPONSE_DELAY
            )

        if responses is not None:
            if not responses:
                raise ValueError("The responses sequence cannot be empty")
            if not all(isinstance(r, dict) for r in responses):
                raise TypeError("All items in the responses sequence must be dicts")
            self.responses = [copy.deepcopy(r) for r in responses]
        else:
            self.responses = [copy.deepcopy(DEFAULT_RESPONSE)]

        self.error = error
        self.calls: List[GenerateContents] = []
        self.response_index = 0

    async def generate_content(self, contents: GenerateContents) -> Dict[str, Any]:
        self.calls.append(contents)

        if self.response_delay:
            await asyncio.sleep(self.response_delay)

        if self.error is not None:
            raise self.error

        response = self.responses[self.response_index % len(self.responses)]
        self.response_index += 1
        return copy.deepcopy(response)
