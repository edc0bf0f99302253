import logging
from typing import Any, Dict, Optional

import httpx

from .protocol import GenerateContents

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiApiError(Exception):
    """
    Raised when the Gemini API answers with a non-2xx status.

    Mirrors the shape of the upstream error envelope: `error` holds the
    human-readable message, `status_code` the HTTP status.
    """

    def __init__(self, error: str, status_code: int = -1):
        super().__init__(error)
        self.error = error
        self.status_code = status_code

    def __str__(self) -> str:
        return self.error


class GeminiImageClient:
    """
    A client for the Gemini `generateContent` REST endpoint.

    Each call opens a short-lived `httpx.AsyncClient`; no connection state is
    shared between requests.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("api_key must be a non-empty string")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.generate_endpoint = f"{self.base_url}/models/{model}:generateContent"
        self.timeout = timeout
        self._transport = transport

    async def generate_content(self, contents: GenerateContents) -> Dict[str, Any]:
        """
        Send a generation request and return the decoded JSON response.

        Args:
            contents: A plain prompt string, or an ordered list of content parts.

        Raises:
            GeminiApiError: The API replied with an error status.
            httpx.RequestError: The API could not be reached.
        """
        payload = self._build_payload(contents)

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(
                self.generate_endpoint,
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )

        if response.is_error:
            message = self._extract_error_message(response)
            logger.error(
                f"Gemini API request failed. Status: {response.status_code}, "
                f"Response: {message}"
            )
            raise GeminiApiError(message, status_code=response.status_code)

        return response.json()

    @staticmethod
    def _build_payload(contents: GenerateContents) -> Dict[str, Any]:
        if isinstance(contents, str):
            parts = [{"text": contents}]
        else:
            parts = list(contents)
        return {"contents": [{"parts": parts}]}

    @staticmethod
    def _extract_error_message(response: httpx.Response) -> str:
        """Pull `error.message` out of a Google error envelope, if there is one."""
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
        return response.text
