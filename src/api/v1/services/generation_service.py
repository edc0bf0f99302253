import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from sdk.gemini_client import GeminiClientProtocol, GeminiImageClient, GenerateContents
from src.api.v1.schemas.generate import GenerateRequest, GenerateResponse, InlineImage
from src.config.settings import get_settings
from src.utils.data_url import strip_data_url_prefix

logger = logging.getLogger(__name__)

DEFAULT_NEGATIVE_PROMPT = "blurry, low quality, watermarks"
NO_IMAGE_FALLBACK_MESSAGE = (
    "No image data returned from API and no error message found."
)
# Upstream replies may carry base64 image data; keep log lines bounded.
MAX_LOGGED_RESPONSE_CHARS = 500


class ImageGenerationError(Exception):
    """Raised when the upstream model fails or replies without an image."""


class TextPrompt(BaseModel):
    text: str


class ImageConditionedPrompt(BaseModel):
    text: str
    image: InlineImage
    mask: Optional[InlineImage] = None


PromptPayload = Union[TextPrompt, ImageConditionedPrompt]


def normalize_prompt(prompt: str, negative: Optional[str] = None) -> str:
    """Fold the negative directive into the prompt text."""
    return f"{prompt}. --negative {negative or DEFAULT_NEGATIVE_PROMPT}"


def build_prompt_payload(request: GenerateRequest) -> PromptPayload:
    """
    Pick the generation mode for a validated request.

    The presence of a source image alone decides the mode; a mask only ever
    travels inside an image-conditioned payload.
    """
    text = normalize_prompt(request.prompt, request.negative)
    if request.image is None:
        return TextPrompt(text=text)
    return ImageConditionedPrompt(text=text, image=request.image, mask=request.mask)


def to_inline_data_part(image: InlineImage) -> Dict[str, Any]:
    return {
        "inlineData": {
            "data": strip_data_url_prefix(image.data),
            "mimeType": image.mime_type,
        }
    }


def to_contents(payload: PromptPayload) -> GenerateContents:
    """
    Convert a prompt payload into what the Gemini client sends upstream.

    The model reads parts in order, so the sequence is always
    text, source image, then the optional mask.
    """
    if isinstance(payload, TextPrompt):
        return payload.text

    parts: List[Dict[str, Any]] = [
        {"text": payload.text},
        to_inline_data_part(payload.image),
    ]
    if payload.mask is not None:
        parts.append(to_inline_data_part(payload.mask))
    return parts


def extract_result(response: Dict[str, Any]) -> GenerateResponse:
    """
    Pick the first inline image of the first candidate.

    Raises:
        ImageGenerationError: No part carries image data. The message is the
            text of the first part when the model explained itself, otherwise
            a fixed fallback.
    """
    candidates = response.get("candidates") or []
    candidate = candidates[0] if candidates else {}
    parts = (candidate.get("content") or {}).get("parts") or []

    for part in parts:
        inline_data = part.get("inlineData") or part.get("inline_data")
        if inline_data and inline_data.get("data"):
            return GenerateResponse(
                image=inline_data["data"],
                finish_reason=candidate.get("finishReason"),
            )

    logger.error(
        "API response structure missing image data: %s",
        str(response)[:MAX_LOGGED_RESPONSE_CHARS],
    )
    error_text = parts[0].get("text") if parts else None
    raise ImageGenerationError(error_text or NO_IMAGE_FALLBACK_MESSAGE)


class GenerationService:
    def __init__(self, client: GeminiClientProtocol):
        self.client = client

    async def generate_image(self, request: GenerateRequest) -> GenerateResponse:
        """
        Run one generation request against the upstream model.

        There is no retry: any upstream failure is logged and re-raised as an
        `ImageGenerationError` carrying the upstream message.
        """
        payload = build_prompt_payload(request)

        if isinstance(payload, ImageConditionedPrompt):
            logger.info(
                "Request received: Image-to-Image/Inpainting. Prompt: %s...",
                request.prompt[:40],
            )
            if payload.mask is not None:
                logger.info("Mask detected for inpainting.")
        else:
            logger.info(
                "Request received: Text-to-Image. Prompt: %s...", request.prompt[:40]
            )

        try:
            response = await self.client.generate_content(to_contents(payload))
        except Exception as e:
            logger.exception("Gemini API request failed")
            raise ImageGenerationError(str(e) or e.__class__.__name__) from e

        try:
            return extract_result(response)
        except (AttributeError, TypeError, KeyError, IndexError) as e:
            logger.exception("Malformed response from Gemini API")
            raise ImageGenerationError(f"Malformed response from API: {e}") from e


@lru_cache
def get_generation_service() -> GenerationService:
    """
    Dependency provider for the GenerationService.

    Returns a singleton built from the application settings. Tests replace it
    through `app.dependency_overrides`.
    """
    settings = get_settings()
    client = GeminiImageClient(
        api_key=settings.GOOGLE_API_KEY,
        model=settings.GEMINI_MODEL,
        base_url=settings.GEMINI_API_BASE_URL,
        timeout=settings.GEMINI_TIMEOUT_SECONDS,
    )
    return GenerationService(client)
