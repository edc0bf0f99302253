from typing import Any, Dict, List, Protocol, Union, runtime_checkable

# A bare prompt string, or an ordered list of Gemini content parts
# such as {"text": ...} and {"inlineData": {"data": ..., "mimeType": ...}}.
GenerateContents = Union[str, List[Dict[str, Any]]]


@runtime_checkable
class GeminiClientProtocol(Protocol):
    """
    Protocol for clients that can ask a Gemini image model to generate content.

    The generation service only depends on this narrow capability, so the real
    HTTP client and the in-memory mock are interchangeable.
    """

    async def generate_content(self, contents: GenerateContents) -> Dict[str, Any]:
        """
        Run a single, non-streaming generation request.

        Args:
            contents: A plain text prompt, or an ordered list of content parts.
                Part order is forwarded untouched.

        Returns:
            The decoded `generateContent` response, exposing a `candidates`
            list whose entries carry `content.parts` and a `finishReason`.
        """
        ...
