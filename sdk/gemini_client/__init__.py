from .client import GeminiApiError, GeminiImageClient
from .mock_client import MockGeminiImageClient
from .protocol import GeminiClientProtocol, GenerateContents

__all__ = [
    "GeminiImageClient",
    "GeminiApiError",
    "MockGeminiImageClient",
    "GeminiClientProtocol",
    "GenerateContents",
]
