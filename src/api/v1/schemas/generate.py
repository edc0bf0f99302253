from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class InlineImage(BaseModel):
    """A base64-encoded image as sent by the web client."""

    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(min_length=1, description="Base64 data, optionally a data URL")
    mime_type: str = Field(alias="mimeType", min_length=1)


class GenerateRequest(BaseModel):
    """Request schema for the image generation endpoint."""

    prompt: str = Field(min_length=1)
    negative: Optional[str] = None
    image: Optional[InlineImage] = None
    mask: Optional[InlineImage] = None

    @field_validator("mask")
    @classmethod
    def mask_requires_image(
        cls, mask: Optional[InlineImage], info: ValidationInfo
    ) -> Optional[InlineImage]:
        if mask is not None and info.data.get("image") is None:
            raise ValueError("A mask can only be provided together with an image")
        return mask


class GenerateResponse(BaseModel):
    """Response schema for a successful generation."""

    model_config = ConfigDict(populate_by_name=True)

    image: str
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class ErrorResponse(BaseModel):
    error: str
    details: str


class GenerationErrorResponse(ErrorResponse):
    model_config = ConfigDict(populate_by_name=True)

    check_logs: str = Field(alias="checkLogs")
