from fastapi import APIRouter, Depends

from src.api.v1.schemas.generate import (
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    GenerationErrorResponse,
)
from src.api.v1.services.generation_service import (
    GenerationService,
    get_generation_service,
)

router = APIRouter(
    tags=["generate"],
)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": GenerationErrorResponse}},
)
async def generate(
    request: GenerateRequest,
    generation_service: GenerationService = Depends(get_generation_service),
) -> GenerateResponse:
    """
    Generate an image from a prompt, optionally conditioned on a source image.

    Supplying `image` switches to image-to-image; adding `mask` as well limits
    the edit to the masked region. Failures are turned into JSON by the
    application's exception handlers.
    """
    return await generation_service.generate_image(request)
