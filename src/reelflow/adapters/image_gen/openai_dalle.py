"""OpenAI DALL-E image generation provider."""

import httpx

from reelflow.adapters.http import safe_json
from reelflow.adapters.image_gen.base import ImageGenProvider, ImageGenRequest, ImageGenResult
from reelflow.config import get_settings
from reelflow.errors import ProviderNotConfiguredError
from reelflow.logging import get_logger

logger = get_logger(__name__)


class OpenAIDalleProvider(ImageGenProvider):
    """DALL-E image generation via OpenAI API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        default_style: str = "vivid",
    ) -> None:
        """Initialize the DALL-E provider.

        Args:
            api_key: OpenAI API key. If None, uses config setting.
            model: Model to use. If None, uses config setting.
            default_style: Default style (vivid or natural)
        """
        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_image_model
        self.default_style = default_style
        self.base_url = "https://api.openai.com/v1/images/generations"

        if not self.api_key:
            logger.warning("dalle_api_key_missing")

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        """Generate an image using DALL-E."""
        if not self.api_key:
            raise ProviderNotConfiguredError("OpenAI API key not configured")

        size = request.size or self.get_aspect_ratio_size(request.aspect_ratio)

        logger.info(
            "dalle_generation_started",
            prompt_length=len(request.prompt),
            size=size,
            quality=request.quality,
            model=self.model,
        )

        try:
            async with httpx.AsyncClient(timeout=120.0) as client:
                response = await client.post(
                    self.base_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "prompt": request.prompt,
                        "n": 1,
                        "size": size,
                        "quality": request.quality,
                        "style": self.default_style,
                    },
                )
        except httpx.TimeoutException:
            logger.error("dalle_generation_timeout")
            return ImageGenResult(success=False, error_message="DALL-E API timeout")
        except httpx.HTTPError as e:
            logger.error("dalle_generation_exception", error=str(e))
            return ImageGenResult(success=False, error_message=f"DALL-E API exception: {e}")

        data = safe_json(response) or {}
        if response.status_code != 200:
            error_msg = data.get("error", {}).get("message", response.text)
            logger.error(
                "dalle_generation_failed",
                status_code=response.status_code,
                error=error_msg,
            )
            return ImageGenResult(success=False, error_message=f"DALL-E API error: {error_msg}")

        image_data = (data.get("data") or [{}])[0]
        image_url = image_data.get("url")
        if not image_url:
            return ImageGenResult(success=False, error_message="No image URL in response")

        logger.info("dalle_generation_completed", size=size)

        return ImageGenResult(
            success=True,
            image_url=image_url,
            metadata={
                "provider": self.name,
                "size": size,
                "revised_prompt": image_data.get("revised_prompt"),
            },
        )

    async def health_check(self) -> bool:
        """Check if the OpenAI API is accessible."""
        if not self.api_key:
            return False
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    "https://api.openai.com/v1/models",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("dalle_health_check_failed", error=str(e))
            return False
