"""Instagram publisher adapter using the Meta Graph API.

Publishing flow:
1. POST /{ig-user-id}/media - create a REELS container from a public video_url
2. GET /{container-id}?fields=status_code - FINISHED, ERROR or IN_PROGRESS
3. POST /{ig-user-id}/media_publish - publish the container
"""

import httpx

from reelflow.adapters.http import raise_for_provider
from reelflow.adapters.publisher.base import (
    MediaRef,
    PlatformPublisher,
    PublishedMedia,
    PublishMetadata,
)
from reelflow.config import settings
from reelflow.domain.enums import MediaStatus, Platform
from reelflow.errors import DataError, ProviderError, ProviderNotConfiguredError
from reelflow.logging import get_logger

logger = get_logger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v18.0"

MAX_CAPTION_LENGTH = 2200


class InstagramPublisher(PlatformPublisher):
    """Instagram Reels publisher."""

    def __init__(self, access_token: str | None = None, account_id: str | None = None) -> None:
        self.access_token = access_token or settings.instagram_access_token
        self.account_id = account_id or settings.instagram_account_id
        self._client: httpx.AsyncClient | None = None

    @property
    def platform(self) -> Platform:
        return Platform.INSTAGRAM

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=60)
        return self._client

    def _credentials(self) -> tuple[str, str]:
        if not self.access_token or not self.account_id:
            raise ProviderNotConfiguredError("Instagram access token or account id not configured")
        return self.access_token, self.account_id

    async def submit_media(self, media: MediaRef, metadata: PublishMetadata) -> str:
        access_token, account_id = self._credentials()
        if not media.video_url.startswith(("http://", "https://")):
            # The Graph API fetches the video itself, so it needs a public URL
            raise DataError("Instagram publishing requires a public video URL")

        try:
            response = await self._get_client().post(
                f"{GRAPH_API_URL}/{account_id}/media",
                params={
                    "media_type": "REELS",
                    "video_url": media.video_url,
                    "caption": metadata.caption(MAX_CAPTION_LENGTH),
                    "access_token": access_token,
                },
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Instagram container creation failed: {e}") from e
        raise_for_provider(response, "Instagram")

        container_id = response.json().get("id")
        if not container_id:
            raise ProviderError("Instagram returned no container id")

        logger.info("instagram_container_created", container_id=container_id)
        return str(container_id)

    async def poll_status(self, container_id: str) -> MediaStatus:
        access_token, _ = self._credentials()
        try:
            response = await self._get_client().get(
                f"{GRAPH_API_URL}/{container_id}",
                params={"fields": "status_code,status", "access_token": access_token},
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Instagram status check failed: {e}") from e
        raise_for_provider(response, "Instagram")

        status_code = response.json().get("status_code")
        if status_code == "FINISHED":
            return MediaStatus.FINISHED
        if status_code in ("ERROR", "EXPIRED"):
            return MediaStatus.ERROR
        return MediaStatus.PENDING

    async def publish(self, container_id: str) -> PublishedMedia:
        access_token, account_id = self._credentials()
        client = self._get_client()
        try:
            response = await client.post(
                f"{GRAPH_API_URL}/{account_id}/media_publish",
                params={"creation_id": container_id, "access_token": access_token},
            )
            raise_for_provider(response, "Instagram")
            media_id = response.json().get("id")
            if not media_id:
                raise ProviderError("Instagram returned no media id")

            permalink_response = await client.get(
                f"{GRAPH_API_URL}/{media_id}",
                params={"fields": "permalink", "access_token": access_token},
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Instagram publish failed: {e}") from e

        permalink = None
        if permalink_response.status_code == 200:
            permalink = permalink_response.json().get("permalink")

        logger.info("instagram_reel_published", media_id=media_id, permalink=permalink)
        return PublishedMedia(id=str(media_id), permalink=permalink)
