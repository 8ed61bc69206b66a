"""YouTube publisher adapter using the YouTube Data API v3.

Uploads are private resumable uploads; ``publish`` flips the video to its
requested visibility once YouTube has finished processing it.
"""

from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

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

YOUTUBE_UPLOAD_URL = "https://www.googleapis.com/upload/youtube/v3/videos"
YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 5000


async def fetch_media_bytes(url: str, client: httpx.AsyncClient) -> bytes:
    """Load a rendered video from a file:// or http(s) URL."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
        if not path.exists():
            raise DataError(f"Video file not found: {path}")
        return path.read_bytes()
    if parsed.scheme in ("http", "https"):
        response = await client.get(url)
        raise_for_provider(response, "Media host")
        return response.content
    raise DataError(f"Unsupported video URL: {url}")


class YouTubePublisher(PlatformPublisher):
    """YouTube Shorts publisher."""

    def __init__(self, access_token: str | None = None) -> None:
        self.access_token = access_token or settings.youtube_access_token
        self._client: httpx.AsyncClient | None = None
        # video id -> visibility requested at submit time
        self._pending_visibility: dict[str, str] = {}

    @property
    def platform(self) -> Platform:
        return Platform.YOUTUBE

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=300)  # 5 min for uploads
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        if not self.access_token:
            raise ProviderNotConfiguredError("YouTube access token not configured")
        return {"Authorization": f"Bearer {self.access_token}"}

    def _build_video_resource(self, metadata: PublishMetadata) -> dict[str, Any]:
        description = (metadata.description or "")[:MAX_DESCRIPTION_LENGTH]
        if "#shorts" not in description.lower():
            description = f"{description}\n\n#Shorts".strip()
        return {
            "snippet": {
                "title": metadata.title[:MAX_TITLE_LENGTH],
                "description": description,
                "tags": [tag.lstrip("#") for tag in metadata.hashtags][:15],
                "categoryId": "22",  # People & Blogs
            },
            # Uploaded private; publish() applies the requested visibility
            "status": {"privacyStatus": "private", "selfDeclaredMadeForKids": False},
        }

    async def submit_media(self, media: MediaRef, metadata: PublishMetadata) -> str:
        headers = self._auth_headers()
        client = self._get_client()

        try:
            video_bytes = await fetch_media_bytes(media.video_url, client)

            init_response = await client.post(
                YOUTUBE_UPLOAD_URL,
                params={"uploadType": "resumable", "part": "snippet,status"},
                headers={
                    **headers,
                    "Content-Type": "application/json; charset=UTF-8",
                    "X-Upload-Content-Length": str(len(video_bytes)),
                    "X-Upload-Content-Type": "video/mp4",
                },
                json=self._build_video_resource(metadata),
            )
            raise_for_provider(init_response, "YouTube")

            upload_url = init_response.headers.get("Location")
            if not upload_url:
                raise ProviderError("YouTube did not return a resumable upload URL")

            upload_response = await client.put(
                upload_url,
                headers={"Content-Type": "video/mp4"},
                content=video_bytes,
            )
            raise_for_provider(upload_response, "YouTube")
        except httpx.HTTPError as e:
            raise ProviderError(f"YouTube upload failed: {e}") from e

        video_id = upload_response.json().get("id")
        if not video_id:
            raise ProviderError("YouTube upload response has no video id")

        self._pending_visibility[video_id] = metadata.visibility
        logger.info("youtube_upload_completed", video_id=video_id, size=len(video_bytes))
        return str(video_id)

    async def poll_status(self, container_id: str) -> MediaStatus:
        try:
            response = await self._get_client().get(
                YOUTUBE_VIDEOS_URL,
                params={"id": container_id, "part": "status,processingDetails"},
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"YouTube status check failed: {e}") from e
        raise_for_provider(response, "YouTube")

        items = response.json().get("items", [])
        if not items:
            return MediaStatus.ERROR

        item = items[0]
        upload_status = item.get("status", {}).get("uploadStatus")
        processing = item.get("processingDetails", {}).get("processingStatus")

        if upload_status in ("failed", "rejected", "deleted") or processing == "failed":
            return MediaStatus.ERROR
        if processing == "succeeded" or upload_status == "processed":
            return MediaStatus.FINISHED
        return MediaStatus.PENDING

    async def publish(self, container_id: str) -> PublishedMedia:
        visibility = self._pending_visibility.pop(container_id, "public")
        try:
            response = await self._get_client().put(
                YOUTUBE_VIDEOS_URL,
                params={"part": "status"},
                headers={**self._auth_headers(), "Content-Type": "application/json"},
                json={
                    "id": container_id,
                    "status": {"privacyStatus": visibility, "selfDeclaredMadeForKids": False},
                },
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"YouTube publish failed: {e}") from e
        raise_for_provider(response, "YouTube")

        logger.info("youtube_video_published", video_id=container_id, visibility=visibility)
        return PublishedMedia(id=container_id, permalink=f"https://youtube.com/shorts/{container_id}")

    async def health_check(self) -> bool:
        if not self.access_token:
            return False
        try:
            response = await self._get_client().get(
                "https://www.googleapis.com/youtube/v3/channels",
                params={"part": "id", "mine": "true"},
                headers=self._auth_headers(),
            )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("youtube_health_check_failed", error=str(e))
            return False
