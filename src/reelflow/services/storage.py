"""Local asset storage for generated audio and thumbnails."""

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from reelflow.config import settings
from reelflow.logging import get_logger

logger = get_logger(__name__)

_SUBDIRS = {
    "audio": ("audio", ".mp3", "audio/mpeg"),
    "thumbnail": ("thumbnails", ".png", "image/png"),
    "video": ("final", ".mp4", "video/mp4"),
}


@dataclass
class StoredAsset:
    """Metadata for a stored asset."""

    id: UUID
    file_path: Path
    url: str
    file_size_bytes: int
    mime_type: str
    checksum: str
    metadata: dict[str, Any]


class StorageService:
    """Stores asset bytes on local disk and hands out URLs for them.

    URLs are built from ``storage_base_url`` when configured (for example a
    CDN fronting the storage directory), otherwise they are file:// URLs.
    """

    def __init__(self, base_path: Path | None = None, base_url: str | None = None) -> None:
        self.base_path = Path(base_path or settings.storage_path)
        self.base_url = (base_url if base_url is not None else settings.storage_base_url) or None

    def _url_for(self, file_path: Path) -> str:
        if self.base_url:
            relative = file_path.relative_to(self.base_path).as_posix()
            return f"{self.base_url.rstrip('/')}/{relative}"
        return file_path.resolve().as_uri()

    def store_bytes(
        self,
        data: bytes,
        asset_type: str,
        owner_id: UUID,
        metadata: dict[str, Any] | None = None,
    ) -> StoredAsset:
        """Store raw bytes as an asset.

        Args:
            data: Raw bytes to store
            asset_type: One of audio, thumbnail, video
            owner_id: Entity the asset belongs to (used in the file name)
            metadata: Optional metadata

        Returns:
            StoredAsset with file location and URL
        """
        subdir, ext, mime_type = _SUBDIRS.get(asset_type, ("temp", ".bin", "application/octet-stream"))
        directory = self.base_path / subdir
        directory.mkdir(parents=True, exist_ok=True)

        asset_id = uuid4()
        file_path = directory / f"{owner_id}_{asset_id.hex[:8]}{ext}"
        file_path.write_bytes(data)

        url = self._url_for(file_path)
        logger.debug("asset_stored", asset_type=asset_type, path=str(file_path), size=len(data))

        return StoredAsset(
            id=asset_id,
            file_path=file_path,
            url=url,
            file_size_bytes=len(data),
            mime_type=mime_type,
            checksum=hashlib.sha256(data).hexdigest(),
            metadata=metadata or {},
        )
