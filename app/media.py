"""Media host abstraction for user images (local disk or Cloudinary)."""

import hashlib
import logging
import shutil
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import httpx

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedAsset:
    """A file stored on the media host."""

    url: str
    public_id: str


class MediaHost(ABC):
    """Abstract media host for avatars and cover images."""

    @abstractmethod
    async def upload(
        self, local_path: str | Path, resource_type: str, folder: str
    ) -> UploadedAsset | None:
        """
        Upload a local file into a logical folder.

        Args:
            local_path: Path of the staged file on local disk
            resource_type: Kind of asset ("image", "video", "raw")
            folder: Logical folder on the host, e.g. "avatars"

        Returns:
            The stored asset, or None if the upload failed
        """
        pass

    @abstractmethod
    async def destroy(self, public_id: str, resource_type: str = "image") -> bool:
        """
        Delete an asset from the host.

        Args:
            public_id: Asset identifier returned by upload()
            resource_type: Kind of asset

        Returns:
            True if deleted, False otherwise
        """
        pass


class LocalMediaHost(MediaHost):
    """Media host backed by a local directory served under /media."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.base_path = Path(settings.media_local_path)
        self.url_base = settings.media_url_base.rstrip("/")

        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, public_id: str) -> Path | None:
        file_path = self.base_path / public_id
        # Never touch anything outside the media directory
        if not file_path.resolve().is_relative_to(self.base_path.resolve()):
            return None
        return file_path

    async def upload(
        self, local_path: str | Path, resource_type: str, folder: str
    ) -> UploadedAsset | None:
        """Copy the staged file into the media directory."""
        source = Path(local_path)
        if not source.is_file():
            logger.error(f"Cannot upload missing file: {source}")
            return None

        public_id = f"{folder}/{uuid.uuid4().hex}{source.suffix.lower()}"
        target = self._resolve(public_id)
        if target is None:
            logger.error(f"Invalid media folder: {folder}")
            return None

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            logger.error(f"Failed to store {source} as {public_id}: {e}", exc_info=True)
            return None

        logger.info(f"Stored {resource_type} in local media: {target}")
        return UploadedAsset(url=f"{self.url_base}/media/{public_id}", public_id=public_id)

    async def destroy(self, public_id: str, resource_type: str = "image") -> bool:
        """Delete a file from the media directory."""
        file_path = self._resolve(public_id)
        if file_path is None:
            logger.error(f"Attempted to delete file outside media directory: {public_id}")
            return False

        if file_path.exists():
            file_path.unlink()
            logger.info(f"Deleted {resource_type} from local media: {file_path}")
            return True

        return False


class CloudinaryMediaHost(MediaHost):
    """Cloudinary upload API client using signed requests."""

    BASE = "https://api.cloudinary.com/v1_1"

    def __init__(self, settings: Settings):
        self.settings = settings
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.timeout = settings.media_timeout_seconds

        if not (self.cloud_name and self.api_key and self.api_secret):
            raise ValueError(
                "Cloudinary is not configured. Set VT_CLOUDINARY_CLOUD_NAME, "
                "VT_CLOUDINARY_API_KEY and VT_CLOUDINARY_API_SECRET."
            )

    def sign(self, params: dict[str, str]) -> str:
        """
        Compute the request signature.

        Parameters are sorted by name, joined as ``key=value`` pairs with
        ``&``, suffixed with the API secret and hashed with SHA-1.
        """
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
        return hashlib.sha1((to_sign + self.api_secret).encode("utf-8")).hexdigest()

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {**params, "signature": self.sign(params), "api_key": self.api_key}

    async def upload(
        self, local_path: str | Path, resource_type: str, folder: str
    ) -> UploadedAsset | None:
        """Upload a file to Cloudinary."""
        source = Path(local_path)
        if not source.is_file():
            logger.error(f"Cannot upload missing file: {source}")
            return None

        url = f"{self.BASE}/{self.cloud_name}/{resource_type}/upload"
        data = self._signed({"folder": folder})

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    data=data,
                    files={"file": (source.name, source.read_bytes())},
                )

                if response.status_code != 200:
                    logger.error(
                        f"Cloudinary upload of {source.name} failed. "
                        f"Status: {response.status_code}, Response: {response.text}"
                    )
                    return None

                body = response.json()

        except httpx.HTTPError as e:
            logger.error(f"HTTP error while uploading {source.name}: {e}", exc_info=True)
            return None

        asset_url = body.get("secure_url") or body.get("url")
        public_id = body.get("public_id")
        if not asset_url or not public_id:
            logger.error(f"Cloudinary upload response missing url/public_id: {body}")
            return None

        logger.info(f"Uploaded {source.name} to Cloudinary as {public_id}")
        return UploadedAsset(url=asset_url, public_id=public_id)

    async def destroy(self, public_id: str, resource_type: str = "image") -> bool:
        """Delete an asset from Cloudinary."""
        url = f"{self.BASE}/{self.cloud_name}/{resource_type}/destroy"
        data = self._signed({"public_id": public_id})

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, data=data)

                if response.status_code != 200:
                    logger.error(
                        f"Cloudinary destroy of {public_id} failed. "
                        f"Status: {response.status_code}, Response: {response.text}"
                    )
                    return False

                result = response.json().get("result")

        except httpx.HTTPError as e:
            logger.error(f"HTTP error while destroying {public_id}: {e}", exc_info=True)
            return False

        if result != "ok":
            logger.warning(f"Cloudinary did not destroy {public_id}: result={result}")
            return False

        logger.info(f"Destroyed {public_id} on Cloudinary")
        return True


def get_media_backend(settings: Settings) -> MediaHost:
    """
    Factory function to get the configured media host.

    Args:
        settings: Application settings

    Returns:
        Configured media host instance
    """
    if settings.media_backend == "local":
        return LocalMediaHost(settings)
    elif settings.media_backend == "cloudinary":
        return CloudinaryMediaHost(settings)
    else:
        raise ValueError(f"Unknown media backend: {settings.media_backend}")


def get_media_host() -> MediaHost:
    """Dependency for FastAPI routes to get the configured media host."""
    return get_media_backend(get_settings())
