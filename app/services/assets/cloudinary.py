"""
Cloudinary Asset Store Implementation

Production implementation using the official Cloudinary Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET
      must be set in environment

The SDK is synchronous, so each call runs in a worker thread to keep the
event loop free while the upload is in flight.
"""

import asyncio
import logging

import cloudinary
import cloudinary.api
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.core.config import get_settings
from app.core.errors import AssetStoreError
from app.services.assets.base import AssetRef, BaseAssetStore

logger = logging.getLogger(__name__)


class CloudinaryAssetStore(BaseAssetStore):
    """
    Production Cloudinary asset store.

    Example:
        >>> store = CloudinaryAssetStore()
        >>> ref = await store.upload("https://example.com/pizza.jpg", "menuItems")
        >>> print(ref.url)
        'https://res.cloudinary.com/demo/image/upload/v1/menuItems/abc.jpg'
    """

    def __init__(self):
        """
        Configure the Cloudinary SDK from settings.

        Raises:
            ValueError: If Cloudinary credentials are not configured
        """
        settings = get_settings()

        if not (
            settings.cloudinary_cloud_name
            and settings.cloudinary_api_key
            and settings.cloudinary_api_secret
        ):
            raise ValueError(
                "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET "
                "are required outside development mode. "
                "Set them in your .env file or environment variables."
            )

        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )
        self._timeout = settings.asset_timeout_seconds

        logger.info(f"CloudinaryAssetStore initialized (cloud={settings.cloudinary_cloud_name})")

    @property
    def provider_name(self) -> str:
        return "cloudinary"

    async def upload(self, payload: str, folder: str) -> AssetRef:
        logger.info(f"Cloudinary: Uploading image to folder '{folder}'")

        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                payload,
                folder=folder,
                resource_type="image",
                timeout=self._timeout,
            )
        except CloudinaryError as e:
            logger.error(f"Cloudinary: Upload failed - {e}")
            raise AssetStoreError(f"Asset store upload failed: {e}")

        public_id = result.get("public_id")
        url = result.get("secure_url") or result.get("url")
        if not public_id or not url:
            logger.error(f"Cloudinary: Upload response missing public_id/url: {result}")
            raise AssetStoreError("Asset store upload returned an incomplete response")

        logger.info(f"Cloudinary: Stored asset {public_id}")
        return AssetRef(asset_id=public_id, url=url)

    async def delete(self, asset_id: str) -> bool:
        logger.info(f"Cloudinary: Destroying asset {asset_id}")

        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                asset_id,
                resource_type="image",
                invalidate=True,
                timeout=self._timeout,
            )
        except CloudinaryError as e:
            logger.error(f"Cloudinary: Destroy of {asset_id} failed - {e}")
            raise AssetStoreError(f"Asset store delete failed: {e}")

        outcome = result.get("result")
        if outcome == "ok":
            return True
        if outcome == "not found":
            logger.info(f"Cloudinary: Asset {asset_id} already absent")
            return False

        logger.error(f"Cloudinary: Unexpected destroy result for {asset_id}: {outcome}")
        raise AssetStoreError(f"Asset store delete failed: {outcome}")

    async def health_check(self) -> bool:
        """Ping the Cloudinary Admin API with the configured credentials."""
        try:
            result = await asyncio.to_thread(cloudinary.api.ping)
        except CloudinaryError as e:
            logger.error(f"Cloudinary: Health check failed - {e}")
            return False
        return result.get("status") == "ok"
