"""
Asset Store Factory

Provides a single entry point for obtaining the asset store that holds
menu item photographs. The rest of the application stays agnostic about
which implementation is being used.

Usage:
    from app.services.assets import get_asset_store

    store = get_asset_store()
    ref = await store.upload(image, folder="menuItems")

Environment Switching:
    - ENV_MODE=development → MockAssetStore (in-memory)
    - ENV_MODE=staging → CloudinaryAssetStore (test cloud)
    - ENV_MODE=production → CloudinaryAssetStore (live cloud)
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.assets.base import AssetRef, BaseAssetStore
from app.services.assets.mock import MockAssetStore
from app.services.assets.cloudinary import CloudinaryAssetStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_asset_store() -> BaseAssetStore:
    """
    Get the configured asset store instance.

    The instance is cached so the mock store keeps its contents for the
    lifetime of the process.

    Raises:
        ValueError: If production mode but Cloudinary is not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Asset Store: Using MockAssetStore (development mode)")
        return MockAssetStore(min_latency=0.05, max_latency=0.2)

    logger.info(
        f"Asset Store: Using CloudinaryAssetStore "
        f"({settings.env_mode.value} mode)"
    )
    return CloudinaryAssetStore()


def reset_asset_store() -> None:
    """
    Clear the cached asset store instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_asset_store.cache_clear()
    logger.debug("Asset store cache cleared")


__all__ = [
    "get_asset_store",
    "reset_asset_store",
    "AssetRef",
    "BaseAssetStore",
    "MockAssetStore",
    "CloudinaryAssetStore",
]
