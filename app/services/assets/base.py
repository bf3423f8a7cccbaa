"""
Asset Store Abstract Base Class

Defines the interface contract for the binary asset store that holds menu
item photographs. Both MockAssetStore and CloudinaryAssetStore implement
these methods, so the catalog manager behaves identically regardless of
which store is active.

Contract:
    - upload() either returns a committed AssetRef or raises AssetStoreError
    - delete() of an asset that is already gone is a success, not an error
    - Failures are independent of record store failures
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AssetRef:
    """
    Stable reference to a stored asset.

    Attributes:
        asset_id: Store-assigned identifier used for deletion
        url: Retrievable URL, reported verbatim by the store
    """
    asset_id: str
    url: str


class BaseAssetStore(ABC):
    """
    Abstract base class for asset stores.

    Example:
        >>> store = get_asset_store()
        >>> ref = await store.upload("https://example.com/pizza.jpg", "menuItems")
        >>> await store.delete(ref.asset_id)
        True
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the asset provider (e.g., "mock", "cloudinary")."""
        pass

    @abstractmethod
    async def upload(self, payload: str, folder: str) -> AssetRef:
        """
        Store an image payload.

        Args:
            payload: Remote URL or data URI of the image
            folder: Folder hint used to group assets

        Returns:
            AssetRef: Identifier and URL of the stored asset

        Raises:
            AssetStoreError: If the store rejected or failed the upload
        """
        pass

    @abstractmethod
    async def delete(self, asset_id: str) -> bool:
        """
        Remove an asset.

        Returns:
            bool: True if the asset was deleted, False if it did not exist

        Raises:
            AssetStoreError: If the store could not process the request
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the asset store.

        Returns:
            bool: True if the store is reachable and operational
        """
        pass
