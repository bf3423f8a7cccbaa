"""
Catalog Manager

Keeps menu item records and their photographs consistent across two
independent systems: the record store (price, availability, category
reference) and the asset store (the image). There is no shared
transaction, so every write is ordered:

    create:  validate → check category → upload asset → insert record
    update:  validate → check category → load item → upload new asset
             → delete old asset → update record
    delete:  load item → delete asset (best effort) → delete record

A persisted item therefore never references an asset that was not
confirmed stored. The failure windows that remain are logged at ERROR
with the asset id for out-of-band reconciliation:

    - record insert fails after upload      → orphaned new asset
    - record update fails after the swap    → record still holds the old,
                                              now deleted, reference
    - old asset delete fails during update  → request fails, record keeps
                                              the old reference, new asset
                                              orphaned

No step is retried and nothing is rolled back.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import (
    AssetStoreError,
    NotFoundError,
    RecordStoreError,
    ReferentialIntegrityError,
    ValidationError,
)
from app.core.identifiers import is_valid_object_id
from app.models import NAME_MAX_LENGTH, Category, MenuItem
from app.services.assets.base import AssetRef, BaseAssetStore
from app.services.record_store import RecordStore
from app.services.validation import (
    is_non_empty_string,
    is_positive_number,
    is_present,
    require_bool,
)

logger = logging.getLogger(__name__)


class CatalogManager:
    """
    Orchestrates menu item and category writes.

    Example:
        >>> manager = CatalogManager(db, get_asset_store())
        >>> item = await manager.create_item(
        ...     name="Pizza", price=9.99, category_id=cat.id,
        ...     available=True, image="https://example.com/pizza.jpg",
        ... )
    """

    def __init__(
        self,
        session: AsyncSession,
        asset_store: BaseAssetStore,
        folder: Optional[str] = None,
    ):
        self._items = RecordStore(session, MenuItem)
        self._categories = RecordStore(session, Category)
        self._assets = asset_store
        self._folder = folder or get_settings().asset_folder

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @staticmethod
    def _check_name(name: Any, message: str = "Name must be a non-empty string") -> str:
        if not is_non_empty_string(name):
            raise ValidationError(message, field="name")
        name = name.strip()
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationError(
                f"Name must be at most {NAME_MAX_LENGTH} characters", field="name"
            )
        return name

    @staticmethod
    def _check_category_format(category_id: Any) -> None:
        if not is_valid_object_id(category_id):
            raise ValidationError("Invalid category ID", field="category")

    @staticmethod
    def _check_price(price: Any) -> None:
        if not is_positive_number(price):
            raise ValidationError("Price must be a positive number", field="price")

    @staticmethod
    def _check_description(description: Any) -> None:
        if description is not None and not isinstance(description, str):
            raise ValidationError("Description must be a string", field="description")

    async def _check_category_exists(self, category_id: str) -> None:
        if not await self._categories.exists(category_id):
            raise ReferentialIntegrityError("Invalid category", reference=category_id)

    async def _upload(self, payload: str) -> AssetRef:
        try:
            ref = await self._assets.upload(payload, self._folder)
        except AssetStoreError as e:
            logger.error(f"Image upload to {self._assets.provider_name} failed: {e.message}")
            raise AssetStoreError("Error uploading image") from e
        logger.info(f"Image stored as {ref.asset_id}")
        return ref

    async def _discard_asset(self, asset_id: str, reason: str) -> None:
        """Delete an asset, logging instead of raising on failure."""
        try:
            await self._assets.delete(asset_id)
        except AssetStoreError as e:
            logger.error(
                f"Could not delete asset {asset_id} ({reason}); "
                f"left orphaned in {self._assets.provider_name}: {e.message}"
            )

    # =========================================================================
    # MENU ITEMS
    # =========================================================================

    async def create_item(
        self,
        name: Any,
        price: Any,
        category_id: Any,
        available: Any,
        image: Any,
        description: Any = None,
    ) -> MenuItem:
        """
        Create a menu item with its photograph.

        Validation and the category check run before any side effect. The
        image is uploaded before the record is written, so an upload failure
        leaves nothing behind.

        Raises:
            ValidationError: Missing or malformed field
            ReferentialIntegrityError: Category does not exist
            AssetStoreError: Upload failed (no record created)
            RecordStoreError: Record write failed (uploaded asset orphaned)
        """
        if not (
            is_present(name)
            and price is not None
            and is_present(category_id)
            and is_present(image)
        ):
            raise ValidationError("All required fields must be filled")
        name = self._check_name(name)
        self._check_description(description)
        self._check_price(price)
        self._check_category_format(category_id)
        require_bool(available, "Available field must be true or false", "available")
        if not isinstance(image, str):
            raise ValidationError("Image must be a URL or data URI", field="image")

        await self._check_category_exists(category_id)

        ref = await self._upload(image)

        try:
            item = await self._items.insert({
                "name": name,
                "description": description,
                "price": price,
                "category_id": category_id,
                "available": available,
                "image_public_id": ref.asset_id,
                "image_url": ref.url,
            })
        except RecordStoreError as e:
            logger.error(
                f"Menu item '{name}' was not saved; asset {ref.asset_id} is orphaned"
            )
            raise RecordStoreError("Error creating menu item") from e

        logger.info(f"Menu item {item.id} created ('{item.name}', image={ref.asset_id})")
        return item

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> MenuItem:
        """
        Apply a partial update to a menu item.

        Recognised keys: name, description, price, category, available and
        image ({"publicId", "url"}). Other keys are ignored. A supplied image
        that differs from the current one is uploaded from its url; the old
        asset is deleted only once the new one is stored.

        Raises:
            ValidationError: Malformed field
            ReferentialIntegrityError: Category does not exist
            NotFoundError: Item does not exist
            AssetStoreError: Upload or old-asset delete failed (record untouched)
            RecordStoreError: Record update failed after the asset swap
        """
        patch: dict[str, Any] = {}
        image = fields.get("image")

        if image is not None and not (
            isinstance(image, dict)
            and is_non_empty_string(image.get("publicId"))
            and is_non_empty_string(image.get("url"))
        ):
            raise ValidationError("Invalid image data", field="image")

        category_id = fields.get("category")
        if category_id is not None:
            self._check_category_format(category_id)
            patch["category_id"] = category_id

        if "available" in fields:
            patch["available"] = require_bool(
                fields["available"], "Available field must be true or false", "available"
            )

        if "name" in fields:
            patch["name"] = self._check_name(fields["name"])

        if "price" in fields:
            self._check_price(fields["price"])
            patch["price"] = fields["price"]

        if "description" in fields:
            self._check_description(fields["description"])
            patch["description"] = fields["description"]

        if category_id is not None:
            await self._check_category_exists(category_id)

        item = await self._items.find_by_id(item_id)
        if item is None:
            raise NotFoundError("Menu item not found")

        new_ref: Optional[AssetRef] = None
        old_asset_id = item.image_public_id
        if image is not None and (
            image["publicId"] != item.image_public_id or image["url"] != item.image_url
        ):
            new_ref = await self._upload(image["url"])
            if old_asset_id:
                try:
                    await self._assets.delete(old_asset_id)
                except AssetStoreError as e:
                    logger.error(
                        f"Could not delete asset {old_asset_id} replaced on menu item "
                        f"{item_id}: {e.message}; record unchanged, new asset "
                        f"{new_ref.asset_id} is orphaned"
                    )
                    raise AssetStoreError("Error deleting previous image") from e
            patch["image_public_id"] = new_ref.asset_id
            patch["image_url"] = new_ref.url

        try:
            updated = await self._items.update_by_id(item_id, patch)
        except RecordStoreError as e:
            if new_ref is not None:
                logger.error(
                    f"Menu item {item_id} update failed after image swap; record still "
                    f"references {old_asset_id}, new asset {new_ref.asset_id} is orphaned"
                )
            raise RecordStoreError("Error updating menu item") from e

        if updated is None:
            if new_ref is not None:
                logger.error(
                    f"Menu item {item_id} disappeared during update; "
                    f"asset {new_ref.asset_id} is orphaned"
                )
            raise NotFoundError("Menu item not found")

        logger.info(f"Menu item {item_id} updated: {sorted(patch)}")
        return updated

    async def delete_item(self, item_id: str) -> None:
        """
        Delete a menu item and its photograph.

        The asset delete is best effort: a failure is logged and the record
        is still removed.

        Raises:
            NotFoundError: Item does not exist
            RecordStoreError: Record delete failed
        """
        item = await self._items.find_by_id(item_id)
        if item is None:
            raise NotFoundError("Menu item not found")

        if item.image_public_id:
            await self._discard_asset(item.image_public_id, f"menu item {item_id} deleted")

        try:
            deleted = await self._items.delete_by_id(item_id)
        except RecordStoreError as e:
            raise RecordStoreError("Error deleting menu item") from e
        if deleted is None:
            raise NotFoundError("Menu item not found")

        logger.info(f"Menu item {item_id} deleted")

    async def get_item(self, item_id: str) -> MenuItem:
        item = await self._items.find_by_id(item_id)
        if item is None:
            raise NotFoundError("Menu item not found")
        return item

    async def list_items(self) -> list[MenuItem]:
        return await self._items.list_all()

    async def categories_for(self, items: list[MenuItem]) -> dict[str, Category]:
        """Fetch the categories referenced by items, keyed by id."""
        return await self._categories.find_many([item.category_id for item in items])

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def create_category(self, name: Any, description: Any = None) -> Category:
        name = self._check_name(name, "Category name is required")
        self._check_description(description)
        category = await self._categories.insert({
            "name": name,
            "description": description,
        })
        logger.info(f"Category {category.id} created ('{category.name}')")
        return category

    async def get_category(self, category_id: str) -> Category:
        category = await self._categories.find_by_id(category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def list_categories(self) -> list[Category]:
        return await self._categories.list_all()

    async def delete_category(self, category_id: str) -> None:
        """Delete a category. Menu items referencing it are left untouched."""
        if await self._categories.delete_by_id(category_id) is None:
            raise NotFoundError("Category not found")
        logger.info(f"Category {category_id} deleted")
