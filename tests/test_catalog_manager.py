"""Catalog Manager: record/asset consistency across partial failures.

Tests cover:
    - create uploads before inserting; upload failure leaves no record
    - validation and category checks happen before any asset call
    - record failure after upload is reported (asset orphaned, not rolled back)
    - update stages the new asset before deleting the old one
    - a failed old-asset delete during update fails the request, record unchanged
    - delete removes the record even when the asset delete fails
"""

import pytest
from sqlalchemy import select, func

from app.core.errors import (
    AssetStoreError,
    NotFoundError,
    RecordStoreError,
    ReferentialIntegrityError,
    ValidationError,
)
from app.core.identifiers import generate_object_id
from app.models import MenuItem
from app.services.catalog import CatalogManager

IMAGE = "https://images.example.com/pizza.jpg"


@pytest.fixture
def manager(db, asset_store):
    return CatalogManager(db, asset_store)


async def _count_items(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count(MenuItem.id)))
        return result.scalar()


async def _create(manager, category, **overrides):
    fields = dict(
        name="Pizza",
        description="Cheese pizza",
        price=9.99,
        category_id=category.id,
        available=True,
        image=IMAGE,
    )
    fields.update(overrides)
    return await manager.create_item(**fields)


# ─── create_item ─────────────────────────────────────────────────

async def test_create_item_references_stored_asset(manager, asset_store, category):
    item = await _create(manager, category)

    assert item.id
    assert asset_store.exists(item.image_public_id)
    assert asset_store.url_for(item.image_public_id) == item.image_url
    assert item.image_public_id.startswith("menuItems/")
    assert asset_store.delete_calls == []


async def test_create_item_upload_failure_leaves_no_record(
    manager, asset_store, category, session_factory,
):
    asset_store.fail_uploads = True

    with pytest.raises(AssetStoreError) as exc:
        await _create(manager, category)

    assert exc.value.message == "Error uploading image"
    assert exc.value.http_status == 500
    assert await _count_items(session_factory) == 0


async def test_create_item_record_failure_keeps_uploaded_asset(
    manager, asset_store, category, monkeypatch,
):
    async def failing_insert(doc):
        raise RecordStoreError()

    monkeypatch.setattr(manager._items, "insert", failing_insert)

    with pytest.raises(RecordStoreError) as exc:
        await _create(manager, category)

    assert exc.value.message == "Error creating menu item"
    # No compensating delete: the orphan is left for reconciliation
    assert asset_store.asset_count == 1
    assert asset_store.delete_calls == []


@pytest.mark.parametrize("missing", ["name", "price", "category_id", "image"])
async def test_create_item_missing_required_field(manager, asset_store, category, missing):
    with pytest.raises(ValidationError) as exc:
        await _create(manager, category, **{missing: None})

    assert exc.value.message == "All required fields must be filled"
    assert asset_store.upload_calls == []


async def test_create_item_rejects_non_positive_price(manager, asset_store, category):
    with pytest.raises(ValidationError) as exc:
        await _create(manager, category, price=0)
    assert exc.value.message == "Price must be a positive number"
    assert asset_store.upload_calls == []


@pytest.mark.parametrize("price", [float("inf"), float("nan"), 10 ** 400])
async def test_create_item_rejects_non_finite_price(manager, asset_store, category, price):
    with pytest.raises(ValidationError) as exc:
        await _create(manager, category, price=price)
    assert exc.value.message == "Price must be a positive number"
    assert asset_store.upload_calls == []


async def test_create_item_rejects_long_name(manager, asset_store, category):
    with pytest.raises(ValidationError) as exc:
        await _create(manager, category, name="x" * 101)
    assert exc.value.message == "Name must be at most 100 characters"
    assert asset_store.upload_calls == []


async def test_create_item_accepts_name_at_limit(manager, category):
    item = await _create(manager, category, name="x" * 100)
    assert len(item.name) == 100


async def test_create_item_rejects_id_with_trailing_newline(manager, asset_store, category):
    with pytest.raises(ValidationError) as exc:
        await _create(manager, category, category_id=category.id + "\n")
    assert exc.value.message == "Invalid category ID"
    assert asset_store.upload_calls == []


async def test_create_item_rejects_malformed_category_id(manager, asset_store, category):
    with pytest.raises(ValidationError) as exc:
        await _create(manager, category, category_id="invalid_category_id")
    assert exc.value.message == "Invalid category ID"
    assert asset_store.upload_calls == []


@pytest.mark.parametrize("available", ["true", 1, None])
async def test_create_item_requires_boolean_availability(
    manager, asset_store, category, available,
):
    with pytest.raises(ValidationError) as exc:
        await _create(manager, category, available=available)
    assert exc.value.message == "Available field must be true or false"
    assert asset_store.upload_calls == []


async def test_create_item_unknown_category_is_referential_error(manager, asset_store, category):
    with pytest.raises(ReferentialIntegrityError) as exc:
        await _create(manager, category, category_id=generate_object_id())
    assert exc.value.message == "Invalid category"
    assert exc.value.http_status == 400
    assert asset_store.upload_calls == []


# ─── update_item ─────────────────────────────────────────────────

async def test_update_item_swaps_image(manager, asset_store, category):
    item = await _create(manager, category)
    old_id = item.image_public_id

    updated = await manager.update_item(
        item.id,
        {"image": {"publicId": "client-hint", "url": "https://images.example.com/new.jpg"}},
    )

    assert updated.image_public_id != old_id
    assert not asset_store.exists(old_id)
    assert asset_store.exists(updated.image_public_id)
    assert asset_store.upload_calls[-1] == "https://images.example.com/new.jpg"


async def test_update_item_same_image_makes_no_asset_calls(manager, asset_store, category):
    item = await _create(manager, category)
    uploads_before = len(asset_store.upload_calls)

    updated = await manager.update_item(
        item.id,
        {"image": {"publicId": item.image_public_id, "url": item.image_url}, "price": 11.5},
    )

    assert updated.price == 11.5
    assert len(asset_store.upload_calls) == uploads_before
    assert asset_store.delete_calls == []


async def test_update_item_upload_failure_keeps_old_image(manager, asset_store, category):
    item = await _create(manager, category)
    old_id = item.image_public_id
    asset_store.fail_uploads = True

    with pytest.raises(AssetStoreError):
        await manager.update_item(
            item.id, {"image": {"publicId": "x", "url": "https://images.example.com/new.jpg"}},
        )

    assert asset_store.exists(old_id)
    assert asset_store.delete_calls == []
    assert (await manager.get_item(item.id)).image_public_id == old_id


async def test_update_item_old_asset_delete_failure_fails_request(
    manager, asset_store, category,
):
    item = await _create(manager, category)
    old_id = item.image_public_id
    asset_store.fail_deletes = True

    with pytest.raises(AssetStoreError) as exc:
        await manager.update_item(
            item.id,
            {"image": {"publicId": "x", "url": "https://images.example.com/new.jpg"}, "price": 20.0},
        )

    assert exc.value.message == "Error deleting previous image"
    assert exc.value.http_status == 500
    stored = await manager.get_item(item.id)
    assert stored.image_public_id == old_id
    assert stored.price == 9.99
    # old asset still present, freshly uploaded one orphaned
    assert asset_store.exists(old_id)
    assert asset_store.asset_count == 2


async def test_update_item_record_failure_after_swap(
    manager, asset_store, category, monkeypatch,
):
    item = await _create(manager, category)
    old_id = item.image_public_id
    old_url = item.image_url

    async def failing_update(record_id, patch):
        raise RecordStoreError()

    monkeypatch.setattr(manager._items, "update_by_id", failing_update)

    with pytest.raises(RecordStoreError) as exc:
        await manager.update_item(
            item.id, {"image": {"publicId": "x", "url": "https://images.example.com/new.jpg"}},
        )

    assert exc.value.message == "Error updating menu item"
    assert exc.value.http_status == 500
    assert asset_store.upload_calls == [IMAGE, "https://images.example.com/new.jpg"]
    assert asset_store.delete_calls == [old_id]
    assert not asset_store.exists(old_id)
    assert asset_store.asset_count == 1

    stored = await manager.get_item(item.id)
    assert stored.image_public_id == old_id
    assert stored.image_url == old_url


async def test_update_item_rejects_long_name(manager, asset_store, category):
    item = await _create(manager, category)
    with pytest.raises(ValidationError) as exc:
        await manager.update_item(
            item.id,
            {
                "name": "x" * 101,
                "image": {"publicId": "x", "url": "https://images.example.com/new.jpg"},
            },
        )
    assert exc.value.message == "Name must be at most 100 characters"
    assert len(asset_store.upload_calls) == 1


@pytest.mark.parametrize("image", [
    {"url": "https://images.example.com/new.jpg"},
    {"publicId": "abc"},
    {"publicId": "", "url": "https://images.example.com/new.jpg"},
    "https://images.example.com/new.jpg",
])
async def test_update_item_rejects_malformed_image(manager, asset_store, category, image):
    item = await _create(manager, category)

    with pytest.raises(ValidationError) as exc:
        await manager.update_item(item.id, {"image": image})

    assert exc.value.message == "Invalid image data"
    assert len(asset_store.upload_calls) == 1


async def test_update_item_unknown_category(manager, category):
    item = await _create(manager, category)
    with pytest.raises(ReferentialIntegrityError):
        await manager.update_item(item.id, {"category": generate_object_id()})


async def test_update_item_rejects_string_availability(manager, category):
    item = await _create(manager, category)
    with pytest.raises(ValidationError) as exc:
        await manager.update_item(item.id, {"available": "false"})
    assert exc.value.message == "Available field must be true or false"


async def test_update_item_not_found(manager, asset_store):
    with pytest.raises(NotFoundError) as exc:
        await manager.update_item(
            generate_object_id(),
            {"image": {"publicId": "x", "url": "https://images.example.com/new.jpg"}},
        )
    assert exc.value.message == "Menu item not found"
    assert asset_store.upload_calls == []


async def test_update_item_ignores_unknown_fields(manager, category):
    item = await _create(manager, category)
    updated = await manager.update_item(
        item.id, {"id": "something-else", "image_public_id": "forged", "available": False},
    )
    assert updated.id == item.id
    assert updated.image_public_id == item.image_public_id
    assert updated.available is False


# ─── delete_item ─────────────────────────────────────────────────

async def test_delete_item_removes_record_and_asset(manager, asset_store, category):
    item = await _create(manager, category)
    asset_id = item.image_public_id

    await manager.delete_item(item.id)

    assert not asset_store.exists(asset_id)
    with pytest.raises(NotFoundError):
        await manager.get_item(item.id)


async def test_delete_item_succeeds_when_asset_delete_fails(
    manager, asset_store, category, session_factory,
):
    item = await _create(manager, category)
    asset_store.fail_deletes = True

    await manager.delete_item(item.id)

    assert await _count_items(session_factory) == 0


async def test_delete_item_twice_is_not_found(manager, category):
    item = await _create(manager, category)
    await manager.delete_item(item.id)

    with pytest.raises(NotFoundError):
        await manager.delete_item(item.id)


async def test_delete_item_malformed_id_is_not_found(manager):
    with pytest.raises(NotFoundError):
        await manager.delete_item("not-an-id")


# ─── categories ──────────────────────────────────────────────────

async def test_delete_category_does_not_cascade(manager, category):
    item = await _create(manager, category)

    await manager.delete_category(category.id)

    remaining = await manager.get_item(item.id)
    assert remaining.category_id == category.id
    assert await manager.categories_for([remaining]) == {}


async def test_create_category_requires_name(manager):
    with pytest.raises(ValidationError) as exc:
        await manager.create_category("  ")
    assert exc.value.message == "Category name is required"


async def test_create_category_rejects_long_name(manager):
    with pytest.raises(ValidationError) as exc:
        await manager.create_category("x" * 101)
    assert exc.value.message == "Name must be at most 100 characters"
