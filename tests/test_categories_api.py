"""Category API: public reads, staff-only writes."""

from app.core.identifiers import generate_object_id


async def test_list_categories(client, category):
    res = await client.get("/api/categories")
    assert res.status_code == 200
    assert [c["name"] for c in res.json()] == ["Main Course"]


async def test_get_category(client, category):
    res = await client.get(f"/api/categories/{category.id}")
    assert res.status_code == 200
    assert res.json()["description"] == "Main course category"


async def test_get_missing_category(client):
    res = await client.get(f"/api/categories/{generate_object_id()}")
    assert res.status_code == 404
    assert res.json()["message"] == "Category not found"


async def test_create_category(client, staff_headers):
    res = await client.post(
        "/api/categories", json={"name": "Desserts"}, headers=staff_headers,
    )
    assert res.status_code == 201
    body = res.json()
    assert body["name"] == "Desserts"
    assert len(body["id"]) == 24


async def test_create_category_requires_name(client, staff_headers):
    res = await client.post("/api/categories", json={}, headers=staff_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Category name is required"


async def test_create_category_forbidden_for_customer(client, customer_headers):
    res = await client.post(
        "/api/categories", json={"name": "Desserts"}, headers=customer_headers,
    )
    assert res.status_code == 403


async def test_delete_category(client, staff_headers, category):
    res = await client.delete(f"/api/categories/{category.id}", headers=staff_headers)
    assert res.status_code == 200
    assert res.json() == {"message": "Category deleted successfully"}

    again = await client.delete(f"/api/categories/{category.id}", headers=staff_headers)
    assert again.status_code == 404


async def test_health(client):
    res = await client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["database"] == "healthy"
    assert body["assetStore"] == "healthy"
