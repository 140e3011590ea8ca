"""
Tests for the SQL-backed document store, using a temporary SQLite file.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.stores import Stores
from app.features.permissions import service
from app.features.permissions.grants import defaults_for
from app.features.users.documents import SqlDocumentStore

from conftest import FakeClaimsStore


async def make_store(tmp_path) -> SqlDocumentStore:
    return await SqlDocumentStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'users.db'}")


@pytest.mark.asyncio
async def test_get_missing_document(tmp_path):
    store = await make_store(tmp_path)

    snapshot = await store.get("nobody")

    assert snapshot.exists is False
    assert snapshot.data is None


@pytest.mark.asyncio
async def test_set_and_get(tmp_path):
    store = await make_store(tmp_path)
    created_at = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    await store.set("u1", {
        "role": "cashier",
        "permissions": defaults_for("cashier"),
        "createdAt": created_at,
        "displayName": "Till 3",
    })
    snapshot = await store.get("u1")

    assert snapshot.exists is True
    assert snapshot.data["role"] == "cashier"
    assert snapshot.data["permissions"] == defaults_for("cashier")
    assert snapshot.data["displayName"] == "Till 3"
    assert snapshot.data["createdAt"] == created_at
    assert snapshot.data["createdAt"].tzinfo is not None


@pytest.mark.asyncio
async def test_update_touches_only_given_fields(tmp_path):
    store = await make_store(tmp_path)
    await store.set("u1", {"role": "cashier", "permissions": defaults_for("cashier"), "displayName": "Till 3"})
    before = (await store.get("u1")).data

    await store.update("u1", {"permissions": defaults_for("user")})
    after = (await store.get("u1")).data

    assert after["permissions"] == defaults_for("user")
    assert after["role"] == "cashier"
    assert after["displayName"] == "Till 3"
    assert after["createdAt"] == before["createdAt"]


@pytest.mark.asyncio
async def test_update_missing_document_raises(tmp_path):
    store = await make_store(tmp_path)

    with pytest.raises(LookupError):
        await store.update("ghost", {"role": "user"})


@pytest.mark.asyncio
async def test_set_overwrites_existing_document(tmp_path):
    store = await make_store(tmp_path)
    await store.set("u1", {"role": "cashier", "permissions": defaults_for("cashier"), "displayName": "Till 3"})

    await store.set("u1", {"role": "admin", "permissions": defaults_for("admin")})
    data = (await store.get("u1")).data

    assert data["role"] == "admin"
    assert data["permissions"] == defaults_for("admin")
    assert "displayName" not in data


@pytest.mark.asyncio
async def test_operations_round_trip_through_sql(tmp_path):
    claims = FakeClaimsStore()
    stores = Stores(claims=claims, documents=await make_store(tmp_path))
    admin = claims.tokens["admin-token"]

    await service.assign_role(stores, admin, "u1", "cashier")
    first = (await stores.documents.get("u1")).data

    result = await service.update_permissions(stores, admin, "u1", {"reports": {"read": True, "write": False}})
    second = (await stores.documents.get("u1")).data

    assert second["role"] == "cashier"
    assert second["createdAt"] == first["createdAt"]
    assert second["permissions"] == result["permissions"]
    assert second["permissions"]["reports"] == {"read": True, "write": False}
    assert claims.claims["u1"] == {"role": "cashier", "permissions": second["permissions"]}


@pytest.mark.asyncio
async def test_created_at_keeps_instant_across_offsets(tmp_path):
    store = await make_store(tmp_path)
    local = datetime(2024, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    await store.set("u1", {"role": "user", "permissions": defaults_for("user"), "createdAt": local})
    created_at = (await store.get("u1")).data["createdAt"]

    assert created_at == local
    assert created_at.utcoffset() == timedelta(0)


@pytest.mark.asyncio
async def test_default_created_at_is_utc(tmp_path):
    store = await make_store(tmp_path)

    await store.set("u1", {"role": "user", "permissions": defaults_for("user")})
    created_at = (await store.get("u1")).data["createdAt"]

    assert created_at.tzinfo is not None
    assert abs(datetime.now(timezone.utc) - created_at) < timedelta(minutes=5)
