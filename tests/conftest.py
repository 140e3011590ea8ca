"""
Shared fixtures: in-memory claims and document stores, and a test client
wired to them.
"""

import copy
from typing import Any, Dict

import pytest
from cloudinary import uploader as cloudinary_uploader
from fastapi.testclient import TestClient

from app.core.stores import DocumentSnapshot, Stores
from app.features.media.client import CloudinaryClient
from app.features.permissions.grants import defaults_for
from app.main import create_app


ADMIN_TOKEN = "admin-token"
CASHIER_TOKEN = "cashier-token"
USER_TOKEN = "user-token"


class FakeClaimsStore:
    """Claims store keeping tokens and written claims in dicts."""

    def __init__(self):
        self.tokens: Dict[str, Dict[str, Any]] = {
            ADMIN_TOKEN: {"uid": "admin-1", "role": "admin", "permissions": defaults_for("admin")},
            CASHIER_TOKEN: {"uid": "cashier-1", "role": "cashier", "permissions": defaults_for("cashier")},
            USER_TOKEN: {"uid": "user-1", "role": "user", "permissions": defaults_for("user")},
        }
        self.claims: Dict[str, Dict[str, Any]] = {}
        self.writes: list[str] = []
        self.verify_calls = 0
        self.fail_writes = False

    async def verify(self, token: str) -> Dict[str, Any]:
        self.verify_calls += 1
        if token not in self.tokens:
            raise ValueError("token rejected by identity provider")
        return copy.deepcopy(self.tokens[token])

    async def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        if self.fail_writes:
            raise RuntimeError("identity provider unavailable")
        self.claims[uid] = copy.deepcopy(claims)
        self.writes.append(uid)


class FakeDocumentStore:
    """Document store keeping documents in a dict, Firestore-like semantics."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.writes: list[tuple[str, str]] = []
        self.reads = 0
        self.fail_writes = False

    async def get(self, uid: str) -> DocumentSnapshot:
        self.reads += 1
        if uid not in self.docs:
            return DocumentSnapshot(exists=False)
        return DocumentSnapshot(exists=True, data=copy.deepcopy(self.docs[uid]))

    async def set(self, uid: str, data: Dict[str, Any]) -> None:
        if self.fail_writes:
            raise RuntimeError("document store unavailable")
        self.docs[uid] = copy.deepcopy(data)
        self.writes.append(("set", uid))

    async def update(self, uid: str, fields: Dict[str, Any]) -> None:
        if self.fail_writes:
            raise RuntimeError("document store unavailable")
        if uid not in self.docs:
            raise LookupError(f"no document {uid}")
        self.docs[uid].update(copy.deepcopy(fields))
        self.writes.append(("update", uid))


@pytest.fixture
def claims_store():
    return FakeClaimsStore()


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def stores(claims_store, document_store):
    return Stores(claims=claims_store, documents=document_store)


@pytest.fixture
def admin_claims(claims_store):
    return copy.deepcopy(claims_store.tokens[ADMIN_TOKEN])


@pytest.fixture
def cloudinary_uploads():
    """File content and options of each call made to the Cloudinary uploader."""
    return []


@pytest.fixture
def cloudinary(monkeypatch, cloudinary_uploads):
    def fake_upload(file, **options):
        cloudinary_uploads.append({"content": file.read(), **options})
        return {
            "secure_url": "https://res.cloudinary.com/demo/image/upload/uploads/receipt.png",
            "public_id": "uploads/receipt",
        }

    monkeypatch.setattr(cloudinary_uploader, "upload", fake_upload)
    return CloudinaryClient(cloud_name="demo", api_key="key-123", api_secret="secret-456")


@pytest.fixture
def client(stores, cloudinary):
    return TestClient(create_app(stores=stores, cloudinary=cloudinary))


def auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
