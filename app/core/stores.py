"""
Contracts for the two stores that jointly hold a user's role and permissions.

- ClaimsStore: the identity provider's per-user custom claims
- DocumentStore: the per-user authorization document

Both are built once at process start and passed explicitly to every
operation through ``Stores``.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


@dataclass
class DocumentSnapshot:
    """Result of a document read. ``data`` is None when the document is absent."""
    exists: bool
    data: Optional[Dict[str, Any]] = field(default=None)


class ClaimsStore(Protocol):
    async def verify(self, token: str) -> Dict[str, Any]:
        """Verify a bearer token and return its decoded claim set (uid, role, permissions, ...)."""
        ...

    async def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        """Replace all custom claims of ``uid``."""
        ...


class DocumentStore(Protocol):
    async def get(self, uid: str) -> DocumentSnapshot:
        ...

    async def set(self, uid: str, data: Dict[str, Any]) -> None:
        """Create or overwrite the document of ``uid``."""
        ...

    async def update(self, uid: str, fields: Dict[str, Any]) -> None:
        """Update only ``fields`` of an existing document."""
        ...


@dataclass
class Stores:
    claims: ClaimsStore
    documents: DocumentStore


async def build_stores() -> Stores:
    """
    Build the configured store adapters.

    Called once from the application startup hook.
    """
    from app.core import config
    from app.features.users.auth import AppwriteClaimsStore, create_appwrite_client
    from app.features.users.documents import AppwriteDocumentStore, SqlDocumentStore

    client = create_appwrite_client()
    claims = AppwriteClaimsStore(client)

    if config.DOCUMENT_STORE == "sql":
        documents = await SqlDocumentStore.from_url(config.SQLALCHEMY_DATABASE_URL)
    elif config.DOCUMENT_STORE == "appwrite":
        documents = AppwriteDocumentStore(
            client,
            database_id=config.DATABASE_ID,
            collection_id=config.USERS_COLLECTION_ID,
        )
    else:
        raise ValueError(f"Unknown DOCUMENT_STORE backend: {config.DOCUMENT_STORE!r}")

    return Stores(claims=claims, documents=documents)
