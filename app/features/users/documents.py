"""
Document store adapters for user authorization documents.

- AppwriteDocumentStore: one document per user in an Appwrite collection
- SqlDocumentStore: local SQL table, for development and single-node setups
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from appwrite.client import Client
from appwrite.services.databases import Databases
from appwrite.exception import AppwriteException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.engine import create_engine, create_session_factory, init_db
from app.core.stores import DocumentSnapshot
from app.features.users.models import UserRecord
from app.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Appwrite
# ============================================================================

class AppwriteDocumentStore:
    """
    Appwrite collection keyed by user id.

    Appwrite attributes cannot hold nested objects, so ``permissions`` is
    stored as a JSON string attribute and ``createdAt`` as a datetime
    attribute. System fields (``$id``, ``$createdAt``, ...) are stripped on read.
    """

    def __init__(self, client: Client, database_id: str, collection_id: str):
        self.databases = Databases(client)
        self.database_id = database_id
        self.collection_id = collection_id

    @staticmethod
    def _encode(data: Dict[str, Any]) -> Dict[str, Any]:
        encoded = dict(data)
        if "permissions" in encoded and encoded["permissions"] is not None:
            encoded["permissions"] = json.dumps(encoded["permissions"])
        if isinstance(encoded.get("createdAt"), datetime):
            encoded["createdAt"] = encoded["createdAt"].isoformat()
        return encoded

    @staticmethod
    def _decode(document: Dict[str, Any]) -> Dict[str, Any]:
        data = {key: value for key, value in document.items() if not key.startswith("$")}
        if isinstance(data.get("permissions"), str):
            data["permissions"] = json.loads(data["permissions"])
        return data

    async def get(self, uid: str) -> DocumentSnapshot:
        try:
            document = await asyncio.to_thread(
                self.databases.get_document, self.database_id, self.collection_id, uid
            )
        except AppwriteException as e:
            if e.code == 404:
                return DocumentSnapshot(exists=False)
            raise
        return DocumentSnapshot(exists=True, data=self._decode(document))

    async def set(self, uid: str, data: Dict[str, Any]) -> None:
        encoded = self._encode(data)
        try:
            await asyncio.to_thread(
                self.databases.create_document, self.database_id, self.collection_id, uid, encoded
            )
        except AppwriteException as e:
            if e.code != 409:
                raise
            # Document already exists: overwrite its fields
            await self.update(uid, data)

    async def update(self, uid: str, fields: Dict[str, Any]) -> None:
        await asyncio.to_thread(
            self.databases.update_document, self.database_id, self.collection_id, uid, self._encode(fields)
        )


# ============================================================================
# SQL
# ============================================================================

COLUMNS = ("role", "permissions")


class SqlDocumentStore:
    """SQLAlchemy-backed document store using the ``user_authorizations`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @classmethod
    async def from_url(cls, url: str) -> "SqlDocumentStore":
        """Create the engine, make sure the table exists and return the store."""
        engine = create_engine(url)
        await init_db(engine)
        log.info("SQL document store ready")
        return cls(create_session_factory(engine))

    @staticmethod
    def _apply(record: UserRecord, fields: Dict[str, Any]) -> None:
        extra = dict(record.extra or {})
        for key, value in fields.items():
            if key in COLUMNS:
                setattr(record, key, value)
            elif key == "createdAt":
                if isinstance(value, datetime) and value.tzinfo is not None:
                    value = value.astimezone(timezone.utc)
                if value is not None:
                    record.created_at = value
            else:
                extra[key] = value
        record.extra = extra

    @staticmethod
    def _to_data(record: UserRecord) -> Dict[str, Any]:
        created_at = record.created_at
        # SQLite drops the offset; stored values are always UTC
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        data: Dict[str, Any] = dict(record.extra or {})
        data.update(
            role=record.role,
            permissions=record.permissions,
            createdAt=created_at,
        )
        return data

    async def get(self, uid: str) -> DocumentSnapshot:
        async with self.session_factory() as session:
            record = await session.get(UserRecord, uid)
            if record is None:
                return DocumentSnapshot(exists=False)
            return DocumentSnapshot(exists=True, data=self._to_data(record))

    async def set(self, uid: str, data: Dict[str, Any]) -> None:
        async with self.session_factory() as session:
            record = await session.get(UserRecord, uid)
            if record is None:
                record = UserRecord(uid=uid, extra={})
                session.add(record)
            else:
                record.role = None
                record.permissions = None
                record.extra = {}
            self._apply(record, data)
            await session.commit()

    async def update(self, uid: str, fields: Dict[str, Any]) -> None:
        async with self.session_factory() as session:
            result = await session.execute(select(UserRecord).where(UserRecord.uid == uid))
            record: Optional[UserRecord] = result.scalar_one_or_none()
            if record is None:
                raise LookupError(f"No authorization document for user {uid}")
            self._apply(record, fields)
            await session.commit()
