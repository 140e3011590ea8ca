"""
SQL model for the user authorization document.
"""
from typing import Any, Dict, Optional
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin


class UserRecord(Base, TimestampMixin):
    """
    Per-user authorization document, keyed by the identity provider's user id.

    Mirrors the Appwrite collection layout: role, permissions and createdAt are
    first-class columns, any other document field lands in ``extra``.
    """
    __tablename__ = "user_authorizations"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)

    role: Mapped[Optional[str]] = mapped_column(String(32))
    permissions: Mapped[Optional[Dict[str, Any]]]

    extra: Mapped[Dict[str, Any]] = mapped_column(default=dict)

    def __repr__(self) -> str:
        return f"<UserRecord(uid={self.uid!r}, role={self.role!r})>"
