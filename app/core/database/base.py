"""
Declarative base for the SQL document store.
"""
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import JSON, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    # Document fields are free-form dicts; store them as JSON columns
    type_annotation_map = {
        Dict[str, Any]: JSON,
    }


class TimestampMixin:
    """
    created_at falls back to the database clock when the caller does not
    stamp it; updated_at tracks the last write.
    """
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
