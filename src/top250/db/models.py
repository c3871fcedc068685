from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CollectionDocument(Base):
    """One persisted collection (films, managers, tokens) stored as a JSON list."""

    __tablename__ = "collections"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    records: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )
