"""
SQLAlchemy ORM model for the key-value store.

Tables:
- kv_items: one row per key; the value is an opaque string
  (the records list is a JSON array, the vibration flag is "1"/"0")
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base

class KVItem(Base):
    __tablename__ = "kv_items"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
