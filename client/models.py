from sqlalchemy import Column, DateTime, String, Text
from datetime import datetime, timezone
from .db import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"
    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)     # opaque string; JSON for structured values
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
