"""Local key-value persistence backed by the device SQLite database."""

import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db import SessionLocal
from .models import KeyValueEntry


logger = logging.getLogger(__name__)


class KeyValueStoreError(RuntimeError):
    """Raised when the local key-value storage cannot be read or written."""


class KeyValueStore:
    """String key-value primitive: ``get`` / ``set`` / ``remove``."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self.session_factory = session_factory or SessionLocal

    def get(self, key: str) -> Optional[str]:
        try:
            with self.session_factory() as db:
                row = db.get(KeyValueEntry, key)
                return row.value if row else None
        except SQLAlchemyError as exc:
            logger.error("kv get %s failed: %s", key, exc)
            raise KeyValueStoreError(str(exc)) from exc

    def set(self, key: str, value: str) -> None:
        try:
            with self.session_factory() as db:
                row = db.get(KeyValueEntry, key)
                if not row:
                    row = KeyValueEntry(key=key, value=value)
                    db.add(row)
                else:
                    row.value = value
                db.commit()
        except SQLAlchemyError as exc:
            logger.error("kv set %s failed: %s", key, exc)
            raise KeyValueStoreError(str(exc)) from exc

    def remove(self, key: str) -> None:
        try:
            with self.session_factory() as db:
                row = db.get(KeyValueEntry, key)
                if row:
                    db.delete(row)
                    db.commit()
        except SQLAlchemyError as exc:
            logger.error("kv remove %s failed: %s", key, exc)
            raise KeyValueStoreError(str(exc)) from exc
