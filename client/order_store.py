import json
import logging
from typing import Iterable, List

from .kv import KeyValueStore, KeyValueStoreError


ORDER_KEY = "todo:groupOrder:v1"

logger = logging.getLogger(__name__)


def dedupe(ids: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for gid in ids:
        if gid in seen:
            continue
        seen.add(gid)
        out.append(gid)
    return out


class OrderStore:
    """Manual display order of the user's groups, kept on this device only."""

    def __init__(self, store: KeyValueStore, key: str = ORDER_KEY) -> None:
        self.store = store
        self.key = key

    def load_order(self) -> List[str]:
        try:
            raw = self.store.get(self.key)
        except KeyValueStoreError as e:
            logger.warning("load_order: storage unavailable: %s", e)
            return []
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, TypeError, RecursionError):
            logger.debug("load_order: stored order is not valid JSON, ignoring")
            return []
        if not isinstance(parsed, list) or not all(isinstance(v, str) for v in parsed):
            return []
        return dedupe(parsed)

    def save_order(self, ids: Iterable[str]) -> None:
        try:
            payload = json.dumps(dedupe(str(gid) for gid in ids))
            self.store.set(self.key, payload)
        except (KeyValueStoreError, TypeError, ValueError) as e:
            # Best-effort; the list falls back to server order
            logger.warning("save_order failed: %s", e)
