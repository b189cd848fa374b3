from datetime import date
from typing import Dict, Iterable, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from client.backend import BackendError
from client.db import Base
from client.kv import KeyValueStore
from client.models import KeyValueEntry  # noqa: F401  (registers the table)
from client.order_store import OrderStore
from client.schemas import Challenge, Group


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def kv_store(session_factory):
    return KeyValueStore(session_factory)


@pytest.fixture
def order_store(kv_store):
    return OrderStore(kv_store)


def make_group(group_id: str, end_date: Optional[date] = None) -> Group:
    challenges = []
    if end_date is not None:
        challenges.append(Challenge(id=f"ch-{group_id}", name=f"Challenge {group_id}", end_date=end_date))
    return Group(id=group_id, name=f"Group {group_id}", challenges=challenges)


class DummyBackend:
    def __init__(self, groups: Iterable[Group] = (), ranks: Optional[Dict[str, Optional[int]]] = None) -> None:
        self.groups: List[Group] = list(groups)
        self.ranks: Dict[str, Optional[int]] = dict(ranks or {})
        self.hidden: set[tuple[str, str]] = set()
        self.hide_calls: List[str] = []
        self.fail_hide_for: set[str] = set()
        self.fail_fetch = False
        self.fail_ranks = False

    async def fetch_visible_groups(self, user_id: str) -> List[Group]:
        if self.fail_fetch:
            raise BackendError("network down")
        hidden = {gid for uid, gid in self.hidden if uid == user_id}
        return [g for g in self.groups if g.id not in hidden]

    async def fetch_ranks(self, group_ids: Iterable[str]) -> Dict[str, Optional[int]]:
        if self.fail_ranks:
            raise BackendError("rank rpc timed out")
        return {gid: self.ranks.get(gid) for gid in group_ids}

    async def mark_group_hidden(self, user_id: str, group_id: str) -> None:
        self.hide_calls.append(group_id)
        if group_id in self.fail_hide_for:
            raise BackendError(f"hide failed for {group_id}", status_code=500)
        self.hidden.add((user_id, group_id))
