"""Home list ordering and rank aggregation.

Merges the groups fetched from the backend with the user's locally persisted
order and the per-group ranks the backend computed, producing the display
list for the home screen.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .i18n import translate
from .order_store import OrderStore, dedupe
from .schemas import Challenge, Group


Clock = Callable[[], datetime]


@dataclass
class HomeItem:
    group: Group
    challenge: Optional[Challenge]
    rank: Optional[int]
    rank_label: str
    countdown_label: Optional[str]
    completed: bool

    @property
    def group_id(self) -> str:
        return self.group.id


def challenge_deadline(end_date: date, tzinfo=None) -> datetime:
    """First instant after the local calendar day of ``end_date``."""
    return datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tzinfo)


def is_challenge_completed(end_date: Optional[date], now: datetime) -> bool:
    if end_date is None:
        return False
    return now >= challenge_deadline(end_date, now.tzinfo)


def countdown_label(end_date: Optional[date], now: datetime, language: str = "he") -> Optional[str]:
    if end_date is None:
        return None
    remaining = challenge_deadline(end_date, now.tzinfo) - now
    if remaining <= timedelta(0):
        return translate(language, "challenge.completed")
    total_hours = int(remaining.total_seconds() // 3600)
    days, hours = divmod(total_hours, 24)
    return translate(language, "challenge.time_left", days=days, hours=hours)


def rank_label(rank: Optional[int], language: str = "he") -> str:
    if rank is None or rank < 1:
        return translate(language, "rank.none")
    return translate(language, "rank.position", rank=rank)


def merge_group_order(
    fetched_groups: Sequence[Group],
    persisted_order: Sequence[str],
) -> Tuple[List[Group], List[str]]:
    """Order groups by the persisted ids, then by fetch position.

    Returns the ordered groups and the updated persisted order (persisted ids
    followed by newcomers in their sorted position).
    """
    index: Dict[str, int] = {}
    for i, gid in enumerate(persisted_order):
        index.setdefault(gid, i)
    sentinel = len(persisted_order)

    ranked = sorted(
        enumerate(fetched_groups),
        key=lambda pair: (index.get(pair[1].id, sentinel), pair[0]),
    )
    ordered = [group for _, group in ranked]
    updated = dedupe(list(persisted_order) + [g.id for g in ordered])
    return ordered, updated


class RankAggregator:
    def __init__(self, order_store: OrderStore, clock: Clock = datetime.now, language: str = "he") -> None:
        self.order_store = order_store
        self.clock = clock
        self.language = language

    def aggregate(
        self,
        fetched_groups: Sequence[Group],
        persisted_order: Sequence[str],
        rank_lookup: Mapping[str, Optional[int]],
    ) -> List[HomeItem]:
        if not fetched_groups:
            return []

        ordered, updated = merge_group_order(fetched_groups, persisted_order)
        if len(updated) != len(persisted_order):
            self.order_store.save_order(updated)

        now = self.clock()
        items: List[HomeItem] = []
        for group in ordered:
            challenge = group.challenge
            end = challenge.end_date if challenge else None
            rank = rank_lookup.get(group.id)
            if rank is not None and rank < 1:
                rank = None
            items.append(
                HomeItem(
                    group=group,
                    challenge=challenge,
                    rank=rank,
                    rank_label=rank_label(rank, self.language),
                    countdown_label=countdown_label(end, now, self.language),
                    completed=is_challenge_completed(end, now),
                )
            )
        return items
