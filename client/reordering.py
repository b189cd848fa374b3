import enum
import logging
from collections import Counter
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from .order_store import OrderStore
from .ranking import HomeItem


logger = logging.getLogger(__name__)


class HidesGroups(Protocol):
    async def mark_group_hidden(self, user_id: str, group_id: str) -> None: ...


class ListMode(str, enum.Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class ReorderingController:
    """Owns the visible home list while the user reorders, selects or hides groups."""

    def __init__(self, order_store: OrderStore, backend: HidesGroups, user_id: str) -> None:
        self.order_store = order_store
        self.backend = backend
        self.user_id = user_id
        self.items: List[HomeItem] = []
        self.mode = ListMode.VIEWING
        self.selection: Set[str] = set()

    @property
    def editing(self) -> bool:
        return self.mode is ListMode.EDITING

    def replace_items(self, items: Sequence[HomeItem]) -> None:
        self.items = list(items)
        visible = {item.group_id for item in self.items}
        self.selection &= visible

    def start_editing(self) -> None:
        self.selection = set()
        self.mode = ListMode.EDITING

    def stop_editing(self) -> None:
        self.selection = set()
        self.mode = ListMode.VIEWING

    def toggle_select(self, group_id: str) -> bool:
        """Flip selection of ``group_id``; returns whether it is now selected."""
        if not self.editing:
            return False
        if group_id in self.selection:
            self.selection.discard(group_id)
            return False
        self.selection.add(group_id)
        return True

    def reorder(self, new_sequence: Sequence[HomeItem]) -> None:
        new_items = list(new_sequence)
        if Counter(i.group_id for i in new_items) != Counter(i.group_id for i in self.items):
            raise ValueError("reorder expects a permutation of the current list")
        self.items = new_items
        self.order_store.save_order(i.group_id for i in new_items)

    async def hide_selected(self, selection: Optional[Iterable[str]] = None) -> None:
        ids = list(dict.fromkeys(self.selection if selection is None else selection))
        if not ids:
            self.stop_editing()
            return

        for gid in ids:
            try:
                await self.backend.mark_group_hidden(self.user_id, gid)
            except Exception as e:
                logger.error("hide failed for group %s (%d selected): %s", gid, len(ids), e)
                raise

        hidden = set(ids)
        self.items = [i for i in self.items if i.group_id not in hidden]
        self.order_store.save_order(g for g in self.order_store.load_order() if g not in hidden)
        self.stop_editing()
