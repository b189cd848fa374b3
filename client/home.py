"""Home screen state: focus-driven refresh of the user's group list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from .backend import BackendError
from .events import SIGNED_OUT, EventSource, Subscription
from .i18n import translate
from .order_store import OrderStore
from .ranking import Clock, HomeItem, RankAggregator
from .reordering import ReorderingController
from .schemas import Group


logger = logging.getLogger(__name__)


class HomeBackend(Protocol):
    async def fetch_visible_groups(self, user_id: str) -> List[Group]: ...

    async def fetch_ranks(self, group_ids: Iterable[str]) -> Dict[str, Optional[int]]: ...

    async def mark_group_hidden(self, user_id: str, group_id: str) -> None: ...


@dataclass
class Notice:
    message: str
    error: str


class HomeFeed:
    """Loads, orders and ranks the home list each time the screen gains focus.

    Every refresh gets a generation number; a refresh that finishes after a
    newer one started, or after ``unmount()``, is dropped. A failed refresh
    keeps the last loaded list and raises at most one notice until the next
    successful load.
    """

    def __init__(
        self,
        backend: HomeBackend,
        order_store: OrderStore,
        user_id: str,
        clock: Clock = datetime.now,
        language: str = "he",
    ) -> None:
        self.backend = backend
        self.order_store = order_store
        self.user_id = user_id
        self.language = language
        self.aggregator = RankAggregator(order_store, clock=clock, language=language)
        self.controller = ReorderingController(order_store, backend, user_id)
        self.loading = False
        self.loaded = False
        self.active = False
        self._generation = 0
        self._notice: Optional[Notice] = None
        self._notice_raised = False
        self._auth_subscription: Optional[Subscription] = None

    @property
    def items(self) -> List[HomeItem]:
        return self.controller.items

    # ----- lifecycle -----

    def mount(self, auth_events: Optional[EventSource] = None) -> None:
        self.active = True
        if auth_events is not None and self._auth_subscription is None:
            self._auth_subscription = auth_events.subscribe(self._on_auth_event)

    def unmount(self) -> None:
        self.active = False
        self._generation += 1
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None

    def _on_auth_event(self, event: str, _payload: Any) -> None:
        if event == SIGNED_OUT:
            self._generation += 1
            self.controller.stop_editing()
            self.controller.replace_items([])
            self.loaded = False

    # ----- refresh -----

    async def on_focus(self) -> bool:
        """Refresh the list; returns True when the result was applied."""
        if not self.active:
            return False
        self._generation += 1
        generation = self._generation
        self.loading = True
        try:
            groups = await self.backend.fetch_visible_groups(self.user_id)
            ranks = await self.backend.fetch_ranks([g.id for g in groups])
        except BackendError as e:
            if self._is_current(generation):
                logger.warning("home refresh failed: %s", e)
                self._raise_notice(e)
                self.loading = False
            return False

        if not self._is_current(generation):
            logger.debug("discarding superseded home refresh %d", generation)
            return False

        persisted = self.order_store.load_order()
        self.controller.replace_items(self.aggregator.aggregate(groups, persisted, ranks))
        self.loading = False
        self.loaded = True
        self._notice_raised = False
        return True

    def _is_current(self, generation: int) -> bool:
        return self.active and generation == self._generation

    # ----- notices -----

    def _raise_notice(self, error: Exception) -> None:
        if self._notice_raised:
            return
        self._notice_raised = True
        self._notice = Notice(message=translate(self.language, "errors.network"), error=str(error))

    def take_notice(self) -> Optional[Notice]:
        """Return the pending notice once, then clear it."""
        notice, self._notice = self._notice, None
        return notice

    # ----- editing passthrough -----

    def start_editing(self) -> None:
        self.controller.start_editing()

    def stop_editing(self) -> None:
        self.controller.stop_editing()

    def toggle_select(self, group_id: str) -> bool:
        return self.controller.toggle_select(group_id)

    def reorder(self, new_sequence: List[HomeItem]) -> None:
        self.controller.reorder(new_sequence)

    async def hide_selected(self, selection: Optional[Set[str]] = None) -> None:
        await self.controller.hide_selected(selection)
        # Refreshes started before the hide may still list the hidden groups
        self._generation += 1
        self.loading = False
