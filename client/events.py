import logging
from typing import Any, Callable, List


logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


class Subscription:
    def __init__(self, source: "EventSource", listener: Listener) -> None:
        self._source = source
        self._listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._source._remove(self._listener)
            self.active = False


class EventSource:
    """Callback registry for auth-state style events."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, event: str, payload: Any = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception as e:
                logger.warning("listener for %s failed: %s", event, e)

    def __len__(self) -> int:
        return len(self._listeners)
