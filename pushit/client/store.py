"""Observable client state.

A StateStore holds what the UI renders: the live holder count, the current
session, hold progress, the poll being voted on and any pending notice.
Components write to the store they are given; views subscribe to it.
"""
import threading
from typing import Any, Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

Listener = Callable[[Dict[str, Any], Dict[str, Any]], None]


class StateStore:
    """Dict-backed state with change notification.

    Listeners are called with (state, changes) after every set() that
    actually changed something. Both arguments are copies.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._state: Dict[str, Any] = dict(initial or {})
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._state.get(key, default)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._state)

    def set(self, changes: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Dict[str, Any]:
        """Merge changes into the state. Returns what actually changed."""
        updates = dict(changes or {}, **kwargs)
        with self._lock:
            changed = {
                key: value for key, value in updates.items()
                if key not in self._state or self._state[key] != value
            }
            if not changed:
                return {}
            self._state.update(changed)
            state = dict(self._state)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(state, dict(changed))
            except Exception:
                logger.exception("state_listener_failed", keys=sorted(changed))
        return changed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, message: Optional[str], level: str = "info") -> None:
        """Show a notice to the user (None clears it)."""
        self.set(notice=None if message is None else {"message": message, "level": level})
