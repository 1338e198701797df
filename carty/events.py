"""Synchronous, cancelable event bus used to gate cart mutations."""
from enum import Enum
from typing import Any, Callable

from carty.logging import get_logger

logger = get_logger(__name__)


class Outcome(str, Enum):
    """What a listener wants to happen with the pending operation."""
    CONTINUE = "continue"
    VETO = "veto"


# Cancelable, emitted before the change
ADD = "add"
REMOVE = "remove"
CLEAR = "clear"

# Emitted after the store confirmed the change
ADDED = "added"
REMOVED = "removed"
CLEARED = "cleared"

# Emitted when the store rejected the change (error comes first)
ADD_FAILED = "addfailed"
REMOVE_FAILED = "removefailed"
CLEAR_FAILED = "clearfailed"

Listener = Callable[..., Any]


class EventBus:
    """
    Publish/subscribe bus bound to a context object.

    Listeners are called in registration order with the emitted arguments
    followed by the context. A listener returning ``Outcome.VETO`` or
    ``False`` cancels the emission: the remaining listeners are skipped and
    ``emit`` returns ``Outcome.VETO``. Any other return value (``None``
    included) lets the emission continue.
    """

    def __init__(self, context: Any = None):
        self._context = context
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, name: str, fn: Listener) -> "EventBus":
        self._listeners.setdefault(name, []).append((fn, False))
        return self

    def once(self, name: str, fn: Listener) -> "EventBus":
        self._listeners.setdefault(name, []).append((fn, True))
        return self

    def off(self, name: str, fn: Listener | None = None) -> "EventBus":
        """Remove ``fn`` from ``name``, or every listener of ``name``."""
        if fn is None:
            self._listeners.pop(name, None)
            return self

        listeners = self._listeners.get(name, [])
        self._listeners[name] = [entry for entry in listeners if entry[0] is not fn]
        return self

    def emit(self, name: str, *args: Any) -> Outcome:
        # Snapshot: listeners may subscribe or unsubscribe while we iterate
        for entry in list(self._listeners.get(name, [])):
            fn, once = entry
            if once:
                self._remove_entry(name, entry)

            result = fn(*args, self._context)
            if result is Outcome.VETO or result is False:
                logger.debug(f"Event '{name}' vetoed by {getattr(fn, '__qualname__', fn)!r}")
                return Outcome.VETO

        return Outcome.CONTINUE

    def _remove_entry(self, name: str, entry: tuple[Listener, bool]) -> None:
        listeners = self._listeners.get(name, [])
        if entry in listeners:
            listeners.remove(entry)
