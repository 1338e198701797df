"""carty: client-side shopping cart with a serialized, store-backed mutation queue."""
from .cart import Cart
from .config import CartOptions, default_option, reset_default_options
from .errors import CartError, InvalidItem, StoreError
from .events import EventBus, Outcome
from .item import Item
from .queue import MutationQueue, QueueState
from .storage import MemoryStore, RedisStore, Store

__all__ = [
    "Cart",
    "CartOptions",
    "default_option",
    "reset_default_options",
    "CartError",
    "InvalidItem",
    "StoreError",
    "EventBus",
    "Outcome",
    "Item",
    "MutationQueue",
    "QueueState",
    "MemoryStore",
    "RedisStore",
    "Store",
]
