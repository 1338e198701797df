"""
Cart - item collection with a serialized, store-backed mutation pipeline.

Mutations (add/remove/clear) are queued and run one at a time:
1. cancelable pre-event (add/remove/clear)
2. in-memory change (applied before the store confirms)
3. store call, if a store is configured and enabled
4. post-event (added/removed/cleared or addfailed/removefailed/clearfailed)

Reads (size, total, get, ...) are synchronous and always see the latest
in-memory state.
"""

import asyncio
import inspect
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterator, Mapping, Optional, Union

from carty import events
from carty.config import BaseAmount, CartOptions, default_options, option
from carty.errors import ERROR_STORE_FAILED, InvalidItem, StoreError
from carty.events import EventBus, Outcome
from carty.item import Item
from carty.logging import get_logger, sanitize_id_for_logging
from carty.money import sum_money, to_decimal, to_float
from carty.queue import MutationQueue

logger = get_logger(__name__)

_UNSET = object()


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Cart:
    """
    Shopping cart.

    Must be created inside a running event loop: the stored items are
    loaded in the background right away.

        cart = Cart(store=MemoryStore(), shipping=5)
        await cart.add({"id": "sku-1", "price": 10, "quantity": 2})
        cart.grand_total  # Decimal("25")
    """

    def __init__(
        self,
        store: Any = _UNSET,
        currency: Any = _UNSET,
        shipping: BaseAmount = _UNSET,
        tax: BaseAmount = _UNSET,
    ):
        self._options: CartOptions = default_options()
        overrides = {"store": store, "currency": currency, "shipping": shipping, "tax": tax}
        option(self._options, {k: v for k, v in overrides.items() if v is not _UNSET})

        self._items: list[Item] = []
        self._events = EventBus(self)
        self._queue = MutationQueue()
        # Unhandled failure of the ready chain (bootstrap load or a ready callback)
        self._failure: Optional[BaseException] = None

        self._queue.enqueue(self._load)

    def __repr__(self) -> str:
        return f"Cart(size={self.size}, currency={self.currency!r}, queue={self._queue.state.value})"

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    def __call__(self) -> list[Item]:
        return list(self._items)

    @property
    def items(self) -> tuple[Item, ...]:
        return tuple(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, attr: Any) -> bool:
        return self.has(attr)

    # ------------------------------------------------------------------
    # Options and events
    # ------------------------------------------------------------------

    @property
    def store(self) -> Any:
        return self._options.store

    @property
    def currency(self) -> Optional[str]:
        return self._options.currency

    def option(self, name: Union[str, Mapping[str, Any]], value: Any = _UNSET) -> Any:
        """Read (``option("tax")``) or change (``option("tax", 5)``) an option."""
        if value is _UNSET:
            return option(self._options, name)
        return option(self._options, name, value)

    def on(self, name: str, fn: Callable[..., Any]) -> "Cart":
        self._events.on(name, fn)
        return self

    def once(self, name: str, fn: Callable[..., Any]) -> "Cart":
        self._events.once(name, fn)
        return self

    def off(self, name: str, fn: Optional[Callable[..., Any]] = None) -> "Cart":
        self._events.off(name, fn)
        return self

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._items)

    def has(self, attr: Any) -> bool:
        return self._find(attr) is not None

    def get(self, attr: Any) -> Optional[Item]:
        found = self._find(attr)
        return None if found is None else found[1]

    def each(self, callback: Callable[[Item, int, "Cart"], Any]) -> "Cart":
        """Call ``callback(item, index, cart)`` per item until it returns False."""
        for index, item in enumerate(list(self._items)):
            if callback(item, index, self) is False:
                break
        return self

    @property
    def quantity(self) -> Decimal:
        return sum_money(item.quantity for item in self._items)

    @property
    def total(self) -> Decimal:
        """Sum of price x quantity."""
        return sum_money(item.line_total for item in self._items)

    @property
    def shipping(self) -> Decimal:
        """Base shipping plus item shipping; 0 for an empty cart."""
        return self._with_base(self._options.shipping, (item.shipping for item in self._items))

    @property
    def tax(self) -> Decimal:
        """Base tax plus item tax; 0 for an empty cart."""
        return self._with_base(self._options.tax, (item.tax for item in self._items))

    @property
    def grand_total(self) -> Decimal:
        return self.total + self.tax + self.shipping

    def summary(self) -> dict:
        """JSON-friendly cart snapshot."""
        return {
            "is_empty": not self._items,
            "size": self.size,
            "quantity": to_float(self.quantity),
            "currency": self.currency,
            "items": [
                {
                    **item.to_dict(mode="json"),
                    "price": to_float(item.price),
                    "quantity": to_float(item.quantity),
                    "total": to_float(item.line_total),
                }
                for item in self._items
            ],
            "total": to_float(self.total),
            "tax": to_float(self.tax),
            "shipping": to_float(self.shipping),
            "grand_total": to_float(self.grand_total),
        }

    def _with_base(self, base: BaseAmount, amounts) -> Decimal:
        if not self._items:
            return Decimal("0")
        if callable(base):
            base = base(self)
        return to_decimal(base) + sum_money(amounts)

    def _find(self, attr: Any) -> Optional[tuple[int, Item]]:
        if callable(attr) and not isinstance(attr, Item):
            attr = attr()
        try:
            candidate = Item.create(attr)
        except InvalidItem:
            return None

        for index, item in enumerate(self._items):
            if item.equals(candidate):
                return index, item
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, attr: Any) -> asyncio.Future:
        """
        Queue adding an item; quantities of an equal item are summed.

        Raises InvalidItem right away for invalid attributes. The returned
        future resolves with the stored item (None when vetoed or when the
        merge removed the item) and fails with StoreError if the store
        rejects the change.
        """
        item = Item.create(attr)
        return self._queue.enqueue(lambda: self._add(item))

    def remove(self, attr: Any) -> asyncio.Future:
        """Queue removing the item equal to ``attr``; a missing item is a no-op."""
        return self._queue.enqueue(lambda: self._remove(attr))

    def clear(self) -> asyncio.Future:
        """Queue removing every item."""
        return self._queue.enqueue(self._clear)

    async def _add(self, item: Item) -> Optional[Item]:
        if self._events.emit(events.ADD, item) is Outcome.VETO:
            logger.debug(f"Adding item {sanitize_id_for_logging(item.id)} vetoed")
            return None

        existing = self._find(item)
        if existing is not None:
            item = existing[1].merge(item)

        if item.quantity <= 0:
            await self._remove(item)
            return None

        if existing is not None:
            self._items[existing[0]] = item
        else:
            self._items.append(item)

        await self._persist(
            "add",
            lambda store: store.add(item, self),
            events.ADDED,
            events.ADD_FAILED,
            item,
        )
        return item

    async def _remove(self, attr: Any) -> Optional[Item]:
        found = self._find(attr)
        if found is None:
            return None

        index, item = found
        if self._events.emit(events.REMOVE, item) is Outcome.VETO:
            logger.debug(f"Removing item {sanitize_id_for_logging(item.id)} vetoed")
            return None

        del self._items[index]

        await self._persist(
            "remove",
            lambda store: store.remove(item, self),
            events.REMOVED,
            events.REMOVE_FAILED,
            item,
        )
        return item

    async def _clear(self) -> None:
        if self._events.emit(events.CLEAR) is Outcome.VETO:
            logger.debug("Clearing cart vetoed")
            return

        self._items.clear()

        await self._persist(
            "clear",
            lambda store: store.clear(),
            events.CLEARED,
            events.CLEAR_FAILED,
        )

    async def _persist(
        self,
        operation: str,
        call: Callable[[Any], Awaitable[Any]],
        success_event: str,
        failure_event: str,
        *args: Any,
    ) -> None:
        """Run the store call, then emit the success or failure event."""
        store = self._options.store

        if store is not None and store.enabled():
            try:
                await _resolve(call(store))
            except StoreError as e:
                self._fail(operation, failure_event, e, args)
                raise
            except Exception as e:
                error = StoreError(operation, f"{ERROR_STORE_FAILED.format(operation=operation)}: {e}")
                self._fail(operation, failure_event, error, args)
                raise error from e

        self._events.emit(success_event, *args)

    def _fail(self, operation: str, failure_event: str, error: StoreError, args: tuple) -> None:
        logger.error(f"Cart store {operation} failed: {error}")
        # The in-memory change is kept
        self._events.emit(failure_event, error, *args)

    async def _load(self) -> None:
        store = self._options.store
        try:
            raw = []
            if store is not None and store.enabled():
                raw = await _resolve(store.load())
            self._items = [Item.create(attr) for attr in raw or []]
            logger.debug(f"Cart loaded with {len(self._items)} items")
        except Exception as e:
            logger.error(f"Failed to load cart: {e}", exc_info=True)
            self._failure = e

    # ------------------------------------------------------------------
    # Sequencing
    # ------------------------------------------------------------------

    def ready(self, callback: Optional[Callable[["Cart"], Any]] = None) -> "Cart":
        """
        Run ``callback(cart)`` after every operation queued so far.

        Skipped while the cart holds an unhandled load failure (see
        ``error``). The callback may be a coroutine function; it must not
        await operations queued after itself.
        """
        if callback is None:
            return self

        async def run():
            if self._failure is not None:
                return
            try:
                await _resolve(callback(self))
            except Exception as e:
                logger.error(f"Cart ready callback failed: {e}", exc_info=True)
                self._failure = e

        self._queue.enqueue(run)
        return self

    def error(self, callback: Callable[[BaseException, "Cart"], Any]) -> "Cart":
        """
        Run ``callback(error, cart)`` if loading (or a ready callback) failed.

        A callback that returns normally recovers the cart: later ready
        callbacks run again.
        """
        async def run():
            failure = self._failure
            if failure is None:
                return
            self._failure = None
            try:
                await _resolve(callback(failure, self))
            except Exception as e:
                logger.error(f"Cart error callback failed: {e}", exc_info=True)
                self._failure = e

        self._queue.enqueue(run)
        return self

    async def join(self) -> None:
        """Wait until every operation queued so far has settled."""
        await self._queue.join()
