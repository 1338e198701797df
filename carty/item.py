"""Cart item: an immutable line of the cart with Decimal-based pricing."""
import copy
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, ValidationError, field_validator, model_validator

from carty.errors import InvalidItem
from carty.money import multiply, to_decimal

ItemId = Union[StrictStr, StrictInt, StrictFloat]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _strict_equal(a: Any, b: Any) -> bool:
    """Deep comparison: numbers by value (1 == 1.0), otherwise types never mix (1 != True != "1")."""
    if _is_number(a) and _is_number(b):
        return a == b

    if type(a) is not type(b):
        # Any two mappings (or two sequences) compare structurally
        if isinstance(a, Mapping) and isinstance(b, Mapping):
            pass
        elif isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
            pass
        else:
            return False

    if isinstance(a, Mapping):
        if a.keys() != b.keys():
            return False
        return all(_strict_equal(a[k], b[k]) for k in a)

    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(_strict_equal(x, y) for x, y in zip(a, b))

    return a == b


class Item(BaseModel):
    """
    Single line of the cart.

    Items are frozen: merging or changing quantity produces a new Item.
    Attributes other than the known fields are kept verbatim.

    Two items are equal when their ids and variants match; label, prices
    and extra attributes are ignored.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: ItemId
    label: Any = None
    currency: Optional[str] = None
    price: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    quantity: Decimal = Decimal("1")
    variant: Any = None

    @model_validator(mode="before")
    @classmethod
    def default_label(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and data.get("label") is None:
            data = {**data, "label": data.get("id")}
        return data

    @field_validator("price", "shipping", "tax", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def convert_quantity(cls, v):
        return Decimal("1") if v is None else to_decimal(v)

    @classmethod
    def create(cls, attr: Any) -> "Item":
        """
        Build an item from attributes.

        Accepts an Item (returned as is), a string or number used as id,
        or a mapping with at least a non-empty "id".

        Raises:
            InvalidItem: for anything else
        """
        if isinstance(attr, Item):
            return attr

        if isinstance(attr, (str, int, float)) and not isinstance(attr, bool):
            data = {"id": attr}
        elif isinstance(attr, Mapping):
            # Nested values (variant, extras) must not be shared with the caller
            data = copy.deepcopy(dict(attr))
        else:
            raise InvalidItem()

        if data.get("id") is None or data.get("id") == "":
            raise InvalidItem()

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidItem() from e

    @property
    def extra(self) -> Mapping[str, Any]:
        """Pass-through attributes (read-only view)."""
        return MappingProxyType(dict(self.model_extra or {}))

    @property
    def line_total(self) -> Decimal:
        """Price for all units."""
        return multiply(self.price, self.quantity)

    def to_dict(self, mode: str = "python") -> dict:
        """All attributes, extras included. mode="json" renders Decimals as strings."""
        return self.model_dump(mode=mode)

    def __call__(self) -> Mapping[str, Any]:
        """Read-only snapshot of all attributes."""
        return MappingProxyType(self.to_dict())

    def equals(self, other: Union["Item", Mapping[str, Any], str, int, float, Callable[[], Any], None]) -> bool:
        """
        Compare identity (id + variant) with another item.

        ``other`` may be an Item, raw attributes, a shorthand id or a
        zero-argument callable producing one of those. Values that do not
        describe an item are simply not equal.
        """
        if callable(other) and not isinstance(other, Item):
            other = other()

        try:
            other = Item.create(other)
        except InvalidItem:
            return False

        return _strict_equal(self.id, other.id) and _strict_equal(self.variant, other.variant)

    def merge(self, other: "Item") -> "Item":
        """New item with other's attributes and the sum of both quantities."""
        return Item.create({
            **self.to_dict(),
            **other.to_dict(),
            "quantity": self.quantity + other.quantity,
        })

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash(self.id)
