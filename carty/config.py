"""
Cart configuration.

Defaults come from environment variables and can be changed at runtime
with default_option(); every Cart copies the defaults when it is created.
"""

import os
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from carty.errors import ERROR_INVALID_OPTION, ERROR_UNKNOWN_OPTION, CartError


def _get_env(*keys: str, default: Optional[str] = None) -> Optional[str]:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int) -> int:
    v = _get_env(*keys)
    if v is None:
        return default
    return int(v)


DEFAULT_CURRENCY = _get_env("CARTY_CURRENCY", default="USD") or "USD"

# Upstash Redis - standard env var names per docs
UPSTASH_REDIS_REST_URL = _get_env("UPSTASH_REDIS_REST_URL", default="")
UPSTASH_REDIS_REST_TOKEN = _get_env("UPSTASH_REDIS_REST_TOKEN", default="")

# Abandoned carts expire after 24 hours
CART_TTL = _get_int("CARTY_CART_TTL", default=86400)

# shipping/tax: a constant or a function of the cart
BaseAmount = Union[None, int, float, str, Callable[[Any], Any]]

_MISSING = object()


class CartOptions(BaseModel):
    """Options of a single cart."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        extra="forbid",
    )

    store: Optional[Any] = None
    currency: Optional[str] = DEFAULT_CURRENCY
    shipping: Any = None
    tax: Any = None


def option(options: CartOptions, name: Union[str, Mapping[str, Any]], value: Any = _MISSING) -> Any:
    """
    Read or update options.

    option(opts, "tax") returns the value, option(opts, "tax", 5) sets it,
    option(opts, {"tax": 5, "shipping": 2}) sets several at once.

    Raises:
        KeyError: for an unknown option name
        CartError: when the value does not fit the option
    """
    if isinstance(name, Mapping):
        for key, val in name.items():
            option(options, key, val)
        return None

    if name not in CartOptions.model_fields:
        raise KeyError(ERROR_UNKNOWN_OPTION.format(name=name))

    if value is _MISSING:
        return getattr(options, name)

    try:
        setattr(options, name, value)
    except ValidationError as e:
        raise CartError(ERROR_INVALID_OPTION.format(name=name)) from e
    return None


_default_options = CartOptions()


def default_option(name: Union[str, Mapping[str, Any]], value: Any = _MISSING) -> Any:
    """Read or update the defaults used by carts created afterwards."""
    return option(_default_options, name, value)


def default_options() -> CartOptions:
    """Copy of the current defaults."""
    return _default_options.model_copy()


def reset_default_options() -> None:
    """Restore the environment-derived defaults."""
    global _default_options
    _default_options = CartOptions()
