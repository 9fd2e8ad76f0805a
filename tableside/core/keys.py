"""Storage key layout for everything the device keeps locally.

Keys read as ``<prefix>:<kind>:<scope>...``. Scope components are
percent-encoded so a ``:`` inside a slug or table label can never make two
different scopes collide.
"""

from urllib.parse import quote

from tableside.core.config import settings

DEVICE = "device_id"
CART = "cart"
FAVORITES = "favs"
LAST_ORDER = "last_order"
TABLE_SESSION = "table_session"
STAFF_TOKEN = "staff_token"
STAFF_USER = "staff_user"


def _part(value) -> str:
    return quote(str(value), safe="")


def scoped_key(kind: str, *scope, prefix: str | None = None) -> str:
    parts = [prefix if prefix is not None else settings.KEY_PREFIX, kind]
    parts.extend(_part(s) for s in scope)
    return ":".join(parts)


def device_key() -> str:
    return scoped_key(DEVICE)


def cart_key(slug: str, table_number: str) -> str:
    return scoped_key(CART, slug, table_number)


def favorites_key(slug: str) -> str:
    return scoped_key(FAVORITES, slug)


def last_order_key(slug: str, table_session_id: str) -> str:
    return scoped_key(LAST_ORDER, slug, table_session_id)


def table_session_key(slug: str) -> str:
    return scoped_key(TABLE_SESSION, slug)


def staff_token_key() -> str:
    return scoped_key(STAFF_TOKEN)


def staff_user_key() -> str:
    return scoped_key(STAFF_USER)
