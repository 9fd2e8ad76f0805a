"""Schema-checked reads and writes of JSON values in device storage.

A value that is missing, unreadable or does not match its schema reads as
``None``. Callers map that to their own empty value; the next write repairs
the stored entry.
"""

import logging
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from tableside.domain.errors import StorageError
from tableside.interfaces.IKeyValueStore import IKeyValueStore

logger = logging.getLogger(__name__)


def read_raw(store: IKeyValueStore, key: str) -> Optional[str]:
    try:
        return store.get(key)
    except StorageError as e:
        logger.warning("⚠️ Storage read failed for %s: %s", key, e)
        return None


def read_value(store: IKeyValueStore, key: str, adapter: TypeAdapter) -> Optional[Any]:
    raw = read_raw(store, key)
    if not raw:
        return None
    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        logger.debug("Discarding malformed value under %s (%d errors)", key, e.error_count())
        return None


def write_value(store: IKeyValueStore, key: str, adapter: TypeAdapter, value: Any) -> None:
    store.set(key, adapter.dump_json(value, by_alias=True).decode("utf-8"))
