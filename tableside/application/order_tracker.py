from typing import Optional

from pydantic import TypeAdapter

from tableside.application.persisted import read_value, write_value
from tableside.core import keys
from tableside.domain.models import TrackedOrder
from tableside.interfaces.IKeyValueStore import IKeyValueStore

_tracked_adapter = TypeAdapter(TrackedOrder)

class OrderTracker:
    """Remembers the last order placed from this device for a table session.

    Purely a convenience for reopening the order-status view; ownership of the
    order is proven by ``order_token`` at the REST boundary, not by this record.
    """

    def __init__(self, store: IKeyValueStore):
        self.store = store

    def save(self, slug: str, table_session_id: str, tracked: TrackedOrder) -> None:
        write_value(self.store, keys.last_order_key(slug, table_session_id), _tracked_adapter, tracked)

    def load(self, slug: str, table_session_id: str) -> Optional[TrackedOrder]:
        return read_value(self.store, keys.last_order_key(slug, table_session_id), _tracked_adapter)
