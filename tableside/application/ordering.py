import logging
from datetime import datetime
from typing import Any, Dict, Optional

import pytz

from tableside.application.cart_store import CartStore, order_lines_from_cart
from tableside.application.device_identity import DeviceIdentity
from tableside.application.order_tracker import OrderTracker
from tableside.application.session_resolver import TableSessionResolver
from tableside.domain.errors import ApiError, EmptyCartError, MissingSessionSecretError, NetworkError
from tableside.domain.models import SessionScope, TableSession, TrackedOrder
from tableside.interfaces.ITableApi import ITableApi

logger = logging.getLogger(__name__)

# Statuses the REST API uses to say "this table session is no longer yours"
SESSION_REJECTED_STATUSES = {401, 403}


def _placed_at(order: Dict[str, Any]) -> datetime:
    raw = order.get("createdAt") or order.get("placedAt")
    if not raw:
        return datetime.min
    try:
        placed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return datetime.min
    if placed.tzinfo is not None:
        placed = placed.astimezone(pytz.utc).replace(tzinfo=None)
    return placed


class TableOrderingService:
    """Checkout for the table the device is sitting at.

    Ties the resolved session, the device cart and the order tracker together
    around the REST calls that place and look up orders.
    """

    def __init__(
        self,
        api: ITableApi,
        resolver: TableSessionResolver,
        carts: CartStore,
        tracker: OrderTracker,
        device: DeviceIdentity,
    ):
        self.api = api
        self.resolver = resolver
        self.carts = carts
        self.tracker = tracker
        self.device = device

    def place_order(self, slug: str, notes: Optional[str] = None) -> Optional[TrackedOrder]:
        session = self._authenticated_session(slug)
        cart = self.carts.load(slug, session.table_number)
        if not cart.lines:
            raise EmptyCartError("Cart is empty")

        payload = {
            "tableSessionId": session.table_session_id,
            "sessionSecret": session.session_secret,
            "deviceId": self.device.get_or_create(),
            "lines": order_lines_from_cart(cart.lines),
        }
        if notes and notes.strip():
            payload["notes"] = notes.strip()

        result = self._submit(slug, lambda: self.api.create_order(slug, payload))

        # The order is in; the cart is done whatever the response carries
        self.carts.clear(SessionScope.from_session(slug, session))
        order_id = result.get("id") if isinstance(result, dict) else None
        if not order_id:
            logger.warning("⚠️ Order for %s placed but the response carried no id", slug)
            return None

        tracked = TrackedOrder(order_id=str(order_id), order_token=result.get("orderToken"))
        self.tracker.save(slug, session.table_session_id, tracked)
        logger.info("✅ Order %s placed for %s table %s", tracked.order_id, slug, session.table_number)
        return tracked

    def tracked_order(self, slug: str) -> Optional[TrackedOrder]:
        session = self.resolver.current(slug)
        return self.tracker.load(slug, session.table_session_id)

    def refresh_tracked_order(self, slug: str) -> Optional[TrackedOrder]:
        """Prefer the server's view of the latest order; keep the local one when the server can't say."""
        session = self.resolver.current(slug)
        local = self.tracker.load(slug, session.table_session_id)
        if not session.session_secret:
            return local

        try:
            orders = self.api.get_table_orders(slug, session.table_session_id, session.session_secret)
        except ApiError as e:
            logger.debug("No active orders found for %s: %s", slug, e.message)
            return local

        candidates = [
            o for o in orders
            if isinstance(o, dict) and o.get("status") != "CANCELLED" and o.get("id") and o.get("orderToken")
        ]
        if not candidates:
            return local

        latest = max(candidates, key=_placed_at)
        tracked = TrackedOrder(order_id=str(latest["id"]), order_token=latest["orderToken"])
        self.tracker.save(slug, session.table_session_id, tracked)
        return tracked

    def call_waiter(self, slug: str, note: Optional[str] = None) -> Dict[str, Any]:
        session = self._authenticated_session(slug)
        payload = {
            "tableSessionId": session.table_session_id,
            "sessionSecret": session.session_secret,
            "deviceId": self.device.get_or_create(),
        }
        if note:
            payload["note"] = note
        return self._submit(slug, lambda: self.api.call_waiter(payload))

    # --- internals ---

    def _authenticated_session(self, slug: str) -> TableSession:
        session = self.resolver.current(slug)
        if not session.session_secret:
            raise MissingSessionSecretError("This table session cannot place orders. Please scan the QR code.")
        return session

    def _submit(self, slug: str, call):
        try:
            return call()
        except NetworkError:
            raise
        except ApiError as e:
            if e.status in SESSION_REJECTED_STATUSES:
                self.resolver.invalidate(slug)
            raise
