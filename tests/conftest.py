from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytz

from tableside.application.cart_store import CartStore
from tableside.application.device_identity import DeviceIdentity
from tableside.application.favorites_store import FavoritesStore
from tableside.application.order_tracker import OrderTracker
from tableside.application.ordering import TableOrderingService
from tableside.application.session_resolver import TableSessionResolver
from tableside.domain.models import MenuItemRef, SessionScope, TableSession
from tableside.infrastructure.stores.memory_store import MemoryKeyValueStore
from tableside.interfaces.ITableApi import ITableApi

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=pytz.utc)
SLUG = "spice-garden"


class FrozenClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeTableApi(ITableApi):
    """Answers from canned sessions; raises whatever exception is registered instead."""

    def __init__(self):
        self.tokens = {}
        self.guest_sessions = {}
        self.resolve_calls = []
        self.guest_calls = []
        self.created_orders = []
        self.order_responses = []
        self.create_error = None
        self.table_orders = []
        self.table_orders_error = None
        self.waiter_calls = []

    def resolve_token(self, slug, token):
        self.resolve_calls.append((slug, token))
        answer = self.tokens[token]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def start_guest_session(self, slug, table_number):
        self.guest_calls.append((slug, table_number))
        return self.guest_sessions.get(table_number) or TableSession(
            table_session_id=f"guest-{table_number}",
            table_number=table_number,
        )

    def create_order(self, slug, payload):
        if self.create_error is not None:
            raise self.create_error
        self.created_orders.append((slug, payload))
        if self.order_responses:
            return self.order_responses.pop(0)
        n = len(self.created_orders)
        return {"id": f"order-{n}", "orderToken": f"otok-{n}"}

    def get_table_orders(self, slug, table_session_id, token=None):
        if self.table_orders_error is not None:
            raise self.table_orders_error
        return self.table_orders

    def call_waiter(self, payload):
        self.waiter_calls.append(payload)
        return {"id": "call-1", "status": "OPEN"}


def make_session(session_id="7d0c1f0e-3b7a-4d51-9a55-2f6f3f1c9a10", table="5", secret="s3cret", expires_in=90):
    return TableSession(
        table_session_id=session_id,
        table_number=table,
        session_secret=secret,
        expires_at=NOW + timedelta(minutes=expires_in) if expires_in is not None else None,
    )


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def api():
    fake = FakeTableApi()
    fake.tokens["tok-1"] = make_session()
    return fake


@pytest.fixture
def resolver(api, store, clock):
    return TableSessionResolver(api, store, clock=clock)


@pytest.fixture
def carts(store):
    return CartStore(store)


@pytest.fixture
def tracker(store):
    return OrderTracker(store)


@pytest.fixture
def favorites(store):
    return FavoritesStore(store)


@pytest.fixture
def device(store):
    return DeviceIdentity(store)


@pytest.fixture
def ordering(api, resolver, carts, tracker, device):
    return TableOrderingService(api=api, resolver=resolver, carts=carts, tracker=tracker, device=device)


@pytest.fixture
def scope():
    return SessionScope(slug=SLUG, table_number="5", table_session_id="7d0c1f0e-3b7a-4d51-9a55-2f6f3f1c9a10")


@pytest.fixture
def butter_chicken():
    return MenuItemRef(menu_item_id="dish-butter-chicken", name="Butter Chicken", price=Decimal("12.50"))


@pytest.fixture
def mango_lassi():
    return MenuItemRef(menu_item_id="dish-mango-lassi", name="Mango Lassi", price=Decimal("3.25"))
