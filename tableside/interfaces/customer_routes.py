import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query, Request
from pydantic import Field

from tableside.application.session_resolver import expiry_state
from tableside.domain.line_identity import money
from tableside.domain.models import CamelModel, CartState, LineModifiers, MenuItemRef

router = APIRouter(prefix="/m/{slug}")
logger = logging.getLogger(__name__)


class AddLinePayload(CamelModel):
    menu_item_id: str = Field(min_length=1)
    name: str = ""
    price: Decimal = Field(ge=0)
    image_url: Optional[str] = None
    quantity: int = 1
    modifiers: Optional[LineModifiers] = None


class SetQuantityPayload(CamelModel):
    ident: str = Field(min_length=1)
    quantity: int
    by_key: bool = False


class EditLinePayload(CamelModel):
    key: str = Field(min_length=1)
    modifiers: Optional[LineModifiers] = None
    quantity: Optional[int] = None


class OrderPayload(CamelModel):
    notes: Optional[str] = None


class WaiterCallPayload(CamelModel):
    note: Optional[str] = None


def _cart_view(cart: CartState) -> dict:
    body = cart.model_dump(mode="json", by_alias=True)
    body["count"] = cart.count()
    body["total"] = money(cart.total())
    return body


@router.post("/session")
def resolve_session(
    slug: str,
    request: Request,
    t: Optional[str] = Query(None, description="Table access token from the QR code"),
    table: Optional[str] = Query(None, description="Table number for guest entry"),
):
    state = request.app.state
    session = state.resolver.resolve(slug, token=t, table=table)
    logger.info("📍 %s table %s resolved", slug, session.table_number)
    return {
        "tableSessionId": session.table_session_id,
        "tableNumber": session.table_number,
        "expiresAt": session.expires_at.isoformat() if session.expires_at else None,
        "expiry": expiry_state(session, state.resolver.clock()),
        "canOrder": bool(session.session_secret),
        "deviceId": state.device.get_or_create(),
    }


@router.get("/cart")
def get_cart(slug: str, request: Request):
    state = request.app.state
    scope = state.resolver.scope(slug)
    return _cart_view(state.carts.load(scope.slug, scope.table_number))


@router.post("/cart/lines")
def add_line(slug: str, payload: AddLinePayload, request: Request):
    state = request.app.state
    item = MenuItemRef(
        menu_item_id=payload.menu_item_id,
        name=payload.name,
        price=payload.price,
        image_url=payload.image_url,
    )
    cart = state.carts.add(state.resolver.scope(slug), item, payload.quantity, payload.modifiers)
    return _cart_view(cart)


@router.patch("/cart/lines")
def set_quantity(slug: str, payload: SetQuantityPayload, request: Request):
    state = request.app.state
    return _cart_view(
        state.carts.set_quantity(state.resolver.scope(slug), payload.ident, payload.quantity, by_key=payload.by_key)
    )


@router.post("/cart/lines/edit")
def edit_line(slug: str, payload: EditLinePayload, request: Request):
    state = request.app.state
    changes = {"quantity": payload.quantity}
    if "modifiers" in payload.model_fields_set:
        changes["modifiers"] = payload.modifiers
    return _cart_view(state.carts.edit_line(state.resolver.scope(slug), payload.key, **changes))


@router.delete("/cart")
def clear_cart(slug: str, request: Request):
    state = request.app.state
    return _cart_view(state.carts.clear(state.resolver.scope(slug)))


@router.post("/orders")
def place_order(slug: str, request: Request, payload: Optional[OrderPayload] = None):
    tracked = request.app.state.ordering.place_order(slug, notes=payload.notes if payload else None)
    if tracked is None:
        return {"orderId": None, "orderToken": None}
    return tracked.model_dump(by_alias=True)


@router.get("/order-status")
def order_status(slug: str, request: Request):
    tracked = request.app.state.ordering.refresh_tracked_order(slug)
    if tracked is None:
        return {"orderId": None, "orderToken": None}
    return tracked.model_dump(by_alias=True)


@router.post("/waiter-calls")
def call_waiter(slug: str, request: Request, payload: Optional[WaiterCallPayload] = None):
    return request.app.state.ordering.call_waiter(slug, note=payload.note if payload else None)


@router.get("/favorites")
def get_favorites(slug: str, request: Request):
    return {"dishIds": sorted(request.app.state.favorites.get(slug))}


@router.post("/favorites/{dish_id}")
def toggle_favorite(slug: str, dish_id: str, request: Request):
    return {"dishIds": sorted(request.app.state.favorites.toggle(slug, dish_id))}
