"""Customer-facing (no staff login) endpoints of the restaurant REST API."""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from pydantic import ValidationError

from tableside.domain.errors import ApiError
from tableside.domain.line_identity import dollars_from_cents
from tableside.domain.models import MenuCategory, MenuDish, TableSession
from tableside.infrastructure.api_client import ApiClient
from tableside.interfaces.ITableApi import ITableApi


def _q(value: str) -> str:
    return quote(str(value), safe="")


def normalize_public_menu(payload: Any) -> Tuple[Optional[dict], List[MenuCategory]]:
    """Menu payload (prices in cents) -> restaurant record and categories priced in dollars."""
    if not isinstance(payload, dict):
        return None, []
    restaurant = payload.get("restaurant")
    raw_categories = payload.get("categories")
    if not isinstance(raw_categories, list):
        raw_categories = []

    categories = []
    for c in raw_categories:
        if not isinstance(c, dict):
            continue
        cat_name = str(c.get("name") or "")
        items = c.get("items") if isinstance(c.get("items"), list) else []
        dishes = []
        for it in items:
            if not isinstance(it, dict):
                continue
            dishes.append(MenuDish(
                id=str(it.get("id")),
                name=str(it.get("name") or ""),
                category_name=cat_name,
                description=it.get("description"),
                price=dollars_from_cents(it.get("priceCents")),
                currency=str(it.get("currency") or "USD"),
                is_veg=it.get("isVeg") if isinstance(it.get("isVeg"), bool) else None,
                spice=it.get("spiceLevel"),
                allergens=[str(a) for a in it["allergens"]] if isinstance(it.get("allergens"), list) else None,
                image_url=it.get("imageUrl"),
                video_url=it.get("videoUrl"),
                avg_rating=it.get("avgRating") if isinstance(it.get("avgRating"), (int, float)) else None,
                rating_count=it.get("ratingCount") if isinstance(it.get("ratingCount"), int) else None,
            ))
        categories.append(MenuCategory(id=str(c.get("id")), name=cat_name, items=dishes))
    return restaurant, categories


class RestaurantApi(ITableApi):
    def __init__(self, client: ApiClient):
        self.client = client

    # --- table sessions ---

    def resolve_token(self, slug: str, token: str) -> TableSession:
        data = self.client.post(f"/public/restaurants/{_q(slug)}/table-sessions/resolve", {"token": token})
        return self._table_session(data)

    def start_guest_session(self, slug: str, table_number: str) -> TableSession:
        data = self.client.post(f"/public/restaurants/{_q(slug)}/table-sessions/guest", {"tableNumber": table_number})
        return self._table_session(data)

    # --- menu ---

    def public_menu(self, slug: str) -> Tuple[Optional[dict], List[MenuCategory]]:
        return normalize_public_menu(self.client.get(f"/public/restaurants/{_q(slug)}/menu"))

    def rate_menu_item(self, menu_item_id: str, stars: int, comment: Optional[str] = None) -> Any:
        return self.client.post(
            f"/public/menu-items/{_q(menu_item_id)}/rating",
            {"stars": stars, "comment": comment},
        )

    # --- orders ---

    def create_order(self, slug: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(f"/public/restaurants/{_q(slug)}/orders", payload) or {}

    def get_order(self, slug: str, order_id: str, order_token: Optional[str] = None) -> Dict[str, Any]:
        return self.client.get(
            f"/public/restaurants/{_q(slug)}/orders/{_q(order_id)}",
            params={"token": order_token or None},
        )

    def get_table_orders(self, slug: str, table_session_id: str, token: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self.client.get(
            f"/public/restaurants/{_q(slug)}/table/{_q(table_session_id)}/orders",
            params={"token": token or None},
        )
        return data if isinstance(data, list) else []

    # --- waiter ---

    def call_waiter(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post("/public/waiter-calls", payload) or {}

    def get_table_service(self, table_session_id: str, session_secret: str) -> Dict[str, Any]:
        return self.client.get(
            "/public/table-service",
            params={"tableSessionId": table_session_id, "sessionSecret": session_secret},
        )

    @staticmethod
    def _table_session(data: Any) -> TableSession:
        try:
            return TableSession.model_validate(data)
        except ValidationError as e:
            raise ApiError(502, "Malformed table session from server", data) from e
