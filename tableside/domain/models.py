from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional

import pytz
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tableside.domain.line_identity import line_key, normalize_allergens, normalize_instructions

COMMON_ALLERGENS = ("GLUTEN", "DAIRY", "EGG", "PEANUT", "TREE_NUT", "SOY", "FISH", "SHELLFISH", "SESAME")


class SpiceLevel(str, Enum):
    NONE = "NONE"
    MILD = "MILD"
    MEDIUM = "MEDIUM"
    HOT = "HOT"


class CamelModel(BaseModel):
    """Python names in code, camelCase on the wire and in device storage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TableSession(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    table_session_id: str = Field(min_length=1)
    table_number: str = Field(min_length=1)
    # None: orders for this session cannot be authenticated
    session_secret: Optional[str] = None
    # None: the client knows no expiry (not the same as a far-future one)
    expires_at: Optional[datetime] = None

    @field_validator("table_number", mode="before")
    @classmethod
    def _table_as_text(cls, value):
        return str(value).strip() if value is not None else value

    @field_validator("expires_at")
    @classmethod
    def _expiry_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return pytz.utc.localize(value)
        return value.astimezone(pytz.utc)


class LineModifiers(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    spice_level: Optional[SpiceLevel] = None
    spice_on_side: bool = False
    allergens_avoid: frozenset = frozenset()
    special_instructions: Optional[str] = None

    @field_validator("spice_level", mode="before")
    @classmethod
    def _upper_spice(cls, value):
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value

    @field_validator("spice_on_side", mode="before")
    @classmethod
    def _side_flag(cls, value):
        return False if value is None else value

    @field_validator("allergens_avoid", mode="before")
    @classmethod
    def _normalize_allergens(cls, value):
        return normalize_allergens(value)

    @field_validator("special_instructions", mode="before")
    @classmethod
    def _trim_instructions(cls, value):
        return normalize_instructions(value)

    @field_serializer("allergens_avoid")
    def _allergens_as_list(self, value: frozenset) -> list:
        return sorted(value)


class MenuItemRef(CamelModel):
    """What the menu hands to the cart: a line without a quantity."""

    menu_item_id: str = Field(min_length=1)
    name: str = ""
    price: Decimal = Field(ge=0)
    image_url: Optional[str] = None


class CartLine(MenuItemRef):
    key: str = ""
    quantity: int = Field(ge=1, le=99)
    modifiers: Optional[LineModifiers] = None

    @model_validator(mode="after")
    def _derive_key(self):
        # the stored key is never trusted, identity is recomputed
        self.key = line_key(self.menu_item_id, self.modifiers)
        return self

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class CartState(CamelModel):
    slug: str
    table_number: str
    lines: List[CartLine] = Field(default_factory=list)

    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    def count(self) -> int:
        return sum(line.quantity for line in self.lines)


class PersistedCart(CamelModel):
    v: Literal[1] = 1
    lines: List[CartLine] = Field(default_factory=list)


class TrackedOrder(CamelModel):
    order_id: str = Field(min_length=1)
    order_token: Optional[str] = None

    @field_validator("order_id", mode="before")
    @classmethod
    def _id_as_text(cls, value):
        return str(value) if isinstance(value, int) else value

    @field_validator("order_token", mode="before")
    @classmethod
    def _empty_token(cls, value):
        return value or None


class AuthUser(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    email: str
    name: Optional[str] = None
    roles: frozenset = frozenset()

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value):
        return str(value) if isinstance(value, int) else value

    @field_validator("roles", mode="before")
    @classmethod
    def _roles_set(cls, value):
        if not value:
            return frozenset()
        if isinstance(value, str):
            value = [value]
        return frozenset(str(r).upper() for r in value)

    @field_serializer("roles")
    def _roles_as_list(self, value: frozenset) -> list:
        return sorted(value)


class SessionScope(BaseModel):
    """Which slice of device storage an operation works on."""

    model_config = ConfigDict(frozen=True)

    slug: str
    table_number: str
    table_session_id: Optional[str] = None

    @classmethod
    def from_session(cls, slug: str, session: TableSession) -> "SessionScope":
        return cls(slug=slug, table_number=session.table_number, table_session_id=session.table_session_id)


class MenuDish(CamelModel):
    id: str
    name: str
    category_name: str = ""
    description: Optional[str] = None
    price: Decimal = Decimal("0.00")
    currency: str = "USD"
    is_veg: Optional[bool] = None
    spice: Optional[str] = None
    allergens: Optional[List[str]] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    avg_rating: Optional[float] = None
    rating_count: Optional[int] = None

    def as_cart_item(self) -> MenuItemRef:
        return MenuItemRef(menu_item_id=self.id, name=self.name, price=self.price, image_url=self.image_url)


class MenuCategory(CamelModel):
    id: str
    name: str
    items: List[MenuDish] = Field(default_factory=list)
