from typing import Optional

from pydantic import TypeAdapter

from tableside.application.persisted import read_raw, read_value, write_value
from tableside.core import keys
from tableside.domain.models import AuthUser
from tableside.interfaces.IKeyValueStore import IKeyValueStore

_user_adapter = TypeAdapter(AuthUser)

class AuthTokenStore:
    """Bearer token and user record for staff roles. Unrelated to table sessions."""

    def __init__(self, store: IKeyValueStore):
        self.store = store

    # --- token ---

    def get_token(self) -> Optional[str]:
        return read_raw(self.store, keys.staff_token_key()) or None

    def set_token(self, token: str) -> None:
        self.store.set(keys.staff_token_key(), token)

    def clear_token(self) -> None:
        self.store.remove(keys.staff_token_key())

    # --- user ---

    def get_user(self) -> Optional[AuthUser]:
        return read_value(self.store, keys.staff_user_key(), _user_adapter)

    def set_user(self, user: Optional[AuthUser]) -> None:
        if user is None:
            self.clear_user()
            return
        write_value(self.store, keys.staff_user_key(), _user_adapter, user)

    def clear_user(self) -> None:
        self.store.remove(keys.staff_user_key())

    def logout(self) -> None:
        self.clear_token()
        self.clear_user()
