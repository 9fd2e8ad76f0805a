from typing import Any, Optional

from pydantic import ValidationError

from tableside.application.auth_store import AuthTokenStore
from tableside.domain.errors import ApiError
from tableside.domain.models import AuthUser
from tableside.infrastructure.api_client import ApiClient

class StaffApi:
    """Staff sign-in. The bearer token it obtains is kept in the AuthTokenStore."""

    def __init__(self, client: ApiClient, auth: AuthTokenStore):
        self.client = client
        self.auth = auth

    def login(self, email: str, password: str) -> AuthUser:
        data = self.client.post("/auth/login", {"email": email, "password": password}) or {}
        token = data.get("accessToken") or data.get("token")
        if not token:
            raise ApiError(502, "Login response carried no token", data)
        self.auth.set_token(str(token))

        user = self._user(data.get("user")) if data.get("user") else self.me()
        self.auth.set_user(user)
        return user

    def me(self) -> AuthUser:
        return self._user(self.client.get("/users/me", token=self.auth.get_token()))

    def logout(self) -> None:
        self.auth.logout()

    @staticmethod
    def _user(data: Any) -> AuthUser:
        if isinstance(data, dict) and "role" in data and "roles" not in data:
            data = {**data, "roles": [data["role"]]}
        try:
            return AuthUser.model_validate(data)
        except ValidationError as e:
            raise ApiError(502, "Malformed user record from server", data) from e

    def current_user(self) -> Optional[AuthUser]:
        return self.auth.get_user()
