import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tableside.core.config import Settings, settings
from tableside.core.logging import setup_logging

# 1. Infrastructure & Application Imports
from tableside.application.auth_store import AuthTokenStore
from tableside.application.cart_store import CartStore
from tableside.application.device_identity import DeviceIdentity
from tableside.application.favorites_store import FavoritesStore
from tableside.application.order_tracker import OrderTracker
from tableside.application.ordering import TableOrderingService
from tableside.application.session_resolver import TableSessionResolver
from tableside.domain.errors import (
    ApiError,
    EmptyCartError,
    MissingSessionSecretError,
    NetworkError,
    SessionExpiredError,
    StorageError,
    TokenResolutionError,
)
from tableside.infrastructure.api_client import ApiClient
from tableside.infrastructure.public_api import RestaurantApi
from tableside.infrastructure.staff_api import StaffApi
from tableside.infrastructure.stores.factory import build_store
from tableside.interfaces import customer_routes, staff_routes
from tableside.interfaces.IKeyValueStore import IKeyValueStore
from tableside.interfaces.ITableApi import ITableApi

logger = logging.getLogger(__name__)


def _error(status: int, code: str, message: str, body=None) -> JSONResponse:
    return JSONResponse({"error": code, "message": message, "body": body}, status_code=status)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TokenResolutionError)
    async def _token_rejected(request: Request, exc: TokenResolutionError):
        return _error(410, "rescan", str(exc))

    @app.exception_handler(SessionExpiredError)
    async def _session_expired(request: Request, exc: SessionExpiredError):
        return _error(410, "session_expired", str(exc))

    @app.exception_handler(MissingSessionSecretError)
    async def _no_secret(request: Request, exc: MissingSessionSecretError):
        return _error(403, "session_unauthenticated", str(exc))

    @app.exception_handler(EmptyCartError)
    async def _empty_cart(request: Request, exc: EmptyCartError):
        return _error(400, "empty_cart", str(exc))

    @app.exception_handler(StorageError)
    async def _storage(request: Request, exc: StorageError):
        return _error(503, "storage", str(exc))

    @app.exception_handler(NetworkError)
    async def _network(request: Request, exc: NetworkError):
        return _error(502, "retry", exc.message)

    @app.exception_handler(ApiError)
    async def _upstream(request: Request, exc: ApiError):
        return _error(exc.status or 502, "upstream", exc.message, exc.body)


# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
def create_app(
    config: Settings = settings,
    store: Optional[IKeyValueStore] = None,
    api: Optional[ITableApi] = None,
    api_client: Optional[ApiClient] = None,
) -> FastAPI:
    setup_logging()
    app = FastAPI(title=config.PROJECT_NAME)

    if store is None:
        store = build_store(config)
    auth = AuthTokenStore(store)
    client = api_client or ApiClient(config.API_BASE_URL, timeout=config.REQUEST_TIMEOUT, token_provider=auth.get_token)
    if api is None:
        api = RestaurantApi(client)

    app.state.store = store
    app.state.auth = auth
    app.state.staff = StaffApi(client, auth)
    app.state.staff_cookie = config.STAFF_COOKIE_NAME
    app.state.device = DeviceIdentity(store)
    app.state.carts = CartStore(store)
    app.state.favorites = FavoritesStore(store)
    app.state.tracker = OrderTracker(store)
    app.state.resolver = TableSessionResolver(api, store)
    app.state.ordering = TableOrderingService(
        api=api,
        resolver=app.state.resolver,
        carts=app.state.carts,
        tracker=app.state.tracker,
        device=app.state.device,
    )

    register_error_handlers(app)
    app.add_middleware(staff_routes.StaffGateMiddleware, cookie_name=config.STAFF_COOKIE_NAME)

    # Include Routers
    app.include_router(customer_routes.router)
    app.include_router(staff_routes.router)

    @app.get("/")
    def health_check():
        return {"status": "active", "system": config.PROJECT_NAME, "storage": config.STORAGE_BACKEND}

    logger.info("✅ %s ready (storage=%s, api=%s)", config.PROJECT_NAME, config.STORAGE_BACKEND, config.API_BASE_URL)
    return app


app = create_app()
