import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from tableside.core.config import settings
from tableside.domain.models import CamelModel
from tableside.domain.roles import is_platform_role

router = APIRouter(prefix="/r")
logger = logging.getLogger(__name__)

LOGIN_PATH = "/r/login"


def is_staff_path(path: str) -> bool:
    return path == "/r" or path.startswith("/r/")


class StaffGateMiddleware(BaseHTTPMiddleware):
    """Staff dashboard routes need the auth cookie; without it, go sign in and come back."""

    def __init__(self, app, cookie_name: Optional[str] = None):
        super().__init__(app)
        self.cookie_name = cookie_name or settings.STAFF_COOKIE_NAME

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not is_staff_path(path) or path == LOGIN_PATH:
            return await call_next(request)

        if request.cookies.get(self.cookie_name):
            return await call_next(request)

        target = path + (f"?{request.url.query}" if request.url.query else "")
        logger.info("🔒 %s needs a staff sign-in", path)
        return RedirectResponse(url=f"{LOGIN_PATH}?next={quote(target, safe='')}", status_code=307)


class LoginPayload(CamelModel):
    email: str
    password: str
    next: Optional[str] = None


def _safe_next(target: Optional[str]) -> str:
    # only same-site dashboard paths, never an absolute URL
    if target and target.startswith("/r") and not target.startswith("//"):
        return target
    return "/r/dashboard"


@router.get("/login")
def login_page(next: Optional[str] = None):
    return {"next": _safe_next(next)}


@router.post("/login")
def login(payload: LoginPayload, request: Request):
    staff = request.app.state.staff
    user = staff.login(payload.email, payload.password)
    response = JSONResponse({
        "user": user.model_dump(mode="json", by_alias=True),
        "platform": any(is_platform_role(r) for r in user.roles),
        "next": _safe_next(payload.next),
    })
    response.set_cookie(
        request.app.state.staff_cookie,
        staff.auth.get_token(),
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/logout")
def logout(request: Request):
    request.app.state.staff.logout()
    response = JSONResponse({"ok": True})
    response.delete_cookie(request.app.state.staff_cookie)
    return response


@router.get("/me")
def me(request: Request):
    user = request.app.state.staff.current_user()
    if user is None:
        return JSONResponse({"user": None}, status_code=401)
    return {"user": user.model_dump(mode="json", by_alias=True)}
