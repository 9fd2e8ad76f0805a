import json
import logging
from typing import Any, Callable, Dict, Optional

import httpx

from tableside.domain.errors import ApiError, NetworkError

logger = logging.getLogger(__name__)


def _parse_body(response: httpx.Response) -> Any:
    text = response.text
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _error_message(response: httpx.Response, data: Any) -> str:
    if isinstance(data, dict) and data.get("message"):
        msg = data["message"]
        # validation pipes on the server answer with a list of messages
        if isinstance(msg, list):
            return ", ".join(str(m) for m in msg)
        return str(msg)
    return response.reason_phrase or httpx.codes.get_reason_phrase(response.status_code) or "Request failed"


class ApiClient:
    """Thin JSON client for the restaurant REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        req_headers = {"accept": "application/json"}
        req_headers.update(headers or {})

        bearer = token or (self.token_provider() if self.token_provider else None)
        if bearer:
            req_headers["authorization"] = f"Bearer {bearer}"

        content = None
        if isinstance(body, (bytes, bytearray)):
            content = bytes(body)
        elif isinstance(body, str):
            content = body.encode("utf-8")
        elif body is not None:
            req_headers["content-type"] = "application/json"
            content = json.dumps(body).encode("utf-8")

        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None

        try:
            response = self.client.request(method, path, content=content, params=clean_params, headers=req_headers)
        except httpx.TransportError as e:
            logger.error("❌ %s %s failed: %s", method, path, e)
            raise NetworkError(f"Failed to reach {self.base_url}: {e}") from e

        data = _parse_body(response)
        if not response.is_success:
            message = _error_message(response, data)
            logger.info("%s %s -> %s %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message, data)
        return data

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.request("POST", path, body=body, **kwargs)
