import logging
from typing import Any, Optional

import httpx

from bsai.auth.session import Session
from bsai.config import settings
from bsai.core.errors import ApiError, AuthenticationError

logger = logging.getLogger(__name__)


class ApiClient:
    """Async HTTP client for the compliance platform REST API.

    One instance per session. Every request carries the session's bearer
    token; a 401 clears the session before the error reaches the caller.
    """

    def __init__(
        self,
        session: Session,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.PLATFORM_API_URL,
            headers={"Accept": "application/json"},
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
            event_hooks={"request": [self._attach_token]},
        )

    async def _attach_token(self, request: httpx.Request) -> None:
        if self.session.token:
            request.headers["Authorization"] = f"Bearer {self.session.token}"

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        raw: bool = False,
    ) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = await self._http.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {type(e).__name__}: {e}")
            raise ApiError(None, str(e) or "An unexpected error occurred") from e

        if response.status_code == 401:
            logger.info("Platform rejected the session token, clearing session")
            self.session.clear()
            raise AuthenticationError()

        if response.is_error:
            payload = _safe_json(response)
            raise ApiError(response.status_code, _error_message(payload), payload)

        if raw:
            return response.content
        if not response.content:
            return None
        payload = _safe_json(response)
        return payload if payload is not None else response.text

    async def get(self, url: str, **kwargs) -> Any:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> Any:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> Any:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs) -> Any:
        return await self.request("DELETE", url, **kwargs)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        return payload.get("message") or payload.get("error") or "An error occurred"
    return "An error occurred"
