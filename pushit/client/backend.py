"""Backend access for the client protocol layer.

Backend is the interface the session manager and the vote controller talk
to; HttpBackend implements it against the Push It! HTTP API with httpx.
Server rejections come back as the same PushItError subclasses the services
raise, so client code can catch AlreadyVotedError, HoldNotFoundError, ...
regardless of where the check happened. Transport failures and 5xx
responses become BackendError.
"""
import json
from typing import Any, AsyncGenerator, Dict, List, Optional, Type

import httpx
import structlog

from pushit.core.constants import TARGET_GLOBAL_BUTTON
from pushit.core.exceptions import (
    AlreadyPushedError,
    AlreadyVotedError,
    AuthenticationRequiredError,
    HoldNotFoundError,
    HoldOwnershipError,
    InvalidOptionError,
    NotFoundError,
    PollClosedError,
    PollNotFoundError,
    PreconditionError,
    PushItError,
    PushLimitReachedError,
    RateLimitedError,
    UsernameTakenError,
)

logger = structlog.get_logger(__name__)


class BackendError(Exception):
    """The backend could not be reached or failed on its side."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# Server messages are the default messages of the exception classes
_ERRORS_BY_MESSAGE: Dict[str, Type[PushItError]] = {
    cls.message: cls
    for cls in (
        AlreadyPushedError,
        AlreadyVotedError,
        HoldNotFoundError,
        HoldOwnershipError,
        InvalidOptionError,
        PollClosedError,
        PollNotFoundError,
        PushLimitReachedError,
        UsernameTakenError,
    )
}

_ERRORS_BY_STATUS: Dict[int, Type[PushItError]] = {
    401: AuthenticationRequiredError,
    403: HoldOwnershipError,
    404: NotFoundError,
    409: PreconditionError,
    429: RateLimitedError,
}


def error_from_response(status_code: int, detail: Any) -> Exception:
    """Rebuild the exception a failed API response stands for."""
    message = detail if isinstance(detail, str) else json.dumps(detail)

    if status_code >= 500:
        return BackendError(message, status_code)

    error_cls = _ERRORS_BY_MESSAGE.get(message) or _ERRORS_BY_STATUS.get(status_code, PreconditionError)
    error = error_cls(message)
    error.status_code = status_code
    return error


class Backend:
    """Operations the client protocol needs from the server."""

    async def start_hold(self, target_kind: str = TARGET_GLOBAL_BUTTON, target_id: Optional[int] = None,
                         location_label: Optional[str] = None, device_id: Optional[str] = None) -> Dict:
        raise NotImplementedError

    async def renew_hold(self, hold_id: str) -> Dict:
        raise NotImplementedError

    async def end_hold(self, hold_id: str) -> bool:
        raise NotImplementedError

    async def get_active_count(self) -> int:
        raise NotImplementedError

    async def cast_vote(self, poll_id: int, option_id: int, edit: bool = False,
                        hold_id: Optional[str] = None) -> Dict:
        raise NotImplementedError

    async def get_poll(self, poll_id: int) -> Dict:
        raise NotImplementedError

    def stream(self, path: str) -> AsyncGenerator[Dict, None]:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class HttpBackend(Backend):
    """Backend over the /api/v1 HTTP API.

    Example:
        >>> backend = HttpBackend("http://localhost:8000", token=user_jwt)
        >>> hold = await backend.start_hold(location_label="Portugal")
        >>> await backend.end_hold(hold["id"])
        >>> await backend.close()
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        token: Optional[str] = None,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Server root; /api/v1 is appended
            token: Identity provider JWT; None for anonymous use
            timeout: Per-request timeout in seconds
            http_client: Optional httpx client (one is created if not provided)
        """
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._api = base_url.rstrip("/") + "/api/v1"
        self._headers = headers

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(
                method, self._api + path, headers=self._headers, **kwargs
            )
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise error_from_response(response.status_code, detail)

        return response.json()

    async def start_hold(self, target_kind: str = TARGET_GLOBAL_BUTTON, target_id: Optional[int] = None,
                         location_label: Optional[str] = None, device_id: Optional[str] = None) -> Dict:
        body = {"target_kind": target_kind, "location_label": location_label, "device_id": device_id}
        if target_id is not None:
            body["target_id"] = target_id
        return await self._request("POST", "/holds", json=body)

    async def renew_hold(self, hold_id: str) -> Dict:
        return await self._request("POST", f"/holds/{hold_id}/heartbeat")

    async def end_hold(self, hold_id: str) -> bool:
        data = await self._request("DELETE", f"/holds/{hold_id}")
        return bool(data.get("ended"))

    async def get_active_count(self) -> int:
        data = await self._request("GET", "/holds/active-count")
        return int(data["active_count"])

    async def cast_vote(self, poll_id: int, option_id: int, edit: bool = False,
                        hold_id: Optional[str] = None) -> Dict:
        body = {"option_id": option_id, "edit": edit}
        if hold_id:
            body["hold_id"] = hold_id
        return await self._request("POST", f"/polls/{poll_id}/votes", json=body)

    async def get_poll(self, poll_id: int) -> Dict:
        return await self._request("GET", f"/polls/{poll_id}")

    async def list_polls(self, status: str = "active", sort: str = "new") -> List[Dict]:
        return await self._request("GET", "/polls", params={"status": status, "sort": sort})

    async def stream(self, path: str) -> AsyncGenerator[Dict, None]:
        """Yield the JSON data of each SSE message on path (e.g. /sse/holds).

        Comment lines (keep-alives) are skipped. An error event ends the
        stream with BackendError.
        """
        event_type = None
        try:
            async with self._client.stream(
                "GET", self._api + path, headers=self._headers, timeout=None
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise error_from_response(response.status_code, response.text)

                async for line in response.aiter_lines():
                    if not line or line.startswith(":"):
                        continue
                    if line.startswith("event:"):
                        event_type = line[6:].strip()
                        continue
                    if line.startswith("data:"):
                        data = json.loads(line[5:].strip())
                        if event_type == "error":
                            raise BackendError(data.get("error", "Stream error"))
                        event_type = None
                        yield data
        except httpx.HTTPError as e:
            raise BackendError(f"Stream {path} failed: {e}") from e

    async def close(self) -> None:
        # Only close if we created the client
        if self._owns_client:
            await self._client.aclose()
