"""Unit tests for the HTTP backend."""
import json

import httpx
import pytest

from pushit.client.backend import BackendError, HttpBackend, error_from_response
from pushit.core.exceptions import (
    AlreadyVotedError,
    AuthenticationRequiredError,
    HoldNotFoundError,
    PollClosedError,
    PreconditionError,
    PushLimitReachedError,
    RateLimitedError,
)


def _backend(handler, token="tok"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpBackend("http://pushit.test/", token=token, http_client=client), client


@pytest.mark.unit
class TestErrorMapping:

    @pytest.mark.parametrize("status,detail,expected", [
        (409, "You have already voted in this poll", AlreadyVotedError),
        (400, "This poll has ended", PollClosedError),
        (404, "Hold not found", HoldNotFoundError),
        (401, "Not authenticated", AuthenticationRequiredError),
        (429, "Rate limit exceeded: 60 per 1 minute", RateLimitedError),
        (429, "Daily push limit reached", PushLimitReachedError),
        (400, "Something else entirely", PreconditionError),
    ])
    def test_status_and_message(self, status, detail, expected):
        error = error_from_response(status, detail)
        assert type(error) is expected
        assert error.status_code == status

    def test_server_errors_are_backend_errors(self):
        error = error_from_response(503, "down")
        assert isinstance(error, BackendError)
        assert error.status_code == 503

    def test_validation_detail_is_serialized(self):
        error = error_from_response(422, [{"loc": ["body", "option_id"], "msg": "required"}])
        assert "option_id" in error.message


@pytest.mark.unit
class TestHttpBackend:

    @pytest.mark.asyncio
    async def test_start_hold_request(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "h-1"})

        backend, client = _backend(handler)
        data = await backend.start_hold(location_label="Peru")
        await client.aclose()

        assert data == {"id": "h-1"}
        assert seen["method"] == "POST"
        assert seen["url"] == "http://pushit.test/api/v1/holds"
        assert seen["auth"] == "Bearer tok"
        assert seen["body"]["target_kind"] == "global_button"
        assert "target_id" not in seen["body"]

    @pytest.mark.asyncio
    async def test_cast_vote_maps_rejection(self):
        def handler(request):
            return httpx.Response(409, json={"detail": "You have already voted in this poll"})

        backend, client = _backend(handler)
        with pytest.raises(AlreadyVotedError):
            await backend.cast_vote(1, 2, hold_id="h-1")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_anonymous_requests_have_no_auth_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"active_count": 12})

        backend, client = _backend(handler, token=None)
        assert await backend.get_active_count() == 12
        assert seen["auth"] is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_end_hold(self):
        backend, client = _backend(lambda request: httpx.Response(200, json={"ended": False}))
        assert await backend.end_hold("h-1") is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("no route")

        backend, client = _backend(handler)
        with pytest.raises(BackendError):
            await backend.renew_hold("h-1")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_stream_skips_keep_alives(self):
        body = (
            'data: {"active_count": 1}\n\n'
            ": keep-alive\n\n"
            'data: {"active_count": 2}\n\n'
        )
        backend, client = _backend(lambda request: httpx.Response(200, text=body))

        items = [item async for item in backend.stream("/sse/holds")]

        assert items == [{"active_count": 1}, {"active_count": 2}]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_stream_error_event(self):
        body = 'data: {"n": 1}\n\nevent: error\ndata: {"error": "Poll not found"}\n\n'
        backend, client = _backend(lambda request: httpx.Response(200, text=body))

        items = []
        with pytest.raises(BackendError, match="Poll not found"):
            async for item in backend.stream("/sse/polls/9"):
                items.append(item)
        assert items == [{"n": 1}]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self):
        backend, client = _backend(lambda request: httpx.Response(200, json={}))
        await backend.close()
        assert not client.is_closed
        await client.aclose()
