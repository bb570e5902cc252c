"""Unit tests for best-effort geolocation."""
import httpx
import pytest

from pushit.client.geolocation import detect_country


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestDetectCountry:

    @pytest.mark.asyncio
    async def test_country_name(self):
        client = _client(lambda request: httpx.Response(200, json={"country_name": "Portugal"}))
        assert await detect_country("http://geo.test/json", http_client=client) == "Portugal"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_falls_back_to_country_field(self):
        client = _client(lambda request: httpx.Response(200, json={"country": "Chile"}))
        assert await detect_country("http://geo.test/json", http_client=client) == "Chile"
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="oops"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"country_name": "<b>"}),
    ])
    async def test_failures_degrade_to_unknown(self, response):
        client = _client(lambda request: response)
        assert await detect_country("http://geo.test/json", http_client=client) == "Unknown"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow")

        client = _client(handler)
        assert await detect_country("http://geo.test/json", http_client=client) == "Unknown"
        await client.aclose()
