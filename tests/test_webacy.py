"""Unit tests for the Webacy API client (webacy_mcp/webacy.py)."""

import json

import httpx
import pytest

from webacy_mcp.webacy import WebacyAPIError, WebacyClient


class TestWebacyClient:
    async def test_get_returns_decoded_json(self, webacy_client, webacy_routes):
        webacy_routes["GET /addresses/0xabc"] = (200, {"overallRisk": 12.5})

        data = await webacy_client.request("/addresses/0xabc")

        assert data == {"overallRisk": 12.5}

    async def test_sends_api_key_and_json_headers(self, webacy_client, webacy_routes):
        webacy_routes["GET /transactions/0x1"] = (200, {})

        await webacy_client.request("/transactions/0x1")

        request = webacy_routes["_requests"][0]
        assert request.headers["X-API-Key"] == "test-api-key"
        assert request.headers["Accept"] == "application/json"
        assert request.url.host == "api.webacy.test"

    async def test_query_params_are_encoded(self, webacy_client, webacy_routes):
        webacy_routes["GET /addresses/0xabc"] = (200, {})

        await webacy_client.request("/addresses/0xabc", params={"chain": "base", "show_low_risk": "true"})

        request = webacy_routes["_requests"][0]
        assert request.url.params["chain"] == "base"
        assert request.url.params["show_low_risk"] == "true"

    async def test_post_sends_json_body(self, webacy_client, webacy_routes):
        webacy_routes["POST /url"] = (200, {"prediction": "benign"})

        data = await webacy_client.request("/url", method="POST", json={"url": "https://example.com"})

        request = webacy_routes["_requests"][0]
        assert json.loads(request.content) == {"url": "https://example.com"}
        assert data == {"prediction": "benign"}

    async def test_non_2xx_raises_webacy_api_error(self, webacy_client, webacy_routes):
        webacy_routes["GET /contracts/0xdead"] = (500, {"message": "boom"})

        with pytest.raises(WebacyAPIError, match="Webacy API error: 500 Internal Server Error") as exc_info:
            await webacy_client.request("/contracts/0xdead")

        assert exc_info.value.status_code == 500
        assert exc_info.value.endpoint == "/contracts/0xdead"

    async def test_unknown_route_is_404(self, webacy_client):
        with pytest.raises(WebacyAPIError) as exc_info:
            await webacy_client.request("/nowhere")

        assert exc_info.value.status_code == 404
        assert exc_info.value.reason == "Not Found"

    async def test_transport_errors_propagate(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = WebacyClient(api_key="k", transport=httpx.MockTransport(refuse))

        with pytest.raises(httpx.ConnectError):
            await client.request("/addresses/0xabc")

    def test_trailing_slash_in_base_url_is_dropped(self):
        assert WebacyClient(api_key="k", base_url="https://api.webacy.com/").base_url == "https://api.webacy.com"
