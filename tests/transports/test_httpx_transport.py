from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from restforge.errors import TransportError, TransportTimeoutError
from restforge.models import Request
from restforge.transports.httpx_transport import HttpxTransport, PoolLimits, ProxyConfig


def mock_httpx_response(status_code=200, headers=None, content=b""):
    response = MagicMock()
    response.status_code = status_code
    response.headers = httpx.Headers(headers or {})
    response.content = content
    return response


class TestHttpxTransport:
    @pytest.mark.asyncio
    async def test_simple_get(self):
        request = Request(host="https://api.example.com", path_template="/data", params={"page": 1})

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = mock_httpx_response(
                headers={"content-type": "application/json"}, content=b'{"ok": true}'
            )
            response = await HttpxTransport(request, {}).call()

        assert response.status == 200
        assert response.data == {"ok": True}
        assert response.request is request
        call_args = mock_request.call_args
        assert call_args.kwargs["method"] == "GET"
        assert call_args.kwargs["url"] == "https://api.example.com/data?page=1"

    @pytest.mark.asyncio
    async def test_post_with_mapping_body(self):
        request = Request(method="POST", host="https://api.example.com", path_template="/users", body={"name": "test"})

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = mock_httpx_response(status_code=201)
            response = await HttpxTransport(request, {}).call()

        assert response.status == 201
        call_args = mock_request.call_args
        assert call_args.kwargs["method"] == "POST"
        assert call_args.kwargs["json"] == {"name": "test"}
        assert "content" not in call_args.kwargs

    @pytest.mark.asyncio
    async def test_post_with_string_body(self):
        request = Request(method="POST", host="https://api.example.com", body="raw")

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = mock_httpx_response()
            await HttpxTransport(request, {}).call()

        assert mock_request.call_args.kwargs["content"] == "raw"

    @pytest.mark.asyncio
    async def test_headers_auth_and_timeout(self):
        request = Request(
            host="https://api.example.com",
            headers={"X-Request-Id": 123, "X-Debug": True},
            auth={"username": "bob", "password": "secret"},
            timeout=1500,
        )

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = mock_httpx_response()
            await HttpxTransport(request, {}).call()

        kwargs = mock_request.call_args.kwargs
        assert kwargs["headers"] == {"x-request-id": "123", "x-debug": "true"}
        assert kwargs["timeout"] == 1.5
        assert isinstance(kwargs["auth"], httpx.BasicAuth)

    @pytest.mark.asyncio
    async def test_status_errors_are_responses(self):
        request = Request(host="https://api.example.com")

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = mock_httpx_response(status_code=503)
            response = await HttpxTransport(request, {}).call()

        assert response.server_error is True
        assert response.error is None

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_timeout(self):
        request = Request(host="https://api.example.com")

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = httpx.ReadTimeout("read timed out")
            with pytest.raises(TransportTimeoutError) as exc_info:
                await HttpxTransport(request, {}).call()

        assert exc_info.value.request is request

    @pytest.mark.asyncio
    async def test_network_failure_raises_transport_error(self):
        request = Request(host="https://api.example.com")

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = httpx.ConnectError("connection refused")
            with pytest.raises(TransportError) as exc_info:
                await HttpxTransport(request, {}).call()

        assert not isinstance(exc_info.value, TransportTimeoutError)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_shared_client(self):
        request = Request(host="https://api.example.com")
        impl = MagicMock()
        impl.request = AsyncMock(return_value=mock_httpx_response(status_code=204))
        impl.aclose = AsyncMock()

        response = await HttpxTransport(request, {"Httpx": {"impl": impl}}).call()

        assert response.status == 204
        impl.request.assert_awaited_once()
        impl.aclose.assert_not_awaited()


class TestPoolLimits:
    def test_default_values(self):
        limits = PoolLimits()
        assert limits.max_connections == 100
        assert limits.max_keepalive == 20
        assert limits.keepalive_expiry == 30.0

    def test_to_httpx_limits(self):
        limits = PoolLimits(max_connections=50, max_keepalive=10)
        httpx_limits = limits.to_httpx_limits()
        assert httpx_limits.max_connections == 50
        assert httpx_limits.max_keepalive_connections == 10


class TestProxyConfig:
    def test_to_httpx_proxy(self):
        proxy = ProxyConfig(url="http://proxy.example.com:8080")
        assert proxy.to_httpx_proxy() == "http://proxy.example.com:8080"

    def test_to_httpx_proxy_with_auth(self):
        proxy = ProxyConfig(url="http://proxy.example.com:8080", auth=("user", "pass"))
        assert "user:pass@proxy.example.com:8080" in proxy.to_httpx_proxy()

    @pytest.mark.asyncio
    async def test_proxy_is_used_for_per_call_client(self):
        request = Request(host="https://api.example.com")
        configs = {"Httpx": {"proxy": ProxyConfig(url="http://proxy.example.com:8080"), "follow_redirects": False}}

        with patch("httpx.AsyncClient") as mock_client_class:
            client = MagicMock()
            client.request = AsyncMock(return_value=mock_httpx_response())
            mock_client_class.return_value.__aenter__.return_value = client
            await HttpxTransport(request, configs).call()

        kwargs = mock_client_class.call_args.kwargs
        assert kwargs["proxy"] == "http://proxy.example.com:8080"
        assert kwargs["follow_redirects"] is False
        client.request.assert_awaited_once()
