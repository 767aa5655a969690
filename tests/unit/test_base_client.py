"""Unit tests for base_client module."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from indication_mapper.data_sources.base_client import (
    BaseClient,
    DataSourceError,
    NetworkError,
)


class ConcreteTestClient(BaseClient):
    """Concrete implementation of BaseClient for testing."""

    @property
    def _source_name(self) -> str:
        return "test_client"


def _response(status: int, text: str = "", json_data=None) -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.json = AsyncMock(return_value=json_data)
    return resp


def _session(**kwargs) -> AsyncMock:
    session = AsyncMock()
    session.get = AsyncMock(**kwargs)
    return session


@pytest.mark.asyncio
class TestBaseClient:
    """Unit tests for BaseClient session lifecycle (no network calls)."""

    async def test_client_context_manager(self):
        """Test that client can be used as async context manager."""
        async with ConcreteTestClient() as client:
            assert client._session is None  # Session created lazily
            session = await client._get_session()

            assert session is not None
            assert not session.closed

        # Session should be closed after exiting context
        assert client._session.closed

    async def test_session_reuse(self):
        """Test that session is reused across requests."""
        client = ConcreteTestClient()

        session1 = await client._get_session()
        session2 = await client._get_session()

        assert session1 is session2
        await client.close()

    async def test_session_uses_configured_timeout(self):
        client = ConcreteTestClient(timeout=5.0)

        session = await client._get_session()

        assert session.timeout.total == 5.0
        await client.close()


@pytest.mark.asyncio
class TestRestGet:
    """Unit tests for _rest_get and _rest_get_xml."""

    async def test_rest_get_returns_json(self):
        mock_session = _session(return_value=_response(200, json_data={"data": [1]}))

        client = ConcreteTestClient()
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            result = await client._rest_get("https://example.com/api", params={"q": "x"})

        assert result == {"data": [1]}
        mock_session.get.assert_awaited_once_with(
            "https://example.com/api", params={"q": "x"}, headers=None
        )

    async def test_returns_xml_text_on_success(self):
        """Test _rest_get_xml returns raw text for a 200 response."""
        xml_body = "<document><component/></document>"
        mock_session = _session(return_value=_response(200, text=xml_body))

        client = ConcreteTestClient()
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            result = await client._rest_get_xml("https://example.com/xml")

        assert result == xml_body

    async def test_raises_datasource_error_on_4xx(self):
        """Test _rest_get_xml raises DataSourceError for non-retryable 4xx."""
        mock_session = _session(return_value=_response(404, text="Not Found"))

        client = ConcreteTestClient()
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            with pytest.raises(DataSourceError, match="HTTP 404") as exc_info:
                await client._rest_get_xml("https://example.com/xml", params={})

        assert exc_info.value.status_code == 404
        assert exc_info.value.source == "test_client"
        assert not isinstance(exc_info.value, NetworkError)

    async def test_does_not_retry_by_default(self):
        """A retryable status fails immediately when no retries are configured."""
        mock_session = _session(return_value=_response(503, text="Service Unavailable"))

        client = ConcreteTestClient()
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            with pytest.raises(NetworkError, match="HTTP 503") as exc_info:
                await client._rest_get_xml("https://example.com/xml")

        assert exc_info.value.status_code == 503
        assert mock_session.get.call_count == 1

    async def test_retries_on_5xx_then_succeeds(self):
        """Test _rest_get_xml retries on 500 and succeeds on next attempt."""
        xml_body = "<root>OK</root>"
        mock_session = _session(
            side_effect=[_response(500, text="boom"), _response(200, text=xml_body)]
        )

        client = ConcreteTestClient(max_retries=1)
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            with patch(
                "indication_mapper.data_sources.base_client.asyncio.sleep",
                new_callable=AsyncMock,
            ):
                result = await client._rest_get_xml("https://example.com/xml")

        assert result == xml_body
        assert mock_session.get.call_count == 2

    async def test_raises_after_exhausting_retries_on_5xx(self):
        """Test _rest_get_xml raises NetworkError after all retries fail with 5xx."""
        mock_session = _session(return_value=_response(503, text="unavailable"))

        client = ConcreteTestClient(max_retries=2)
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            with patch(
                "indication_mapper.data_sources.base_client.asyncio.sleep",
                new_callable=AsyncMock,
            ) as mock_sleep:
                with pytest.raises(NetworkError, match="HTTP 503") as exc_info:
                    await client._rest_get_xml("https://example.com/xml")

        assert exc_info.value.status_code == 503
        assert mock_session.get.call_count == 3
        assert mock_sleep.await_count == 2

    async def test_timeout_raises_network_error(self):
        mock_session = _session(side_effect=asyncio.TimeoutError())

        client = ConcreteTestClient()
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            with pytest.raises(NetworkError, match="Timeout"):
                await client._rest_get("https://example.com/api", params={})

    async def test_connection_error_raises_network_error(self):
        mock_session = _session(side_effect=aiohttp.ClientConnectionError("refused"))

        client = ConcreteTestClient()
        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=mock_session
        ):
            with pytest.raises(NetworkError, match="Connection error: refused"):
                await client._rest_get("https://example.com/api", params={})


class TestDataSourceError:
    """Tests for DataSourceError."""

    def test_error_message_format(self):
        """Test error message includes source."""
        error = DataSourceError("dailymed", "Connection failed")
        assert "[dailymed]" in str(error)
        assert "Connection failed" in str(error)

    def test_error_with_status_code(self):
        """Test error can include status code."""
        error = DataSourceError("api", "Not found", status_code=404)
        assert error.source == "api"
        assert error.status_code == 404

    def test_network_error_is_datasource_error(self):
        assert isinstance(NetworkError("dailymed", "down"), DataSourceError)
