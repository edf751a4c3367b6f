"""Tests for the HTTP rate source."""

from collections.abc import Generator
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from ratekeeper.config import ConverterSettings
from ratekeeper.errors import RemoteFetchError
from ratekeeper.source import HttpQuoteSource


def _response(payload: object) -> MagicMock:
    mock_response = MagicMock()
    mock_response.json.return_value = payload
    mock_response.raise_for_status = MagicMock()
    return mock_response


@pytest.fixture
def mock_get() -> Generator[MagicMock, None, None]:
    with patch("ratekeeper.source.requests.get") as mock:
        yield mock


class TestHttpQuoteSource:
    """Tests for HttpQuoteSource.fetch."""

    def test_url_for(self) -> None:
        """Test URL is endpoint plus pair key."""
        source = HttpQuoteSource(ConverterSettings(remote_endpoint="http://rates.test/convert?q="))
        assert source.url_for("USD_EUR") == "http://rates.test/convert?q=USD_EUR"

    def test_url_for_with_api_key(self) -> None:
        """Test the API key is appended."""
        settings = ConverterSettings(remote_endpoint="http://rates.test/convert?q=", api_key="k1")
        source = HttpQuoteSource(settings)
        assert source.url_for("USD_EUR") == "http://rates.test/convert?q=USD_EUR&apiKey=k1"

    @pytest.mark.asyncio
    async def test_api_call(self, mock_rate_api: MagicMock) -> None:
        """Test API call for rate."""
        source = HttpQuoteSource(
            ConverterSettings(remote_endpoint="http://rates.test/q=", fetch_timeout=3.0)
        )

        rate = await source.fetch("USD_EUR")

        assert rate == Decimal("0.92")
        mock_rate_api.assert_called_once_with("http://rates.test/q=USD_EUR", timeout=3.0)

    @pytest.mark.asyncio
    async def test_configure(self, mock_rate_api: MagicMock) -> None:
        """Test new settings apply to later fetches."""
        source = HttpQuoteSource()
        source.configure(ConverterSettings(remote_endpoint="http://other.test/q="))

        await source.fetch("USD_EUR")

        assert mock_rate_api.call_args.args[0] == "http://other.test/q=USD_EUR"

    @pytest.mark.asyncio
    async def test_bare_value(self, mock_get: MagicMock) -> None:
        """Test a payload mapping the key straight to the rate."""
        mock_get.return_value = _response({"USD_EUR": "0.91"})
        assert await HttpQuoteSource().fetch("USD_EUR") == Decimal("0.91")

    @pytest.mark.asyncio
    async def test_api_error(self, mock_get: MagicMock) -> None:
        """Test RemoteFetchError on network failure."""
        cause = requests.ConnectionError("Network error")
        mock_get.side_effect = cause

        with pytest.raises(RemoteFetchError, match="Failed to fetch") as exc_info:
            await HttpQuoteSource().fetch("USD_EUR")

        assert exc_info.value.cause is cause
        assert exc_info.value.key == "USD_EUR"

    @pytest.mark.asyncio
    async def test_http_error(self, mock_get: MagicMock) -> None:
        """Test RemoteFetchError on HTTP error status."""
        mock_response = _response({})
        mock_response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        mock_get.return_value = mock_response

        with pytest.raises(RemoteFetchError, match="503"):
            await HttpQuoteSource().fetch("USD_EUR")

    @pytest.mark.asyncio
    async def test_missing_pair_in_response(self, mock_get: MagicMock) -> None:
        """Test RemoteFetchError when the pair is not in the response."""
        mock_get.return_value = _response({"EUR_ILS": {"val": 3.95}})

        with pytest.raises(RemoteFetchError, match="not found in response"):
            await HttpQuoteSource().fetch("USD_EUR")

    @pytest.mark.asyncio
    async def test_error_payload(self, mock_get: MagicMock) -> None:
        """Test RemoteFetchError on an API error body."""
        mock_get.return_value = _response({"status": 400, "error": "Invalid API key"})

        with pytest.raises(RemoteFetchError, match="not found in response"):
            await HttpQuoteSource().fetch("USD_EUR")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, -1.2, "NaN"])
    async def test_non_positive_rate(self, mock_get: MagicMock, value: object) -> None:
        """Test RemoteFetchError on zero, negative or NaN rates."""
        mock_get.return_value = _response({"USD_EUR": {"val": value}})

        with pytest.raises(RemoteFetchError, match="Non-positive rate"):
            await HttpQuoteSource().fetch("USD_EUR")

    @pytest.mark.asyncio
    async def test_malformed_value(self, mock_get: MagicMock) -> None:
        """Test RemoteFetchError on a non-numeric rate."""
        mock_get.return_value = _response({"USD_EUR": {"val": "abc"}})

        with pytest.raises(RemoteFetchError, match="Invalid response"):
            await HttpQuoteSource().fetch("USD_EUR")

    @pytest.mark.asyncio
    async def test_entry_without_val(self, mock_get: MagicMock) -> None:
        """Test RemoteFetchError when the entry has no val."""
        mock_get.return_value = _response({"USD_EUR": {"rate": 0.92}})

        with pytest.raises(RemoteFetchError, match="Invalid response"):
            await HttpQuoteSource().fetch("USD_EUR")

    @pytest.mark.asyncio
    async def test_invalid_json(self, mock_get: MagicMock) -> None:
        """Test RemoteFetchError on a non-JSON body."""
        mock_response = _response(None)
        mock_response.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = mock_response

        with pytest.raises(RemoteFetchError, match="Invalid response"):
            await HttpQuoteSource().fetch("USD_EUR")
