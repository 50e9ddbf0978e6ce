import pytest
import requests
from unittest.mock import Mock
from decimal import Decimal

from apps.pricing.infrastructure.providers.currency_beacon import CurrencyBeaconProvider


@pytest.fixture
def provider(settings):
    settings.CURRENCY_BEACON_URL = "https://api.currencybeacon.com/v1"
    settings.CURRENCY_BEACON_API_KEY = "test-key"
    return CurrencyBeaconProvider()


@pytest.fixture
def mock_requests_get(mocker):
    return mocker.patch("requests.get")


def beacon_response(rates):
    response = Mock()
    response.json.return_value = {
        "meta": {"code": 200},
        "response": {"date": "2024-05-21", "base": "USD", "rates": rates},
    }
    response.raise_for_status.return_value = None
    return response


def test_get_try_rate_success(provider, mock_requests_get):
    """
    Test that get_try_rate returns the TRY rate as an exact Decimal
    using the /latest endpoint.
    """
    mock_requests_get.return_value = beacon_response({"TRY": 34.5})

    rate = provider.get_try_rate("USD")

    assert rate == Decimal("34.5")
    mock_requests_get.assert_called_once()

    call_args = mock_requests_get.call_args
    assert call_args[0][0] == "https://api.currencybeacon.com/v1/latest"
    assert call_args[1]["params"] == {"api_key": "test-key", "base": "USD", "symbols": "TRY"}
    assert call_args[1]["timeout"] == 10


def test_get_try_rate_timeout(provider, mock_requests_get):
    """A timeout leaves the caller with no rate."""
    mock_requests_get.side_effect = requests.exceptions.Timeout()

    assert provider.get_try_rate("USD") is None


def test_get_try_rate_http_error(provider, mock_requests_get):
    response = beacon_response({})
    response.raise_for_status.side_effect = requests.exceptions.HTTPError("401 Unauthorized")
    mock_requests_get.return_value = response

    assert provider.get_try_rate("USD") is None


def test_get_try_rate_missing_key(provider, mock_requests_get):
    """
    Test that get_try_rate handles a response without a TRY rate.
    """
    mock_requests_get.return_value = beacon_response({"GBP": 0.78})

    assert provider.get_try_rate("USD") is None


def test_get_try_rate_malformed_body(provider, mock_requests_get):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.side_effect = ValueError("No JSON object could be decoded")
    mock_requests_get.return_value = response

    assert provider.get_try_rate("EUR") is None


@pytest.mark.parametrize("value", [0, -1])
def test_get_try_rate_non_positive(provider, mock_requests_get, value):
    mock_requests_get.return_value = beacon_response({"TRY": value})

    assert provider.get_try_rate("USD") is None


def test_get_try_rate_not_configured(settings, mock_requests_get):
    settings.CURRENCY_BEACON_API_KEY = ""

    assert CurrencyBeaconProvider().get_try_rate("USD") is None
    mock_requests_get.assert_not_called()
