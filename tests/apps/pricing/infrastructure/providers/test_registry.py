from decimal import Decimal

from apps.pricing.infrastructure.providers.currency_beacon import CurrencyBeaconProvider
from apps.pricing.infrastructure.providers.mock import MockProvider
from apps.pricing.infrastructure.providers.registry import (
    PROVIDER_REGISTRY,
    ProviderName,
    get_provider_instance,
)


def test_registry_contains_all_providers():
    assert set(PROVIDER_REGISTRY) == {ProviderName.CURRENCY_BEACON, ProviderName.MOCK}


def test_get_provider_by_name():
    assert isinstance(get_provider_instance("mock"), MockProvider)


def test_default_provider_from_settings(settings):
    settings.PRICING_DEFAULT_RATE_PROVIDER = "currency_beacon"

    assert isinstance(get_provider_instance(), CurrencyBeaconProvider)


def test_unknown_provider():
    assert get_provider_instance("fixer") is None


def test_mock_provider_rates():
    provider = MockProvider()

    assert provider.get_try_rate("USD") == Decimal("34.50")
    assert provider.get_try_rate("eur") == Decimal("37.80")
    assert provider.get_try_rate("GBP") is None
