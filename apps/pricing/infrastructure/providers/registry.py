"""
Provider Registry - Maps provider names to adapter classes.
"""

import logging

from django.conf import settings
from django.db import models

from apps.pricing.domain.interfaces import BaseExchangeRateProvider
from apps.pricing.infrastructure.providers.currency_beacon import CurrencyBeaconProvider
from apps.pricing.infrastructure.providers.mock import MockProvider

logger = logging.getLogger(__name__)


class ProviderName(models.TextChoices):
    CURRENCY_BEACON = "currency_beacon", "CurrencyBeacon"
    MOCK = "mock", "Mock"


PROVIDER_REGISTRY: dict[str, type[BaseExchangeRateProvider]] = {
    ProviderName.CURRENCY_BEACON: CurrencyBeaconProvider,
    ProviderName.MOCK: MockProvider,
}


def get_provider_instance(provider_name: str | None = None) -> BaseExchangeRateProvider | None:
    """
    Instantiate a provider by name; defaults to PRICING_DEFAULT_RATE_PROVIDER.

    Returns None when the name is not registered.
    """
    name = provider_name or settings.PRICING_DEFAULT_RATE_PROVIDER
    provider_class = PROVIDER_REGISTRY.get(name)

    if provider_class is None:
        logger.warning("Provider '%s' not found in registry", name)
        return None

    return provider_class()
