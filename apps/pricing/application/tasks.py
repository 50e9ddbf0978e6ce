"""
Celery tasks for background processing.
"""

import logging
from typing import Dict, Optional

from celery import shared_task

from apps.pricing.application.dto import RateRefreshResultDTO
from apps.pricing.infrastructure.persistence.models import ForeignCurrency
from apps.pricing.infrastructure.persistence.repositories import ExchangeRateRepository
from apps.pricing.infrastructure.providers.registry import get_provider_instance

logger = logging.getLogger(__name__)


@shared_task(name="refresh_exchange_rates")
def refresh_exchange_rates(provider_name: Optional[str] = None) -> Dict:
    """
    Fetch the TRY rate of every foreign currency and upsert it.

    A currency the provider cannot price keeps its previous rate; quotes
    keep using the last stored value.

    Args:
        provider_name: Registry name, defaults to PRICING_DEFAULT_RATE_PROVIDER

    Returns:
        RateRefreshResultDTO as a dict
    """
    provider = get_provider_instance(provider_name)
    if provider is None:
        return RateRefreshResultDTO(
            success=False,
            rates_updated={},
            errors=[f"Provider '{provider_name}' is not registered"],
        ).as_dict()

    provider_used = provider.__class__.__name__
    updated = {}
    errors = []

    for currency in ForeignCurrency.values:
        rate = provider.get_try_rate(currency)
        if rate is None:
            errors.append(f"No rate for {currency}/TRY from {provider_used}")
            logger.warning("No rate for %s/TRY from %s; keeping stored value", currency, provider_used)
            continue

        ExchangeRateRepository.upsert(currency, rate)
        updated[currency] = rate
        logger.info("Updated %s/TRY = %s (%s)", currency, rate, provider_used)

    return RateRefreshResultDTO(
        success=bool(updated),
        rates_updated=updated,
        errors=errors,
        provider_used=provider_used,
    ).as_dict()
