"""
Mock provider for development and tests.
Returns fixed, realistic TRY rates so quotes are reproducible.
"""

from decimal import Decimal

from apps.pricing.domain.interfaces import BaseExchangeRateProvider


class MockProvider(BaseExchangeRateProvider):

    TRY_RATES = {
        "USD": Decimal("34.50"),
        "EUR": Decimal("37.80"),
    }

    def get_try_rate(self, currency: str) -> Decimal | None:
        return self.TRY_RATES.get(currency.upper())
