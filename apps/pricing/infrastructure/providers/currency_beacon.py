import logging
from decimal import Decimal

import requests
from django.conf import settings

from apps.pricing.domain.interfaces import BaseExchangeRateProvider

logger = logging.getLogger(__name__)


class CurrencyBeaconProvider(BaseExchangeRateProvider):
    """
    CurrencyBeacon API provider.
    Uses the /latest endpoint to fetch today's TRY rate for a currency.
    """

    def get_try_rate(self, currency: str) -> Decimal | None:
        """
        Fetch the latest TRY rate from CurrencyBeacon.

        Args:
            currency: Base currency code (e.g. USD)

        Returns:
            Rate as Decimal, or None if the call or the response fails
        """
        if not settings.CURRENCY_BEACON_URL or not settings.CURRENCY_BEACON_API_KEY:
            logger.warning("CurrencyBeacon is not configured; set CURRENCY_BEACON_URL and CURRENCY_BEACON_API_KEY")
            return None

        # Format: https://api.currencybeacon.com/v1/latest?api_key=KEY&base=USD&symbols=TRY
        url = f"{settings.CURRENCY_BEACON_URL}/latest"
        params = {
            "api_key": settings.CURRENCY_BEACON_API_KEY,
            "base": currency,
            "symbols": "TRY",
        }

        try:
            response = requests.get(url, params=params, timeout=10)
            response.raise_for_status()
            data = response.json()

            # Response format: {"response": {"rates": {"TRY": 34.5}}}
            rate = Decimal(str(data["response"]["rates"]["TRY"]))
        except requests.exceptions.Timeout:
            logger.warning("Timeout calling CurrencyBeacon for %s/TRY", currency)
            return None
        except requests.exceptions.RequestException as e:
            logger.warning("HTTP error from CurrencyBeacon: %s", e)
            return None
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.warning("Invalid response from CurrencyBeacon: %s", e)
            return None

        if rate <= 0:
            logger.warning("CurrencyBeacon returned a non-positive rate for %s: %s", currency, rate)
            return None
        return rate
