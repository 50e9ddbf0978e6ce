from abc import ABC, abstractmethod
from decimal import Decimal


class BaseExchangeRateProvider(ABC):
    @abstractmethod
    def get_try_rate(self, currency: str) -> Decimal | None:
        """TRY value of one unit of ``currency``, or None when unavailable."""
        pass
