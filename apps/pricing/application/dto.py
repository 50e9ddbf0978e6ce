"""
Data Transfer Objects for the application layer.
DTOs decouple internal domain models from external API contracts.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from apps.pricing.domain.models import QuoteResult


@dataclass
class QuoteOutcomeDTO:
    """A computed quote plus what an order needs to reference it."""
    result: QuoteResult
    quantity: int
    product_id: Optional[str] = None
    product_details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderContactDTO:
    """Customer and delivery fields captured at confirmation."""
    customer_name: str
    customer_email: str
    delivery_address: str
    delivery_city: str
    delivery_phone: str
    customer_phone: str = ""
    company_name: str = ""
    delivery_district: str = ""
    notes: str = ""


@dataclass
class RateRefreshResultDTO:
    """Result DTO for the exchange rate refresh task."""
    success: bool
    rates_updated: Dict[str, Decimal]
    errors: List[str]
    provider_used: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "rates_updated": {code: str(rate) for code, rate in self.rates_updated.items()},
            "errors": self.errors,
            "provider_used": self.provider_used,
        }
