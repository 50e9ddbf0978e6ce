"""
Pricing error taxonomy.
Every failure is a caller-visible validation result with a stable code.
"""


class PricingError(Exception):
    """Base class for quote and formula failures."""

    code = "pricing_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class MissingReferenceData(PricingError):
    """A required exchange rate, formula or cutting fee is not loaded."""

    code = "missing_reference_data"

    def __init__(self, kind: str, key: str | None = None):
        self.kind = kind
        self.key = key
        if key:
            message = f"Reference data not loaded: {kind} '{key}'"
        else:
            message = f"Reference data not loaded: {kind}"
        super().__init__(message)

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["kind"] = self.kind
        if self.key:
            data["key"] = self.key
        return data


class InvalidInput(PricingError):
    """A user supplied value is non-positive, non-numeric or out of bounds."""

    code = "invalid_input"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["field"] = self.field
        return data


class FormulaEvaluationError(PricingError):
    """Malformed expression, unknown identifier or failed evaluation."""

    code = "formula_error"

    def __init__(self, message: str, position: int | None = None):
        self.position = position
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)

    def as_dict(self) -> dict:
        data = super().as_dict()
        if self.position is not None:
            data["position"] = self.position
        return data


class InvalidTransition(PricingError):
    """Order status change not allowed from the current status."""

    code = "invalid_transition"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from '{current}' to '{requested}'")
