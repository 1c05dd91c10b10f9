"""Exception types raised by the billing engine.

All errors derive from ``ValueError`` so callers that already guard user input
with ``except ValueError`` keep working.
"""


class BillingError(ValueError):
    """Base class for invalid billing input."""


class InvalidDateError(BillingError):
    """A required date is missing or cannot be parsed."""

    def __init__(self, value: object, field: str = "date") -> None:
        self.value = value
        self.field = field
        super().__init__(f"Invalid {field}: {value!r} (expected YYYY-MM-DD)")


class UnsupportedBillingCycleError(BillingError):
    """The billing cycle tag is not one of the known cycles."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(
            f"Unsupported billing cycle: {value!r}; "
            "use monthly, quarterly, biannually, yearly or one_time"
        )


class InvalidChargeError(BillingError):
    """A charge record has an unknown status or an invalid amount."""
