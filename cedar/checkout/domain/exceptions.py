"""Exceptions specific to the checkout domain."""

from cedar.core.exceptions import ValidationError

from .entities import CheckoutStep


class CheckoutValidationError(ValidationError):
    """A placement precondition failed; `step` tells the UI which section to reopen."""

    def __init__(self, message: str, step: CheckoutStep):
        super().__init__(message, field=step.value)
        self.step = step


class NoPickupLocationsError(CheckoutValidationError):
    def __init__(self):
        super().__init__("No pickup locations available", step=CheckoutStep.PICKUP_LOCATION)
