"""Quote lifecycle: which status may follow which.

pending -> reviewing -> approved -> converted
                     -> rejected
"""

from typing import Dict, FrozenSet

from cedar.core.exceptions import InvalidTransitionError

from .entities import QuoteStatus

ALLOWED_TRANSITIONS: Dict[QuoteStatus, FrozenSet[QuoteStatus]] = {
    QuoteStatus.PENDING: frozenset({QuoteStatus.REVIEWING}),
    QuoteStatus.REVIEWING: frozenset({QuoteStatus.APPROVED, QuoteStatus.REJECTED}),
    QuoteStatus.APPROVED: frozenset({QuoteStatus.CONVERTED}),
    QuoteStatus.REJECTED: frozenset(),
    QuoteStatus.CONVERTED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[QuoteStatus] = frozenset({QuoteStatus.REJECTED, QuoteStatus.CONVERTED})

# Pricing is only editable before a decision has been taken
PRICING_EDITABLE_STATUSES: FrozenSet[QuoteStatus] = frozenset({QuoteStatus.PENDING, QuoteStatus.REVIEWING})


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: QuoteStatus, target: QuoteStatus) -> None:
    """Fails closed for anything not listed in ALLOWED_TRANSITIONS."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current=current.value, target=target.value)


def is_terminal(status: QuoteStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_edit_pricing(status: QuoteStatus) -> bool:
    return status in PRICING_EDITABLE_STATUSES
