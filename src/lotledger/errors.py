"""Typed failures raised by the settlement core.

Every error surfaced to the orchestrator derives from LedgerError so callers
can catch the whole family, or a single kind:

- NotFoundError: a position, group, operation or lot does not exist
- InvalidStateError: quantity arithmetic would break a non-negativity
  invariant, a CLOSED position or a settled operation was targeted, or a
  status transition is illegal
- InsufficientInventoryError: exit quantity exceeds the available lot quantity
- ZeroCostBasisError: percentage requested against a zero-value basis

None of these are transient: the core never retries them.
"""

from typing import Any


class LedgerError(Exception):
    """Base class for all settlement-domain failures."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context = context


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""


class PositionNotFoundError(NotFoundError):
    pass


class GroupNotFoundError(NotFoundError):
    """Operation was never grouped - a data-integrity violation."""


class OperationNotFoundError(NotFoundError):
    pass


class EntryLotNotFoundError(NotFoundError):
    pass


class InvalidStateError(LedgerError):
    """Mutation would violate an invariant of the aggregate."""


class PositionClosedError(InvalidStateError):
    """Position is CLOSED and accepts no further exits."""


class OperationNotOpenError(InvalidStateError):
    """Exit requested against an operation that is no longer ACTIVE or PARTIALLY_CLOSED."""



class InvalidStatusTransitionError(InvalidStateError):
    """Operation status change not allowed by the transition table."""


class StaleVersionError(InvalidStateError):
    """Position changed since the unit of work loaded it."""


class InsufficientInventoryError(LedgerError):
    """Requested exit quantity exceeds the sum of available lot quantities."""


class ZeroCostBasisError(LedgerError, ArithmeticError):
    """Profit percentage requested against a zero entry value."""
