"""Realized profit/loss arithmetic."""

from decimal import ROUND_HALF_UP, Decimal

from lotledger.errors import ZeroCostBasisError
from lotledger.services.ledger.models import TransactionType


class ProfitCalculationService:
    """
    Sign-aware realized P&L.

    Long positions (BUY) gain when the exit price is above the entry price,
    short positions (SELL) gain when it is below.

    Example:
        >>> calc = ProfitCalculationService()
        >>> calc.calculate_profit_loss(Decimal("10"), Decimal("12"), 5, TransactionType.BUY)
        Decimal('10')
        >>> calc.calculate_profit_loss_percentage(Decimal("150"), Decimal("1000"))
        Decimal('0.15')
    """

    def __init__(self, percentage_places: int = 2) -> None:
        self._quantum = Decimal(1).scaleb(-percentage_places)

    def calculate_profit_loss(
        self,
        entry_unit_price: Decimal,
        exit_unit_price: Decimal,
        quantity: int,
        direction: TransactionType = TransactionType.BUY,
    ) -> Decimal:
        if direction == TransactionType.SELL:
            return (entry_unit_price - exit_unit_price) * quantity
        return (exit_unit_price - entry_unit_price) * quantity

    def calculate_profit_loss_percentage(self, profit_loss: Decimal, entry_total_value: Decimal) -> Decimal:
        """
        Profit as a ratio of the entry value, rounded half-up.

        Raises:
            ZeroCostBasisError: entry_total_value is zero
        """
        if entry_total_value == 0:
            raise ZeroCostBasisError(
                "Cannot compute profit percentage against a zero entry value",
                profit_loss=str(profit_loss),
            )
        return (profit_loss / entry_total_value).quantize(self._quantum, rounding=ROUND_HALF_UP)
