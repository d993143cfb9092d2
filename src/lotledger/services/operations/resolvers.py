"""Pure classification helpers for operations."""

from datetime import date

from lotledger.services.ledger.models import TradeType, TransactionType


class TradeTypeResolver:
    """Classify a trade by holding period."""

    def determine_trade_type(self, entry_date: date, exit_date: date) -> TradeType:
        """DAY when entry and exit fall on the same date, otherwise SWING."""
        return TradeType.DAY if entry_date == exit_date else TradeType.SWING


class TransactionTypeResolver:
    def resolve_inverse_transaction_type(self, transaction_type: TransactionType) -> TransactionType:
        """Direction of the operation that closes exposure opened by transaction_type."""
        if transaction_type == TransactionType.BUY:
            return TransactionType.SELL
        return TransactionType.BUY
