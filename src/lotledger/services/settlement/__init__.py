"""
Settlement package - exit settlement against entry lots.

Exports:
    - ExitSettlementService: one exit as one unit of work, with events
    - IExitSettlementService: Protocol interface
    - ExitRequest, SettlementResult, ExitStrategyKind: request/result types
    - ExitContext, ExitPositionContext: settlement context
    - ExitContextFactory, ExitOperationStrategyResolver: building blocks
"""

from lotledger.services.settlement.context_factory import ExitContextFactory
from lotledger.services.settlement.exit_operations import ExitOperationFactory
from lotledger.services.settlement.exit_records import ExitRecordService
from lotledger.services.settlement.interface import IExitSettlementService
from lotledger.services.settlement.models import (
    ExitContext,
    ExitPositionContext,
    ExitRequest,
    ExitStrategyKind,
    SettlementResult,
    StrategyOutcome,
)
from lotledger.services.settlement.service import ExitSettlementService, create_settlement_service
from lotledger.services.settlement.strategies import (
    ExitOperationStrategyResolver,
    ExitSettlementStrategy,
    PartialExitStrategy,
    TotalExitStrategy,
)

__all__ = [
    "ExitContext",
    "ExitContextFactory",
    "ExitOperationFactory",
    "ExitOperationStrategyResolver",
    "ExitPositionContext",
    "ExitRecordService",
    "ExitRequest",
    "ExitSettlementService",
    "ExitSettlementStrategy",
    "ExitStrategyKind",
    "IExitSettlementService",
    "PartialExitStrategy",
    "SettlementResult",
    "StrategyOutcome",
    "TotalExitStrategy",
    "create_settlement_service",
]
