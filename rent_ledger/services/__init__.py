"""Services for the rent ledger (write side)."""

from rent_ledger.services.auditor_service import AuditTrace, AuditTraceEntry, LedgerAuditService
from rent_ledger.services.ledger_service import (
    RentLedgerService,
    ScheduleGenerated,
    ScheduleListener,
)
from rent_ledger.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "AuditTrace",
    "AuditTraceEntry",
    "LedgerAuditService",
    "RentLedgerService",
    "ScheduleGenerated",
    "ScheduleListener",
    "SequenceCounter",
    "SequenceService",
]
