"""
BaseService -- abstract base for ledger services that write.

Responsibility:
    Provides the common constructor and session-handling contract for
    the flush-only services (SequenceService, LedgerAuditService).  They
    use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Ledger > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: these services flush within the caller's
    transaction and never commit or roll back themselves.  The caller
    (RentLedgerService or a test harness) owns commit/rollback.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from rent_ledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only (read) methods -- those belong
          in ``rent_ledger/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
