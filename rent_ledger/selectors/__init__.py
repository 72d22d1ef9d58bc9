"""Selectors for the rent ledger (read side)."""

from rent_ledger.selectors.ledger_selector import LedgerSelector

__all__ = ["LedgerSelector"]
