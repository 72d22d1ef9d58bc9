"""Database layer - engine, base classes, money helpers, and immutability."""

from rent_ledger.db.base import UUID, Base, TrackedBase, UUIDString
from rent_ledger.db.engine import create_tables, get_engine, get_session
from rent_ledger.db.types import round_money, to_minor_units

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "round_money",
    "to_minor_units",
]
