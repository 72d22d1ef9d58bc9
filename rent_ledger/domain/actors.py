"""
Actors -- who is calling the ledger.

The authentication layer is external; it hands the ledger an already
authenticated Actor.  Authorization checks (owner owns the lease, tenant
owns the record) are made against these values by RentLedgerService.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class ActorRole(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"


@dataclass(frozen=True)
class Actor:
    """An authenticated caller: a property owner or a tenant."""

    actor_id: UUID
    role: ActorRole

    @classmethod
    def owner(cls, actor_id: UUID) -> "Actor":
        return cls(actor_id=actor_id, role=ActorRole.OWNER)

    @classmethod
    def tenant(cls, actor_id: UUID) -> "Actor":
        return cls(actor_id=actor_id, role=ActorRole.TENANT)

    @property
    def is_owner(self) -> bool:
        return self.role == ActorRole.OWNER

    @property
    def is_tenant(self) -> bool:
        return self.role == ActorRole.TENANT
