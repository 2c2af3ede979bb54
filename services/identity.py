from dataclasses import dataclass, field
from typing import FrozenSet, Optional

ROLE_RENTER = "RENTER"
ROLE_AGENCY_OWNER = "AGENCY_OWNER"
ROLE_ADMIN = "ADMIN"

ALL_ROLES = (ROLE_RENTER, ROLE_AGENCY_OWNER, ROLE_ADMIN)


@dataclass(frozen=True)
class Caller:
    """Identity of whoever issues a service call, resolved once per request."""

    user_id: int
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user) -> Optional["Caller"]:
        if user is None:
            return None
        return cls(user_id=user.id, roles=frozenset(r.name for r in user.roles))

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    @property
    def is_agency_owner(self) -> bool:
        return ROLE_AGENCY_OWNER in self.roles
