"""Principal: authenticated identity with roles, resolved per-request."""

from dataclasses import dataclass

from roomshare.domain.auth.model.identity import Identity
from roomshare.domain.auth.model.role import Role
from roomshare.domain.auth.model.value import UserId


@dataclass(frozen=True)
class Principal(Identity):
    """The authenticated identity of the current requester.

    Resolved per-request from the bearer token. Immutable after creation.
    """

    user_id: UserId
    roles: frozenset[Role]

    def has_role(self, role: Role) -> bool:
        """Check if any assigned role >= the given role (hierarchy comparison)."""
        return any(r >= role for r in self.roles)
