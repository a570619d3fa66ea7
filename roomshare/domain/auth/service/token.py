"""Token service for bearer JWT validation."""

import logging
from typing import Any
from uuid import UUID

import jwt

from roomshare.config import JwtConfig
from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.auth.model.value import UserId
from roomshare.domain.shared.service import Service

logger = logging.getLogger(__name__)


class TokenService(Service):
    """Validates access tokens issued by the marketplace's auth service.

    Tokens are HS256 JWTs whose ``sub`` is the user id and whose ``roles``
    claim lists role names (``USER``, ``LANDLORD``, ``ADMIN``). Issuing
    tokens happens elsewhere.
    """

    _config: JwtConfig

    def validate_access_token(self, token: str) -> dict[str, Any]:
        """Validate and decode a JWT access token.

        Raises:
            jwt.InvalidTokenError: If token is invalid or expired
        """
        return jwt.decode(
            token,
            self._config.secret,
            algorithms=[self._config.algorithm],
            audience=self._config.audience,
        )

    def principal_from_claims(self, payload: dict[str, Any]) -> Principal:
        """Build a Principal from decoded claims.

        Unknown role names are ignored; every authenticated user is at least USER.

        Raises:
            jwt.InvalidTokenError: If ``sub`` is missing or not a UUID
        """
        try:
            user_id = UserId(UUID(str(payload["sub"])))
        except (KeyError, ValueError) as e:
            raise jwt.InvalidTokenError(f"Invalid subject claim: {e}") from e

        roles = {Role.USER}
        for name in payload.get("roles") or []:
            role = Role.__members__.get(str(name).upper())
            if role is None:
                logger.debug("Ignoring unknown role claim %r for user %s", name, user_id)
                continue
            roles.add(role)
        return Principal(user_id=user_id, roles=frozenset(roles))
