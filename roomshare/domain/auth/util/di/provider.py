"""DI provider for auth domain."""

import logging

import jwt
from dishka import from_context, provide
from starlette.requests import Request

from roomshare.config import Config
from roomshare.domain.auth.model.identity import Anonymous, Identity
from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.service.token import TokenService
from roomshare.domain.shared.error import AuthorizationError
from roomshare.util.di.base import Provider
from roomshare.util.di.scope import Scope

logger = logging.getLogger(__name__)


class AuthProvider(Provider):
    """DI provider resolving the caller's identity from the request."""

    request = from_context(provides=Request, scope=Scope.UOW)

    @provide(scope=Scope.APP)
    def get_token_service(self, config: Config) -> TokenService:
        """Provide TokenService."""
        return TokenService(_config=config.auth.jwt)

    @provide(scope=Scope.UOW)
    def get_identity(self, request: Request, token_service: TokenService) -> Identity:
        """Resolve Identity from the bearer JWT.

        Returns Anonymous for unauthenticated requests, Principal for authenticated.
        """
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return Anonymous()

        token = auth_header[7:]  # Remove "Bearer " prefix

        try:
            payload = token_service.validate_access_token(token)
            principal = token_service.principal_from_claims(payload)
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected bearer token: %s", e)
            return Anonymous()

        logger.debug(
            "Identity resolved: user_id=%s, roles=%s",
            principal.user_id,
            principal.roles,
        )
        return principal

    @provide(scope=Scope.UOW)
    def get_principal(self, identity: Identity) -> Principal:
        """Extract Principal from Identity. Raises if not authenticated."""
        if isinstance(identity, Principal):
            return identity
        raise AuthorizationError("Authentication required", code="missing_token")
