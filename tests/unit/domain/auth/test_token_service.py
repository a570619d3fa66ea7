"""Unit tests for bearer token validation and the auth DI provider."""

import time
from unittest.mock import MagicMock
from uuid import uuid4

import jwt
import pytest

from roomshare.config import JwtConfig
from roomshare.domain.auth.model.identity import Anonymous
from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.auth.service.token import TokenService
from roomshare.domain.auth.util.di.provider import AuthProvider
from roomshare.domain.shared.error import AuthorizationError

SECRET = "test-secret-key-for-signing-min-32"


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(_config=JwtConfig(secret=SECRET))


def make_token(secret: str = SECRET, **claims) -> str:  # noqa: ANN003
    payload = {"sub": str(uuid4()), "aud": "authenticated", "exp": int(time.time()) + 300}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def request_with(header: str | None) -> MagicMock:
    request = MagicMock()
    request.headers = {"Authorization": header} if header is not None else {}
    return request


class TestValidateAccessToken:
    def test_valid_token_decodes(self, token_service: TokenService):
        token = make_token(roles=["LANDLORD"])
        payload = token_service.validate_access_token(token)
        assert payload["roles"] == ["LANDLORD"]

    def test_wrong_secret_is_rejected(self, token_service: TokenService):
        with pytest.raises(jwt.InvalidSignatureError):
            token = make_token(secret="another-secret-of-32-characters!")
            token_service.validate_access_token(token)

    def test_expired_token_is_rejected(self, token_service: TokenService):
        with pytest.raises(jwt.ExpiredSignatureError):
            token_service.validate_access_token(make_token(exp=int(time.time()) - 10))

    def test_wrong_audience_is_rejected(self, token_service: TokenService):
        with pytest.raises(jwt.InvalidAudienceError):
            token_service.validate_access_token(make_token(aud="somebody-else"))


class TestPrincipalFromClaims:
    def test_every_user_has_user_role(self, token_service: TokenService):
        user_id = uuid4()
        principal = token_service.principal_from_claims({"sub": str(user_id)})
        assert principal.user_id.root == user_id
        assert principal.roles == frozenset({Role.USER})

    def test_role_names_are_case_insensitive_and_unknown_ignored(
        self, token_service: TokenService
    ):
        principal = token_service.principal_from_claims(
            {"sub": str(uuid4()), "roles": ["landlord", "superhero"]}
        )
        assert principal.roles == frozenset({Role.USER, Role.LANDLORD})
        assert principal.has_role(Role.LANDLORD)
        assert not principal.has_role(Role.ADMIN)

    @pytest.mark.parametrize("claims", [{}, {"sub": "not-a-uuid"}])
    def test_bad_subject_is_an_invalid_token(self, token_service: TokenService, claims: dict):
        with pytest.raises(jwt.InvalidTokenError):
            token_service.principal_from_claims(claims)


class TestAuthProvider:
    def test_bearer_token_resolves_principal(self, token_service: TokenService):
        provider = AuthProvider()
        identity = provider.get_identity(
            request_with(f"Bearer {make_token(roles=['ADMIN'])}"), token_service
        )
        assert isinstance(identity, Principal)
        assert identity.has_role(Role.LANDLORD)

    @pytest.mark.parametrize("header", [None, "Basic abc", "Bearer garbage"])
    def test_missing_or_bad_token_is_anonymous(self, token_service: TokenService, header):
        identity = AuthProvider().get_identity(request_with(header), token_service)
        assert isinstance(identity, Anonymous)

    def test_anonymous_principal_requires_authentication(self):
        with pytest.raises(AuthorizationError) as exc_info:
            AuthProvider().get_principal(Anonymous())
        assert exc_info.value.code == "missing_token"
