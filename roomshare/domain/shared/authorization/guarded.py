"""Wraps handler run() methods with their ``__auth__`` gate."""

import logging
from collections.abc import Callable, Coroutine
from functools import wraps
from typing import Any

from roomshare.domain.shared.authorization.gate import AtLeast, Gate, Public
from roomshare.domain.shared.error import AuthorizationError, ConfigurationError

logger = logging.getLogger("roomshare.authz")

# Unbound async handler method: (self, cmd) -> Coroutine -> Result
HandlerMethod = Callable[..., Coroutine[Any, Any, Any]]


def guard_run(original_run: HandlerMethod) -> HandlerMethod:
    """Evaluate the handler's ``__auth__`` gate before delegating to run()."""

    @wraps(original_run)
    async def auth_wrapped_run(self: Any, cmd: Any) -> Any:
        from roomshare.domain.auth.model.principal import Principal

        auth_gate = getattr(type(self), "__auth__", None)
        if not isinstance(auth_gate, Gate):
            raise ConfigurationError(f"Handler {type(self).__name__} has no __auth__ declaration")

        if isinstance(auth_gate, Public):
            return await original_run(self, cmd)

        if isinstance(auth_gate, AtLeast):
            principal = getattr(self, "principal", None)
            if not isinstance(principal, Principal):
                raise AuthorizationError("Authentication required", code="missing_token")

            logger.debug(
                "Auth check: handler=%s, required=%s, principal_roles=%s, user_id=%s",
                type(self).__name__,
                auth_gate.role,
                principal.roles,
                principal.user_id,
            )
            if not principal.has_role(auth_gate.role):
                raise AuthorizationError(
                    f"Access denied: insufficient role for {type(self).__name__}",
                    code="access_denied",
                )
            return await original_run(self, cmd)

        raise ConfigurationError(
            f"Handler {type(self).__name__} has unhandled __auth__ type: {type(auth_gate).__name__}"
        )

    return auth_wrapped_run
