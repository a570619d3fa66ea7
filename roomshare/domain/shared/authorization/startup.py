"""Startup validation for handler authorization declarations."""

import logging

from roomshare.domain.shared.authorization.gate import Gate
from roomshare.domain.shared.command import CommandHandler
from roomshare.domain.shared.error import ConfigurationError
from roomshare.domain.shared.query import QueryHandler

logger = logging.getLogger(__name__)


def _all_subclasses(cls: type) -> list[type]:
    found: list[type] = []
    for sub in cls.__subclasses__():
        found.append(sub)
        found.extend(_all_subclasses(sub))
    return found


def validate_all_handlers() -> None:
    """Scan all CommandHandler and QueryHandler subclasses for an ``__auth__`` gate.

    Raises ConfigurationError listing every handler that lacks one.
    """
    violations: list[str] = []

    for handler_cls in [*_all_subclasses(CommandHandler), *_all_subclasses(QueryHandler)]:
        if getattr(handler_cls, "__abstractmethods__", None):
            continue
        if not isinstance(getattr(handler_cls, "__auth__", None), Gate):
            violations.append(f"Handler {handler_cls.__name__} has no __auth__ declaration")

    if violations:
        raise ConfigurationError(
            f"Authorization validation failed for {len(violations)} handler(s):\n"
            + "\n".join(f"  - {v}" for v in violations)
        )

    logger.info("Authorization startup validation passed for all handlers")
