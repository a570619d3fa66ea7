"""Custom Dishka scopes for Roomshare."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """Roomshare dependency injection scopes.

    Hierarchy: APP -> UOW

    - APP: Application lifetime (singletons)
    - UOW: Unit of Work (HTTP requests, event deliveries and schedule runs)
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
