"""Base Dishka provider for Roomshare."""

import dishka

from roomshare.util.di.scope import Scope


class Provider(dishka.Provider):
    """Dishka provider defaulting to the UOW scope.

    Most bindings (repositories, services, handlers) live for one unit of
    work; APP-scoped factories say so explicitly.
    """

    scope = Scope.UOW
