"""Custom Dishka FastAPI integration using Scope.UOW."""

from typing import Awaitable, Callable

from dishka import AsyncContainer
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from starlette.websockets import WebSocket

from roomshare.util.di.scope import Scope as RoomshareScope

RollbackHook = Callable[[AsyncContainer], Awaitable[None]]


class ContainerMiddleware:
    """ASGI middleware that opens a Scope.UOW container for each request.

    A custom version of dishka.integrations.starlette.ContainerMiddleware
    that uses Scope.UOW instead of dishka.Scope.REQUEST.

    Exception handlers turn domain errors into responses before they reach
    this middleware, so the UOW would otherwise commit. When a rollback hook
    is given it runs for every response with status >= 400, before the
    scope closes.
    """

    def __init__(self, app: ASGIApp, rollback: RollbackHook | None = None) -> None:
        self.app = app
        self.rollback = rollback

    async def __call__(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        if scope["type"] not in ("http", "websocket"):
            return await self.app(scope, receive, send)

        request: Request | WebSocket
        context: dict[type[Request | WebSocket], Request | WebSocket]

        if scope["type"] == "http":
            request = Request(scope, receive=receive, send=send)
            context = {Request: request}
        else:
            request = WebSocket(scope, receive, send)
            context = {WebSocket: request}

        status_code = 0

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        async with request.app.state.dishka_container(
            context,
            scope=RoomshareScope.UOW,
        ) as request_container:
            request.state.dishka_container = request_container
            try:
                await self.app(scope, receive, send_wrapper)
            except Exception:
                if self.rollback is not None:
                    await self.rollback(request_container)
                raise
            if self.rollback is not None and status_code >= 400:
                await self.rollback(request_container)


def setup_dishka(container: AsyncContainer, app, rollback: RollbackHook | None = None) -> None:
    """Setup Dishka DI with custom Scope.UOW middleware.

    Args:
        container: The async DI container
        app: FastAPI or Starlette application
        rollback: Called with the request container when a request fails
    """
    app.add_middleware(ContainerMiddleware, rollback=rollback)
    app.state.dishka_container = container
