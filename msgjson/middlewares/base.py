"""Base middleware architecture: before/after hooks bound to chosen endpoints."""

from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from msgjson.core.logger import LogIcon, logger

CallNext = Callable[[Request], Awaitable[Response]]


class BaseMiddleware:
    """Base class for middlewares; subclasses override before, after, or both.

    A middleware with no ``endpoints`` applies to every path.
    """

    endpoints: frozenset[str] = frozenset()

    def __init__(self, endpoints: frozenset[str] | list[str] | None = None) -> None:
        if endpoints is not None:
            self.endpoints = frozenset(endpoints)

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if not (cls.implements("before") or cls.implements("after")):
            raise TypeError(f"{cls.__name__} must implement at least one of before/after")

    @classmethod
    def implements(cls, hook: str) -> bool:
        return getattr(cls, hook) is not getattr(BaseMiddleware, hook)

    def applies_to(self, path: str) -> bool:
        return not self.endpoints or path in self.endpoints

    def before(self, request: Request) -> Request | Response:
        """Called before request handling. Return Request to continue or Response to short-circuit."""
        return request

    def after(self, response: Response) -> Response:
        """Called after request handling. Return modified Response."""
        return response

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if not self.applies_to(request.url.path):
            return await call_next(request)

        if self.implements("before"):
            outcome = self.before(request)
            if isinstance(outcome, Response):
                return outcome

        response = await call_next(request)
        return self.after(response) if self.implements("after") else response


class MiddlewareHandler:
    """Manages middleware registration for a FastAPI application."""

    def __init__(self, app: FastAPI) -> None:
        self._app = app
        self._middlewares: list[BaseMiddleware] = []

    @property
    def middlewares(self) -> list[BaseMiddleware]:
        return self._middlewares

    def register(self, middleware_cls: type[BaseMiddleware], **kwargs) -> "MiddlewareHandler":
        """Instantiate and register a middleware. Returns self for chaining."""
        middleware = middleware_cls(**kwargs)
        self._middlewares.append(middleware)
        self._app.add_middleware(BaseHTTPMiddleware, dispatch=middleware.dispatch)
        logger.info(
            f"Registered middleware: {middleware_cls.__name__}",
            icon=LogIcon.ADAPTER,
            endpoints=sorted(middleware.endpoints) or "*",
        )
        return self
