"""Event-based lifespan: startup resources shared read-only with every request."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from fastapi import FastAPI, Request

from msgjson.core.logger import LogIcon, logger
from msgjson.core.settings import settings as st

# Key under which the lifespan state reaches ``request.state``
RESOURCES = "resources"

T = TypeVar("T")


class State:
    """Application state container with attribute access, filled once at startup."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        object.__setattr__(self, "_data", {})

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"State has no attribute '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data.keys())

    def __repr__(self) -> str:
        return f"State({sorted(self._data)})"

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def clear(self) -> None:
        self._data.clear()


class BaseEvent(ABC, Generic[T]):
    """A startup resource: created on startup, stored on ``State`` under ``name``."""

    name: str
    state: State

    @abstractmethod
    async def startup(self) -> T:
        ...

    async def shutdown(self, instance: T) -> None:  # noqa: B027
        """Optional cleanup. Override if cleanup is needed."""

    @classmethod
    def has_shutdown(cls) -> bool:
        return cls.shutdown is not BaseEvent.shutdown


class Lifespan:
    """Runs registered events in order on startup and in reverse on shutdown.

    An instance is passed to ``FastAPI(lifespan=...)``. The resulting ``State``
    is exposed to handlers as ``request.state.resources``.
    """

    def __init__(self) -> None:
        self._event_classes: list[type[BaseEvent[Any]]] = []
        self._events: list[BaseEvent[Any]] = []
        self._state: State | None = None

    def register(self, event_cls: type[BaseEvent[Any]]) -> "Lifespan":
        """Register an event class. Returns self for chaining."""
        self._event_classes.append(event_cls)
        return self

    @property
    def state(self) -> State | None:
        return self._state

    @property
    def events(self) -> list[BaseEvent[Any]]:
        return self._events

    async def startup(self) -> State:
        logger.info("Starting application lifespan", icon=LogIcon.START, version=st.API_VERSION)
        self._state = State()

        for event_cls in self._event_classes:
            event = event_cls()
            event.state = self._state

            logger.info(f"Starting event: {event.name}", icon=LogIcon.PROCESSING)
            setattr(self._state, event.name, await event.startup())
            self._events.append(event)
            logger.info(f"Event ready: {event.name}", icon=LogIcon.SUCCESS)

        logger.info("App state ready", icon=LogIcon.COMPLETE, events=list(self._state))
        return self._state

    async def shutdown(self) -> None:
        if not self._state:
            logger.info("No state to cleanup", icon=LogIcon.WARNING)
            return

        for event in reversed(self._events):
            if event.has_shutdown() and event.name in self._state:
                logger.info(f"Shutting down: {event.name}", icon=LogIcon.PROCESSING)
                await event.shutdown(getattr(self._state, event.name))

        self._events.clear()
        self._state.clear()
        logger.info("Cleanup complete", icon=LogIcon.COMPLETE)

    @asynccontextmanager
    async def __call__(self, app: FastAPI) -> AsyncIterator[dict[str, State]]:
        state = await self.startup()
        try:
            yield {RESOURCES: state}
        finally:
            await self.shutdown()


def create_lifespan() -> Lifespan:
    """Create lifespan manager for event registration."""
    return Lifespan()


def request_resources(request: Request) -> State | None:
    """Lifespan state for this request, None when the app runs without a lifespan."""
    return getattr(request.state, RESOURCES, None)
