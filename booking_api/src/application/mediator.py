"""
Mediator: dispatches a request to its handler through the pipeline behaviors.

Handlers and validators are registered per request type in a HandlerRegistry
built once at startup. A Mediator is created per HTTP request around that
request's database session and the shared cache.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Type

from sqlalchemy.ext.asyncio import AsyncSession

from src.application.cache import CacheService
from src.application.requests import Request
from src.application.validation import Validator
from src.core.context import RequestContext
from src.core.settings import AppSettings, get_app_settings
from src.db.session import bind_actor
from src.services.base import BaseService

logger = logging.getLogger(__name__)

NextHandler = Callable[[], Awaitable[Any]]
Behavior = Callable[[Request, RequestContext, NextHandler], Awaitable[Any]]


class RequestHandler(BaseService):
    """Base class for command/query handlers. Subclasses implement `handle`."""

    async def handle(self, request: Any) -> Any:
        raise NotImplementedError


class HandlerRegistry:
    """Maps request types to their handler class and validators."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[Request], Type[RequestHandler]] = {}
        self._validators: Dict[Type[Request], List[Validator]] = {}

    def register(
        self,
        request_type: Type[Request],
        handler_type: Type[RequestHandler],
        validators: Iterable[Validator] = (),
    ) -> None:
        if request_type in self._handlers:
            raise ValueError(f"Handler already registered for {request_type.__name__}")
        self._handlers[request_type] = handler_type
        self._validators.setdefault(request_type, []).extend(validators)

    def register_feature(
        self,
        handlers: Mapping[Type[Request], Type[RequestHandler]],
        validators: Optional[Mapping[Type[Request], Sequence[Validator]]] = None,
    ) -> None:
        """Register a feature module's HANDLERS and VALIDATORS tables."""
        validators = validators or {}
        for request_type, handler_type in handlers.items():
            self.register(request_type, handler_type, validators.get(request_type, ()))

    def handler_for(self, request_type: Type[Request]) -> Type[RequestHandler]:
        try:
            return self._handlers[request_type]
        except KeyError:
            raise LookupError(f"No handler registered for {request_type.__name__}") from None

    def validators_for(self, request_type: Type[Request]) -> List[Validator]:
        return list(self._validators.get(request_type, ()))

    def __contains__(self, request_type: object) -> bool:
        return request_type in self._handlers


class Mediator:
    """
    Sends requests through the ordered behaviors to their handler.

    Behaviors are applied outermost first: behaviors[0] sees the request before
    every other behavior and sees the result last.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: CacheService,
        registry: HandlerRegistry,
        behaviors: Sequence[Behavior],
        settings: Optional[AppSettings] = None,
    ) -> None:
        self.session = session
        self.cache = cache
        self.registry = registry
        self.behaviors = list(behaviors)
        self.settings = settings or get_app_settings()

    # PUBLIC_INTERFACE
    async def send(self, request: Request, ctx: RequestContext) -> Any:
        """Run `request` through the pipeline and return the handler's Result."""
        handler_type = self.registry.handler_for(type(request))
        bind_actor(self.session, ctx.actor)

        async def invoke_handler() -> Any:
            handler = handler_type(self.session, self.settings)
            return await handler.handle(request)

        call: NextHandler = invoke_handler
        for behavior in reversed(self.behaviors):
            call = partial(behavior, request, ctx, call)
        return await call()
