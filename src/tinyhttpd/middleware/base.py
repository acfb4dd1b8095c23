"""
=============================================================================
MIDDLEWARE INTERFACE
=============================================================================

Middleware wraps the router so cross-cutting work (today: access logging)
stays out of the handlers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Request ──►  [ Middleware 1 ] ──► [ Middleware 2 ] ──► router      │
    │                      │                    │                  │       │
    │   Response ◄─────────┴────────────────────┴──────────────────┘       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each middleware receives the request and a `next` callable. It may run
code before and after next(request), or return its own response without
calling next at all.

=============================================================================
"""

from abc import ABC, abstractmethod
import functools
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware in the chain, or the final handler
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                start = time.time()
                response = next(request)      # Continue the chain
                record(time.time() - start)
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request.
            next: The rest of the chain. Call it to continue.

        Returns:
            The response, from next() or produced here.
        """

    @property
    def name(self) -> str:
        return type(self).__name__


def _invoke(middleware: Middleware, next_handler: NextHandler, request: HTTPRequest) -> HTTPResponse:
    return middleware(request, next_handler)


class MiddlewarePipeline:
    """
    Ordered middleware wrapped around a final handler.

    The first middleware added is the outermost layer:

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())     # Sees every request first
        handler = pipeline.wrap(router.handle)

        handler(request)  →  LoggingMiddleware(request, router.handle)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Register `middleware` inside everything added before it. Chainable."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around `handler`.

        With [A, B] registered the result behaves like A(B(handler)).
        An empty pipeline hands back `handler` itself.
        """
        chain = handler
        for middleware in reversed(self._middleware):
            chain = functools.partial(_invoke, middleware, chain)
        return chain

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
