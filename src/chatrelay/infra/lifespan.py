"""Dependency injection for the application lifespan.

Route handlers get ``Depends()`` for free; the lifespan does not.
``inject`` closes that gap: it hands the lifespan's signature to
FastAPI's own resolver, so each infrastructure builder (an async
generator such as ``build_relay``) is set up once, shared by everything
that depends on it, and torn down in reverse order at shutdown.

Adapted from https://github.com/fastapi/fastapi/discussions/11742
"""

from contextlib import AbstractAsyncContextManager, AsyncExitStack, asynccontextmanager
from functools import partial
from typing import Any, AsyncIterator, Callable

from fastapi import FastAPI, Request
from fastapi.dependencies.utils import get_dependant, solve_dependencies

LifespanFn = Callable[..., AsyncIterator[None]]


def get_app(request: Request) -> FastAPI:
    """Builder dependency giving access to the application being started."""
    return request.app


def _startup_request(app: FastAPI, stack: AsyncExitStack) -> Request:
    """Synthetic request the resolver runs against during startup.

    Generator dependencies push their teardown onto ``stack`` through the
    ``fastapi_*astack`` scope keys.
    """
    scope: dict[str, Any] = {
        "type": "http",
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/",
        "raw_path": b"/",
        "root_path": "",
        "query_string": b"",
        "headers": [],
        "client": None,
        "server": None,
        "app": app,
        "state": app.state,
        "fastapi_astack": stack,
        "fastapi_inner_astack": stack,
        "fastapi_function_astack": stack,
    }
    return Request(scope)


def inject(lifespan: LifespanFn) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Decorate a lifespan whose extra parameters are ``Depends()`` markers.

    Usage::

        @inject
        async def lifespan(
            app: FastAPI,
            relay: Annotated[ConnectionRelay, Depends(build_relay)],
        ):
            yield

    ``app.dependency_overrides`` applies here too, which is how tests
    swap the outbound HTTP client or the config.
    """
    managed = asynccontextmanager(lifespan)

    @asynccontextmanager
    async def run(app: FastAPI) -> AsyncIterator[None]:
        dependant = get_dependant(path="/", call=partial(lifespan, app))
        async with AsyncExitStack() as stack:
            solved = await solve_dependencies(
                request=_startup_request(app, stack),
                dependant=dependant,
                async_exit_stack=stack,
                embed_body_fields=False,
                dependency_overrides_provider=app,
            )
            if solved.errors:
                raise RuntimeError(f"Lifespan dependencies failed: {solved.errors}")
            async with managed(app, **solved.values):
                yield

    return run
