"""HTTP server adapter for the account REST API.

Provides an aiohttp application exposing the account use cases:

    POST   /users                    create (201)
    GET    /users                    list
    GET    /users/{id}               get
    PUT    /users/{id}               update email
    DELETE /users/{id}               delete (204)
    POST   /users/{id}/activate      activate
    POST   /users/{id}/deactivate    deactivate
    GET    /health                   health check

Core ValidationError maps to 400 and NotFoundError to 404. Anything else
is logged server-side and returned as a generic 500.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web
from pydantic import ValidationError as RequestValidationError

from accounts.adapters.rest.receiver import UserRestReceiver
from accounts.adapters.rest.schemas import ErrorResponse
from accounts.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1024 * 1024

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error_response(
    status: int, message: str, errors: dict[str, str] | None = None
) -> web.Response:
    body = ErrorResponse(status=status, message=message, errors=errors or {})
    return web.json_response(body.model_dump(), status=status)


def _field_errors(error: RequestValidationError) -> dict[str, str]:
    """Flatten pydantic errors into a field -> message map."""
    errors: dict[str, str] = {}
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "body"
        errors.setdefault(field, item["msg"])
    return errors


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Translate domain and request errors into JSON error responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except json.JSONDecodeError:
        return _error_response(400, "Invalid JSON body")
    except RequestValidationError as e:
        return _error_response(400, "Request validation failed", _field_errors(e))
    except ValidationError as e:
        return _error_response(400, str(e))
    except NotFoundError as e:
        return _error_response(404, str(e))
    except Exception as e:
        # Log full exception server-side, return generic error to client
        logger.error(f"Error handling {request.method} {request.path}: {e}", exc_info=True)
        return _error_response(500, "Internal server error")


async def _read_json(request: web.Request) -> Any:
    """Decode the request body, treating an empty body as an empty object."""
    body = await request.text()
    if not body.strip():
        return {}
    return json.loads(body)


def create_app(receiver: UserRestReceiver) -> web.Application:
    """Build the aiohttp application with handlers bound to ``receiver``.

    Handlers close over the receiver instead of reading it from
    application state.
    """

    def user_id_of(request: web.Request) -> int:
        return int(request.match_info["user_id"])

    async def health(request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy"})

    async def create_user(request: web.Request) -> web.Response:
        result = await receiver.handle_create(await _read_json(request))
        return web.json_response(result, status=201)

    async def list_users(request: web.Request) -> web.Response:
        return web.json_response(await receiver.handle_list())

    async def get_user(request: web.Request) -> web.Response:
        return web.json_response(await receiver.handle_get(user_id_of(request)))

    async def update_user(request: web.Request) -> web.Response:
        result = await receiver.handle_update(
            user_id_of(request), await _read_json(request)
        )
        return web.json_response(result)

    async def delete_user(request: web.Request) -> web.Response:
        await receiver.handle_delete(user_id_of(request))
        return web.Response(status=204)

    async def activate_user(request: web.Request) -> web.Response:
        return web.json_response(await receiver.handle_activate(user_id_of(request)))

    async def deactivate_user(request: web.Request) -> web.Response:
        return web.json_response(await receiver.handle_deactivate(user_id_of(request)))

    app = web.Application(middlewares=[error_middleware], client_max_size=MAX_BODY_SIZE)
    app.router.add_get("/health", health)
    app.router.add_post("/users", create_user)
    app.router.add_get("/users", list_users)
    app.router.add_get(r"/users/{user_id:\d+}", get_user)
    app.router.add_put(r"/users/{user_id:\d+}", update_user)
    app.router.add_delete(r"/users/{user_id:\d+}", delete_user)
    app.router.add_post(r"/users/{user_id:\d+}/activate", activate_user)
    app.router.add_post(r"/users/{user_id:\d+}/deactivate", deactivate_user)
    return app


class UserHTTPServer:
    """REST HTTP server adapter.

    Runs the aiohttp application on the current event loop.
    """

    def __init__(
        self,
        receiver: UserRestReceiver,
        host: str = "0.0.0.0",
        port: int = 8080,
    ):
        """Initialize the HTTP server.

        Args:
            receiver: UserRestReceiver instance to handle requests.
            host: Host to listen on (default 0.0.0.0).
            port: Port to listen on (default 8080).
        """
        self.receiver = receiver
        self.host = host
        self.port = port
        self.app = create_app(receiver)
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start serving requests."""
        logger.info(f"Starting REST HTTP server on {self.host}:{self.port}")
        self._runner = web.AppRunner(self.app, access_log=logger)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("REST HTTP server started")

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        logger.info("REST HTTP server stopped")
