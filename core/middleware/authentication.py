"""
Authentication middleware for resolving the calling actor.

This middleware:
1. Extracts the bearer token from the Authorization header
2. Resolves it to an Actor through the ActorDirectory
3. Injects the Actor into the request scope
4. Answers 401 with the standard error envelope otherwise
"""

import logging
from typing import Callable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.security import (
    Actor,
    ActorDirectory,
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)

logger = logging.getLogger(__name__)

# Public endpoints that don't require authentication
PUBLIC_ENDPOINTS = [
    "/",
    "/health",
    "/api/v1/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
]


class AuthenticationMiddleware:
    """
    Pure ASGI authentication middleware.

    Protected requests without a valid token never reach the routers.
    """

    def __init__(self, app: Callable, directory: Optional[ActorDirectory] = None):
        """
        Initialize authentication middleware.

        Args:
            app: ASGI application
            directory: Token resolver, defaults to one built from settings
        """
        self.app = app
        self.directory = directory or ActorDirectory()

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)

        # Skip authentication for public endpoints
        if self._is_public_endpoint(request.url.path):
            await self.app(scope, receive, send)
            return

        try:
            token = self._extract_token(request)
            if not token:
                raise TokenInvalidError("No authentication token provided")
            scope["actor"] = self.directory.resolve(token)
        except TokenExpiredError:
            await self._send_error_response(
                scope,
                send,
                code="TOKEN_EXPIRED",
                message="Authentication token has expired. Please refresh your token.",
            )
            return
        except TokenInvalidError as e:
            logger.warning(f"Invalid token: {str(e)}")
            await self._send_error_response(
                scope,
                send,
                code="TOKEN_INVALID",
                message="Invalid authentication token.",
            )
            return

        await self.app(scope, receive, send)

    def _is_public_endpoint(self, path: str) -> bool:
        if path in PUBLIC_ENDPOINTS:
            return True

        # Prefix match for health checks and docs
        public_prefixes = ["/health", "/docs", "/redoc", "/openapi"]
        return any(path.startswith(prefix) for prefix in public_prefixes)

    def _extract_token(self, request: Request) -> Optional[str]:
        auth_header = request.headers.get("Authorization")

        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:]  # Remove "Bearer " prefix

        return None

    async def _send_error_response(
        self,
        scope: dict,
        send: Callable,
        code: str,
        message: str,
    ) -> None:
        """
        Send error response for authentication failures.

        Args:
            scope: ASGI scope of the rejected request
            send: ASGI send function
            code: Error code
            message: Error message
        """
        error_response = {
            "error": {
                "code": code,
                "message": message,
                "retryable": False,
                "path": scope.get("path"),
                "method": scope.get("method"),
            }
        }

        response = JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=error_response,
            headers={"WWW-Authenticate": "Bearer"},
        )

        await response(scope, None, send)


def get_current_actor(request: Request) -> Actor:
    """
    Get the authenticated actor from request scope.

    Raises:
        AuthenticationError: If no actor was resolved for this request
    """
    actor = request.scope.get("actor")
    if not actor:
        raise AuthenticationError("Actor not authenticated")
    return actor
