"""FastAPI dependencies for dependency injection."""

from fastapi import HTTPException, status, Request

from core.security import Actor


async def require_actor(request: Request) -> Actor:
    """
    Require the authenticated actor resolved by AuthenticationMiddleware.
    """
    actor = request.scope.get("actor")

    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return actor
