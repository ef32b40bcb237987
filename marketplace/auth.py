"""
HTTP side of the access guard: bearer token -> Actor, and role-gated dependencies.
"""
from fastapi import Depends, Header, HTTPException

from marketplace.guard import require_role
from marketplace.models import Actor, Role
from marketplace.redis_client import resolve_token


async def get_current_actor(authorization: str | None = Header(default=None)) -> Actor:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No token provided")
    token = authorization.split(" ", 1)[1].strip()
    actor = await resolve_token(token)
    if actor is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return actor


def require(*roles: Role):
    """Dependency: the current actor, provided it holds one of `roles`."""

    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        require_role(actor, *roles)
        return actor

    return dependency
