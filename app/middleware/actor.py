"""Actor middleware: exposes the ``X-Actor-Id`` header to the audit fields.

The hierarchy engine stamps ``created_by`` / ``updated_by`` from the actor
context; requests without a numeric header are recorded as anonymous.
"""

from __future__ import annotations

from starlette.types import ASGIApp, Receive, Scope, Send

from app.packages.hierarchy.core.actor import parse_actor_id, set_current_actor

ACTOR_HEADER = b"x-actor-id"


class ActorMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        raw = None
        for key, value in scope.get("headers", []):
            if key.lower() == ACTOR_HEADER:
                raw = value.decode("latin-1")
                break
        set_current_actor(parse_actor_id(raw))
        try:
            await self.app(scope, receive, send)
        finally:
            set_current_actor(None)
