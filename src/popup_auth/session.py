"""
Session helpers and FastAPI dependencies.

The login endpoint remembers each pending flow's `state` in request.session;
the code exchange consumes it exactly once. Access tokens obtained from the
exchange are kept per service in the session.

Optional: set OAUTH_STATE_TTL_SECONDS to bound how long a pending state stays
valid (default 600). Set SESSION_MAX_IDLE_SECONDS to treat the user as
inactive after that long without a request (default 0 = disabled).
"""

import os
import secrets
import time
from typing import Optional, Set

from fastapi import HTTPException, Request

PENDING_KEY = "oauth_pending"
TOKENS_KEY = "oauth_tokens"


def _state_ttl_seconds() -> int:
    """Seconds a pending state stays valid."""
    return int(os.getenv("OAUTH_STATE_TTL_SECONDS", "600"))


def _session_max_idle_seconds() -> int:
    """Max seconds without a request before user is considered inactive. 0 = disabled."""
    return int(os.getenv("SESSION_MAX_IDLE_SECONDS", "0"))


def remember_pending_state(request: Request, service: str, state: str) -> None:
    """Store the state of a new flow; a newer login for the same service replaces it."""
    pending = dict(request.session.get(PENDING_KEY, {}))
    pending[service] = {"state": state, "created_at": int(time.time())}
    request.session[PENDING_KEY] = pending


def consume_pending_state(request: Request, service: str, state: Optional[str]) -> bool:
    """
    Pop the pending state for `service` and compare it with the returned one.

    The pending entry is removed whatever the outcome, so a state is accepted
    at most once. Expired entries never match.
    """
    pending = dict(request.session.get(PENDING_KEY, {}))
    entry = pending.pop(service, None)
    request.session[PENDING_KEY] = pending
    if not entry or not state:
        return False
    if int(time.time()) - entry.get("created_at", 0) > _state_ttl_seconds():
        return False
    return secrets.compare_digest(entry.get("state", ""), state)


def store_token(request: Request, service: str, token: dict) -> None:
    tokens = dict(request.session.get(TOKENS_KEY, {}))
    tokens[service] = {
        "access_token": token["access_token"],
        "token_type": token.get("token_type"),
        "scope": token.get("scope"),
        "obtained_at": int(time.time()),
    }
    request.session[TOKENS_KEY] = tokens


def connected_services(request: Request) -> Set[str]:
    """Return the services with a stored access token."""
    return set(request.session.get(TOKENS_KEY, {}))


def is_session_stale(request: Request) -> bool:
    """Return True if the user has been idle longer than SESSION_MAX_IDLE_SECONDS."""
    max_idle = _session_max_idle_seconds()
    if max_idle <= 0:
        return False
    now = int(time.time())
    last_at = request.session.get("last_activity_at", now)
    return now - last_at >= max_idle


def touch_session_activity(request: Request) -> None:
    """Update last_activity_at in the session so idle timeout is based on recent requests."""
    request.session["last_activity_at"] = int(time.time())


def require_token(service: str):
    """
    Dependency: the session must hold an access token for `service`.
    Use as: Depends(require_token("github")); resolves to the access token.
    """

    async def _dep(request: Request) -> str:
        tokens = request.session.get(TOKENS_KEY, {})
        if service not in tokens:
            raise HTTPException(status_code=401, detail=f"Not connected to {service}")
        if is_session_stale(request):
            raise HTTPException(
                status_code=401,
                detail="Session expired or inactive; please log in again",
            )
        touch_session_activity(request)
        return tokens[service]["access_token"]

    return _dep
