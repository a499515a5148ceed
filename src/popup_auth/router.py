"""
FastAPI auth router: login, relay page, code exchange, /me, logout.

/login/{service} starts a flow (the server half of begin_authorization),
/oauth is the relay page the popup loads both before and after visiting the
provider, and /api/auth exchanges the relayed code once its state checks out.
"""

import logging
import os
from typing import Mapping, Optional

import httpx
from authlib.integrations.base_client import OAuthError
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel

from popup_auth import pages, relay
from popup_auth.initiator import POPUP_FEATURES, AuthorizationRequest
from popup_auth.provider_config import ProviderConfig
from popup_auth.session import (
    connected_services,
    consume_pending_state,
    remember_pending_state,
    store_token,
)
from popup_auth.token_exchange import TokenExchangeError, TokenExchanger

logger = logging.getLogger(__name__)


class CodeExchange(BaseModel):
    service: str
    code: str
    state: Optional[str] = None


def _close_delay_seconds() -> float:
    return float(os.getenv("RELAY_CLOSE_DELAY_SECONDS", str(relay.CLOSE_DELAY_SECONDS)))


def create_auth_router(providers: Mapping[str, ProviderConfig], relay_path: str = "/oauth"):
    """Create an APIRouter with /login/{service}, the relay page, /api/auth, /me and /logout."""
    router = APIRouter()

    def _provider(service: str) -> ProviderConfig:
        config = providers.get(service)
        if config is None:
            raise HTTPException(status_code=404, detail=f"Unknown service: {service}")
        return config

    @router.get("/login/{service}")
    async def login(service: str, request: Request):
        """Generate the flow's state and return the relay URL the popup should open."""
        auth_request = AuthorizationRequest.create(_provider(service))
        remember_pending_state(request, service, auth_request.state)
        logger.info("Login started for %s", service)
        return {
            "service": service,
            "state": auth_request.state,
            "relay_url": auth_request.relay_url,
            "popup_features": POPUP_FEATURES,
        }

    @router.get(relay_path, name="oauth_relay", response_class=HTMLResponse)
    async def oauth_relay(request: Request):
        """Relay page: redirect to the provider, relay its callback, or report an error."""
        state = relay.advance(relay.Init(dict(request.query_params)))
        if isinstance(state, relay.Redirecting):
            return RedirectResponse(url=state.url, status_code=302)
        if isinstance(state, relay.Relaying):
            return HTMLResponse(pages.render_relaying_page(state.message, _close_delay_seconds()))
        return HTMLResponse(
            pages.render_error_page(state.failure, state.opener_message), status_code=400
        )

    @router.post("/api/auth")
    async def exchange_code(body: CodeExchange, request: Request):
        """Exchange the relayed authorization code for an access token and keep it in the session."""
        config = _provider(body.service)
        if not consume_pending_state(request, body.service, body.state):
            logger.warning("Rejected code exchange for %s: unknown or reused state", body.service)
            return JSONResponse({"error": "Invalid or expired state"}, status_code=400)

        try:
            token = await TokenExchanger(config).exchange(body.code)
        except (OAuthError, TokenExchangeError, httpx.HTTPError) as e:
            logger.warning("Token exchange for %s failed: %s", body.service, e)
            return JSONResponse({"error": "Failed to authenticate"}, status_code=502)
        except ValueError as e:
            return JSONResponse({"error": str(e)}, status_code=400)

        store_token(request, body.service, token)
        return {"ok": True, "service": body.service}

    @router.get("/me")
    async def me(request: Request):
        """Return which services the current session is connected to."""
        services = sorted(connected_services(request))
        return {"logged_in": bool(services), "services": services}

    @router.get("/logout")
    async def logout(request: Request):
        """Clear session and redirect to home."""
        request.session.clear()
        return RedirectResponse(url="/")

    return router
