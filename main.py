"""
FastAPI app: popup-based OAuth for the bounty marketplace and the content tools.

Decisions:
- .env is loaded before importing popup_auth so provider client ids, secrets
  and OAUTH_REDIRECT_URI are available when providers are loaded (Ruff E402
  suppressed for that).
- OAUTH_REDIRECT_URI must point at this app's /oauth relay page and be
  registered as the callback URL with every provider.
- Session secret from SESSION_SECRET env; default "change-me" is for dev only.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from starlette.middleware.sessions import SessionMiddleware

load_dotenv()

# Load .env before popup_auth so provider settings are set; Ruff E402.
from popup_auth import load_provider_configs, require_token, touch_session_activity  # noqa: E402
from popup_auth.router import create_auth_router  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me")

PROVIDERS = load_provider_configs()

app = FastAPI()
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET)


@app.middleware("http")
async def update_activity(request: Request, call_next):
    """Update last_activity_at for connected users so idle timeout is accurate."""
    response = await call_next(request)
    if request.session.get("oauth_tokens"):
        touch_session_activity(request)
    return response

app.include_router(create_auth_router(PROVIDERS))


@app.get("/")
async def home():
    return {"providers": sorted(PROVIDERS)}


# Example protected route (requires a GitHub token obtained through the popup flow)
@app.get("/github/connected")
async def github_connected(_=Depends(require_token("github"))):
    return {"ok": True, "service": "github"}
