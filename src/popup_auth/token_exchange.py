"""
Authorization code exchange.

Hands the {code, state} pair produced by a completed popup flow to the
provider's token endpoint using Authlib's httpx-based OAuth2 client. The
redirect_uri sent here must be the one the relay used in the authorization
request.
"""

import logging

from authlib.integrations.httpx_client import AsyncOAuth2Client

from popup_auth.provider_config import ProviderConfig

logger = logging.getLogger(__name__)


class TokenExchangeError(Exception):
    """The provider did not return an access token."""


class TokenExchanger:
    """Exchanges authorization codes for access tokens for one provider."""

    def __init__(self, config: ProviderConfig, timeout: float = 20):
        if not config.token_url:
            raise ValueError(f"{config.service}: no token endpoint configured")
        self.config = config
        self.timeout = timeout

    async def exchange(self, code: str) -> dict:
        """Return the token response (contains at least access_token)."""
        async with AsyncOAuth2Client(
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            redirect_uri=self.config.redirect_uri,
            token_endpoint_auth_method=self.config.token_endpoint_auth_method,
            timeout=self.timeout,
        ) as client:
            # GitHub answers form-encoded unless JSON is requested explicitly
            token = await client.fetch_token(
                self.config.token_url,
                code=code,
                headers={"Accept": "application/json"},
            )

        if not token or not token.get("access_token"):
            logger.warning("Token endpoint for %s returned no access token", self.config.service)
            raise TokenExchangeError(f"{self.config.service} returned no access token")
        return dict(token)
