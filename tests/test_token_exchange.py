"""Tests for the authorization code exchange (Authlib client patched)."""

import asyncio
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs

import httpx
import pytest
from authlib.integrations.httpx_client import AsyncOAuth2Client

from popup_auth.provider_config import ProviderConfig
from popup_auth.token_exchange import TokenExchangeError, TokenExchanger


def test_exchange_posts_code_with_json_accept(github_config):
    with patch("popup_auth.token_exchange.AsyncOAuth2Client") as client_cls:
        client = client_cls.return_value.__aenter__.return_value
        client.fetch_token = AsyncMock(return_value={"access_token": "gho_token", "token_type": "bearer"})

        token = asyncio.run(TokenExchanger(github_config).exchange("abc123"))

    assert token["access_token"] == "gho_token"
    client_cls.assert_called_once_with(
        client_id="gh-client",
        client_secret="gh-secret",
        redirect_uri="https://app.example.com/oauth",
        token_endpoint_auth_method="client_secret_post",
        timeout=20,
    )
    client.fetch_token.assert_awaited_once_with(
        "https://github.com/login/oauth/access_token",
        code="abc123",
        headers={"Accept": "application/json"},
    )


def test_missing_access_token_raises(github_config):
    with patch("popup_auth.token_exchange.AsyncOAuth2Client") as client_cls:
        client = client_cls.return_value.__aenter__.return_value
        client.fetch_token = AsyncMock(return_value={"token_type": "bearer"})

        with pytest.raises(TokenExchangeError):
            asyncio.run(TokenExchanger(github_config).exchange("abc123"))


def test_provider_without_token_endpoint_is_rejected():
    config = ProviderConfig(
        service="Custom",
        client_id="c",
        scope="s",
        authorization_url="https://idp.example.com/authorize",
        redirect_uri="https://app.example.com/oauth",
    )

    with pytest.raises(ValueError, match="token endpoint"):
        TokenExchanger(config)


def test_client_credentials_are_sent_in_form_body(github_config):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"access_token": "gho_token", "token_type": "bearer"})

    def client_with_transport(**kwargs):
        return AsyncOAuth2Client(transport=httpx.MockTransport(handler), **kwargs)

    with patch("popup_auth.token_exchange.AsyncOAuth2Client", side_effect=client_with_transport):
        token = asyncio.run(TokenExchanger(github_config).exchange("abc123"))

    assert token["access_token"] == "gho_token"
    (request,) = seen
    body = parse_qs(request.content.decode())
    assert body["client_id"] == ["gh-client"]
    assert body["client_secret"] == ["gh-secret"]
    assert body["code"] == ["abc123"]
    assert "authorization" not in request.headers
