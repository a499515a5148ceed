"""
Pytest fixtures for popup_auth tests.

Provides:
- Fake window hosts (main window, popup, relay host, opener) and a manual scheduler
- A GitHub provider config
- A test client for an app with the auth router and session middleware
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.middleware.sessions import SessionMiddleware

from popup_auth.provider_config import ProviderConfig
from popup_auth.router import create_auth_router

APP_ORIGIN = "https://app.example.com"


class FakeTimer:
    def __init__(self, delay, callback, args):
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records call_later requests; fire() runs them on demand."""

    def __init__(self):
        self.timers = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire(self):
        """Run every timer that is pending right now."""
        for timer in self.pending:
            timer.fired = True
            timer.callback(*timer.args)


class FakePopup:
    def __init__(self):
        self.closed = False


class FakeWindow:
    def __init__(self, origin=APP_ORIGIN, block_popups=False):
        self.origin = origin
        self.block_popups = block_popups
        self.opened = []
        self.listeners = []
        self.popup = FakePopup()

    def open(self, url, target, features):
        self.opened.append((url, target, features))
        return None if self.block_popups else self.popup

    def add_message_listener(self, listener):
        self.listeners.append(listener)

    def remove_message_listener(self, listener):
        self.listeners.remove(listener)

    def dispatch(self, event):
        for listener in list(self.listeners):
            listener(event)


class FakeOpener:
    def __init__(self, fail_with=None):
        self.posted = []
        self.fail_with = fail_with

    def post_message(self, message, target_origin):
        if self.fail_with is not None:
            raise self.fail_with
        self.posted.append((message, target_origin))


class FakeRelayHost(FakeScheduler):
    """Popup host: opener reference, close(), and a scheduler."""

    def __init__(self, opener=None):
        super().__init__()
        self.opener = opener
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def github_config():
    return ProviderConfig(
        service="GitHub",
        client_id="gh-client",
        scope="repo user",
        authorization_url="https://github.com/login/oauth/authorize",
        redirect_uri="https://app.example.com/oauth",
        extra_params={"allow_signup": "true"},
        token_url="https://github.com/login/oauth/access_token",
        client_secret="gh-secret",
    )


@pytest.fixture
def window():
    return FakeWindow()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def client(github_config):
    """Test client for an app exposing the auth router with a single GitHub provider."""
    app = FastAPI()
    app.add_middleware(SessionMiddleware, secret_key="test-secret")
    app.include_router(create_auth_router({"github": github_config}))
    return TestClient(app, follow_redirects=False)


@pytest.fixture
def blocked_window():
    return FakeWindow(block_popups=True)


@pytest.fixture
def make_opener():
    return FakeOpener


@pytest.fixture
def make_relay_host():
    return FakeRelayHost
