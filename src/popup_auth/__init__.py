"""
Popup OAuth handshake for the application.

Exposes the initiator (begin_authorization, AuthorizationFlow), the relay state
machine (relay.advance), provider configuration (ProviderConfig,
load_provider_configs), session helpers and the FastAPI auth router factory
(create_auth_router).
"""

from .errors import PROVIDER_ERROR_MESSAGES, AuthFlowError, FailureKind, describe_provider_error
from .initiator import AuthorizationFlow, AuthorizationRequest, begin_authorization, build_relay_url
from .messages import MessageEvent, OAuthResponse, WindowClosed, parse_relay_message
from .provider_config import ProviderConfig, load_provider_configs
from .router import create_auth_router
from .session import is_session_stale, require_token, touch_session_activity

__all__ = [
    "AuthFlowError",
    "FailureKind",
    "PROVIDER_ERROR_MESSAGES",
    "describe_provider_error",
    "AuthorizationFlow",
    "AuthorizationRequest",
    "begin_authorization",
    "build_relay_url",
    "MessageEvent",
    "OAuthResponse",
    "WindowClosed",
    "parse_relay_message",
    "ProviderConfig",
    "load_provider_configs",
    "create_auth_router",
    "is_session_stale",
    "require_token",
    "touch_session_activity",
]
