"""
Relay state machine for the page loaded inside the auth popup.

advance() takes a state value and returns the next one:

    Init --error--------------------> ErrorReporting (provider error)
    Init --code---------------------> Relaying
    Init --authUrl/client_id/...----> Redirecting
    Init --otherwise----------------> ErrorReporting (missing parameters)
    Relaying --posted to opener-----> Relayed (close scheduled)
    Relaying --no opener / failure--> ErrorReporting

Redirecting, Relayed and ErrorReporting are terminal for the page load.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from popup_auth import errors
from popup_auth.errors import AuthFlowError, MissingParametersError
from popup_auth.messages import OAuthResponse
from popup_auth.protocol import RelayHost

logger = logging.getLogger(__name__)

REQUIRED_PARAMS = ("authUrl", "client_id", "scope", "redirect_uri")
ERROR_PARAMS = ("error", "error_description", "error_uri")
CALLBACK_PARAMS = ("code", "state")
# Never forwarded to the provider as extra parameters
RESERVED_PARAMS = frozenset(REQUIRED_PARAMS) | {"service", "state"}

CLOSE_DELAY_SECONDS = 2.0


@dataclass(frozen=True)
class Success:
    code: str
    state: Optional[str]


@dataclass(frozen=True)
class Failure:
    error_code: str
    description: Optional[str] = None
    info_uri: Optional[str] = None


CallbackResult = Union[Success, Failure]


def read_callback(params: Mapping[str, str]) -> Optional[CallbackResult]:
    """Classify the provider's redirect parameters; None when this is not a callback."""
    if "error" in params:
        return Failure(
            error_code=params["error"],
            description=params.get("error_description") or None,
            info_uri=params.get("error_uri") or None,
        )
    if params.get("code"):
        return Success(code=params["code"], state=params.get("state") or None)
    return None


@dataclass(frozen=True)
class Init:
    params: Mapping[str, str]


@dataclass(frozen=True)
class Redirecting:
    url: str


@dataclass(frozen=True)
class Relaying:
    message: OAuthResponse


@dataclass(frozen=True)
class Relayed:
    message: OAuthResponse
    close_after: float


@dataclass(frozen=True)
class ErrorReporting:
    failure: AuthFlowError
    state: Optional[str] = None

    @property
    def opener_message(self) -> Optional[OAuthResponse]:
        """Error-shaped message for the opener; only provider errors are reported back."""
        if self.failure.kind != errors.FailureKind.PROVIDER_ERROR:
            return None
        return OAuthResponse(
            error=self.failure.code,
            error_description=self.failure.description,
            state=self.state,
        )


RelayState = Union[Init, Redirecting, Relaying, Relayed, ErrorReporting]

TERMINAL_STATES = (Redirecting, Relayed, ErrorReporting)


def missing_parameters(params: Mapping[str, str]) -> list[str]:
    return [name for name in REQUIRED_PARAMS if not params.get(name)]


def build_authorization_url(params: Mapping[str, str]) -> str:
    """Provider authorization URL from the relay's own query parameters."""
    state = params.get("state")
    if not state:
        logger.warning("Relay URL carries no state; generating one, the opener cannot verify it")
        state = secrets.token_urlsafe(32)

    query = {
        "client_id": params["client_id"],
        "redirect_uri": params["redirect_uri"],
        "response_type": "code",
        "scope": params["scope"],
        "state": state,
    }
    for key, value in params.items():
        if key not in RESERVED_PARAMS and key not in query:
            query[key] = value

    scheme, netloc, path, existing, fragment = urlsplit(params["authUrl"])
    pairs = parse_qsl(existing, keep_blank_values=True) + list(query.items())
    return urlunsplit((scheme, netloc, path, urlencode(pairs), fragment))


def _from_init(params: Mapping[str, str]) -> RelayState:
    result = read_callback(params)
    if isinstance(result, Failure):
        failure = AuthFlowError.provider_error(result.error_code, result.description, result.info_uri)
        return ErrorReporting(failure, state=params.get("state") or None)
    if isinstance(result, Success):
        return Relaying(OAuthResponse(code=result.code, state=result.state))

    missing = missing_parameters(params)
    if missing:
        logger.warning("Relay loaded without required parameters: %s", ", ".join(missing))
        return ErrorReporting(MissingParametersError(missing))
    return Redirecting(build_authorization_url(params))


def _deliver(message: OAuthResponse, host: RelayHost, close_delay: float) -> RelayState:
    opener = host.opener
    if opener is None:
        return ErrorReporting(errors.parent_window_not_found())
    try:
        # The relay cannot know the opener's origin; the opener checks it on receipt
        opener.post_message(message.to_wire(), "*")
    except Exception as e:
        logger.warning("Posting the authorization result to the opener failed: %s", e)
        return ErrorReporting(errors.connection_failed(str(e) or None))
    host.call_later(close_delay, host.close)
    return Relayed(message, close_after=close_delay)


def advance(
    state: RelayState, host: Optional[RelayHost] = None, close_delay: float = CLOSE_DELAY_SECONDS
) -> RelayState:
    """Run one transition of the relay page."""
    if isinstance(state, Init):
        return _from_init(state.params)
    if isinstance(state, Relaying):
        if host is None:
            return ErrorReporting(errors.parent_window_not_found())
        return _deliver(state.message, host, close_delay)
    return state


def run(
    params: Mapping[str, str], host: Optional[RelayHost] = None, close_delay: float = CLOSE_DELAY_SECONDS
) -> RelayState:
    """Advance from Init until the relay reaches a terminal state."""
    state: RelayState = Init(dict(params))
    while not isinstance(state, TERMINAL_STATES):
        state = advance(state, host, close_delay)
    return state
