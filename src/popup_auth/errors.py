"""
Failure taxonomy for the popup OAuth handshake.

Failures are values: the initiator hands them to its callbacks and the relay
carries them in its ErrorReporting state. Provider error codes (RFC 6749 /
OpenID Connect) map to fixed human-readable sentences through
PROVIDER_ERROR_MESSAGES; unknown codes fall back to a generic message.
"""

from enum import Enum
from typing import Optional, Sequence


class FailureKind(str, Enum):
    POPUP_BLOCKED = "popup_blocked"
    INVALID_ORIGIN = "invalid_origin"
    MISSING_PARAMETERS = "missing_parameters"
    PARENT_WINDOW_NOT_FOUND = "parent_window_not_found"
    CONNECTION_FAILED = "connection_failed"
    PROVIDER_ERROR = "provider_error"
    WINDOW_CLOSED = "window_closed"
    STATE_MISMATCH = "state_mismatch"
    TIMED_OUT = "timed_out"


PROVIDER_ERROR_MESSAGES = {
    "authorization_pending": "The authorization request is pending.",
    "interaction_required": "The authorization request requires user interaction.",
    "login_required": "The authorization request requires user login.",
    "account_selection_required": "The authorization request requires user account selection.",
    "consent_required": "The authorization request requires user consent.",
    "access_denied": "The authorization request was denied by the user.",
    "invalid_request": "The request is missing required parameters or is malformed.",
    "unauthorized_client": "The client is not authorized to request authorization.",
    "unsupported_response_type": (
        "The authorization server does not support obtaining an authorization code using this method."
    ),
    "invalid_scope": "The requested scope is invalid, unknown, or malformed.",
    "server_error": "The authorization server encountered an unexpected error.",
    "temporarily_unavailable": "The authorization server is temporarily unavailable.",
}


def describe_provider_error(code: str) -> str:
    """Return the human-readable sentence for a provider error code."""
    return PROVIDER_ERROR_MESSAGES.get(code) or f"Authentication error: {code}"


class AuthFlowError(Exception):
    """A failure of one authorization flow; str() is the message shown to the user."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        description: Optional[str] = None,
        info_uri: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.description = description
        self.info_uri = info_uri
        self.code = code

    def __repr__(self) -> str:
        return f"AuthFlowError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def provider_error(
        cls, code: str, description: Optional[str] = None, info_uri: Optional[str] = None
    ) -> "AuthFlowError":
        return cls(
            FailureKind.PROVIDER_ERROR,
            describe_provider_error(code),
            description=description or "No additional details available.",
            info_uri=info_uri,
            code=code,
        )


class MissingParametersError(AuthFlowError):
    """Relay loaded without the parameters it needs to build the provider request."""

    def __init__(self, missing: Sequence[str]):
        self.missing = tuple(missing)
        super().__init__(
            FailureKind.MISSING_PARAMETERS,
            f"Missing required parameters: {', '.join(self.missing)}",
            description="There was a problem setting up the authentication process.",
            code=FailureKind.MISSING_PARAMETERS.value,
        )


def popup_blocked() -> AuthFlowError:
    return AuthFlowError(
        FailureKind.POPUP_BLOCKED,
        "Pop-up blocked",
        description="Please allow pop-ups and try again.",
    )


def invalid_origin(origin: str) -> AuthFlowError:
    return AuthFlowError(
        FailureKind.INVALID_ORIGIN,
        "Invalid origin",
        description=f"The message origin is not valid: {origin}",
    )


def parent_window_not_found() -> AuthFlowError:
    return AuthFlowError(
        FailureKind.PARENT_WINDOW_NOT_FOUND,
        "Parent window not found",
        description="The authentication window could not communicate with the main application.",
        code=FailureKind.PARENT_WINDOW_NOT_FOUND.value,
    )


def connection_failed(reason: Optional[str] = None) -> AuthFlowError:
    return AuthFlowError(
        FailureKind.CONNECTION_FAILED,
        reason or "Failed to communicate with parent window",
        description="The authentication window could not communicate with the main application.",
        code=FailureKind.CONNECTION_FAILED.value,
    )


def window_closed() -> AuthFlowError:
    return AuthFlowError(FailureKind.WINDOW_CLOSED, "The OAuth window was closed.")


def state_mismatch() -> AuthFlowError:
    return AuthFlowError(
        FailureKind.STATE_MISMATCH,
        "State mismatch",
        description="The authorization response does not belong to this login attempt.",
    )


def timed_out(seconds: float) -> AuthFlowError:
    return AuthFlowError(
        FailureKind.TIMED_OUT,
        "The authorization flow timed out.",
        description=f"No response was received within {seconds:g} seconds.",
    )
