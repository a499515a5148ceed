"""Tests for the provider error-code table and failure values."""

import pytest

from popup_auth.errors import (
    PROVIDER_ERROR_MESSAGES,
    AuthFlowError,
    FailureKind,
    MissingParametersError,
    describe_provider_error,
)


def test_table_covers_standard_error_codes():
    assert set(PROVIDER_ERROR_MESSAGES) == {
        "authorization_pending",
        "interaction_required",
        "login_required",
        "account_selection_required",
        "consent_required",
        "access_denied",
        "invalid_request",
        "unauthorized_client",
        "unsupported_response_type",
        "invalid_scope",
        "server_error",
        "temporarily_unavailable",
    }


@pytest.mark.parametrize(
    "code, message",
    [
        ("access_denied", "The authorization request was denied by the user."),
        ("invalid_scope", "The requested scope is invalid, unknown, or malformed."),
        ("temporarily_unavailable", "The authorization server is temporarily unavailable."),
    ],
)
def test_known_codes_map_to_fixed_sentences(code, message):
    assert describe_provider_error(code) == message


def test_unknown_code_falls_back_to_generic_message():
    assert describe_provider_error("some_unrecognized_code") == (
        "Authentication error: some_unrecognized_code"
    )


def test_provider_error_carries_details():
    error = AuthFlowError.provider_error("access_denied", None, "https://docs.example.com/e")

    assert error.kind is FailureKind.PROVIDER_ERROR
    assert str(error) == "The authorization request was denied by the user."
    assert error.code == "access_denied"
    assert error.description == "No additional details available."
    assert error.info_uri == "https://docs.example.com/e"


def test_missing_parameters_lists_names_in_order():
    error = MissingParametersError(["client_id", "scope"])

    assert error.kind is FailureKind.MISSING_PARAMETERS
    assert error.missing == ("client_id", "scope")
    assert str(error) == "Missing required parameters: client_id, scope"
