"""
Cross-window message schema.

The relay posts exactly one message to its opener. Messages are validated
against a discriminated union on `type`; anything that does not match is
treated as unrelated window traffic and parsed to None.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

OAUTH_RESPONSE = "oauth_response"
OAUTH_WINDOW_CLOSED = "oauth_window_closed"


class OAuthResponse(BaseModel):
    """Result of the provider callback, relayed to the opener."""

    model_config = ConfigDict(frozen=True)

    type: Literal["oauth_response"] = OAUTH_RESPONSE
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

    @property
    def has_code(self) -> bool:
        return bool(self.code and self.code.strip())

    def to_wire(self) -> dict:
        """Plain dict as posted across windows (unset optional fields omitted, state always kept)."""
        data = self.model_dump(exclude_none=True)
        data["state"] = self.state
        return data


class WindowClosed(BaseModel):
    """Signal that the popup went away before the flow completed."""

    model_config = ConfigDict(frozen=True)

    type: Literal["oauth_window_closed"] = OAUTH_WINDOW_CLOSED

    def to_wire(self) -> dict:
        return self.model_dump()


RelayMessage = Annotated[Union[OAuthResponse, WindowClosed], Field(discriminator="type")]

_relay_message_adapter = TypeAdapter(RelayMessage)


def parse_relay_message(data: Any) -> Optional[Union[OAuthResponse, WindowClosed]]:
    """Validate raw message data; return None for anything that is not a relay message."""
    if not isinstance(data, dict):
        return None
    try:
        return _relay_message_adapter.validate_python(data)
    except ValidationError:
        return None


@dataclass(frozen=True)
class MessageEvent:
    """A message as delivered to a window: sender origin plus raw payload."""

    origin: str
    data: Any
