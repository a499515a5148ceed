"""
Protocols for the window hosts the handshake runs in.

The initiator talks to the main application window (open a popup, listen for
messages); the relay talks to its popup host (reach the opener, close itself,
schedule the close). Both sides schedule delayed work through a Scheduler;
an asyncio event loop satisfies it.
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

MessageListener = Callable[[Any], None]


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Runs a callback once after a delay (e.g. asyncio.AbstractEventLoop)."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


@runtime_checkable
class PopupHandle(Protocol):
    """Reference to an opened popup window."""

    @property
    def closed(self) -> bool:
        ...


@runtime_checkable
class Window(Protocol):
    """The main application window that starts the flow."""

    @property
    def origin(self) -> str:
        """Scheme, host and port of the window's document."""
        ...

    def open(self, url: str, target: str, features: str) -> Optional[PopupHandle]:
        """Open a popup; return None when the browser refuses."""
        ...

    def add_message_listener(self, listener: MessageListener) -> None:
        ...

    def remove_message_listener(self, listener: MessageListener) -> None:
        ...


@runtime_checkable
class Opener(Protocol):
    """The window that opened the relay popup."""

    def post_message(self, message: dict, target_origin: str) -> None:
        """Deliver a message; raises when the opener is gone or unreachable."""
        ...


@runtime_checkable
class RelayHost(Protocol):
    """The popup window the relay runs in."""

    @property
    def opener(self) -> Optional[Opener]:
        ...

    def close(self) -> None:
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...
