"""
Initiator side of the popup OAuth flow.

begin_authorization() generates the flow's `state`, opens the relay in a popup
and registers one message listener. The returned AuthorizationFlow correlates
incoming messages: origin check, schema check, `state` check, then dispatch to
on_success / on_error. A flow resolves at most once; after that every message
is ignored and the listener is removed.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlencode

from popup_auth import errors
from popup_auth.errors import AuthFlowError
from popup_auth.messages import MessageEvent, OAuthResponse, WindowClosed, parse_relay_message
from popup_auth.protocol import PopupHandle, Scheduler, TimerHandle, Window
from popup_auth.provider_config import ProviderConfig

logger = logging.getLogger(__name__)

POPUP_TARGET = "_blank"
POPUP_FEATURES = "width=500,height=600"

SuccessCallback = Callable[[str, Optional[str]], None]
ErrorCallback = Callable[[AuthFlowError], None]


def new_state() -> str:
    """Opaque, unguessable, single-use anti-forgery token."""
    return secrets.token_urlsafe(32)


def build_relay_url(config: ProviderConfig, state: str) -> str:
    """Relay page URL carrying the provider config and `state` as query parameters."""
    params = {
        "authUrl": config.authorization_url,
        "client_id": config.client_id,
        "scope": config.scope,
        "redirect_uri": config.redirect_uri,
        "service": config.service,
        "state": state,
    }
    for key, value in config.extra_params.items():
        # Extras never override the request parameters or the flow's state
        params.setdefault(key, value)
    separator = "&" if "?" in config.redirect_uri else "?"
    return f"{config.redirect_uri}{separator}{urlencode(params)}"


@dataclass(frozen=True)
class AuthorizationRequest:
    config: ProviderConfig
    state: str

    @classmethod
    def create(cls, config: ProviderConfig) -> "AuthorizationRequest":
        config.validate()
        return cls(config=config, state=new_state())

    @property
    def relay_url(self) -> str:
        return build_relay_url(self.config, self.state)


def _default_warning(error: AuthFlowError) -> None:
    logger.warning("%s: %s", error.message, error.description)


class AuthorizationFlow:
    """One pending authorization; owns the message listener registered for it."""

    def __init__(
        self,
        window: Window,
        request: AuthorizationRequest,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        on_warning: Optional[ErrorCallback] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.window = window
        self.request = request
        self.on_success = on_success
        self.on_error = on_error
        self.on_warning = on_warning or _default_warning
        self.scheduler = scheduler
        self.popup: Optional[PopupHandle] = None
        self.resolved = False
        self._listening = False
        self._timers: list[TimerHandle] = []
        self._poll_timer: Optional[TimerHandle] = None

    @property
    def state(self) -> str:
        return self.request.state

    @property
    def listening(self) -> bool:
        return self._listening

    def listen(self) -> None:
        if not self._listening:
            self.window.add_message_listener(self.on_relay_message)
            self._listening = True

    def on_relay_message(self, event: MessageEvent) -> None:
        """Correlate one message received by the window (not necessarily for this flow)."""
        if event.origin != self.window.origin:
            self.on_warning(errors.invalid_origin(event.origin))
            return

        message = parse_relay_message(event.data)
        if message is None:
            return

        if self.resolved:
            logger.debug("Ignoring %s for already resolved flow", message.type)
            return

        if isinstance(message, WindowClosed):
            self._fail(errors.window_closed())
        elif isinstance(message, OAuthResponse):
            self._dispatch_response(message)

    def _dispatch_response(self, message: OAuthResponse) -> None:
        if message.has_code:
            if not secrets.compare_digest(message.state or "", self.state):
                # Stale popup or forged message; keep waiting for the real one
                self.on_warning(errors.state_mismatch())
                return
            self._resolve()
            logger.info("Authorization for %s succeeded", self.request.config.service)
            self.on_success(message.code, message.state)
        elif message.error is not None:
            if message.state is not None and not secrets.compare_digest(message.state, self.state):
                self.on_warning(errors.state_mismatch())
                return
            self._fail(errors.AuthFlowError.provider_error(message.error, message.error_description))
        else:
            self._fail(
                AuthFlowError(
                    errors.FailureKind.PROVIDER_ERROR,
                    "Authentication error: no authorization code received",
                )
            )

    def _fail(self, error: AuthFlowError) -> None:
        self._resolve()
        logger.info("Authorization for %s failed: %s", self.request.config.service, error.kind.value)
        self.on_error(error)

    def _resolve(self) -> None:
        self.resolved = True
        self.close()

    def close(self) -> None:
        """Deregister the listener and cancel timers; the flow will not report anything else."""
        if self._listening:
            self.window.remove_message_listener(self.on_relay_message)
            self._listening = False
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None

    def cancel(self) -> None:
        """Abandon the flow (component teardown) without reporting an outcome."""
        self.resolved = True
        self.close()

    def start_timeout(self, seconds: float) -> None:
        if self.scheduler is None:
            raise ValueError("a scheduler is required for timeouts")
        self._timers.append(self.scheduler.call_later(seconds, self._on_timeout, seconds))

    def _on_timeout(self, seconds: float) -> None:
        if not self.resolved:
            self._fail(errors.timed_out(seconds))

    def watch_popup(self, interval: float) -> None:
        """Poll the popup handle and report WindowClosed if the user closes it early."""
        if self.scheduler is None:
            raise ValueError("a scheduler is required to watch the popup")
        self._poll_timer = self.scheduler.call_later(interval, self._poll_popup, interval)

    def _poll_popup(self, interval: float) -> None:
        self._poll_timer = None
        if self.resolved or self.popup is None:
            return
        if self.popup.closed:
            self._fail(errors.window_closed())
            return
        # Only the next poll is outstanding at any time
        self._poll_timer = self.scheduler.call_later(interval, self._poll_popup, interval)


def begin_authorization(
    window: Window,
    config: ProviderConfig,
    on_success: SuccessCallback,
    on_error: ErrorCallback,
    *,
    on_warning: Optional[ErrorCallback] = None,
    scheduler: Optional[Scheduler] = None,
    timeout: Optional[float] = None,
    popup_poll_interval: Optional[float] = None,
) -> Optional[AuthorizationFlow]:
    """
    Start a popup authorization flow for `config`.

    Opens exactly one popup at the relay URL. When the popup is blocked,
    on_error receives a PopupBlocked failure right away, no listener is
    registered and None is returned. Otherwise the pending flow is returned;
    call its cancel() on teardown.
    """
    if scheduler is None and (timeout is not None or popup_poll_interval is not None):
        raise ValueError("a scheduler is required for timeouts and popup watching")
    request = AuthorizationRequest.create(config)
    popup = window.open(request.relay_url, POPUP_TARGET, POPUP_FEATURES)
    if popup is None:
        logger.warning("Popup for %s was blocked", config.service)
        on_error(errors.popup_blocked())
        return None

    flow = AuthorizationFlow(
        window, request, on_success, on_error, on_warning=on_warning, scheduler=scheduler
    )
    flow.popup = popup
    flow.listen()
    if timeout is not None:
        flow.start_timeout(timeout)
    if popup_poll_interval is not None:
        flow.watch_popup(popup_poll_interval)
    logger.info("Started authorization for %s", config.service)
    return flow
