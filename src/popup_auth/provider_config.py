"""
Provider configuration for the popup OAuth flow.

Each identity provider is described by one immutable ProviderConfig. The
catalog below lists the providers the apps connect to; credentials and redirect
URIs come from the environment (<PREFIX>_CLIENT_ID, <PREFIX>_CLIENT_SECRET,
<PREFIX>_REDIRECT_URI, falling back to OAUTH_REDIRECT_URI). Providers without a
client id are left out of the loaded mapping.
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

DEFAULT_REDIRECT_URI = "http://localhost:8000/oauth"


@dataclass(frozen=True)
class ProviderConfig:
    service: str
    client_id: str
    scope: str
    authorization_url: str
    redirect_uri: str
    extra_params: Mapping[str, str] = field(default_factory=dict)
    token_url: Optional[str] = None
    client_secret: Optional[str] = field(default=None, repr=False)
    # Credentials go in the form body, as the token endpoints in the catalog expect
    token_endpoint_auth_method: str = "client_secret_post"

    def __post_init__(self):
        # Freeze the mapping so the config stays immutable after construction
        object.__setattr__(self, "extra_params", MappingProxyType(dict(self.extra_params)))

    def validate(self) -> None:
        """Raise ValueError if a field needed to build the authorization request is empty."""
        missing = [
            name
            for name in ("authorization_url", "client_id", "scope", "redirect_uri")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"{self.service}: missing provider settings: {', '.join(missing)}")


# (env prefix, service name, scope, authorization url, token url, extra params)
PROVIDER_CATALOG = (
    (
        "GITHUB",
        "GitHub",
        "repo user",
        "https://github.com/login/oauth/authorize",
        "https://github.com/login/oauth/access_token",
        {"allow_signup": "true"},
    ),
    (
        "REDDIT",
        "Reddit",
        "identity",
        "https://www.reddit.com/api/v1/authorize",
        "https://www.reddit.com/api/v1/access_token",
        {},
    ),
    (
        "LINKEDIN",
        "LinkedIn",
        "profile email w_member_social",
        "https://www.linkedin.com/oauth/v2/authorization",
        "https://www.linkedin.com/oauth/v2/accessToken",
        {},
    ),
    (
        "GOOGLE",
        "Google",
        "profile email",
        "https://accounts.google.com/o/oauth2/auth",
        "https://oauth2.googleapis.com/token",
        {"prompt": "select_account"},
    ),
    (
        "GOOGLE_YOUTUBE",
        "Google Youtube",
        "https://www.googleapis.com/auth/youtubepartner https://www.googleapis.com/auth/youtube.force-ssl",
        "https://accounts.google.com/o/oauth2/auth",
        "https://oauth2.googleapis.com/token",
        {"prompt": "select_account", "access_type": "offline"},
    ),
    (
        "GOOGLE_BLOGGERS",
        "Google Bloggers",
        "https://www.googleapis.com/auth/blogger",
        "https://accounts.google.com/o/oauth2/auth",
        "https://oauth2.googleapis.com/token",
        {"prompt": "select_account"},
    ),
    (
        "TUMBLR",
        "Tumblr",
        "write offline_access",
        "https://www.tumblr.com/oauth2/authorize",
        "https://api.tumblr.com/v2/oauth2/token",
        {},
    ),
)


def service_key(service: str) -> str:
    """URL-safe key for a service name ("Google Youtube" -> "google-youtube")."""
    return "-".join(service.lower().split())


def load_provider_configs(env: Optional[Mapping[str, str]] = None) -> Dict[str, ProviderConfig]:
    """Build the configured providers from the environment, keyed by service_key()."""
    env = os.environ if env is None else env
    default_redirect = env.get("OAUTH_REDIRECT_URI") or DEFAULT_REDIRECT_URI

    configs = {}
    for prefix, service, scope, auth_url, token_url, extras in PROVIDER_CATALOG:
        client_id = env.get(f"{prefix}_CLIENT_ID")
        if not client_id:
            continue
        config = ProviderConfig(
            service=service,
            client_id=client_id,
            scope=env.get(f"{prefix}_SCOPE") or scope,
            authorization_url=auth_url,
            redirect_uri=env.get(f"{prefix}_REDIRECT_URI") or default_redirect,
            extra_params=extras,
            token_url=token_url,
            client_secret=env.get(f"{prefix}_CLIENT_SECRET"),
        )
        config.validate()
        configs[service_key(service)] = config
    return configs
