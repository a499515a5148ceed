"""
HTML for the relay popup.

The relaying page carries the message in a script that performs the Relaying
step in the browser: post to window.opener with target "*", then close after
the fixed delay. Without an opener, or when posting throws, it switches to the
error view and stays open. The error page offers a manual close button that
also tells the opener the window went away.
"""

import json
from html import escape
from typing import Optional

from popup_auth.errors import AuthFlowError
from popup_auth.messages import OAuthResponse, WindowClosed

_STYLE = """
    body { font-family: system-ui, sans-serif; margin: 0; padding: 2rem; line-height: 1.5; }
    .container { max-width: 28rem; margin: 4rem auto; }
    .alert { border: 1px solid #d4d4d8; border-radius: 6px; padding: 1rem; }
    .alert.error { border-color: #ef4444; color: #b91c1c; }
    .detail { font-size: 0.875rem; opacity: 0.9; }
    .actions { display: flex; gap: 0.5rem; margin-top: 1rem; }
    button { flex: 1; padding: 0.5rem; }
    [hidden] { display: none; }
"""


def _script_json(value) -> str:
    """JSON safe to embed inside a <script> element."""
    return json.dumps(value).replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def _page(title: str, body: str, script: str = "") -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{escape(title)}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
{body}
  </div>
  <script>
{script}
  </script>
</body>
</html>
"""


def _error_block(
    message: str, description: Optional[str], info_uri: Optional[str], hidden: bool = False
) -> str:
    parts = [
        '<h1>Authentication Error</h1>',
        f'<p id="error-message">{escape(message)}</p>',
        f'<p id="error-description" class="detail">{escape(description or "")}</p>',
    ]
    # error_uri arrives as a query parameter; only link plain web URLs
    if info_uri and info_uri.startswith(("https://", "http://")):
        parts.append(
            f'<p class="detail"><a href="{escape(info_uri)}" target="_blank" '
            'rel="noopener noreferrer">More information</a></p>'
        )
    parts.append(
        '<div class="actions">'
        "<button disabled>Authentication Failed. Go Back and Try Again</button>"
        '<button type="button" id="close-window">Close Window</button>'
        "</div>"
    )
    hidden_attr = " hidden" if hidden else ""
    return f'<div id="error" class="alert error" role="alert"{hidden_attr}>{"".join(parts)}</div>'


_CLOSE_BUTTON_SCRIPT = """
    document.getElementById("close-window").addEventListener("click", function () {
      try {
        if (window.opener) { window.opener.postMessage(CLOSED_MESSAGE, "*"); }
      } catch (err) {}
      window.close();
    });
"""


def render_relaying_page(message: OAuthResponse, close_delay: float) -> str:
    body = "\n".join(
        [
            '<div id="progress" class="alert">',
            "<h1>Authentication in Progress</h1>",
            "<p>Please wait while we complete the authentication process...</p>",
            "</div>",
            _error_block("", None, None, hidden=True),
        ]
    )
    script = f"""
    var MESSAGE = {_script_json(message.to_wire())};
    var CLOSED_MESSAGE = {_script_json(WindowClosed().to_wire())};
    var CLOSE_DELAY_MS = {int(close_delay * 1000)};
    {_CLOSE_BUTTON_SCRIPT}
    function showError(message) {{
      document.getElementById("progress").hidden = true;
      document.getElementById("error-message").textContent = message;
      document.getElementById("error-description").textContent =
        "The authentication window could not communicate with the main application.";
      document.getElementById("error").hidden = false;
    }}
    (function () {{
      if (!window.opener) {{
        showError("Parent window not found");
        return;
      }}
      try {{
        window.opener.postMessage(MESSAGE, "*");
      }} catch (err) {{
        showError((err && err.message) || "Failed to communicate with parent window");
        return;
      }}
      window.setTimeout(function () {{ window.close(); }}, CLOSE_DELAY_MS);
    }})();
"""
    return _page("Authentication in Progress", body, script)


def render_error_page(failure: AuthFlowError, opener_message: Optional[OAuthResponse] = None) -> str:
    body = _error_block(failure.message, failure.description, failure.info_uri)
    notify = ""
    if opener_message is not None:
        notify = f"""
    try {{
      if (window.opener) {{ window.opener.postMessage({_script_json(opener_message.to_wire())}, "*"); }}
    }} catch (err) {{}}
"""
    script = f"""
    var CLOSED_MESSAGE = {_script_json(WindowClosed().to_wire())};
    {_CLOSE_BUTTON_SCRIPT}
    {notify}
"""
    return _page("Authentication Error", body, script)
