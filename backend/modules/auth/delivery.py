"""
Result delivery for the redirect OAuth flow.

Once the callback has either a session or an error, how it reaches the
client depends on the flow the login started with:

- landing: 302 back to the web app root with the credential in the query
- popup:   an HTML page that posts a message to the opener and closes
- mobile:  a redirect to the app's deep link with the credential appended

Successes and errors use the same strategy, so a failed popup login still
closes the popup and a failed mobile login still lands back in the app.
"""

import html
import json
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlencode

from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import BaseModel, ConfigDict

from .exceptions import OAuthFlowError
from .models import Flow, OAuthState, UserSummary

SUCCESS_MESSAGE_TYPE = "medinvest-oauth-success"
ERROR_MESSAGE_TYPE = "medinvest-oauth-error"
POPUP_CLOSE_DELAY_MS = 1500


class CallbackOutcome(BaseModel):
    """What the callback produced: a credential and user, or an error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: Optional[OAuthState] = None
    token: Optional[str] = None
    user: Optional[UserSummary] = None
    error: Optional[OAuthFlowError] = None

    @property
    def is_success(self) -> bool:
        return self.error is None and self.token is not None and self.user is not None


def script_json(value: object) -> str:
    """JSON for embedding inside a <script> element."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def append_query(url: str, params: dict[str, str]) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def _page(title: str, body: str, script: str = "", status_code: int = 200) -> HTMLResponse:
    script_block = f"<script>{script}</script>" if script else ""
    content = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{html.escape(title)}</title>
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, sans-serif; display: flex;
           align-items: center; justify-content: center; min-height: 100vh; margin: 0;
           background: #f5f7fa; color: #1a2b3c; }}
    .card {{ background: #fff; padding: 32px; border-radius: 12px; text-align: center;
            box-shadow: 0 2px 12px rgba(0, 0, 0, 0.08); max-width: 420px; }}
    a {{ color: #0066cc; }}
  </style>
</head>
<body>
  <div class="card">{body}</div>
  {script_block}
</body>
</html>"""
    return HTMLResponse(content=content, status_code=status_code)


def render_error_page(message: str, status_code: int = 400, retry_url: Optional[str] = None) -> HTMLResponse:
    """Plain error page, used when there is no trustworthy flow to deliver through."""
    retry = f'<p><a href="{html.escape(retry_url)}">Try Again</a></p>' if retry_url else ""
    return _page(
        "Login Failed",
        f"<h2>Login Failed</h2><p>{html.escape(message)}</p>{retry}",
        status_code=status_code,
    )


class ResultDelivery(ABC):
    """Strategy for handing a callback outcome back to the client."""

    flow: Flow

    def render(self, outcome: CallbackOutcome) -> Response:
        if outcome.is_success:
            return self.render_success(outcome)
        error = outcome.error or OAuthFlowError("Authentication failed. Please try again.")
        return self.render_error(outcome, error)

    @abstractmethod
    def render_success(self, outcome: CallbackOutcome) -> Response:
        pass

    @abstractmethod
    def render_error(self, outcome: CallbackOutcome, error: OAuthFlowError) -> Response:
        pass


class RedirectDelivery(ResultDelivery):
    """Landing flow: bounce back to the web app root."""

    flow = Flow.LANDING

    def __init__(self, app_root_url: str):
        self._app_root_url = app_root_url.rstrip("/")

    def render_success(self, outcome: CallbackOutcome) -> Response:
        target = append_query(
            f"{self._app_root_url}/",
            {"token": outcome.token, "user": json.dumps(outcome.user.to_client())},
        )
        return RedirectResponse(url=target, status_code=302)

    def render_error(self, outcome: CallbackOutcome, error: OAuthFlowError) -> Response:
        return render_error_page(error.message, error.status_code, retry_url=f"{self._app_root_url}/")


class PopupDelivery(ResultDelivery):
    """Popup flow: postMessage to the opener, then close."""

    flow = Flow.POPUP

    def render_success(self, outcome: CallbackOutcome) -> Response:
        message = {
            "type": SUCCESS_MESSAGE_TYPE,
            "token": outcome.token,
            "user": outcome.user.to_client(),
        }
        script = f"""
    (function () {{
      var message = {script_json(message)};
      if (window.opener) {{
        window.opener.postMessage(message, '*');
        setTimeout(function () {{ window.close(); }}, {POPUP_CLOSE_DELAY_MS});
      }} else {{
        document.getElementById('status').textContent =
          'You can close this window and return to the app.';
      }}
    }})();"""
        return _page(
            "Login Successful",
            '<h2>Login Successful</h2><p id="status">Completing sign in...</p>',
            script=script,
        )

    def render_error(self, outcome: CallbackOutcome, error: OAuthFlowError) -> Response:
        message = {"type": ERROR_MESSAGE_TYPE, "error": error.message}
        script = f"""
    (function () {{
      if (window.opener) {{
        window.opener.postMessage({script_json(message)}, '*');
        setTimeout(function () {{ window.close(); }}, {POPUP_CLOSE_DELAY_MS});
      }} else {{
        document.getElementById('status').textContent =
          'You can close this window and return to the app.';
      }}
    }})();"""
        return _page(
            "Login Failed",
            f'<h2>Login Failed</h2><p>{html.escape(error.message)}</p><p id="status"></p>',
            script=script,
            status_code=error.status_code,
        )


class MobileDeepLinkDelivery(ResultDelivery):
    """Mobile flow: send the browser to the app's registered deep link."""

    flow = Flow.MOBILE

    def render_success(self, outcome: CallbackOutcome) -> Response:
        target = outcome.state.redirect_target if outcome.state else None
        if not target:
            return render_error_page("Invalid state parameter. Please try again.", 400)
        return self._open(append_query(target, {"token": outcome.token}))

    def render_error(self, outcome: CallbackOutcome, error: OAuthFlowError) -> Response:
        target = outcome.state.redirect_target if outcome.state else None
        if not target:
            return render_error_page(error.message, error.status_code)
        return self._open(append_query(target, {"error": error.message}))

    def _open(self, url: str) -> Response:
        return RedirectResponse(url=url, status_code=302)


def get_delivery(flow: Flow, app_root_url: str) -> ResultDelivery:
    """Pick the delivery strategy for a flow."""
    if flow == Flow.POPUP:
        return PopupDelivery()
    if flow == Flow.MOBILE:
        return MobileDeepLinkDelivery()
    return RedirectDelivery(app_root_url)
