"""
Spotify authorization and access token lifecycle.

This module implements both halves of the OAuth2 authorization code flow
as the analyzer uses it:

AuthorizationFlow (interactive, run by `spot-analyze auth`):
    1. Build the authorization URL with the required scopes and a random
       state value
    2. Start a local HTTP server to receive the callback
    3. Open the browser (or print the URL) for user consent
    4. Verify the state and exchange the code for tokens
    5. Store client id, client secret and refresh token in the
       credentials file and discard any cached access token

TokenManager (non-interactive, used on every run):
    Returns the cached access token when there is one. Spotify doesn't
    tell the client when a token expires, so the token is only refreshed
    when forced, i.e. after the API answered 401 (see executor.py).

Both exchanges POST to the token endpoint with the client id and secret
as HTTP basic auth.
"""

import secrets
import threading
import time
import urllib.parse
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable

import requests
from requests.auth import HTTPBasicAuth

from spot_analyzer.core.credentials import AUTH_COMMAND_HINT, CredentialStore, Credentials
from spot_analyzer.core.exceptions import AuthProviderError, ConfigurationError
from spot_analyzer.core.logger import get_logger

logger = get_logger(__name__)


AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"
SCOPES = "user-library-read playlist-read-private user-read-currently-playing"
TOKEN_TIMEOUT = 30


def _post_token_request(
    session: requests.Session,
    client_id: str,
    client_secret: str,
    data: dict[str, str]
) -> dict[str, Any]:
    """
    POST a grant to the token endpoint and return the decoded body.

    Raises:
        AuthProviderError: On transport failure, a non-200 answer or a
                           body without an access token.
    """
    try:
        response = session.post(
            TOKEN_URL,
            auth=HTTPBasicAuth(client_id, client_secret),
            data=data,
            timeout=TOKEN_TIMEOUT,
        )
    except requests.RequestException as e:
        raise AuthProviderError(
            f"Could not reach the Spotify token endpoint: {e}",
            details={"grant_type": data.get("grant_type"), "original_error": str(e)}
        ) from e

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    if response.status_code != 200 or not body.get("access_token"):
        description = (
            body.get("error_description")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )
        raise AuthProviderError(
            f"Spotify refused the token request: {description}",
            details={
                "grant_type": data.get("grant_type"),
                "http_status": response.status_code,
                "error": body.get("error"),
            }
        )

    return body


class TokenManager:
    """
    Provides a usable access token, refreshing it on demand.

    Attributes:
        store: CredentialStore holding the credentials and cached token.
    """

    def __init__(self, store: CredentialStore, session: requests.Session | None = None) -> None:
        self.store = store
        self._session = session or requests.Session()

    def get_valid_token(self, force_refresh: bool = False) -> str:
        """
        Return an access token for the Spotify Web API.

        Args:
            force_refresh: Ignore the cached token and obtain a new one.
                           Set after the API rejected the cached token.

        Returns:
            The access token (without the "Bearer " prefix).

        Raises:
            ConfigurationError: If no credentials are stored or they lack
                                the client id, secret or refresh token.
            AuthProviderError: If the token endpoint rejects the refresh.
        """
        if not force_refresh:
            token = self.store.read_token()
            if token:
                return token

        credentials = self.store.read_credentials()
        if not credentials.client_id or not credentials.client_secret:
            raise ConfigurationError(
                f"Client ID and secret are missing from {self.store.auth_file}. {AUTH_COMMAND_HINT}",
                details={"path": str(self.store.auth_file)}
            )
        if not credentials.refresh_token:
            raise ConfigurationError(
                f"No refresh token in {self.store.auth_file}. {AUTH_COMMAND_HINT}",
                details={"path": str(self.store.auth_file)}
            )

        logger.debug("Requesting a new access token")
        body = _post_token_request(
            self._session,
            credentials.client_id,
            credentials.client_secret,
            {"grant_type": "refresh_token", "refresh_token": credentials.refresh_token},
        )

        # Spotify may rotate the refresh token
        rotated = body.get("refresh_token")
        if rotated and rotated != credentials.refresh_token:
            self.store.write_credentials(Credentials(
                client_id=credentials.client_id,
                client_secret=credentials.client_secret,
                refresh_token=rotated,
            ))

        token = body["access_token"]
        self.store.write_token(token)
        return token


class CallbackHandler(BaseHTTPRequestHandler):
    """
    Receives the redirect from Spotify's authorization page.

    Stores the query parameters of the first callback on the server
    (server.callback_params) for AuthorizationFlow to pick up, and shows
    the user a short page telling them to return to the terminal.
    """

    def do_GET(self):
        parsed_url = urllib.parse.urlparse(self.path)
        if parsed_url.path != "/callback":
            self.send_response(404)
            self.end_headers()
            return

        params = {
            key: values[0]
            for key, values in urllib.parse.parse_qs(parsed_url.query).items()
        }
        if self.server.callback_params is None:
            self.server.callback_params = params

        if "code" in params:
            self.send_response(200)
            title, message = "Authorization Successful!", "You can close this window and return to the terminal."
        else:
            self.send_response(400)
            title, message = "Authorization Failed", f"Error: {params.get('error', 'Unknown')}"

        self.send_header("Content-type", "text/html")
        self.end_headers()
        page = f"""
            <html>
            <head><title>{title}</title></head>
            <body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
                <h1>{title}</h1>
                <p>{message}</p>
            </body>
            </html>
            """
        self.wfile.write(page.encode())

    def log_message(self, format, *args):
        # Keep the terminal clean during the flow
        pass


class AuthorizationFlow:
    """
    Interactive authorization code flow with a local callback server.

    Attributes:
        store: CredentialStore receiving the new credentials.
        client_id: Spotify application client ID.
        client_secret: Spotify application client secret.
        redirect_port: Local port of the callback server.
        timeout: Seconds to wait for the user to finish consenting.
    """

    def __init__(
        self,
        store: CredentialStore,
        client_id: str,
        client_secret: str,
        redirect_port: int,
        session: requests.Session | None = None,
        timeout: float = 300,
        open_browser: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self.store = store
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_port = redirect_port
        self.timeout = timeout
        self._session = session or requests.Session()
        self._open_browser = open_browser

    @property
    def redirect_uri(self) -> str:
        return f"http://localhost:{self.redirect_port}/callback"

    def authorization_url(self, state: str) -> str:
        """Build the consent page URL for the given state value."""
        query = urllib.parse.urlencode({
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": SCOPES,
            "state": state,
        })
        return f"{AUTHORIZE_URL}?{query}"

    def run(self, launch_browser: bool = True, announce: Callable[[str], None] = print) -> Credentials:
        """
        Run the flow and persist the resulting credentials.

        Args:
            launch_browser: Open the consent page in the default browser.
                            The URL is always announced so it can be
                            opened by hand.
            announce: Called with user-facing messages.

        Returns:
            The stored Credentials.

        Raises:
            AuthProviderError: If the user denies access, the state does
                               not match, the flow times out or the code
                               exchange is rejected.
        """
        state = secrets.token_urlsafe(16)
        url = self.authorization_url(state)

        server = HTTPServer(("localhost", self.redirect_port), CallbackHandler)
        server.callback_params = None
        server_thread = threading.Thread(target=server.serve_forever)
        server_thread.daemon = True
        server_thread.start()

        try:
            announce(f"Authorize access at: {url}")
            if launch_browser:
                self._open_browser(url)
            params = self._wait_for_callback(server)
        finally:
            server.shutdown()
            server.server_close()

        if params.get("state") != state:
            raise AuthProviderError(
                "Authorization callback state does not match. Please try again.",
                details={"expected_state": state, "received_state": params.get("state")}
            )
        if "error" in params or "code" not in params:
            raise AuthProviderError(
                f"Authorization failed: {params.get('error', 'no authorization code received')}",
                details={"error": params.get("error")}
            )

        body = _post_token_request(
            self._session,
            self.client_id,
            self.client_secret,
            {
                "grant_type": "authorization_code",
                "code": params["code"],
                "redirect_uri": self.redirect_uri,
            },
        )

        credentials = Credentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            refresh_token=body.get("refresh_token"),
        )
        self.store.write_credentials(credentials)
        # The cached token belonged to the previous grant
        self.store.clear_token()
        logger.info(f"Authorization complete. Credentials saved to {self.store.auth_file}")
        return credentials

    def _wait_for_callback(self, server: HTTPServer) -> dict[str, str]:
        deadline = time.monotonic() + self.timeout
        while server.callback_params is None:
            if time.monotonic() > deadline:
                raise AuthProviderError(
                    f"Timed out after {self.timeout:.0f}s waiting for authorization",
                    details={"redirect_uri": self.redirect_uri}
                )
            time.sleep(0.5)
        return server.callback_params
