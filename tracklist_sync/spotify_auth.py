"""Spotify authorization-code login through a short-lived local callback server."""

import webbrowser
from concurrent.futures import Future
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlparse
import requests
from spotipy.cache_handler import CacheHandler, MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError
from tracklist_sync.credential_manager import AuthorizationError
from tracklist_sync.credential_store import TokenStore
from tracklist_sync.spotify_client import SpotifyClient
from tracklist_sync.utils.logger import get_logger


logger = get_logger(__name__)


class TokenStoreCacheHandler(CacheHandler):
    """spotipy token cache backed by the provider's token file."""

    def __init__(self, store: TokenStore, provider: str = "spotify"):
        self.store = store
        self.provider = provider

    def get_cached_token(self) -> Optional[Dict]:
        return self.store.load(self.provider)

    def save_token_to_cache(self, token_info: Dict) -> None:
        self.store.save(self.provider, token_info)


class _CallbackHandler(BaseHTTPRequestHandler):
    """Handle the browser redirect that carries the authorization code."""

    def do_GET(self):
        server = self.server
        parsed = urlparse(self.path)

        if parsed.path != server.callback_path:
            self._respond(404, "Not found")
            return

        params = parse_qs(parsed.query)
        error = params.get('error', [None])[0]
        code = params.get('code', [None])[0]

        if error:
            server.result.set_exception(AuthorizationError(f"Spotify authorization failed: {error}"))
            self._respond(400, f"Error: {error}")
            return

        if not code:
            server.result.set_exception(AuthorizationError("Code not found in Spotify callback"))
            self._respond(400, "Error: Code not found")
            return

        try:
            token_info = server.exchange_code(code)
        except AuthorizationError as e:
            server.result.set_exception(e)
            self._respond(500, f"Error: {e}")
            return

        server.result.set_result(token_info)
        self._respond(200, "Spotify login complete. You can close this window.")

    def _respond(self, status: int, message: str):
        body = message.encode('utf-8')
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("Callback server: " + format % args)


class _CallbackServer(HTTPServer):
    """One-shot server: lives until `result` is resolved or rejected."""

    def __init__(self, address, callback_path: str):
        super().__init__(address, _CallbackHandler)
        self.callback_path = callback_path
        self.result: Future = Future()
        self.exchange_code: Callable[[str], Dict] = None


class SpotifyAuth:
    """
    Authorization-code login for the Spotify Web API.

    Token requests go through spotipy's SpotifyOAuth; this class only adds the
    one-shot callback listener and the token record handling. Clients it
    returns renew their access token on demand and write the renewed record
    through the same cache handler.
    """

    PROVIDER = "spotify"

    CALLBACK_PATH = "/callback"
    HOST = "127.0.0.1"

    SCOPES = [
        "user-read-private",
        "user-read-email",
        "playlist-read-private",
        "playlist-read-collaborative",
        "playlist-modify-private",
        "playlist-modify-public",
    ]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        port: int = 8888,
        scopes: Optional[List[str]] = None,
        open_browser: Callable[[str], bool] = webbrowser.open,
        store: Optional[TokenStore] = None
    ):
        """
        Initialize Spotify authorizer.

        Args:
            client_id: Spotify application client ID
            client_secret: Spotify application client secret
            port: Local callback port; must match the app's registered redirect URI
            scopes: Requested scopes (default: SCOPES)
            open_browser: Callable that shows the login URL to the user
            store: Token store used as spotipy's token cache (in memory if omitted)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.port = port
        self.scopes = scopes or list(self.SCOPES)
        self.open_browser = open_browser

        if store is not None:
            self.cache_handler = TokenStoreCacheHandler(store, self.PROVIDER)
        else:
            self.cache_handler = MemoryCacheHandler()

    def redirect_uri(self, port: Optional[int] = None) -> str:
        """Callback address registered with Spotify."""
        return f"http://{self.HOST}:{port or self.port}{self.CALLBACK_PATH}"

    def oauth(self, redirect_uri: Optional[str] = None) -> SpotifyOAuth:
        """SpotifyOAuth manager sharing this authorizer's token cache."""
        return SpotifyOAuth(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=redirect_uri or self.redirect_uri(),
            scope=self.scopes,
            cache_handler=self.cache_handler,
            open_browser=False
        )

    def get_login_url(self, redirect_uri: str) -> str:
        """Build the Spotify authorize URL for the given callback address."""
        return self.oauth(redirect_uri).get_authorize_url()

    def authorize(self) -> SpotifyClient:
        """
        Log in through the browser and exchange the returned code for tokens.

        Blocks until the callback server receives the redirect.

        Raises:
            AuthorizationError: If the user denies access, the callback has no
                code, the token exchange fails or the port cannot be bound
        """
        try:
            server = _CallbackServer((self.HOST, self.port), self.CALLBACK_PATH)
        except OSError as e:
            raise AuthorizationError(f"Could not start callback server on port {self.port}: {e}")

        try:
            redirect_uri = self.redirect_uri(server.server_address[1])
            server.exchange_code = lambda code: self.exchange_code(code, redirect_uri)

            url = self.get_login_url(redirect_uri)
            logger.info(f"Callback server running at {redirect_uri}")
            logger.info("Opening browser to login...")
            if not self.open_browser(url):
                logger.info(f"Open this URL in your browser to login: {url}")

            while not server.result.done():
                server.handle_request()
        finally:
            server.server_close()

        server.result.result()
        logger.info("✅ Spotify login complete")
        return SpotifyClient(self.oauth(redirect_uri))

    def exchange_code(self, code: str, redirect_uri: str) -> Dict:
        """
        Exchange an authorization code for a token record.

        Raises:
            AuthorizationError: On an OAuth error response or network failure
        """
        try:
            return self.oauth(redirect_uri).get_access_token(code, as_dict=True, check_cache=False)
        except (SpotifyOauthError, requests.exceptions.RequestException) as e:
            raise AuthorizationError(f"Spotify token request failed: {e}")

    def refresh(self, refresh_token: str) -> Dict:
        """
        Request a new access token with a refresh token.

        Raises:
            AuthorizationError: On an OAuth error response or network failure
        """
        try:
            return self.oauth().refresh_access_token(refresh_token)
        except (SpotifyOauthError, requests.exceptions.RequestException) as e:
            raise AuthorizationError(f"Spotify token refresh failed: {e}")

    def load(self, record: Dict) -> Optional[SpotifyClient]:
        """
        Rebuild a client from a saved record, refreshing an expired token.

        Returns:
            Client, or None if the record is incomplete, lacks a requested
            scope or cannot be refreshed
        """
        if not record.get('access_token') or not record.get('refresh_token'):
            return None

        granted = set((record.get('scope') or " ".join(self.scopes)).split())
        if not set(self.scopes) <= granted:
            logger.info("Saved Spotify token lacks requested scopes")
            return None

        token_info = dict(record)
        token_info['scope'] = " ".join(sorted(granted))
        # Unknown expiry counts as expired
        token_info.setdefault('expires_at', 0)

        if SpotifyOAuth.is_token_expired(token_info):
            logger.info("Refreshing Spotify access token...")
            try:
                # Renewed token is written to the cache by spotipy
                self.refresh(token_info['refresh_token'])
            except AuthorizationError as e:
                logger.warning(str(e))
                return None
        else:
            self.cache_handler.save_token_to_cache(token_info)

        return SpotifyClient(self.oauth())

    def to_record(self, client: SpotifyClient) -> Dict:
        """Serialize a client's current credentials into a token record."""
        return client.credentials
