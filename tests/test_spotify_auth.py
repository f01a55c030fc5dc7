"""Unit tests for Spotify authorization."""

import threading
import time
import pytest
import requests
from unittest.mock import Mock, patch
from urllib.error import HTTPError
from urllib.parse import parse_qs, urlparse
from urllib.request import ProxyHandler, build_opener
from spotipy.oauth2 import SpotifyOAuth
from tracklist_sync.credential_manager import AuthorizationError, CredentialManager
from tracklist_sync.credential_store import TokenStore
from tracklist_sync.spotify_auth import SpotifyAuth, TokenStoreCacheHandler
from tracklist_sync.spotify_client import SpotifyClient


def _token_response(payload):
    response = Mock()
    response.json.return_value = payload
    return response


def _error_response(error, description="Invalid authorization code"):
    body = Mock()
    body.json.return_value = {'error': error, 'error_description': description}
    response = Mock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(
        f"400 Client Error: {error}", response=body
    )
    return response


def _browser(*paths):
    """Fake browser that requests the given paths on the callback server."""
    visited = []
    opener = build_opener(ProxyHandler({}))

    def open_browser(url):
        visited.append(url)
        redirect_uri = parse_qs(urlparse(url).query)['redirect_uri'][0]
        origin = redirect_uri.rsplit('/callback', 1)[0]

        def visit():
            for path in paths:
                try:
                    opener.open(origin + path, timeout=5).read()
                except HTTPError:
                    pass

        threading.Thread(target=visit, daemon=True).start()
        return True

    open_browser.visited = visited
    return open_browser


def _redirect_uri(open_browser):
    return parse_qs(urlparse(open_browser.visited[0]).query)['redirect_uri'][0]


@pytest.fixture
def auth():
    return SpotifyAuth(client_id="test_client_id", client_secret="test_client_secret", port=0)


class TestLoginUrl:
    """Test cases for the login URL."""

    def test_get_login_url(self):
        auth = SpotifyAuth(client_id="cid", client_secret="secret", scopes=["b", "a"])

        url = auth.get_login_url(auth.redirect_uri())
        parsed = urlparse(url)
        params = parse_qs(parsed.query)

        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == SpotifyOAuth.OAUTH_AUTHORIZE_URL
        assert params['client_id'] == ['cid']
        assert params['response_type'] == ['code']
        assert params['redirect_uri'] == ['http://127.0.0.1:8888/callback']
        assert params['scope'] == ['a b']


@patch('requests.Session.post')
class TestAuthorize:
    """Test cases for the interactive login."""

    def test_authorize_success(self, mock_post, auth):
        mock_post.return_value = _token_response({
            'access_token': 'access_123',
            'refresh_token': 'refresh_456',
            'expires_in': 3600,
        })
        auth.open_browser = _browser("/callback?code=abc")

        client = auth.authorize()

        assert isinstance(client, SpotifyClient)
        assert client.access_token == 'access_123'
        assert client.refresh_token == 'refresh_456'
        assert client.credentials['expires_at'] > time.time()

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == SpotifyOAuth.OAUTH_TOKEN_URL
        assert kwargs['data']['grant_type'] == 'authorization_code'
        assert kwargs['data']['code'] == 'abc'
        assert kwargs['data']['redirect_uri'] == _redirect_uri(auth.open_browser)
        assert kwargs['headers']['Authorization'].startswith('Basic ')

    def test_authorize_saves_through_store(self, mock_post, tmp_path):
        mock_post.return_value = _token_response({
            'access_token': 'access_123',
            'refresh_token': 'refresh_456',
            'expires_in': 3600,
        })
        auth = SpotifyAuth("cid", "secret", port=0, open_browser=_browser("/callback?code=abc"),
                           store=TokenStore(str(tmp_path)))

        auth.authorize()

        assert TokenStore(str(tmp_path)).load("spotify")['access_token'] == 'access_123'

    def test_authorize_ignores_other_paths(self, mock_post, auth):
        mock_post.return_value = _token_response({
            'access_token': 'access_123',
            'refresh_token': 'refresh_456',
            'expires_in': 3600,
        })
        auth.open_browser = _browser("/favicon.ico", "/callback?code=abc")

        client = auth.authorize()

        assert client.access_token == 'access_123'

    def test_authorize_error_parameter(self, mock_post, auth):
        auth.open_browser = _browser("/callback?error=access_denied")

        with pytest.raises(AuthorizationError, match="access_denied"):
            auth.authorize()

        mock_post.assert_not_called()

    def test_authorize_missing_code(self, mock_post, auth):
        auth.open_browser = _browser("/callback")

        with pytest.raises(AuthorizationError, match="Code not found"):
            auth.authorize()

    def test_authorize_exchange_failure(self, mock_post, auth):
        mock_post.return_value = _error_response('invalid_grant')
        auth.open_browser = _browser("/callback?code=abc")

        with pytest.raises(AuthorizationError, match="invalid_grant"):
            auth.authorize()

    def test_authorize_releases_port(self, mock_post):
        mock_post.return_value = _token_response({'access_token': 'a', 'refresh_token': 'r', 'expires_in': 3600})
        first = SpotifyAuth("cid", "secret", port=0, open_browser=_browser("/callback?code=abc"))
        first.authorize()

        port = urlparse(_redirect_uri(first.open_browser)).port
        second = SpotifyAuth("cid", "secret", port=port, open_browser=_browser("/callback?code=def"))

        assert second.authorize().access_token == 'a'


@patch('requests.Session.post')
class TestTokenRequests:
    """Test cases for token endpoint calls."""

    def test_network_failure(self, mock_post, auth):
        mock_post.side_effect = requests.exceptions.ConnectionError("unreachable")

        with pytest.raises(AuthorizationError, match="unreachable"):
            auth.refresh("refresh_456")

    def test_refresh_request(self, mock_post, auth):
        mock_post.return_value = _token_response({'access_token': 'new', 'expires_in': 3600})

        token_info = auth.refresh("refresh_456")

        assert mock_post.call_args.kwargs['data']['grant_type'] == 'refresh_token'
        assert mock_post.call_args.kwargs['data']['refresh_token'] == 'refresh_456'
        assert token_info['access_token'] == 'new'
        assert token_info['refresh_token'] == 'refresh_456'

    def test_refresh_rejected(self, mock_post, auth):
        mock_post.return_value = _error_response('invalid_grant', "Refresh token revoked")

        with pytest.raises(AuthorizationError, match="Refresh token revoked"):
            auth.refresh("refresh_456")


class TestTokenStoreCacheHandler:
    """Test cases for the store-backed token cache."""

    def test_reads_and_writes_provider_record(self, tmp_path):
        store = TokenStore(str(tmp_path))
        cache = TokenStoreCacheHandler(store)

        assert cache.get_cached_token() is None

        cache.save_token_to_cache({'access_token': 'a', 'refresh_token': 'r'})

        assert store.load("spotify") == {'access_token': 'a', 'refresh_token': 'r'}
        assert cache.get_cached_token() == {'access_token': 'a', 'refresh_token': 'r'}


class TestLoad:
    """Test cases for rebuilding clients from saved records."""

    @patch('requests.Session.post')
    def test_load_valid_record(self, mock_post, auth):
        record = {'access_token': 'a', 'refresh_token': 'r', 'expires_at': int(time.time()) + 3600}

        client = auth.load(record)

        assert client.access_token == 'a'
        assert auth.to_record(client)['refresh_token'] == 'r'
        assert auth.to_record(client)['expires_at'] == record['expires_at']
        mock_post.assert_not_called()

    @patch('requests.Session.post')
    def test_load_record_without_expiry_refreshes(self, mock_post, auth):
        mock_post.return_value = _token_response({'access_token': 'renewed', 'expires_in': 3600})

        client = auth.load({'access_token': 'a', 'refresh_token': 'r'})

        assert client.access_token == 'renewed'
        assert client.credentials['expires_at'] > time.time()

    @pytest.mark.parametrize("record", [
        {},
        {'access_token': 'a'},
        {'refresh_token': 'r'},
    ])
    def test_load_incomplete_record(self, auth, record):
        assert auth.load(record) is None

    def test_load_record_missing_scope(self, auth):
        record = {
            'access_token': 'a',
            'refresh_token': 'r',
            'expires_at': int(time.time()) + 3600,
            'scope': 'user-read-private',
        }

        assert auth.load(record) is None

    @patch('requests.Session.post')
    def test_load_expired_record_refreshes(self, mock_post, auth):
        mock_post.return_value = _token_response({'access_token': 'renewed', 'expires_in': 3600})
        record = {'access_token': 'old', 'refresh_token': 'r', 'expires_at': int(time.time()) - 10}

        client = auth.load(record)

        assert client.access_token == 'renewed'
        assert client.refresh_token == 'r'
        assert not SpotifyOAuth.is_token_expired(client.credentials)

    @patch('requests.Session.post')
    def test_load_refresh_failure_returns_none(self, mock_post, auth):
        mock_post.return_value = _error_response('invalid_grant')
        record = {'access_token': 'old', 'refresh_token': 'r', 'expires_at': int(time.time()) - 10}

        assert auth.load(record) is None


class TestRenewalDuringPass:
    """Tokens that expire after login are renewed and saved before the next call."""

    @patch('requests.Session.post')
    def test_expired_token_renewed_and_saved(self, mock_post, tmp_path):
        store = TokenStore(str(tmp_path))
        store.save("spotify", {
            'access_token': 'saved',
            'refresh_token': 'r',
            'expires_at': int(time.time()) + 3600,
        })
        auth = SpotifyAuth("cid", "secret", store=store)
        client = CredentialManager(SpotifyAuth.PROVIDER, auth, store).get_client()
        mock_post.assert_not_called()

        # The hour runs out while the pass is still going
        store.save("spotify", dict(store.load("spotify"), expires_at=int(time.time()) - 10))
        mock_post.return_value = _token_response({'access_token': 'renewed', 'expires_in': 3600})
        client.sp._session = Mock()
        client.sp._session.request.return_value = _token_response({'tracks': {'items': []}})

        client.search_tracks("Song A Artist A")

        headers = client.sp._session.request.call_args.kwargs['headers']
        assert headers['Authorization'] == 'Bearer renewed'
        assert store.load("spotify")['access_token'] == 'renewed'
        assert store.load("spotify")['refresh_token'] == 'r'
