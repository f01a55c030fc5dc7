"""Spotify API client for searching tracks and filling playlists."""

from typing import Dict, List, Optional
import requests
import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError
from tracklist_sync.utils.logger import get_logger


logger = get_logger(__name__)


class AddResult:
    """Outcome of a playlist add operation."""

    def __init__(self, ok: bool, error: Optional[str] = None):
        """
        Initialize add result.

        Args:
            ok: True if the tracks were added
            error: Failure message when ok is False
        """
        self.ok = ok
        self.error = error

    def __repr__(self) -> str:
        return f"AddResult(ok={self.ok}, error={self.error!r})"


class SpotifyClient:
    """Client for interacting with Spotify Web API on behalf of a logged-in user."""

    def __init__(self, auth_manager: SpotifyOAuth):
        """
        Initialize Spotify client.

        Args:
            auth_manager: OAuth manager whose token cache holds the user's token;
                an expired access token is renewed before the next request
        """
        self.auth_manager = auth_manager
        self.sp = spotipy.Spotify(auth_manager=auth_manager)

    @property
    def credentials(self) -> Optional[Dict]:
        """Current token record, including any renewal made since login."""
        return self.auth_manager.cache_handler.get_cached_token()

    @property
    def access_token(self) -> Optional[str]:
        return (self.credentials or {}).get('access_token')

    @property
    def refresh_token(self) -> Optional[str]:
        return (self.credentials or {}).get('refresh_token')

    def search_tracks(self, query: str, limit: int = 5) -> List[Dict]:
        """
        Search the Spotify catalog for tracks.

        Args:
            query: Free-text search query
            limit: Maximum number of results

        Returns:
            List of normalized track dictionaries in result order, with keys:
            - id: Spotify track ID
            - uri: Spotify track URI
            - title: Track title
            - artist: Primary artist name
            Empty if nothing matched or the request failed.
        """
        try:
            results = self.sp.search(q=query, limit=limit, type='track')
        except (SpotifyException, SpotifyOauthError, requests.exceptions.RequestException) as e:
            logger.error(f"Spotify search failed for '{query}': {e}")
            return []

        tracks = []
        for item in (results.get('tracks') or {}).get('items') or []:
            if not item:
                continue

            artist = item['artists'][0]['name'] if item.get('artists') else "Unknown"

            tracks.append({
                'id': item['id'],
                'uri': item['uri'],
                'title': item['name'],
                'artist': artist,
            })

        logger.debug(f"Spotify search '{query}' returned {len(tracks)} tracks")
        return tracks

    def add_tracks_to_playlist(self, playlist_id: str, uris: List[str]) -> AddResult:
        """
        Add tracks to a playlist.

        Args:
            playlist_id: Spotify playlist ID
            uris: Track URIs to append

        Returns:
            AddResult describing success or the failure message
        """
        try:
            self.sp.playlist_add_items(playlist_id, uris)
        except SpotifyException as e:
            message = e.msg or str(e)
            logger.error(f"Failed to add {len(uris)} track(s) to playlist {playlist_id}: {message}")
            return AddResult(False, message)
        except (SpotifyOauthError, requests.exceptions.RequestException) as e:
            logger.error(f"Failed to add {len(uris)} track(s) to playlist {playlist_id}: {e}")
            return AddResult(False, str(e))

        return AddResult(True)
