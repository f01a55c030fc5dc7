"""Synchronization service for filling a tracklist sheet from YouTube and Spotify."""

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Dict, Optional
from dotenv import load_dotenv
from tracklist_sync.credential_manager import CredentialManager
from tracklist_sync.credential_store import TokenStore
from tracklist_sync.google_auth import GoogleAuth
from tracklist_sync.sheets_client import SheetsClient
from tracklist_sync.spotify_auth import SpotifyAuth
from tracklist_sync.spotify_client import SpotifyClient
from tracklist_sync.tracklist import (
    FAILED_MARKER,
    ON_PLAYLIST_MARKER,
    SHEET_RANGE,
    TrackRecord,
    parse_tracklist,
)
from tracklist_sync.utils.credentials import CredentialsError, load_settings
from tracklist_sync.utils.logger import get_logger, setup_logger, step_logger
from tracklist_sync.youtube_client import YouTubeClient


class SyncReport:
    """Report of synchronization results."""

    def __init__(self):
        """Initialize empty sync report."""
        self.start_time = datetime.now()
        self.end_time = None
        self.playlist_id = None
        self.rows_total = 0
        self.rows_skipped = 0
        self.videos_present = 0
        self.videos_found = 0
        self.videos_not_found = 0
        self.tracks_present = 0
        self.tracks_added = 0
        self.tracks_not_found = 0
        self.tracks_failed = 0
        self.errors = []

    def add_error(self, error: str):
        """Record an error."""
        self.errors.append(error)

    def finalize(self):
        """Mark sync as complete."""
        self.end_time = datetime.now()

    def to_dict(self) -> Dict:
        """Convert report to dictionary."""
        duration = None
        if self.end_time:
            duration = (self.end_time - self.start_time).total_seconds()

        return {
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': duration,
            'playlist_id': self.playlist_id,
            'rows_total': self.rows_total,
            'rows_skipped': self.rows_skipped,
            'videos_present': self.videos_present,
            'videos_found': self.videos_found,
            'videos_not_found': self.videos_not_found,
            'tracks_present': self.tracks_present,
            'tracks_added': self.tracks_added,
            'tracks_not_found': self.tracks_not_found,
            'tracks_failed': self.tracks_failed,
            'errors': self.errors
        }

    def save_to_file(self, filepath: str):
        """Save report to JSON file."""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)


class SyncService:
    """
    Reconcile a tracklist sheet against YouTube and a Spotify playlist.

    Rows are handled one at a time and every result is written back to its
    own cell as soon as it is known, so an interrupted pass can simply be run
    again: rows with a video link or the on-playlist marker are skipped.
    """

    def __init__(
        self,
        sheets: SheetsClient,
        youtube: YouTubeClient,
        spotify: SpotifyClient,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize sync service.

        Args:
            sheets: Sheets client for the tracklist
            youtube: YouTube search client
            spotify: Authorized Spotify client
            logger: Logger for progress messages (default: module logger)
        """
        self.sheets = sheets
        self.youtube = youtube
        self.spotify = spotify
        self.logger = logger or get_logger(__name__)
        self.report = SyncReport()

    @classmethod
    def from_settings(cls, settings: Dict[str, str], logger: Optional[logging.Logger] = None) -> "SyncService":
        """
        Authorize both providers and build a ready service.

        Raises:
            CredentialsError: If a provider is not configured for login
            AuthorizationError: If an interactive login fails
        """
        logger = logger or get_logger(__name__)
        store = TokenStore(settings['TOKEN_STORAGE_DIR'])

        google = CredentialManager(
            GoogleAuth.PROVIDER,
            GoogleAuth(client_secrets_path=settings['GOOGLE_CLIENT_SECRETS']),
            store
        )
        spotify = CredentialManager(
            SpotifyAuth.PROVIDER,
            SpotifyAuth(
                client_id=settings['SPOTIFY_CLIENT_ID'],
                client_secret=settings['SPOTIFY_CLIENT_SECRET'],
                port=int(settings['SPOTIFY_REDIRECT_PORT']),
                store=store
            ),
            store
        )

        logger.info("Authenticating with Google...")
        google_credentials = google.get_client()

        logger.info("Authenticating with Spotify...")
        spotify_client = spotify.get_client()

        logger.info("✅ Authentication successful")

        return cls(
            sheets=SheetsClient(google_credentials),
            youtube=YouTubeClient(google_credentials),
            spotify=spotify_client,
            logger=logger
        )

    def sync(self, sheet_id: str) -> SyncReport:
        """
        Run one full pass over the tracklist.

        Args:
            sheet_id: Spreadsheet ID

        Returns:
            Report of the pass
        """
        self.report = SyncReport()

        self.logger.info("Fetching tracklist rows...")
        rows = self.sheets.get_rows(sheet_id, SHEET_RANGE)

        if not rows:
            self.logger.warning("No data found.")
            self.report.finalize()
            return self.report

        playlist_id, tracks = parse_tracklist(rows)
        self.report.playlist_id = playlist_id

        if playlist_id:
            self.logger.info(f"Playlist ID: {playlist_id}")
        else:
            self.logger.warning("No playlist URL found, skipping playlist checks")

        self.logger.info(f"Checking {len(tracks)} tracks...")

        for track in tracks:
            self.report.rows_total += 1

            if not track.is_resolvable:
                self.report.rows_skipped += 1
                self.logger.info(f"Skipping row {track.row_index}: missing title or artist")
                continue

            self.logger.info(f"--- {track.title} - {track.artist} ---")

            try:
                self.check_video(sheet_id, track)
            except Exception as e:
                self.logger.error(f"❌ Video check failed for row {track.row_index}: {e}")
                self.report.add_error(f"Row {track.row_index} video: {e}")

            if not playlist_id:
                continue

            try:
                self.check_playlist(sheet_id, track, playlist_id)
            except Exception as e:
                self.logger.error(f"❌ Playlist check failed for row {track.row_index}: {e}")
                self.report.add_error(f"Row {track.row_index} playlist: {e}")

        self.report.finalize()
        self._log_summary()
        return self.report

    def check_video(self, sheet_id: str, track: TrackRecord) -> None:
        """Find a video for a row without one and write its URL to the video cell."""
        logger = step_logger(self.logger, "check_video")

        if track.video_link:
            self.report.videos_present += 1
            logger.info(f"✅ Already has video: {track.video_link}")
            return

        query = track.video_query
        logger.info(f"Searching YouTube: {query}")

        video_ids = self.youtube.search_videos(query)

        if not video_ids:
            self.report.videos_not_found += 1
            logger.warning("⚠️ Video not found.")
            return

        url = self.youtube.watch_url(video_ids[0])
        logger.info(f"✅ Video found: {url}")

        self.sheets.update_cell(sheet_id, track.video_cell, url)
        self.report.videos_found += 1

    def check_playlist(self, sheet_id: str, track: TrackRecord, playlist_id: str) -> None:
        """Add a row's track to the playlist and record the outcome in the status cell."""
        logger = step_logger(self.logger, "check_playlist")

        if track.on_playlist:
            self.report.tracks_present += 1
            logger.info("✅ Already on playlist.")
            return

        query = track.track_query
        logger.info(f"Searching Spotify: {query}")

        results = self.spotify.search_tracks(query)

        if not results:
            self.report.tracks_not_found += 1
            logger.warning("⚠️ Track not found.")
            return

        found = results[0]
        logger.info(f"✅ Track found: {found['title']} - {found['artist']}")

        added = self.spotify.add_tracks_to_playlist(playlist_id, [found['uri']])

        if not added.ok:
            logger.error(f"❌ Could not add to playlist: {added.error}")
            self.sheets.update_cell(sheet_id, track.playlist_cell, f"{FAILED_MARKER} {added.error}")
            self.report.tracks_failed += 1
            return

        self.sheets.update_cell(sheet_id, track.playlist_cell, ON_PLAYLIST_MARKER)
        self.report.tracks_added += 1

    def _log_summary(self):
        report = self.report
        self.logger.info("=" * 60)
        self.logger.info("SYNC COMPLETE")
        self.logger.info("=" * 60)
        self.logger.info(f"Rows checked: {report.rows_total} ({report.rows_skipped} skipped)")
        self.logger.info(
            f"Videos: {report.videos_found} found, {report.videos_not_found} not found, "
            f"{report.videos_present} already present"
        )
        if report.playlist_id:
            self.logger.info(
                f"Playlist: {report.tracks_added} added, {report.tracks_not_found} not found, "
                f"{report.tracks_failed} failed, {report.tracks_present} already present"
            )
        if report.errors:
            self.logger.warning(f"Errors: {len(report.errors)}")


def resolve_sheet_id(cli_value: Optional[str], settings: Dict[str, str]) -> str:
    """
    Pick the spreadsheet ID from the command line, the settings or a prompt.

    Raises:
        CredentialsError: If no ID is given anywhere
    """
    sheet_id = cli_value or settings.get('SHEET_ID')

    if not sheet_id:
        try:
            sheet_id = input("Spreadsheet ID: ").strip()
        except EOFError:
            sheet_id = ""

    if not sheet_id:
        raise CredentialsError("Spreadsheet ID not provided")

    return sheet_id


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Fill missing video links and playlist entries in a tracklist sheet"
    )
    parser.add_argument(
        '--credentials',
        type=str,
        default='credentials.md',
        help='Path to credentials file (default: credentials.md)'
    )
    parser.add_argument(
        '--sheet-id',
        type=str,
        default=None,
        help='Spreadsheet ID (default: SHEET_ID, or prompt)'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Path to log file (optional)'
    )
    parser.add_argument(
        '--report',
        type=str,
        default=None,
        help='Write a JSON report of the pass to this path (optional)'
    )

    args = parser.parse_args()

    load_dotenv()
    logger = setup_logger(log_file=args.log_file)

    try:
        settings = load_settings(args.credentials)
        sheet_id = resolve_sheet_id(args.sheet_id, settings)

        service = SyncService.from_settings(settings, logger)
        report = service.sync(sheet_id)

        if args.report:
            report.save_to_file(args.report)
            logger.info(f"Report saved to: {args.report}")

    except KeyboardInterrupt:
        print("\n\nSync interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Sync failed: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == '__main__':
    main()
