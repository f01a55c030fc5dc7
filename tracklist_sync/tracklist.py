"""Tracklist sheet layout and row parsing."""

import re
from typing import List, Optional, Tuple


# Sheet layout: A=title, B=artist, C=video link, D=playlist status.
# Row 1 holds labels, row 2 holds the playlist URL in column D.
SHEET_RANGE = "A:D"
VIDEO_COLUMN = "C"
PLAYLIST_COLUMN = "D"
HEADER_ROWS = 2
PLAYLIST_URL_INDEX = 3

ON_PLAYLIST_MARKER = "✅"
FAILED_MARKER = "❌"

PLAYLIST_ID_PATTERN = re.compile(r'playlist/([^/?#\s]+)')


def extract_playlist_id(playlist_url: Optional[str]) -> Optional[str]:
    """
    Extract the playlist ID from a Spotify playlist URL.

    >>> extract_playlist_id("https://open.spotify.com/playlist/XYZ123?si=abc")
    'XYZ123'
    """
    if not playlist_url:
        return None

    match = PLAYLIST_ID_PATTERN.search(playlist_url)
    return match.group(1) if match else None


def _cell(row: List[str], index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ""


class TrackRecord:
    """One tracklist row."""

    def __init__(self, row_index: int, title: str, artist: str, video_link: str = "", on_playlist: bool = False):
        """
        Initialize track record.

        Args:
            row_index: 1-based sheet row, used to address write-back cells
            title: Song title
            artist: Artist name
            video_link: Existing video URL, empty if missing
            on_playlist: True if the status cell holds the on-playlist marker
        """
        self.row_index = row_index
        self.title = title
        self.artist = artist
        self.video_link = video_link
        self.on_playlist = on_playlist

    @classmethod
    def from_row(cls, row_index: int, row: List[str]) -> "TrackRecord":
        return cls(
            row_index=row_index,
            title=_cell(row, 0),
            artist=_cell(row, 1),
            video_link=_cell(row, 2),
            on_playlist=_cell(row, 3) == ON_PLAYLIST_MARKER
        )

    @property
    def is_resolvable(self) -> bool:
        """Title and artist are both needed for any lookup."""
        return bool(self.title and self.artist)

    @property
    def video_cell(self) -> str:
        return f"{VIDEO_COLUMN}{self.row_index}"

    @property
    def playlist_cell(self) -> str:
        return f"{PLAYLIST_COLUMN}{self.row_index}"

    @property
    def video_query(self) -> str:
        # Bias the search towards live performances
        return f"{self.title} {self.artist} ao vivo"

    @property
    def track_query(self) -> str:
        return f"{self.title} {self.artist}"

    def __repr__(self) -> str:
        return f"TrackRecord(row={self.row_index}, title={self.title!r}, artist={self.artist!r})"


def parse_tracklist(rows: List[List[str]]) -> Tuple[Optional[str], List[TrackRecord]]:
    """
    Split sheet rows into the pass configuration and track records.

    Args:
        rows: Values of SHEET_RANGE, starting at row 1

    Returns:
        Tuple of (playlist_id or None, track records in sheet order)
    """
    config_row = rows[1] if len(rows) > 1 else []
    playlist_id = extract_playlist_id(_cell(config_row, PLAYLIST_URL_INDEX))

    tracks = [
        TrackRecord.from_row(offset + HEADER_ROWS + 1, row)
        for offset, row in enumerate(rows[HEADER_ROWS:])
    ]

    return playlist_id, tracks
