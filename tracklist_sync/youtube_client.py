"""YouTube Data API client for finding videos."""

from typing import List
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from tracklist_sync.utils.logger import get_logger


logger = get_logger(__name__)


class YouTubeClient:
    """Search YouTube videos."""

    WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

    def __init__(self, credentials, service=None):
        self.service = service or build('youtube', 'v3', credentials=credentials, cache_discovery=False)

    def search_videos(self, query: str, max_results: int = 5) -> List[str]:
        """
        Search for videos.

        Returns:
            Video IDs in result order; empty if nothing matched or the request failed
        """
        try:
            response = self.service.search().list(
                q=query,
                part='snippet',
                type='video',
                maxResults=max_results
            ).execute()
        except HttpError as e:
            logger.error(f"YouTube search failed for '{query}': {e}")
            return []

        video_ids = []
        for item in response.get('items', []):
            video_id = item.get('id', {}).get('videoId')
            if video_id:
                video_ids.append(video_id)

        return video_ids

    @classmethod
    def watch_url(cls, video_id: str) -> str:
        return cls.WATCH_URL.format(video_id=video_id)
