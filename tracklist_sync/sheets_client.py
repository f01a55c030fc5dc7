"""Google Sheets client for reading the tracklist and writing results back."""

from typing import List
from googleapiclient.discovery import build
from tracklist_sync.utils.logger import get_logger


logger = get_logger(__name__)


class SheetsClient:
    """Thin wrapper around the Sheets v4 values API."""

    def __init__(self, credentials, service=None):
        """
        Initialize Sheets client.

        Args:
            credentials: Authorized Google credentials
            service: Prebuilt API resource (built from credentials if omitted)
        """
        self.service = service or build('sheets', 'v4', credentials=credentials, cache_discovery=False)

    def get_rows(self, spreadsheet_id: str, range_: str = "A:D") -> List[List[str]]:
        """
        Read a range of rows.

        Returns:
            Row values; trailing empty cells are omitted by the API, so rows
            may be shorter than the range. Empty list if the range is empty.
        """
        result = self.service.spreadsheets().values().get(
            spreadsheetId=spreadsheet_id,
            range=range_
        ).execute()

        rows = result.get('values', [])
        logger.debug(f"Read {len(rows)} rows from {spreadsheet_id} ({range_})")
        return rows

    def update_cell(self, spreadsheet_id: str, cell: str, value: str) -> None:
        """Write a single raw value to a cell such as 'C7'."""
        self.service.spreadsheets().values().update(
            spreadsheetId=spreadsheet_id,
            range=cell,
            valueInputOption='RAW',
            body={'values': [[value]]}
        ).execute()

        logger.debug(f"Wrote {cell} in {spreadsheet_id}")
