"""Google authorization through the packaged installed-app login flow."""

import json
import os
from typing import Dict, List, Optional
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from tracklist_sync.utils.credentials import CredentialsError
from tracklist_sync.utils.logger import get_logger


logger = get_logger(__name__)


class GoogleAuth:
    """Installed-app authorization for the Sheets and YouTube APIs."""

    PROVIDER = "google"

    SCOPES = [
        "https://www.googleapis.com/auth/spreadsheets",
        "https://www.googleapis.com/auth/userinfo.profile",
        "https://www.googleapis.com/auth/youtube",
        "https://www.googleapis.com/auth/youtubepartner",
    ]

    def __init__(self, client_secrets_path: str = "storage/google/credentials.json",
                 scopes: Optional[List[str]] = None):
        """
        Initialize Google authorizer.

        Args:
            client_secrets_path: OAuth client registration file downloaded from
                the Google Cloud console ('installed' or 'web' client)
            scopes: Requested scopes (default: SCOPES)
        """
        self.client_secrets_path = client_secrets_path
        self.scopes = scopes or list(self.SCOPES)

    def load(self, record: Dict) -> Optional[Credentials]:
        """
        Rebuild credentials from a saved record, refreshing them if needed.

        Returns:
            Usable credentials, or None if the record cannot be used
        """
        if not record.get("token") and record.get("access_token"):
            record = dict(record, token=record["access_token"])

        try:
            credentials = Credentials.from_authorized_user_info(record, self.scopes)
        except ValueError as e:
            logger.warning(f"Saved Google token is malformed: {e}")
            return None

        if not credentials.valid and credentials.refresh_token:
            try:
                logger.info("Refreshing Google credentials...")
                credentials.refresh(Request())
            except RefreshError as e:
                logger.warning(f"Google credential refresh failed: {e}")
                return None

        return credentials

    def authorize(self) -> Credentials:
        """
        Run the browser login flow.

        Raises:
            CredentialsError: If the client registration file is missing or invalid
        """
        if not os.path.exists(self.client_secrets_path):
            raise CredentialsError(
                f"Google client secrets file not found: {self.client_secrets_path}"
            )

        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                self.client_secrets_path, scopes=self.scopes
            )
        except ValueError as e:
            raise CredentialsError(f"Invalid Google client secrets file: {e}")

        logger.info("Opening browser for Google login...")
        return flow.run_local_server(port=0)

    def to_record(self, credentials: Credentials) -> Dict:
        """
        Serialize credentials into an authorized-user token record.

        The record keeps google-auth's `token` key and mirrors it as
        `access_token`, the name every provider record shares.
        """
        record = json.loads(credentials.to_json())
        record["type"] = "authorized_user"
        record["access_token"] = record.get("token")
        return record
