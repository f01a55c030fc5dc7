"""JSON file storage for provider tokens."""

import json
import os
from pathlib import Path
from typing import Dict, Optional
from tracklist_sync.utils.logger import get_logger


logger = get_logger(__name__)


class TokenStore:
    """
    Persist one credential record per provider.

    Records live at ``{root}/{provider}/token.json``. Loading never raises:
    a missing, unreadable or corrupt file reads as "no saved credential".
    Saving replaces the whole file; concurrent writers are not coordinated,
    the last write wins.
    """

    def __init__(self, root: str = "storage"):
        self.root = Path(root)

    def path_for(self, provider: str) -> Path:
        """Return the token file location for a provider."""
        return self.root / provider / "token.json"

    def load(self, provider: str) -> Optional[Dict]:
        """
        Load the saved credential record for a provider.

        Args:
            provider: Provider key (e.g. 'google', 'spotify')

        Returns:
            The record dictionary, or None if nothing usable is saved
        """
        path = self.path_for(provider)
        if not path.exists():
            logger.debug(f"No saved {provider} token at {path}")
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                record = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {provider} token file {path}: {e}")
            return None

        if not isinstance(record, dict):
            logger.warning(f"Ignoring {provider} token file {path}: expected a JSON object")
            return None

        return record

    def save(self, provider: str, record: Dict) -> Path:
        """
        Save (replace) the credential record for a provider.

        Args:
            provider: Provider key
            record: JSON-serializable credential record

        Returns:
            Path of the written file
        """
        path = self.path_for(provider)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(record, f, indent=2)
        os.chmod(path, 0o600)

        logger.debug(f"Saved {provider} token to {path}")
        return path
