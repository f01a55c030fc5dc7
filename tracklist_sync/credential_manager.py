"""Per-provider authorization with in-process and on-disk caching."""

from typing import Any, Optional
from tracklist_sync.credential_store import TokenStore
from tracklist_sync.utils.logger import get_logger


logger = get_logger(__name__)


class AuthorizationError(Exception):
    """Exception raised when an interactive authorization cannot complete."""
    pass


class CredentialManager:
    """
    Produce an authorized client handle for one provider.

    Sources are tried cheapest first: the handle cached on this instance,
    then the record saved in the token store, then an interactive login.

    The authorizer is injected and must provide:
        load(record) -> handle or None
        authorize() -> handle
        to_record(handle) -> dict
    """

    def __init__(self, provider: str, authorizer: Any, store: TokenStore):
        """
        Initialize credential manager.

        Args:
            provider: Provider key used for the token file
            authorizer: Provider-specific authorization variant
            store: Token store holding the saved record
        """
        self.provider = provider
        self.authorizer = authorizer
        self.store = store
        self._client = None

    def get_client(self):
        """
        Return an authorized handle, logging in interactively if needed.

        Raises:
            AuthorizationError: If the interactive login fails
            CredentialsError: If the provider is not configured for login
        """
        if self._client is not None:
            return self._client

        client = self._load_saved_client()

        if client is None:
            logger.info(f"No saved {self.provider} credentials, starting login...")
            client = self.authorizer.authorize()

            record = self.authorizer.to_record(client)
            if record:
                self.store.save(self.provider, record)
                logger.info(f"✅ Saved {self.provider} credentials")

        self._client = client
        return client

    def _load_saved_client(self) -> Optional[Any]:
        """Rebuild a handle from the saved record, or None if that is not possible."""
        record = self.store.load(self.provider)
        if record is None:
            return None

        try:
            client = self.authorizer.load(record)
        except Exception as e:
            logger.warning(f"Saved {self.provider} credentials are unusable: {e}")
            return None

        if client is None:
            return None

        # A refresh during load replaces the record
        current = self.authorizer.to_record(client)
        if current and current != record:
            self.store.save(self.provider, current)
            logger.info(f"Refreshed {self.provider} credentials")

        logger.info(f"Using saved {self.provider} credentials")
        return client
