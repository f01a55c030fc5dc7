"""Settings loader for reading credentials from credentials.md and the environment."""

import os
import re
from typing import Dict, Mapping, Optional


class CredentialsError(Exception):
    """Exception raised when credentials or required settings are missing."""
    pass


REQUIRED_KEYS = [
    'SPOTIFY_CLIENT_ID',
    'SPOTIFY_CLIENT_SECRET',
]

OPTIONAL_KEYS = [
    'SHEET_ID',
    'TOKEN_STORAGE_DIR',
    'GOOGLE_CLIENT_SECRETS',
    'SPOTIFY_REDIRECT_PORT',
]

DEFAULTS = {
    'TOKEN_STORAGE_DIR': 'storage',
    'GOOGLE_CLIENT_SECRETS': 'storage/google/credentials.json',
    'SPOTIFY_REDIRECT_PORT': '8888',
}


def parse_credentials(credentials_path: str = "credentials.md") -> Dict[str, str]:
    """
    Parse credentials from credentials.md file.

    Args:
        credentials_path: Path to the credentials file (default: credentials.md)

    Returns:
        Dictionary of every KEY=value pair found in the file

    Raises:
        CredentialsError: If file not found
    """
    if not os.path.exists(credentials_path):
        raise CredentialsError(f"Credentials file not found: {credentials_path}")

    with open(credentials_path, 'r', encoding='utf-8') as f:
        content = f.read()

    credentials = {}

    # Parse key=value pairs
    pattern = r'([A-Z_]+)=(.+)'
    matches = re.findall(pattern, content)

    for key, value in matches:
        credentials[key] = value.strip()

    return credentials


def load_settings(
    credentials_path: Optional[str] = "credentials.md",
    environ: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Build the settings used to wire the credential managers and the sync.

    The credentials file is optional; environment variables override its
    values. Defaults are applied for storage locations and the callback port.

    Args:
        credentials_path: Path to a credentials.md file, or None to skip it
        environ: Environment mapping (default: os.environ)

    Returns:
        Settings dictionary

    Raises:
        CredentialsError: If a required key is missing or the port is not a number
    """
    if environ is None:
        environ = os.environ

    settings = dict(DEFAULTS)

    if credentials_path and os.path.exists(credentials_path):
        settings.update(parse_credentials(credentials_path))

    for key in REQUIRED_KEYS + OPTIONAL_KEYS:
        value = environ.get(key)
        if value:
            settings[key] = value.strip()

    missing_keys = [key for key in REQUIRED_KEYS if not settings.get(key)]
    if missing_keys:
        raise CredentialsError(
            f"Missing required credentials: {', '.join(missing_keys)}"
        )

    if not settings['SPOTIFY_REDIRECT_PORT'].isdigit():
        raise CredentialsError(
            f"SPOTIFY_REDIRECT_PORT must be a number, got: {settings['SPOTIFY_REDIRECT_PORT']}"
        )

    return settings
