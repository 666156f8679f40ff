# Entrius 2025

"""Process configuration, read once from the environment (and an optional .env file)."""

import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv

from forgelink.constants import (
    DEFAULT_GITHUB_OWNER,
    DEFAULT_GITHUB_REPO,
    DEFAULT_MATRIX_HOMESERVER,
    DEFAULT_MATRIX_ROOM,
    MESSAGE_STYLE_HTML,
    MESSAGE_STYLES,
)
from forgelink.utils.utils import mask_secret

DEFAULT_RELAY_LOG_SIZE = 5 * 1024 * 1024  # bytes


class ConfigError(Exception):
    """Unrecoverable startup misconfiguration."""


@dataclass(frozen=True)
class BotConfig:
    """Immutable bot configuration"""

    matrix_access_token: str
    github_access_token: str
    homeserver: str = DEFAULT_MATRIX_HOMESERVER
    room: str = DEFAULT_MATRIX_ROOM
    github_owner: str = DEFAULT_GITHUB_OWNER
    github_repo: str = DEFAULT_GITHUB_REPO
    message_style: str = MESSAGE_STYLE_HTML
    relay_log_dir: Optional[str] = None
    relay_log_size: int = DEFAULT_RELAY_LOG_SIZE

    def masked(self) -> Dict[str, str]:
        """Configuration values safe to print or log."""
        return {
            'matrix_access_token': mask_secret(self.matrix_access_token),
            'github_access_token': mask_secret(self.github_access_token),
            'homeserver': self.homeserver,
            'room': self.room,
            'github_repo': f'{self.github_owner}/{self.github_repo}',
            'message_style': self.message_style,
            'relay_log_dir': self.relay_log_dir or '-',
            'relay_log_size': str(self.relay_log_size),
        }


def load_config(env_file: Optional[str] = None, require_matrix: bool = True) -> BotConfig:
    """Build a BotConfig from environment variables.

    Args:
        env_file (Optional[str]): .env file to load first; the default lookup is used when None
        require_matrix (bool): whether a Matrix access token is mandatory

    Raises:
        ConfigError: when a required credential is missing or a value is invalid
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    matrix_token = os.getenv('MATRIX_ACCESS_TOKEN') or os.getenv('ACCESS_TOKEN') or ''
    github_token = os.getenv('GITHUB_ACCESS_TOKEN', '')

    if require_matrix and not matrix_token:
        raise ConfigError('MATRIX_ACCESS_TOKEN environment variable is not set!')
    if not github_token:
        raise ConfigError('GITHUB_ACCESS_TOKEN environment variable is not set!')

    style = os.getenv('FORGELINK_MESSAGE_STYLE', MESSAGE_STYLE_HTML).lower()
    if style not in MESSAGE_STYLES:
        raise ConfigError(f'FORGELINK_MESSAGE_STYLE must be one of {", ".join(MESSAGE_STYLES)}, got {style!r}')

    relay_log_size = os.getenv('FORGELINK_RELAY_LOG_SIZE', str(DEFAULT_RELAY_LOG_SIZE))
    try:
        relay_log_size_bytes = int(relay_log_size)
    except ValueError:
        raise ConfigError(f'FORGELINK_RELAY_LOG_SIZE must be an integer, got {relay_log_size!r}')

    return BotConfig(
        matrix_access_token=matrix_token,
        github_access_token=github_token,
        homeserver=os.getenv('MATRIX_HOMESERVER', DEFAULT_MATRIX_HOMESERVER),
        room=os.getenv('MATRIX_ROOM', DEFAULT_MATRIX_ROOM),
        github_owner=os.getenv('GITHUB_OWNER', DEFAULT_GITHUB_OWNER),
        github_repo=os.getenv('GITHUB_REPO', DEFAULT_GITHUB_REPO),
        message_style=style,
        relay_log_dir=os.getenv('FORGELINK_RELAY_LOG_DIR') or None,
        relay_log_size=relay_log_size_bytes,
    )
