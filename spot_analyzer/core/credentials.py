"""
Persistent storage for Spotify credentials and the cached access token.

Two separate files are used:
    - the credentials file (.auth): JSON record with client_id,
      client_secret and refresh_token, written once by `spot-analyze auth`
    - the token file (.token): the current access token as a raw string,
      rewritten every time the token is refreshed

Keeping them apart means a refresh never touches the long-lived
credentials, and deleting .token simply forces a refresh on the next run.

Both files are written with owner-only permissions (600) where the
platform supports it.
"""

import json
from dataclasses import dataclass
from pathlib import Path

from spot_analyzer.core.exceptions import ConfigurationError
from spot_analyzer.core.logger import get_logger

logger = get_logger(__name__)


AUTH_COMMAND_HINT = "Run `spot-analyze auth` to authorize this tool with your Spotify account."


@dataclass(frozen=True)
class Credentials:
    """
    Long-lived credentials obtained by the interactive authorization flow.

    Attributes:
        client_id: Spotify application client ID.
        client_secret: Spotify application client secret.
        refresh_token: Refresh token exchanged for new access tokens.
    """
    client_id: str | None
    client_secret: str | None
    refresh_token: str | None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
        }


class CredentialStore:
    """
    Reads and writes the credentials file and the access token file.

    Attributes:
        auth_file: Path of the JSON credentials file.
        token_file: Path of the raw access token file.
    """

    def __init__(self, auth_file: Path, token_file: Path) -> None:
        self.auth_file = auth_file
        self.token_file = token_file

    def read_credentials(self) -> Credentials:
        """
        Load the stored credentials.

        Returns:
            Credentials read from the credentials file. Individual fields
            may be None if the file is incomplete; TokenManager validates
            them before use.

        Raises:
            ConfigurationError: If the file does not exist or is not a
                                JSON object.
        """
        try:
            with open(self.auth_file, "r", encoding="utf-8") as f:
                data = json.loads(f.read().strip())
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Credentials file not found: {self.auth_file}. {AUTH_COMMAND_HINT}",
                details={"path": str(self.auth_file)}
            ) from e
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Credentials file is unreadable: {e}. {AUTH_COMMAND_HINT}",
                details={"path": str(self.auth_file), "original_error": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Credentials file must contain a JSON object. {AUTH_COMMAND_HINT}",
                details={"path": str(self.auth_file)}
            )

        return Credentials(
            client_id=data.get("client_id"),
            client_secret=data.get("client_secret"),
            refresh_token=data.get("refresh_token"),
        )

    def write_credentials(self, credentials: Credentials) -> None:
        """Persist credentials, replacing any previous ones."""
        self._write_private(self.auth_file, json.dumps(credentials.to_dict()))
        logger.debug(f"Credentials saved to {self.auth_file}")

    def read_token(self) -> str | None:
        """
        Return the cached access token, or None if there is none.

        An empty token file counts as no token.
        """
        try:
            token = self.token_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def write_token(self, token: str) -> None:
        """Persist the access token so later runs can skip the refresh."""
        self._write_private(self.token_file, token)
        logger.debug(f"Access token saved to {self.token_file}")

    def clear_token(self) -> None:
        """Delete the cached access token, if any."""
        self.token_file.unlink(missing_ok=True)

    @staticmethod
    def _write_private(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        try:
            # 0o600 = owner read/write only
            path.chmod(0o600)
        except OSError:
            # Windows doesn't support chmod
            pass
