"""Authentication module for resolving the hosting-API bearer credential.

The credential is normally supplied by the caller (the editor's session
token). When the caller has none, this module falls back to the
GITHUB_TOKEN environment variable, loaded with python-dotenv.
"""

import os
from typing import NamedTuple, Optional

from dotenv import load_dotenv

from .errors import InvalidCredentialsError


class Credentials(NamedTuple):
    """Hosting API credentials."""
    token: str


class Authenticator:
    """Resolves the bearer credential for hosting API calls.

    Credentials are read on every call and are never cached or logged.

    Environment variables:
        GITHUB_TOKEN: Bearer token used when no explicit token is given

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
        >>> headers = {"Authorization": f"Bearer {creds.token}"}
    """

    TOKEN_ENV_VAR = 'GITHUB_TOKEN'

    def __init__(self, token: Optional[str] = None, endpoint: str = "unknown"):
        """Initialize the authenticator.

        Args:
            token: Explicit bearer token supplied by the caller (takes priority)
            endpoint: API endpoint, used only in error messages
        """
        self._token = token
        self._endpoint = endpoint
        load_dotenv()

    def get_credentials(self) -> Credentials:
        """Get the bearer credential.

        Returns:
            Credentials: A named tuple containing the token

        Raises:
            InvalidCredentialsError: If no token is available
        """
        token = self._token or os.getenv(self.TOKEN_ENV_VAR)
        if not token or not token.strip():
            raise InvalidCredentialsError(
                endpoint=self._endpoint,
                reason=f"no token supplied and {self.TOKEN_ENV_VAR} is not set",
            )
        return Credentials(token=token.strip())

    def has_credentials(self) -> bool:
        """Check whether a token is available without raising."""
        token = self._token or os.getenv(self.TOKEN_ENV_VAR)
        return bool(token and token.strip())
