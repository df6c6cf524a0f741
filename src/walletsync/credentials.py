"""Token providers for the remote banking API."""

import os
from abc import ABC, abstractmethod
from typing import Optional

from walletsync.config import TOKEN_ENV


class SecretProvider(ABC):
    """Key-value secret source the sync core reads its API token from."""

    @abstractmethod
    def get_token(self) -> Optional[str]:
        """Return the API token, or None if not configured."""
        pass

    def has_token(self) -> bool:
        """Return True if a non-blank token is available."""
        token = self.get_token()
        return token is not None and token.strip() != ""


class EnvSecretProvider(SecretProvider):
    """Reads the token from an environment variable on every call."""

    def __init__(self, variable: str = TOKEN_ENV):
        self.variable = variable

    def get_token(self) -> Optional[str]:
        return os.environ.get(self.variable)


class StaticSecretProvider(SecretProvider):
    """Holds a token given up front (CLI option, tests)."""

    def __init__(self, token: Optional[str]):
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token
