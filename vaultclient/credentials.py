"""Bearer credential providers injected into the coordinators."""

from typing import Optional, Protocol


class CredentialProvider(Protocol):
    """Anything that can hand out the current bearer token."""

    def get_token(self) -> Optional[str]:
        ...


class StaticCredentials:
    """Credential provider holding a token in memory."""

    def __init__(self, token: Optional[str] = None):
        self._token = token or None

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]) -> None:
        self._token = token or None


def bearer_headers(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}
