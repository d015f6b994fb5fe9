"""Environment-driven settings for the SecureVault client."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from common.constants import REQUEST_TIMEOUT_SECONDS, UPLOAD_TIMEOUT_SECONDS
from vaultclient.exceptions import ConfigurationError


REST_BASE_URL_ENV = "VAULT_REST_BASE_URL"
GRAPHQL_URL_ENV = "VAULT_GRAPHQL_URL"
APP_BASE_URL_ENV = "VAULT_APP_BASE_URL"
TIMEOUT_ENV = "VAULT_TIMEOUT"
UPLOAD_TIMEOUT_ENV = "VAULT_UPLOAD_TIMEOUT"
MAX_CONCURRENT_UPLOADS_ENV = "VAULT_MAX_CONCURRENT_UPLOADS"


@dataclass(frozen=True)
class Settings:
    """
    Backend endpoints and transport tunables.

    ``max_concurrent_uploads`` of None means no ceiling.
    """
    rest_base_url: str
    graphql_url: str
    app_base_url: str
    timeout: float = REQUEST_TIMEOUT_SECONDS
    upload_timeout: float = UPLOAD_TIMEOUT_SECONDS
    max_concurrent_uploads: Optional[int] = None

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, object]] = None
    ) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ
            overrides: Values taking precedence over the environment, keyed by field name

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If a required URL is missing or a number is malformed
        """
        env = os.environ if env is None else env
        overrides = overrides or {}

        def pick(field_name: str, env_name: str) -> Optional[str]:
            value = overrides.get(field_name)
            if value is None or value == "":
                value = env.get(env_name)
            if value is None or str(value).strip() == "":
                return None
            return str(value).strip()

        rest_base_url = pick("rest_base_url", REST_BASE_URL_ENV)
        if not rest_base_url:
            raise ConfigurationError(f"{REST_BASE_URL_ENV} is not defined in environment variables")
        graphql_url = pick("graphql_url", GRAPHQL_URL_ENV)
        if not graphql_url:
            raise ConfigurationError(f"{GRAPHQL_URL_ENV} is not defined in environment variables")

        rest_base_url = rest_base_url.rstrip("/")
        app_base_url = (pick("app_base_url", APP_BASE_URL_ENV) or _origin_of(rest_base_url)).rstrip("/")

        return cls(
            rest_base_url=rest_base_url,
            graphql_url=graphql_url,
            app_base_url=app_base_url,
            timeout=_parse_number(pick("timeout", TIMEOUT_ENV), REQUEST_TIMEOUT_SECONDS, TIMEOUT_ENV),
            upload_timeout=_parse_number(
                pick("upload_timeout", UPLOAD_TIMEOUT_ENV), UPLOAD_TIMEOUT_SECONDS, UPLOAD_TIMEOUT_ENV
            ),
            max_concurrent_uploads=_parse_limit(pick("max_concurrent_uploads", MAX_CONCURRENT_UPLOADS_ENV)),
        )


def _origin_of(url: str) -> str:
    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    return f"{scheme}://{rest.split('/', 1)[0]}"


def _parse_number(raw: Optional[str], default: float, name: str) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{MAX_CONCURRENT_UPLOADS_ENV} must be an integer, got {raw!r}")
    # 0 disables the ceiling
    return value if value > 0 else None
