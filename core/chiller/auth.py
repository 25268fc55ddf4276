"""
Control Endpoint Authorization

The control endpoint only checks a shared API key passed in the
Authorization header, either as "api-key <key>" or "Bearer <key>".
"""

import hmac
import logging
from typing import Optional, Protocol

from .exceptions import AuthorizationError

logger = logging.getLogger(__name__)

ACCEPTED_SCHEMES = ("api-key", "bearer")


class Authorizer(Protocol):
    def authorize(self, authorization: Optional[str]) -> None:
        """Raise AuthorizationError unless the caller may mutate state."""
        ...


class ApiKeyAuthorizer:
    """Shared-secret authorizer; denies everything when no key is configured."""

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key or ""
        if not self.api_key:
            logger.warning("No API key configured, control updates are disabled")

    def authorize(self, authorization: Optional[str]) -> None:
        if not self.api_key:
            raise AuthorizationError("Control updates are disabled")
        if not authorization:
            raise AuthorizationError("Not logged in")

        scheme, _, credentials = authorization.strip().partition(" ")
        if scheme.lower() not in ACCEPTED_SCHEMES or not credentials:
            raise AuthorizationError("Unsupported authorization scheme")

        if not hmac.compare_digest(credentials.strip().encode(), self.api_key.encode()):
            raise AuthorizationError("Invalid API key")
