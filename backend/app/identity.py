"""
Oakline Admin - Identity Provider Client
Removes authentication identities held by the hosted identity provider.
"""
import os
import logging
from abc import ABC, abstractmethod

import httpx

logger = logging.getLogger(__name__)

# Configuration
IDENTITY_PROVIDER_URL = os.getenv("IDENTITY_PROVIDER_URL", "")
IDENTITY_PROVIDER_SERVICE_KEY = os.getenv("IDENTITY_PROVIDER_SERVICE_KEY", "")
IDENTITY_PROVIDER_TIMEOUT = float(os.getenv("IDENTITY_PROVIDER_TIMEOUT", "10"))


class IdentityProviderError(Exception):
    """Raised when the identity provider does not confirm a removal."""
    pass


class IdentityProvider(ABC):
    """Interface for the external identity provider."""

    @abstractmethod
    def remove_identity(self, principal_id: str) -> None:
        """
        Remove the identity for principal_id.

        Removing an identity that no longer exists is a success.
        Raises IdentityProviderError on any other failure.
        """


class HttpIdentityProvider(IdentityProvider):
    """
    Admin users endpoint of the hosted auth service.

    DELETE {base_url}/auth/v1/admin/users/{principal_id}, authenticated with
    the service key in both the apikey and Authorization headers.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = IDENTITY_PROVIDER_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def remove_identity(self, principal_id: str) -> None:
        if not self.base_url or not self.service_key:
            raise IdentityProviderError("Identity provider is not configured")

        url = f"{self.base_url}/auth/v1/admin/users/{principal_id}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.delete(url, headers=self.headers)
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Identity provider request failed: {e}") from e

        if response.status_code == 404:
            logger.info(f"Identity {principal_id} already removed")
            return

        if response.is_error:
            raise IdentityProviderError(
                f"Identity provider returned {response.status_code}: {response.text}"
            )

        logger.info(f"Removed identity {principal_id}")


def get_identity_provider() -> IdentityProvider:
    """Dependency for FastAPI - identity provider from environment configuration."""
    return HttpIdentityProvider(IDENTITY_PROVIDER_URL, IDENTITY_PROVIDER_SERVICE_KEY)
