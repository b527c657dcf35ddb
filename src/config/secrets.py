# src/config/secrets.py — v1
"""Secret lookup: Google Secret Manager first, environment variables second.

Google Secret Manager is only consulted when a GCP project is configured.
Requires 'google-cloud-secret-manager' in that case.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

logger = logging.getLogger(__name__)


class SecretProvider:
    """Synchronous ``get_secret(name) -> str | None`` with env fallback."""

    def __init__(
        self,
        project_id: str = "",
        environ: Mapping[str, str] | None = None,
        client: Any = None,
    ) -> None:
        """Initialize the provider.

        Args:
            project_id: GCP project holding the secrets. Empty disables
                Secret Manager entirely.
            environ: Environment mapping (defaults to ``os.environ``).
            client: Pre-built ``SecretManagerServiceClient`` (for tests).
        """
        self._project_id = project_id
        self._environ = environ if environ is not None else os.environ
        self._client = client

    def get_secret(self, name: str) -> str | None:
        """Return the secret value, or None when no source has it."""
        value = self._from_secret_manager(name)
        if value:
            return value
        value = self._environ.get(name)
        if value:
            logger.debug("Secret %s resolved from environment", name)
            return value
        return None

    def first_of(self, *names: str) -> str | None:
        """Return the first secret found among ``names``."""
        for name in names:
            value = self.get_secret(name)
            if value:
                return value
        return None

    def _from_secret_manager(self, name: str) -> str | None:
        if not self._project_id:
            return None
        try:
            client = self._get_client()
            path = f"projects/{self._project_id}/secrets/{name}/versions/latest"
            response = client.access_secret_version(name=path)
            value = response.payload.data.decode("utf-8")
        except ImportError:
            raise
        except Exception as e:
            logger.warning("Secret Manager lookup failed for %s: %s", name, e)
            return None
        logger.info("Secret %s resolved from Secret Manager", name)
        return value

    def _get_client(self) -> Any:
        if self._client is None:
            try:
                from google.cloud import secretmanager
            except ImportError as e:
                raise ImportError(
                    "google-cloud-secret-manager package required when GCP_PROJECT is set: "
                    "pip install google-cloud-secret-manager"
                ) from e
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client
