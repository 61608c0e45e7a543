"""Azure AD access tokens for password-less PostgreSQL connections."""

from __future__ import annotations

import threading
import time
from typing import Optional

from azure.core.credentials import AccessToken
from azure.identity import DefaultAzureCredential
import structlog

logger = structlog.get_logger(__name__)

POSTGRES_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"
REFRESH_INTERVAL_SECONDS = 45 * 60
EXPIRY_MARGIN_SECONDS = 5 * 60


class AzureTokenProvider:
    """Caches a managed-identity token and refreshes it before it expires.

    ``get_token`` is called from the SQLAlchemy connect hook on pool threads,
    so the cache is guarded by a lock. ``refresh`` is driven by the app
    lifespan every 45 minutes; a failed refresh clears the cache so the next
    connection fetches a fresh token.
    """

    def __init__(self, credential=None, scope: str = POSTGRES_SCOPE) -> None:
        self._credential = credential
        self._scope = scope
        self._token: Optional[AccessToken] = None
        self._lock = threading.Lock()

    def _get_credential(self):
        if self._credential is None:
            self._credential = DefaultAzureCredential()
        return self._credential

    def _is_fresh(self) -> bool:
        return self._token is not None and self._token.expires_on - EXPIRY_MARGIN_SECONDS > time.time()

    def get_token(self) -> str:
        with self._lock:
            if not self._is_fresh():
                self._token = self._get_credential().get_token(self._scope)
                logger.info("azure_token_acquired", expires_on=self._token.expires_on)
            return self._token.token

    def refresh(self) -> None:
        with self._lock:
            try:
                self._token = self._get_credential().get_token(self._scope)
                logger.info("azure_token_refreshed", expires_on=self._token.expires_on)
            except Exception:
                self._token = None
                logger.exception("azure_token_refresh_failed")

    def clear(self) -> None:
        with self._lock:
            self._token = None

    def close(self) -> None:
        credential, self._credential = self._credential, None
        if credential is not None and hasattr(credential, "close"):
            credential.close()
