"""Document storage: local disk for development, Azure Blob Storage otherwise."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Protocol

import structlog
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, ContentSettings, generate_blob_sas
from fastapi import Request

logger = structlog.get_logger(__name__)

SAS_EXPIRY_MINUTES = 60
UNAVAILABLE_MESSAGE = "Azure Blob Storage service is not available due to initialization failure"


class StorageUnavailableError(RuntimeError):
    pass


class FileStorage(Protocol):
    def upload_file(self, data: bytes, key: str, content_type: str) -> str: ...

    def download_file(self, key: str) -> bytes: ...

    def delete_file(self, key: str) -> None: ...

    def file_exists(self, key: str) -> bool: ...


class LocalFileStorage:
    """Stores files below ``root``. Keys are POSIX-style relative paths."""

    def __init__(self, root: str) -> None:
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key.lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Storage key escapes the documents root: {key}")
        return path

    def upload_file(self, data: bytes, key: str, content_type: str) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("document_stored", backend="local", key=key, size=len(data))
        return key

    def download_file(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        return path.read_bytes()

    def delete_file(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        path.unlink()

    def file_exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except ValueError:
            return False


def parse_connection_string(connection_string: Optional[str]) -> dict:
    parts = {}
    for item in (connection_string or "").split(";"):
        if "=" in item:
            name, value = item.split("=", 1)
            parts[name.strip()] = value.strip()
    return parts


class AzureBlobFileStorage:
    """Blob container backend.

    A managed identity is tried first when an account name is configured; if
    it cannot reach the container the connection string is tried next.
    Construction never raises: when every method fails the error is
    remembered and reported by each later call.
    """

    def __init__(
        self,
        account_name: Optional[str],
        connection_string: Optional[str],
        container: str,
        *,
        service_client: Optional[BlobServiceClient] = None,
    ) -> None:
        parsed = parse_connection_string(connection_string)
        self.account_name = account_name or parsed.get("AccountName")
        self.account_key = parsed.get("AccountKey")
        self.container = container
        self.init_error: Optional[str] = None
        self.auth_method: Optional[str] = None
        self._container_client = None

        if service_client is not None:
            attempts = [("injected", lambda: service_client)]
        else:
            attempts = self._auth_attempts(account_name, connection_string)
        if not attempts:
            self.init_error = "AZURE_STORAGE_ACCOUNT_NAME or AZURE_STORAGE_CONNECTION_STRING must be set"
            logger.error("blob_storage_init_failed", container=container, error=self.init_error)
            return

        errors = []
        for method, build in attempts:
            try:
                self._connect(build(), container)
            except Exception as exc:
                errors.append(str(exc))
                logger.warning("blob_storage_auth_failed", method=method, container=container, error=str(exc))
                continue
            self.auth_method = method
            logger.info("blob_storage_ready", method=method, container=container)
            return

        self.init_error = "; ".join(errors)
        logger.error("blob_storage_init_failed", container=container, error=self.init_error)

    @staticmethod
    def _auth_attempts(account_name: Optional[str], connection_string: Optional[str]):
        attempts = []
        if account_name:
            attempts.append((
                "managed_identity",
                lambda: BlobServiceClient(
                    account_url=f"https://{account_name}.blob.core.windows.net",
                    credential=DefaultAzureCredential(),
                ),
            ))
        if connection_string:
            attempts.append((
                "connection_string",
                lambda: BlobServiceClient.from_connection_string(connection_string),
            ))
        return attempts

    def _connect(self, service_client: BlobServiceClient, container: str) -> None:
        container_client = service_client.get_container_client(container)
        try:
            container_client.create_container()
            logger.info("blob_container_created", container=container)
        except ResourceExistsError:
            pass
        self._service_client = service_client
        self._container_client = container_client

    @property
    def available(self) -> bool:
        return self._container_client is not None

    def _container(self):
        if self._container_client is None:
            raise StorageUnavailableError(UNAVAILABLE_MESSAGE)
        return self._container_client

    def _sas_url(self, blob_client) -> str:
        if not self.account_key:
            return blob_client.url
        token = generate_blob_sas(
            account_name=self.account_name,
            container_name=self.container,
            blob_name=blob_client.blob_name,
            account_key=self.account_key,
            permission=BlobSasPermissions(read=True),
            expiry=datetime.now(timezone.utc) + timedelta(minutes=SAS_EXPIRY_MINUTES),
        )
        return f"{blob_client.url}?{token}"

    def upload_file(self, data: bytes, key: str, content_type: str) -> str:
        blob_client = self._container().get_blob_client(key)
        blob_client.upload_blob(
            data,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type),
        )
        logger.info("document_stored", backend="azure", key=key, size=len(data))
        return self._sas_url(blob_client)

    def download_file(self, key: str) -> bytes:
        try:
            return self._container().get_blob_client(key).download_blob().readall()
        except ResourceNotFoundError:
            raise FileNotFoundError(key)

    def delete_file(self, key: str) -> None:
        try:
            self._container().get_blob_client(key).delete_blob()
        except ResourceNotFoundError:
            raise FileNotFoundError(key)

    def file_exists(self, key: str) -> bool:
        if not self.available:
            return False
        try:
            return self._container_client.get_blob_client(key).exists()
        except Exception as exc:
            logger.warning("blob_exists_check_failed", key=key, error=str(exc))
            return False


def create_file_storage(config) -> FileStorage:
    """Pick the backend named by ``StorageConfig.backend``."""
    if config.backend == "azure":
        return AzureBlobFileStorage(
            config.azure_account_name,
            config.azure_connection_string,
            config.azure_container,
        )
    return LocalFileStorage(config.documents_root)


def get_file_storage(request: Request) -> FileStorage:
    return request.app.state.file_storage
