from typing import Optional

import structlog
from azure.core.exceptions import AzureError
from azure.storage.blob import BlobServiceClient, ContentSettings

from .provider import StorageProvider


logger = structlog.get_logger(__name__)


class BlobStorageProvider(StorageProvider):
    def __init__(self, connection_string: Optional[str], container: Optional[str]) -> None:
        if not connection_string or not container:
            raise RuntimeError("AZURE_BLOB_CONNECTION and AZURE_BLOB_CONTAINER must be set")
        self._service = BlobServiceClient.from_connection_string(connection_string)
        self._container = container

    def _client(self, key: str):
        return self._service.get_blob_client(self._container, key.lstrip("/"))

    def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        client = self._client(key)
        client.upload_blob(
            data,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type) if content_type else None,
        )
        return client.url

    def exists(self, key: str) -> bool:
        return self._client(key).exists()

    def delete(self, key: str) -> None:
        try:
            self._client(key).delete_blob()
        except AzureError as e:
            logger.warning("blob_delete_failed", key=key, error=str(e))
