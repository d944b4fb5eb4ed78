"""
Local filesystem storage provider for development and tests.
Saves files to a local directory instead of Azure Blob Storage.
"""
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import structlog

from .provider import StorageProvider


logger = structlog.get_logger(__name__)


class LocalStorageProvider(StorageProvider):
    def __init__(self, base_dir: str = "var/storage", public_base_url: str = "http://localhost:8000"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _get_path(self, key: str) -> Path:
        # Remove leading slash and sanitize
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / clean_key

    def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return f"{self.public_base_url}/files/local/{quote(key.lstrip('/'))}"

    def exists(self, key: str) -> bool:
        return self._get_path(key).exists()

    def delete(self, key: str) -> None:
        path = self._get_path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            logger.warning("local_delete_failed", key=key, error=str(e))
