from typing import Optional


class StorageProvider:
    """Blob store for work-order attachments, addressed by key."""

    def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store bytes under `key` and return a URL the client can fetch."""
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Best-effort removal; failures are logged, never raised."""
        raise NotImplementedError
