import hashlib
import logging
import re
import uuid
from typing import Any, Dict

from .providers.local import LocalStorageProvider
from .providers.s3 import S3StorageProvider

logger = logging.getLogger(__name__)

PROVIDER_TYPES = {
    "local": LocalStorageProvider,
    "s3": S3StorageProvider,
}


def archive_key(app_slug: str, sequence: int, suffix: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9._-]+", "-", (app_slug or "").strip()) or "app"
    return f"apps/{slug}/{sequence}-{suffix}.tar.gz"


class StorageProviderRegistry:
    """Archive providers configured under ``KOTSADM_ARCHIVE_STORAGE``.

    Providers are built on first use, so an S3 entry that is never selected
    does not create a boto3 client.
    """

    def __init__(self, config: Dict[str, Any]):
        storage = (config or {}).get("storage") or {}
        self.primary_name = str((storage.get("primary") or {}).get("name") or "").strip()
        self._configs: Dict[str, Dict[str, Any]] = {}
        for entry in storage.get("providers") or []:
            name = str(entry.get("name") or "").strip() if isinstance(entry, dict) else ""
            if name:
                self._configs[name] = entry
        self._built: Dict[str, Any] = {}

    def get_provider(self, name: str):
        if name not in self._built:
            entry = self._configs.get(name) or {"type": "local"}
            ptype = str(entry.get("type") or "local").strip().lower()
            provider_cls = PROVIDER_TYPES.get(ptype)
            if provider_cls is None:
                raise ValueError(f"unknown archive provider type: {ptype}")
            self._built[name] = provider_cls(entry.get(ptype) or {})
        return self._built[name]

    def get_primary_provider(self):
        return self.get_provider(self.primary_name or next(iter(self._configs), "local"))

    def _provider_for(self, metadata: Dict[str, Any]):
        provider_type = str(metadata.get("provider") or "").strip().lower()
        for name, entry in self._configs.items():
            if str(entry.get("type") or "").strip().lower() == provider_type:
                return self.get_provider(name)
        return self.get_primary_provider()

    def store_archive_bytes(self, *, app_slug: str, sequence: int, data: bytes) -> Dict[str, Any]:
        # every attempt gets its own key so a rejected attempt cannot replace a committed archive
        provider = self.get_primary_provider()
        metadata = provider.put_archive(archive_key(app_slug, sequence, uuid.uuid4().hex[:12]), data)
        metadata["sha256"] = hashlib.sha256(data).hexdigest()
        logger.info("Archived %s sequence %s to %s (%s bytes)", app_slug, sequence, provider.provider_type, len(data))
        return metadata

    def load_archive_bytes(self, metadata: Dict[str, Any]) -> bytes:
        data = self._provider_for(metadata).get_archive(metadata)
        expected = metadata.get("sha256")
        if expected and hashlib.sha256(data).hexdigest() != expected:
            raise ValueError(f"archive checksum mismatch for {metadata.get('key')}")
        return data

    def discard_archive(self, metadata: Dict[str, Any]) -> None:
        self._provider_for(metadata).delete_archive(metadata)
        logger.info("Discarded archive %s", metadata.get("key"))
