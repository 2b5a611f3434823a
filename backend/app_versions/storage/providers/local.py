import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


class LocalStorageProvider:
    provider_type = "local"

    def __init__(self, config: Dict[str, Any]):
        base_path = (config or {}).get("base_path") or os.environ.get("KOTSADM_ARCHIVE_LOCAL_PATH")
        self.base_path = Path(str(base_path or "/tmp/kotsadm-archives"))

    def put_archive(self, key: str, data: bytes) -> Dict[str, Any]:
        target = self.base_path / key
        target.parent.mkdir(parents=True, exist_ok=True)
        # readers never see a partially written archive
        partial = target.with_name(target.name + ".part")
        partial.write_bytes(data)
        os.replace(partial, target)
        return {
            "provider": self.provider_type,
            "key": key,
            "path": str(target),
            "size_bytes": len(data),
            "stored_at": datetime.now(timezone.utc).isoformat(),
        }

    def _path(self, metadata: Dict[str, Any]) -> Path:
        return Path(metadata.get("path") or self.base_path / str(metadata.get("key") or ""))

    def get_archive(self, metadata: Dict[str, Any]) -> bytes:
        path = self._path(metadata)
        if not path.is_file():
            raise FileNotFoundError(f"archive {path} does not exist")
        return path.read_bytes()

    def delete_archive(self, metadata: Dict[str, Any]) -> None:
        self._path(metadata).unlink(missing_ok=True)
