from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import MalformedInputError

KOTS_API_GROUP = "kots.io"
APP_API_GROUP = "app.k8s.io"
MANIFEST_SUFFIXES = {".yaml", ".yml"}


@dataclass
class KotsKinds:
    kots_application: Dict[str, Any] = field(default_factory=dict)
    application: Dict[str, Any] = field(default_factory=dict)
    installation: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        spec = self.kots_application.get("spec") or {}
        return str(spec.get("title") or "").strip()

    @property
    def icon(self) -> str:
        spec = self.kots_application.get("spec") or {}
        return str(spec.get("icon") or "").strip()

    @property
    def version_label(self) -> str:
        spec = self.installation.get("spec") or {}
        return str(spec.get("versionLabel") or "").strip()

    @property
    def release_notes(self) -> str:
        spec = self.installation.get("spec") or {}
        return str(spec.get("releaseNotes") or "")

    @property
    def update_cursor(self) -> Optional[int]:
        spec = self.installation.get("spec") or {}
        raw = spec.get("updateCursor")
        if raw is None or str(raw).strip() == "":
            return None
        try:
            return int(str(raw).strip())
        except ValueError as exc:
            raise MalformedInputError(f"update cursor is not an integer: {raw!r}") from exc

    def app_spec_text(self) -> str:
        return _dump(self.application)

    def kots_app_spec_text(self) -> str:
        return _dump(self.kots_application)

    def installation_text(self) -> str:
        return _dump(self.installation)


def _dump(document: Dict[str, Any]) -> str:
    if not document:
        return ""
    return yaml.safe_dump(document, sort_keys=False)


def _api_group(document: Dict[str, Any]) -> str:
    api_version = str(document.get("apiVersion") or "")
    return api_version.split("/", 1)[0] if "/" in api_version else ""


def _manifest_paths(root: Path) -> List[Path]:
    return sorted(path for path in root.rglob("*") if path.is_file() and path.suffix.lower() in MANIFEST_SUFFIXES)


def load_kots_kinds(files_dir: str) -> KotsKinds:
    root = Path(files_dir)
    if not root.is_dir():
        raise MalformedInputError(f"{files_dir} is not a directory")
    kinds = KotsKinds()
    for path in _manifest_paths(root):
        try:
            with open(path, "r", encoding="utf-8") as handle:
                documents = list(yaml.safe_load_all(handle))
        except (yaml.YAMLError, UnicodeDecodeError, OSError) as exc:
            raise MalformedInputError(f"failed to parse {path.relative_to(root)}: {exc}") from exc
        for document in documents:
            if not isinstance(document, dict):
                continue
            group = _api_group(document)
            kind = document.get("kind")
            if group == KOTS_API_GROUP and kind == "Application":
                kinds.kots_application = document
            elif group == KOTS_API_GROUP and kind == "Installation":
                kinds.installation = document
            elif group == APP_API_GROUP and kind == "Application":
                kinds.application = document
    # surface a bad cursor while nothing has been written yet
    _ = kinds.update_cursor
    return kinds
