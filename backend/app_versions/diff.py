import hashlib
from pathlib import Path
from typing import Any, Dict, Optional


def compute_files_manifest(files_dir: str) -> Dict[str, str]:
    root = Path(files_dir)
    manifest: Dict[str, str] = {}
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        manifest[path.relative_to(root).as_posix()] = hashlib.sha256(path.read_bytes()).hexdigest()
    return manifest


def compute_diff_summary(old_manifest: Optional[Dict[str, str]], new_manifest: Dict[str, str]) -> Dict[str, Any]:
    old_manifest = old_manifest or {}
    added = sorted(set(new_manifest) - set(old_manifest))
    removed = sorted(set(old_manifest) - set(new_manifest))
    changed = sorted(path for path in set(old_manifest) & set(new_manifest) if old_manifest[path] != new_manifest[path])
    return {
        "files_added": len(added),
        "files_removed": len(removed),
        "files_changed": len(changed),
        "changed_paths": added + removed + changed,
    }
