from typing import Any, Dict, List, Optional

from django.db import DatabaseError

from . import store
from .errors import PersistenceError
from .models import AppDownstreamVersion, AppVersion


def list_sequences(app_id) -> List[int]:
    return store.list_sequences(app_id)


def get_app_version(app_id, sequence: int) -> Optional[AppVersion]:
    return store.get_app_version(app_id, sequence)


def get_versions(app_id) -> List[AppVersion]:
    """Versions of an app ordered by update cursor, then sequence."""
    versions = []
    for sequence in store.list_sequences(app_id):
        version = store.get_app_version(app_id, sequence)
        if version is not None:
            versions.append(version)
    return versions


def get_downstream_versions(app_id, sequence: int) -> List[AppDownstreamVersion]:
    try:
        return list(
            AppDownstreamVersion.objects.filter(app_id=app_id, sequence=sequence)
            .select_related("cluster")
            .order_by("cluster__title")
        )
    except DatabaseError as exc:
        raise PersistenceError(f"failed to query downstream versions: {exc}") from exc


def serialize_version(version: AppVersion) -> Dict[str, Any]:
    return {
        "sequence": version.sequence,
        "update_cursor": version.update_cursor,
        "version_label": version.version_label,
        "release_notes": version.release_notes,
        "source": version.source,
        "created_at": version.created_at.isoformat() if version.created_at else "",
    }


def serialize_downstream_version(row: AppDownstreamVersion) -> Dict[str, Any]:
    return {
        "cluster_id": str(row.cluster_id),
        "cluster": row.cluster.title,
        "sequence": row.sequence,
        "status": row.status,
        "applied_at": row.applied_at.isoformat() if row.applied_at else None,
        "diff_summary": row.diff_summary,
        "git_commit_url": row.git_commit_url,
        "gitops_error": row.gitops_error,
    }
