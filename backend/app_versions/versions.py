import logging
import tempfile
from typing import List, Optional

from django.db import DatabaseError

from . import store
from .archive import unpack_to_directory
from .errors import AppNotFoundError, InputPreparationError, MalformedInputError, PersistenceError
from .gitops import GitOpsNotifier
from .kotskinds import load_kots_kinds
from .models import AppDownstream, AppDownstreamVersion
from .secret_refs import SecretReplaceError, replace_secrets_in_path

logger = logging.getLogger(__name__)


def create_first_version(app_id, files_dir: str, source: str) -> int:
    """Create sequence 0 for an app. Never looks at or diffs against earlier versions."""
    return _create_version(app_id, files_dir, source, None)


def create_version(app_id, files_dir: str, source: str, current_sequence: int) -> int:
    return _create_version(app_id, files_dir, source, current_sequence)


def _create_version(app_id, files_dir: str, source: str, current_sequence: Optional[int]) -> int:
    try:
        kots_kinds = load_kots_kinds(files_dir)
    except MalformedInputError as exc:
        raise MalformedInputError(f"failed to read kots kinds: {exc}") from exc

    app_name = kots_kinds.title
    if not app_name:
        app = store.get_app(app_id)
        if app is None:
            raise AppNotFoundError(f"failed to get app: {app_id} not found")
        app_name = app.name
    app_icon = kots_kinds.icon

    try:
        replace_secrets_in_path(files_dir)
    except SecretReplaceError as exc:
        raise InputPreparationError(f"failed to replace secrets: {exc}") from exc

    return store.create_app_version(
        app_id,
        current_sequence,
        app_name,
        app_icon,
        kots_kinds,
        files_dir,
        GitOpsNotifier(),
        source,
    )


def gitops_errors(app_id, sequence: int) -> List[str]:
    try:
        rows = list(
            AppDownstreamVersion.objects.filter(app_id=app_id, sequence=sequence)
            .exclude(gitops_error="")
            .select_related("cluster")
        )
    except DatabaseError as exc:
        raise PersistenceError(f"failed to read gitops errors: {exc}") from exc
    return [f"{row.cluster.title}: {row.gitops_error}" for row in rows]


def reconcile_gitops(app_id, sequence: int) -> List[str]:
    """Retry GitOps commits that failed for a version, using its archived files."""
    version = store.get_app_version(app_id, sequence)
    if version is None:
        return []
    try:
        cluster_ids = list(
            AppDownstreamVersion.objects.filter(app_id=app_id, sequence=sequence)
            .exclude(gitops_error="")
            .values_list("cluster_id", flat=True)
        )
        downstreams = list(AppDownstream.objects.filter(app_id=app_id, cluster_id__in=cluster_ids))
    except DatabaseError as exc:
        raise PersistenceError(f"failed to find downstreams to reconcile: {exc}") from exc
    if not downstreams:
        return []
    try:
        data = store.archive_registry().load_archive_bytes(version.archive_json or {})
    except Exception as exc:
        raise PersistenceError(f"failed to load archive for sequence {sequence}: {exc}") from exc
    with tempfile.TemporaryDirectory() as files_dir:
        unpack_to_directory(data, files_dir)
        errors = store.notify_gitops(version.app, sequence, files_dir, GitOpsNotifier(), downstreams)
    logger.info(
        "Reconciled gitops for %s sequence %s: %s of %s still failing",
        version.app.slug,
        sequence,
        len(errors),
        len(downstreams),
    )
    return errors
