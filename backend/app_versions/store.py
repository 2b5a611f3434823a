import logging
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import F, Max

from .archive import pack_directory
from .diff import compute_diff_summary, compute_files_manifest
from .errors import AppNotFoundError, AppVersionError, PersistenceError
from .kotskinds import KotsKinds
from .models import App, AppDownstream, AppDownstreamVersion, AppVersion
from .storage.registry import StorageProviderRegistry

logger = logging.getLogger(__name__)


def archive_registry() -> StorageProviderRegistry:
    return StorageProviderRegistry(settings.KOTSADM_ARCHIVE_STORAGE)


def get_app(app_id) -> Optional[App]:
    try:
        return App.objects.filter(id=app_id).first()
    except DatabaseError as exc:
        raise PersistenceError(f"failed to get app: {exc}") from exc


def get_max_sequence(app_id) -> Optional[int]:
    try:
        return (
            AppVersion.objects.filter(app_id=app_id)
            .aggregate(max_sequence=Max("sequence"))
            .get("max_sequence")
        )
    except DatabaseError as exc:
        raise PersistenceError(f"failed to find current max sequence: {exc}") from exc


def get_app_version(app_id, sequence: int) -> Optional[AppVersion]:
    try:
        return AppVersion.objects.filter(app_id=app_id, sequence=sequence).select_related("app").first()
    except DatabaseError as exc:
        raise PersistenceError(f"failed to get app version: {exc}") from exc


def list_sequences(app_id) -> List[int]:
    try:
        return list(
            AppVersion.objects.filter(app_id=app_id)
            .order_by(F("update_cursor").asc(nulls_last=True), "sequence")
            .values_list("sequence", flat=True)
        )
    except DatabaseError as exc:
        raise PersistenceError(f"failed to query app versions: {exc}") from exc


def _archive_files(app: App, sequence: int, data: bytes) -> dict:
    try:
        return archive_registry().store_archive_bytes(app_slug=app.slug, sequence=sequence, data=data)
    except Exception as exc:
        raise PersistenceError(f"failed to archive files for sequence {sequence}: {exc}") from exc


def _discard_archive(archive: Optional[dict]) -> None:
    if not archive:
        return
    try:
        archive_registry().discard_archive(archive)
    except Exception:
        logger.exception("Failed to discard archive %s of a rolled back version", archive.get("key"))


def create_app_version(
    app_id,
    current_sequence: Optional[int],
    name: str,
    icon: str,
    kots_kinds: KotsKinds,
    files_dir: str,
    gitops,
    source: str,
) -> int:
    from .sequence import application_lock, get_next_app_sequence

    try:
        files_manifest = compute_files_manifest(files_dir)
        archive_bytes = pack_directory(files_dir)
    except OSError as exc:
        raise PersistenceError(f"failed to read files in {files_dir}: {exc}") from exc

    archive = None
    with application_lock(app_id):
        try:
            with transaction.atomic():
                app = App.objects.select_for_update().filter(id=app_id).first()
                if app is None:
                    raise AppNotFoundError(f"app {app_id} not found")
                new_sequence = get_next_app_sequence(app_id, current_sequence is not None)
                if AppVersion.objects.filter(app_id=app_id, sequence=new_sequence).exists():
                    raise PersistenceError(f"sequence {new_sequence} already exists for app {app_id}")
                previous = None
                if new_sequence > 0:
                    previous = (
                        AppVersion.objects.filter(app_id=app_id, sequence__lt=new_sequence)
                        .order_by("-sequence")
                        .first()
                    )
                archive = _archive_files(app, new_sequence, archive_bytes)
                AppVersion.objects.create(
                    app=app,
                    sequence=new_sequence,
                    update_cursor=kots_kinds.update_cursor,
                    version_label=kots_kinds.version_label,
                    release_notes=kots_kinds.release_notes,
                    source=source,
                    app_spec=kots_kinds.app_spec_text(),
                    kots_app_spec=kots_kinds.kots_app_spec_text(),
                    installation_spec=kots_kinds.installation_text(),
                    files_json=files_manifest,
                    archive_json=archive,
                )
                app.name = name
                app.icon_uri = icon
                app.save(update_fields=["name", "icon_uri", "updated_at"])
                diff_summary = compute_diff_summary(previous.files_json, files_manifest) if previous else None
                downstreams = list(AppDownstream.objects.filter(app_id=app_id))
                for downstream in downstreams:
                    AppDownstreamVersion.objects.create(
                        app=app,
                        cluster_id=downstream.cluster_id,
                        sequence=new_sequence,
                        status="pending",
                        diff_summary=diff_summary,
                    )
        except DatabaseError as exc:
            _discard_archive(archive)
            raise PersistenceError(f"failed to create app version: {exc}") from exc
        except AppVersionError:
            _discard_archive(archive)
            raise

    logger.info("Created app version %s sequence %s (source=%s)", app.slug, new_sequence, source)
    notify_gitops(app, new_sequence, files_dir, gitops, downstreams)
    return new_sequence


def _record_gitops_result(app_id, cluster_id, sequence: int, *, commit_url: str = "", error: str = "") -> None:
    try:
        AppDownstreamVersion.objects.filter(app_id=app_id, cluster_id=cluster_id, sequence=sequence).update(
            git_commit_url=commit_url,
            gitops_error=error[:1000],
        )
    except DatabaseError:
        logger.exception("Failed to record gitops result for app %s sequence %s", app_id, sequence)


def notify_gitops(app: App, sequence: int, files_dir: str, gitops, downstreams: List[AppDownstream]) -> List[str]:
    """Mirror a committed version into each downstream's GitOps repo.

    Runs after the version transaction has committed. Failures are logged and
    recorded on the downstream version row for later reconciliation; they
    never undo the version.
    """
    errors: List[str] = []
    if gitops is None:
        return errors
    for downstream in downstreams:
        try:
            commit_url = gitops.create_downstream_commit(
                app.id, downstream.cluster_id, sequence, files_dir, downstream.downstream_name
            )
        except Exception as exc:
            logger.warning(
                "GitOps commit failed for %s sequence %s on %s: %s",
                app.slug,
                sequence,
                downstream.downstream_name,
                exc,
            )
            errors.append(f"{downstream.downstream_name}: {exc}")
            _record_gitops_result(app.id, downstream.cluster_id, sequence, error=str(exc))
            continue
        if commit_url:
            _record_gitops_result(app.id, downstream.cluster_id, sequence, commit_url=commit_url)
    return errors
