import logging
from typing import List

from django.db import DatabaseError, transaction
from django.utils import timezone

from .errors import DeployError, PersistenceError
from .models import AppDownstream, AppDownstreamVersion

logger = logging.getLogger(__name__)


def _set_current_sequence(downstream: AppDownstream, sequence: int) -> None:
    downstream.current_sequence = sequence
    downstream.save(update_fields=["current_sequence", "updated_at"])


def _mark_version_deployed(downstream: AppDownstream, sequence: int, applied_at) -> int:
    return AppDownstreamVersion.objects.filter(
        app_id=downstream.app_id,
        cluster_id=downstream.cluster_id,
        sequence=sequence,
    ).update(status="deployed", applied_at=applied_at, updated_at=applied_at)


def _already_deployed(downstream: AppDownstream, sequence: int) -> bool:
    if downstream.current_sequence != sequence:
        return False
    return AppDownstreamVersion.objects.filter(
        app_id=downstream.app_id,
        cluster_id=downstream.cluster_id,
        sequence=sequence,
        status="deployed",
    ).exists()


def deploy_version(app_id, sequence: int, cluster_id=None) -> List[AppDownstream]:
    """Make ``sequence`` the current version of an app on its downstreams.

    The downstream pointer and the per-cluster version status move in one
    transaction. Without ``cluster_id`` every downstream of the app is moved.
    Deploying the sequence that is already current and deployed is a no-op.
    """
    try:
        with transaction.atomic():
            downstreams = AppDownstream.objects.select_for_update().filter(app_id=app_id)
            if cluster_id is not None:
                downstreams = downstreams.filter(cluster_id=cluster_id)
            downstreams = list(downstreams.order_by("id"))
            if not downstreams:
                raise DeployError(f"no downstream found for app {app_id}")
            applied_at = timezone.now()
            for downstream in downstreams:
                if _already_deployed(downstream, sequence):
                    continue
                _set_current_sequence(downstream, sequence)
                if not _mark_version_deployed(downstream, sequence, applied_at):
                    raise DeployError(
                        f"no downstream version {sequence} for app {app_id} on cluster {downstream.cluster_id}"
                    )
    except DatabaseError as exc:
        raise PersistenceError(f"failed to deploy sequence {sequence}: {exc}") from exc
    logger.info("Deployed app %s sequence %s to %s downstream(s)", app_id, sequence, len(downstreams))
    return downstreams
