import base64
import logging
from pathlib import Path
from typing import Optional

import requests
from django.conf import settings

from .errors import GitOpsNotificationError
from .models import App, DownstreamGitOps
from .secret_refs import REF_PREFIXES, resolve_secret_ref

logger = logging.getLogger(__name__)

MANIFEST_SUFFIXES = {".yaml", ".yml"}


def get_downstream_gitops(app_id, cluster_id) -> Optional[DownstreamGitOps]:
    return DownstreamGitOps.objects.filter(app_id=app_id, cluster_id=cluster_id, enabled=True).first()


def _get_access_token(config: DownstreamGitOps) -> str:
    ref = (config.token_ref or "").strip()
    if ref.startswith(REF_PREFIXES):
        token = resolve_secret_ref(ref)
    else:
        token = ref
    if not token:
        raise GitOpsNotificationError(f"no access token available for {config.repo}")
    return token


def _headers(config: DownstreamGitOps) -> dict:
    return {
        "Authorization": f"Bearer {_get_access_token(config)}",
        "Accept": "application/vnd.github+json",
    }


def render_manifests(files_dir: str) -> str:
    root = Path(files_dir)
    chunks = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in MANIFEST_SUFFIXES:
            continue
        text = path.read_text(encoding="utf-8").strip()
        if text:
            chunks.append(text)
    return "\n---\n".join(chunks) + "\n"


def _target_path(config: DownstreamGitOps, app_slug: str) -> str:
    base = (config.path or "").strip("/")
    filename = f"{app_slug}.yaml"
    return f"{base}/{filename}" if base else filename


def _existing_sha(config: DownstreamGitOps, url: str) -> Optional[str]:
    resp = requests.get(url, headers=_headers(config), params={"ref": config.branch}, timeout=30)
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return resp.json().get("sha")


def create_gitops_commit(
    config: DownstreamGitOps,
    app_slug: str,
    app_name: str,
    sequence: int,
    files_dir: str,
    downstream_name: str,
) -> str:
    api = settings.KOTSADM_GITHUB_API_URL
    url = f"{api}/repos/{config.repo}/contents/{_target_path(config, app_slug)}"
    content = render_manifests(files_dir)
    payload = {
        "message": f"Updating {app_name} to sequence {sequence} for {downstream_name}",
        "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        "branch": config.branch,
    }
    sha = _existing_sha(config, url)
    if sha:
        payload["sha"] = sha
    resp = requests.put(url, headers=_headers(config), json=payload, timeout=30)
    resp.raise_for_status()
    return (resp.json().get("commit") or {}).get("html_url") or ""


class GitOpsNotifier:
    notifier_type = "gitops"

    def create_downstream_commit(
        self, app_id, cluster_id, sequence: int, files_dir: str, downstream_name: str
    ) -> Optional[str]:
        config = get_downstream_gitops(app_id, cluster_id)
        if config is None:
            return None
        app = App.objects.filter(id=app_id).first()
        if app is None:
            raise GitOpsNotificationError(f"app {app_id} not found")
        try:
            commit_url = create_gitops_commit(config, app.slug, app.name, sequence, files_dir, downstream_name)
        except (requests.RequestException, OSError, GitOpsNotificationError) as exc:
            config.last_error = str(exc)[:1000]
            config.save(update_fields=["last_error", "updated_at"])
            if isinstance(exc, GitOpsNotificationError):
                raise
            raise GitOpsNotificationError(f"failed to create gitops commit: {exc}") from exc
        if config.last_error:
            config.last_error = ""
            config.save(update_fields=["last_error", "updated_at"])
        logger.info("Created gitops commit for %s sequence %s on %s: %s", app.slug, sequence, downstream_name, commit_url)
        return commit_url
