"""In-place resolution of secret references inside ``Secret`` manifests.

Values of the form ``env:NAME``, ``aws.ssm:/path`` or
``aws.secrets_manager:id`` found under ``stringData`` or ``data`` are
replaced with the resolved secret before the files are archived.
"""

import base64
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import boto3
import yaml

logger = logging.getLogger(__name__)

REF_PREFIXES = ("env:", "aws.ssm:", "aws.secrets_manager:")
MANIFEST_SUFFIXES = {".yaml", ".yml"}


class SecretReplaceError(RuntimeError):
    pass


def _aws_region_name() -> str:
    return str(os.environ.get("AWS_DEFAULT_REGION") or os.environ.get("AWS_REGION") or "").strip()


def resolve_secret_ref(ref_text: str) -> Optional[str]:
    value = str(ref_text or "").strip()
    if value.startswith("env:"):
        return os.environ.get(value.split(":", 1)[1])
    region = _aws_region_name()
    if value.startswith("aws.ssm:"):
        client = boto3.client("ssm", region_name=region) if region else boto3.client("ssm")
        response = client.get_parameter(Name=value.split(":", 1)[1], WithDecryption=True)
        return response.get("Parameter", {}).get("Value")
    if value.startswith("aws.secrets_manager:"):
        client = boto3.client("secretsmanager", region_name=region) if region else boto3.client("secretsmanager")
        response = client.get_secret_value(SecretId=value.split(":", 1)[1])
        return response.get("SecretString")
    return None


def _is_ref(value: Any) -> bool:
    return isinstance(value, str) and value.strip().startswith(REF_PREFIXES)


def _resolve_or_fail(ref_text: str, secret_name: str) -> str:
    try:
        resolved = resolve_secret_ref(ref_text)
    except Exception as exc:
        raise SecretReplaceError(f"secret {secret_name}: lookup of {ref_text.split(':', 1)[0]} ref failed") from exc
    if resolved is None:
        raise SecretReplaceError(f"secret {secret_name}: reference {ref_text!r} did not resolve")
    return resolved


def _replace_in_secret(document: Dict[str, Any]) -> bool:
    name = str((document.get("metadata") or {}).get("name") or "unnamed")
    changed = False
    string_data = document.get("stringData")
    if isinstance(string_data, dict):
        for key, value in string_data.items():
            if _is_ref(value):
                string_data[key] = _resolve_or_fail(value, name)
                changed = True
    data = document.get("data")
    if isinstance(data, dict):
        for key, value in data.items():
            if _is_ref(value):
                resolved = _resolve_or_fail(value, name)
                data[key] = base64.b64encode(resolved.encode("utf-8")).decode("ascii")
                changed = True
    return changed


def replace_secrets_in_path(files_dir: str) -> int:
    """Resolve secret references in every manifest under ``files_dir``.

    Returns the number of files rewritten.
    """
    root = Path(files_dir)
    if not root.is_dir():
        raise SecretReplaceError(f"{files_dir} is not a directory")
    rewritten = 0
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in MANIFEST_SUFFIXES:
            continue
        try:
            with open(path, "r", encoding="utf-8") as handle:
                documents = list(yaml.safe_load_all(handle))
        except (yaml.YAMLError, UnicodeDecodeError, OSError) as exc:
            raise SecretReplaceError(f"failed to read {path.relative_to(root)}") from exc
        changed = False
        for document in documents:
            if isinstance(document, dict) and document.get("kind") == "Secret":
                changed = _replace_in_secret(document) or changed
        if not changed:
            continue
        try:
            with open(path, "w", encoding="utf-8") as handle:
                yaml.safe_dump_all(documents, handle, sort_keys=False)
        except OSError as exc:
            raise SecretReplaceError(f"failed to write {path.relative_to(root)}") from exc
        rewritten += 1
        logger.info("Replaced secret references in %s", path.relative_to(root))
    return rewritten
