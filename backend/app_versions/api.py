import json
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from jsonschema import Draft202012Validator

from . import catalog, links, versions
from .deploy import deploy_version
from .errors import AppNotFoundError, AppVersionError, DeployError, MalformedInputError

logger = logging.getLogger(__name__)

CREATE_VERSION_SCHEMA = {
    "type": "object",
    "required": ["files_dir", "source"],
    "properties": {
        "files_dir": {"type": "string", "minLength": 1},
        "source": {"type": "string", "minLength": 1, "maxLength": 120},
        "current_sequence": {"type": ["integer", "null"], "minimum": 0},
    },
    "additionalProperties": False,
}

UUID_PATTERN = "^[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}$"

DEPLOY_SCHEMA = {
    "type": "object",
    "properties": {
        "cluster_id": {"type": ["string", "null"], "pattern": UUID_PATTERN},
    },
    "additionalProperties": False,
}


def _require_internal_token(request: HttpRequest) -> Optional[JsonResponse]:
    expected = getattr(settings, "KOTSADM_INTERNAL_TOKEN", "").strip()
    if not expected:
        return JsonResponse({"error": "Internal token not configured"}, status=500)
    provided = request.headers.get("X-Internal-Token", "").strip()
    if not provided:
        auth_header = request.headers.get("Authorization", "").strip()
        if auth_header.lower().startswith("bearer "):
            provided = auth_header.split(" ", 1)[1].strip()
    if provided != expected:
        return JsonResponse({"error": "Unauthorized"}, status=401)
    return None


def _parse_json(request: HttpRequest) -> Optional[Dict[str, Any]]:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _validate(payload: Dict[str, Any], schema: Dict[str, Any]) -> list[str]:
    validator = Draft202012Validator(schema)
    return [f"{'/'.join(str(p) for p in error.path) or '$'}: {error.message}" for error in validator.iter_errors(payload)]


def _error_response(exc: AppVersionError) -> JsonResponse:
    if isinstance(exc, AppNotFoundError):
        return JsonResponse({"error": str(exc)}, status=404)
    if isinstance(exc, MalformedInputError):
        return JsonResponse({"error": str(exc)}, status=400)
    if isinstance(exc, DeployError):
        return JsonResponse({"error": str(exc)}, status=409)
    logger.error("App version request failed: %s", exc)
    return JsonResponse({"error": str(exc)}, status=500)


@csrf_exempt
def app_versions_collection(request: HttpRequest, app_id) -> JsonResponse:
    if token_error := _require_internal_token(request):
        return token_error
    if request.method == "GET":
        try:
            data = [catalog.serialize_version(version) for version in catalog.get_versions(app_id)]
        except AppVersionError as exc:
            return _error_response(exc)
        return JsonResponse({"versions": data})
    if request.method != "POST":
        return JsonResponse({"error": "method not allowed"}, status=405)
    payload = _parse_json(request)
    if payload is None:
        return JsonResponse({"error": "invalid json"}, status=400)
    if errors := _validate(payload, CREATE_VERSION_SCHEMA):
        return JsonResponse({"error": "invalid payload", "details": errors}, status=400)
    current_sequence = payload.get("current_sequence")
    try:
        if current_sequence is None:
            sequence = versions.create_first_version(app_id, payload["files_dir"], payload["source"])
        else:
            sequence = versions.create_version(app_id, payload["files_dir"], payload["source"], current_sequence)
    except AppVersionError as exc:
        return _error_response(exc)
    # the version is committed; gitops_errors is null when it cannot be read back
    try:
        gitops_errors = versions.gitops_errors(app_id, sequence)
    except AppVersionError as exc:
        logger.warning("Created sequence %s for app %s but could not read gitops errors: %s", sequence, app_id, exc)
        gitops_errors = None
    return JsonResponse({"sequence": sequence, "gitops_errors": gitops_errors}, status=201)


@csrf_exempt
def app_version_detail(request: HttpRequest, app_id, sequence: int) -> JsonResponse:
    if token_error := _require_internal_token(request):
        return token_error
    if request.method != "GET":
        return JsonResponse({"error": "GET required"}, status=405)
    try:
        version = catalog.get_app_version(app_id, sequence)
        if version is None:
            return JsonResponse({"error": "version not found"}, status=404)
        downstreams = catalog.get_downstream_versions(app_id, sequence)
    except AppVersionError as exc:
        return _error_response(exc)
    payload = catalog.serialize_version(version)
    payload["downstreams"] = [catalog.serialize_downstream_version(row) for row in downstreams]
    return JsonResponse(payload)


@csrf_exempt
def app_version_deploy(request: HttpRequest, app_id, sequence: int) -> JsonResponse:
    if token_error := _require_internal_token(request):
        return token_error
    if request.method != "POST":
        return JsonResponse({"error": "POST required"}, status=405)
    payload = _parse_json(request)
    if payload is None:
        return JsonResponse({"error": "invalid json"}, status=400)
    if errors := _validate(payload, DEPLOY_SCHEMA):
        return JsonResponse({"error": "invalid payload", "details": errors}, status=400)
    try:
        downstreams = deploy_version(app_id, sequence, payload.get("cluster_id"))
    except AppVersionError as exc:
        return _error_response(exc)
    return JsonResponse(
        {
            "sequence": sequence,
            "downstreams": [
                {"cluster_id": str(d.cluster_id), "current_sequence": d.current_sequence} for d in downstreams
            ],
        }
    )


@csrf_exempt
def app_version_links(request: HttpRequest, app_id, sequence: int) -> JsonResponse:
    if token_error := _require_internal_token(request):
        return token_error
    if request.method != "GET":
        return JsonResponse({"error": "GET required"}, status=405)
    try:
        realized = links.get_realized_links(app_id, sequence)
    except AppVersionError as exc:
        return _error_response(exc)
    return JsonResponse({"links": [link.to_payload() for link in realized]})


@csrf_exempt
def app_version_ports(request: HttpRequest, app_id, sequence: int) -> JsonResponse:
    if token_error := _require_internal_token(request):
        return token_error
    if request.method != "GET":
        return JsonResponse({"error": "GET required"}, status=405)
    try:
        ports = links.get_forwarded_ports(app_id, sequence)
    except AppVersionError as exc:
        return _error_response(exc)
    return JsonResponse({"ports": [port.to_payload() for port in ports]})


@csrf_exempt
def app_version_gitops_reconcile(request: HttpRequest, app_id, sequence: int) -> JsonResponse:
    if token_error := _require_internal_token(request):
        return token_error
    if request.method != "POST":
        return JsonResponse({"error": "POST required"}, status=405)
    try:
        errors = versions.reconcile_gitops(app_id, sequence)
    except AppVersionError as exc:
        return _error_response(exc)
    return JsonResponse({"sequence": sequence, "gitops_errors": errors})
