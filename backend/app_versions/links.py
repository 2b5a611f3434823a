"""Cross-reference of the application descriptor and the ports declaration.

The descriptor (``app.k8s.io/v1beta1 Application``) lists links as
``spec.descriptor.links[] = {description, url}``. The ports declaration
(``kots.io/v1beta1 Application``) lists ``spec.ports[] = {serviceName,
servicePort, localPort, applicationUrl}``. Links are joined to ports on
``url == applicationUrl``.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import yaml

from . import store
from .errors import SpecDecodeError


@dataclass(frozen=True)
class RealizedLink:
    title: str
    uri: str

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ForwardedPort:
    service_name: str
    service_port: int
    local_port: int
    application_url: str

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


def decode_spec(text: Optional[str]) -> Optional[Dict[str, Any]]:
    if not text or not text.strip():
        return None
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SpecDecodeError(f"failed to decode spec yaml: {exc}") from exc
    if document is None:
        return None
    if not isinstance(document, dict):
        raise SpecDecodeError("spec yaml is not a mapping")
    return document


def descriptor_links(app_spec: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    spec = (app_spec or {}).get("spec") or {}
    descriptor = spec.get("descriptor") or {}
    return [link for link in descriptor.get("links") or [] if isinstance(link, dict)]


def application_ports(kots_app_spec: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    spec = (kots_app_spec or {}).get("spec") or {}
    return [port for port in spec.get("ports") or [] if isinstance(port, dict)]


def _port_number(port: Dict[str, Any], field_name: str) -> int:
    value = port.get(field_name)
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise SpecDecodeError(f"port {field_name} is not a number: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise SpecDecodeError(f"port {field_name} is not a number: {value!r}") from exc


def realized_links(app_spec: Optional[Dict[str, Any]], kots_app_spec: Optional[Dict[str, Any]]) -> List[RealizedLink]:
    if not app_spec:
        return []
    ports = application_ports(kots_app_spec)
    links = []
    for link in descriptor_links(app_spec):
        uri = link.get("url") or ""
        for port in ports:
            if port.get("applicationUrl") == link.get("url"):
                uri = f"http://localhost:{_port_number(port, 'localPort')}"
        links.append(RealizedLink(title=link.get("description") or "", uri=uri))
    return links


def forwarded_ports(app_spec: Optional[Dict[str, Any]], kots_app_spec: Optional[Dict[str, Any]]) -> List[ForwardedPort]:
    # One entry per (link, port) match. Two links sharing a url yield the port twice.
    if not app_spec or not kots_app_spec:
        return []
    ports = application_ports(kots_app_spec)
    forwarded = []
    for link in descriptor_links(app_spec):
        for port in ports:
            if port.get("applicationUrl") == link.get("url"):
                forwarded.append(
                    ForwardedPort(
                        service_name=port.get("serviceName") or "",
                        service_port=_port_number(port, "servicePort"),
                        local_port=_port_number(port, "localPort"),
                        application_url=port.get("applicationUrl") or "",
                    )
                )
    return forwarded


def get_realized_links(app_id, sequence: int) -> List[RealizedLink]:
    version = store.get_app_version(app_id, sequence)
    if version is None:
        return []
    return realized_links(decode_spec(version.app_spec), decode_spec(version.kots_app_spec))


def get_forwarded_ports(app_id, sequence: int) -> List[ForwardedPort]:
    version = store.get_app_version(app_id, sequence)
    if version is None:
        return []
    return forwarded_ports(decode_spec(version.app_spec), decode_spec(version.kots_app_spec))
