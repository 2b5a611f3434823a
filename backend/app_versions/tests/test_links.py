from django.test import SimpleTestCase, TestCase

from app_versions.errors import SpecDecodeError
from app_versions.links import (
    ForwardedPort,
    RealizedLink,
    decode_spec,
    forwarded_ports,
    get_forwarded_ports,
    get_realized_links,
    realized_links,
)
from app_versions.models import App, AppVersion

from .manifests import APP_DESCRIPTOR, KOTS_APPLICATION

APP_SPEC = """apiVersion: app.k8s.io/v1beta1
kind: Application
spec:
  descriptor:
    links:
      - description: Open
        url: http://svc
"""

KOTS_APP_SPEC = """apiVersion: kots.io/v1beta1
kind: Application
spec:
  ports:
    - serviceName: svc
      servicePort: 80
      localPort: 8080
      applicationUrl: http://svc
"""


class RealizedLinksTests(SimpleTestCase):
    def test_matching_port_rewrites_link_to_localhost(self):
        links = realized_links(decode_spec(APP_SPEC), decode_spec(KOTS_APP_SPEC))
        self.assertEqual(links, [RealizedLink(title="Open", uri="http://localhost:8080")])

    def test_unmatched_link_keeps_its_url(self):
        links = realized_links(decode_spec(APP_DESCRIPTOR), decode_spec(KOTS_APPLICATION.format(title="Sentry")))
        self.assertEqual(
            links,
            [
                RealizedLink(title="Open Sentry", uri="http://localhost:9000"),
                RealizedLink(title="Docs", uri="https://docs.sentry.io"),
            ],
        )

    def test_last_matching_port_wins(self):
        kots_app = {
            "spec": {
                "ports": [
                    {"serviceName": "a", "servicePort": 80, "localPort": 8080, "applicationUrl": "http://svc"},
                    {"serviceName": "b", "servicePort": 81, "localPort": 8081, "applicationUrl": "http://svc"},
                ]
            }
        }
        links = realized_links(decode_spec(APP_SPEC), kots_app)
        self.assertEqual(links[0].uri, "http://localhost:8081")

    def test_port_without_local_port_maps_to_zero(self):
        kots_app = {"spec": {"ports": [{"serviceName": "svc", "servicePort": 80, "applicationUrl": "http://svc"}]}}
        links = realized_links(decode_spec(APP_SPEC), kots_app)
        self.assertEqual(links, [RealizedLink(title="Open", uri="http://localhost:0")])

    def test_named_local_port_is_a_decode_error(self):
        kots_app = {"spec": {"ports": [{"serviceName": "svc", "localPort": "web", "applicationUrl": "http://svc"}]}}
        with self.assertRaises(SpecDecodeError):
            realized_links(decode_spec(APP_SPEC), kots_app)

    def test_missing_ports_document_keeps_urls(self):
        links = realized_links(decode_spec(APP_SPEC), None)
        self.assertEqual(links, [RealizedLink(title="Open", uri="http://svc")])

    def test_missing_descriptor_is_empty(self):
        self.assertEqual(realized_links(decode_spec(""), decode_spec(KOTS_APP_SPEC)), [])

    def test_invalid_yaml_is_a_decode_error(self):
        with self.assertRaises(SpecDecodeError):
            decode_spec("spec: [unterminated")
        with self.assertRaises(SpecDecodeError):
            decode_spec("- just\n- a list\n")


class ForwardedPortsTests(SimpleTestCase):
    def test_matching_port_is_forwarded(self):
        ports = forwarded_ports(decode_spec(APP_SPEC), decode_spec(KOTS_APP_SPEC))
        self.assertEqual(
            ports,
            [ForwardedPort(service_name="svc", service_port=80, local_port=8080, application_url="http://svc")],
        )
        self.assertEqual(
            ports[0].to_payload(),
            {"service_name": "svc", "service_port": 80, "local_port": 8080, "application_url": "http://svc"},
        )

    def test_links_sharing_a_url_forward_the_port_twice(self):
        app_spec = {
            "spec": {
                "descriptor": {
                    "links": [
                        {"description": "Open", "url": "http://svc"},
                        {"description": "Also open", "url": "http://svc"},
                    ]
                }
            }
        }
        ports = forwarded_ports(app_spec, decode_spec(KOTS_APP_SPEC))
        self.assertEqual(len(ports), 2)
        self.assertEqual(ports[0], ports[1])

    def test_named_service_port_is_a_decode_error(self):
        kots_app = {
            "spec": {"ports": [{"serviceName": "svc", "servicePort": "http", "localPort": 8080, "applicationUrl": "http://svc"}]}
        }
        with self.assertRaises(SpecDecodeError):
            forwarded_ports(decode_spec(APP_SPEC), kots_app)

    def test_numeric_strings_are_accepted(self):
        kots_app = {
            "spec": {"ports": [{"serviceName": "svc", "servicePort": "80", "localPort": "8080", "applicationUrl": "http://svc"}]}
        }
        ports = forwarded_ports(decode_spec(APP_SPEC), kots_app)
        self.assertEqual((ports[0].service_port, ports[0].local_port), (80, 8080))

    def test_either_document_missing_is_empty(self):
        self.assertEqual(forwarded_ports(None, decode_spec(KOTS_APP_SPEC)), [])
        self.assertEqual(forwarded_ports(decode_spec(APP_SPEC), None), [])


class StoredVersionLinksTests(TestCase):
    def setUp(self):
        self.app = App.objects.create(name="Sentry")
        AppVersion.objects.create(app=self.app, sequence=0, app_spec=APP_SPEC, kots_app_spec=KOTS_APP_SPEC)
        AppVersion.objects.create(app=self.app, sequence=1, app_spec="", kots_app_spec=KOTS_APP_SPEC)

    def test_reads_stored_documents(self):
        self.assertEqual(get_realized_links(self.app.id, 0), [RealizedLink(title="Open", uri="http://localhost:8080")])
        self.assertEqual(len(get_forwarded_ports(self.app.id, 0)), 1)

    def test_version_without_descriptor_is_empty(self):
        self.assertEqual(get_realized_links(self.app.id, 1), [])
        self.assertEqual(get_forwarded_ports(self.app.id, 1), [])

    def test_unknown_version_is_empty(self):
        self.assertEqual(get_realized_links(self.app.id, 9), [])
        self.assertEqual(get_forwarded_ports(self.app.id, 9), [])
