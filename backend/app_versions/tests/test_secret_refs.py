import base64
import os
import tempfile
from pathlib import Path
from unittest import mock

import yaml
from django.test import SimpleTestCase

from app_versions.secret_refs import SecretReplaceError, replace_secrets_in_path, resolve_secret_ref

SECRET = """apiVersion: v1
kind: Secret
metadata:
  name: db
stringData:
  password: env:KOTSADM_TEST_DB_PASSWORD
  user: admin
data:
  token: aws.ssm:/kotsadm/token
"""


class ResolveSecretRefTests(SimpleTestCase):
    def test_env_ref(self):
        with mock.patch.dict(os.environ, {"KOTSADM_TEST_DB_PASSWORD": "hunter2"}):
            self.assertEqual(resolve_secret_ref("env:KOTSADM_TEST_DB_PASSWORD"), "hunter2")

    @mock.patch("app_versions.secret_refs.boto3.client")
    def test_ssm_ref(self, client_mock):
        client_mock.return_value.get_parameter.return_value = {"Parameter": {"Value": "from-ssm"}}
        self.assertEqual(resolve_secret_ref("aws.ssm:/kotsadm/token"), "from-ssm")
        client_mock.return_value.get_parameter.assert_called_once_with(Name="/kotsadm/token", WithDecryption=True)

    @mock.patch("app_versions.secret_refs.boto3.client")
    def test_secrets_manager_ref(self, client_mock):
        client_mock.return_value.get_secret_value.return_value = {"SecretString": "from-sm"}
        self.assertEqual(resolve_secret_ref("aws.secrets_manager:kotsadm/db"), "from-sm")

    def test_plain_value_is_not_a_ref(self):
        self.assertIsNone(resolve_secret_ref("hunter2"))


class ReplaceSecretsInPathTests(SimpleTestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.root = Path(self.tmpdir.name)
        (self.root / "secret.yaml").write_text(SECRET, encoding="utf-8")
        (self.root / "deployment.yaml").write_text("apiVersion: apps/v1\nkind: Deployment\n", encoding="utf-8")

    @mock.patch("app_versions.secret_refs.boto3.client")
    def test_refs_are_replaced_in_place(self, client_mock):
        client_mock.return_value.get_parameter.return_value = {"Parameter": {"Value": "tok"}}
        with mock.patch.dict(os.environ, {"KOTSADM_TEST_DB_PASSWORD": "hunter2"}):
            rewritten = replace_secrets_in_path(self.tmpdir.name)

        self.assertEqual(rewritten, 1)
        document = yaml.safe_load((self.root / "secret.yaml").read_text(encoding="utf-8"))
        self.assertEqual(document["stringData"], {"password": "hunter2", "user": "admin"})
        self.assertEqual(base64.b64decode(document["data"]["token"]).decode("utf-8"), "tok")
        self.assertEqual(
            (self.root / "deployment.yaml").read_text(encoding="utf-8"), "apiVersion: apps/v1\nkind: Deployment\n"
        )

    def test_unresolved_ref_fails(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(SecretReplaceError):
                replace_secrets_in_path(self.tmpdir.name)
        self.assertIn("env:KOTSADM_TEST_DB_PASSWORD", (self.root / "secret.yaml").read_text(encoding="utf-8"))

    @mock.patch("app_versions.secret_refs.boto3.client", side_effect=RuntimeError("no credentials"))
    def test_lookup_error_fails(self, _client_mock):
        with mock.patch.dict(os.environ, {"KOTSADM_TEST_DB_PASSWORD": "hunter2"}):
            with self.assertRaises(SecretReplaceError):
                replace_secrets_in_path(self.tmpdir.name)

    def test_missing_directory_fails(self):
        with self.assertRaises(SecretReplaceError):
            replace_secrets_in_path(str(self.root / "missing"))

    def test_unreadable_file_fails(self):
        with mock.patch("app_versions.secret_refs.open", side_effect=PermissionError("denied"), create=True):
            with self.assertRaises(SecretReplaceError):
                replace_secrets_in_path(self.tmpdir.name)

    @mock.patch("app_versions.secret_refs.boto3.client")
    def test_unwritable_file_fails(self, client_mock):
        client_mock.return_value.get_parameter.return_value = {"Parameter": {"Value": "tok"}}

        def read_only_open(path, mode="r", **kwargs):
            if "w" in mode:
                raise PermissionError("read-only filesystem")
            return open(path, mode, **kwargs)

        with mock.patch.dict(os.environ, {"KOTSADM_TEST_DB_PASSWORD": "hunter2"}):
            with mock.patch("app_versions.secret_refs.open", side_effect=read_only_open, create=True):
                with self.assertRaises(SecretReplaceError) as ctx:
                    replace_secrets_in_path(self.tmpdir.name)

        self.assertIn("failed to write secret.yaml", str(ctx.exception))
        self.assertIn("env:KOTSADM_TEST_DB_PASSWORD", (self.root / "secret.yaml").read_text(encoding="utf-8"))
