import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from app_versions.models import App, AppDownstream, AppDownstreamVersion, AppVersion, Cluster

from .manifests import archive_storage, write_app_files


class AppVersionCommandTests(TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        settings_override = override_settings(
            KOTSADM_ARCHIVE_STORAGE=archive_storage(os.path.join(self.tmpdir.name, "archives"))
        )
        settings_override.enable()
        self.addCleanup(settings_override.disable)
        self.app = App.objects.create(name="Sentry")
        self.cluster = Cluster.objects.create(title="this-cluster")
        AppDownstream.objects.create(app=self.app, cluster=self.cluster, downstream_name="this-cluster")

    def test_create_then_deploy(self):
        out = StringIO()
        files_dir = write_app_files(os.path.join(self.tmpdir.name, "v0"))
        call_command("create_app_version", app_id=str(self.app.id), files_dir=files_dir, stdout=out)
        self.assertIn("Created sequence 0.", out.getvalue())

        files_dir = write_app_files(os.path.join(self.tmpdir.name, "v1"), replicas=4)
        call_command(
            "create_app_version", app_id=str(self.app.id), files_dir=files_dir, current_sequence=0, stdout=out
        )
        self.assertIn("Created sequence 1.", out.getvalue())

        out = StringIO()
        call_command("deploy_app_version", app_id=str(self.app.id), sequence=1, stdout=out)
        self.assertIn("this-cluster: sequence 1", out.getvalue())
        self.assertEqual(
            AppDownstreamVersion.objects.get(app=self.app, cluster=self.cluster, sequence=1).status, "deployed"
        )

    def test_create_failure_is_command_error(self):
        with self.assertRaises(CommandError):
            call_command(
                "create_app_version",
                app_id=str(self.app.id),
                files_dir=os.path.join(self.tmpdir.name, "missing"),
                stdout=StringIO(),
            )
        self.assertFalse(AppVersion.objects.filter(app=self.app).exists())

    def test_deploy_failure_is_command_error(self):
        with self.assertRaises(CommandError):
            call_command("deploy_app_version", app_id=str(self.app.id), sequence=3, stdout=StringIO())

    def test_reconcile_with_nothing_failing(self):
        out = StringIO()
        call_command("reconcile_gitops", app_id=str(self.app.id), sequence=0, stdout=out)
        self.assertIn("GitOps reconciled.", out.getvalue())
