import gc
import os
import tempfile
import threading
import time
from unittest import mock

from django.db import IntegrityError, connection, transaction
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings

from app_versions import sequence as sequencing
from app_versions.errors import PersistenceError
from app_versions.models import App, AppVersion
from app_versions.sequence import application_lock, get_next_app_sequence, is_application_locked
from app_versions.versions import create_first_version, create_version

from .manifests import archive_storage, write_app_files


class NextSequenceTests(TestCase):
    def setUp(self):
        self.app = App.objects.create(name="Sentry")

    def test_first_version_is_zero_without_querying(self):
        with mock.patch("app_versions.sequence.store.get_max_sequence") as max_mock:
            self.assertEqual(get_next_app_sequence(self.app.id, False), 0)
        max_mock.assert_not_called()

    def test_next_sequence_is_max_plus_one(self):
        for sequence in (0, 1, 4):
            AppVersion.objects.create(app=self.app, sequence=sequence)
        self.assertEqual(get_next_app_sequence(self.app.id, True), 5)

    def test_prior_flag_without_versions_falls_back_to_zero(self):
        with self.assertLogs("app_versions.sequence", level="WARNING"):
            self.assertEqual(get_next_app_sequence(self.app.id, True), 0)

    def test_query_failure_is_surfaced(self):
        with mock.patch(
            "app_versions.sequence.store.get_max_sequence",
            side_effect=PersistenceError("failed to find current max sequence"),
        ):
            with self.assertRaises(PersistenceError):
                get_next_app_sequence(self.app.id, True)

    def test_duplicate_sequence_rejected_by_database(self):
        AppVersion.objects.create(app=self.app, sequence=0)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                AppVersion.objects.create(app=self.app, sequence=0)


class ApplicationLockTests(SimpleTestCase):
    def test_lock_serializes_read_compute_insert(self):
        rows = []

        def _create():
            with application_lock("app-1"):
                next_sequence = max(rows) + 1 if rows else 0
                time.sleep(0.005)
                rows.append(next_sequence)

        threads = [threading.Thread(target=_create) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(sorted(rows), list(range(8)))

    def test_locks_are_per_application(self):
        with application_lock("app-a"):
            self.assertTrue(is_application_locked("app-a"))
            self.assertFalse(is_application_locked("app-b"))
        self.assertFalse(is_application_locked("app-a"))

    def test_idle_locks_are_released(self):
        with application_lock("app-transient"):
            self.assertIn("app-transient", sequencing._app_locks)
        gc.collect()
        self.assertNotIn("app-transient", sequencing._app_locks)
        self.assertFalse(is_application_locked("app-transient"))


class ConcurrentVersionCreationTests(TransactionTestCase):
    workers = 6

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        settings_override = override_settings(
            KOTSADM_ARCHIVE_STORAGE=archive_storage(os.path.join(self.tmpdir.name, "archives"))
        )
        settings_override.enable()
        self.addCleanup(settings_override.disable)
        self.app = App.objects.create(name="Sentry")

    def test_concurrent_updates_get_distinct_sequences(self):
        create_first_version(self.app.id, write_app_files(os.path.join(self.tmpdir.name, "v0")), "Upload")
        files_dirs = [
            write_app_files(os.path.join(self.tmpdir.name, f"update-{index}"), replicas=index + 2)
            for index in range(self.workers)
        ]
        barrier = threading.Barrier(self.workers)
        results = []
        errors = []

        def _create(files_dir):
            try:
                barrier.wait()
                results.append(create_version(self.app.id, files_dir, "Upstream Update", 0))
            except Exception as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=_create, args=(files_dir,)) for files_dir in files_dirs]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(sorted(results), list(range(1, self.workers + 1)))
        stored = list(AppVersion.objects.filter(app=self.app).order_by("sequence"))
        self.assertEqual([version.sequence for version in stored], list(range(self.workers + 1)))
        self.assertEqual(len({version.archive_json["key"] for version in stored}), self.workers + 1)
