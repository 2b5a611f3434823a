from django.core.management.base import BaseCommand, CommandError

from app_versions.errors import AppVersionError
from app_versions.versions import create_first_version, create_version


class Command(BaseCommand):
    help = "Create a new immutable version of an app from a directory of manifests."

    def add_arguments(self, parser):
        parser.add_argument("--app-id", required=True)
        parser.add_argument("--files-dir", required=True)
        parser.add_argument("--source", default="Upload")
        parser.add_argument(
            "--current-sequence",
            type=int,
            default=None,
            help="Sequence the app is currently on. Omit when creating the first version.",
        )

    def handle(self, *args, **options):
        app_id = options["app_id"]
        current_sequence = options["current_sequence"]
        try:
            if current_sequence is None:
                sequence = create_first_version(app_id, options["files_dir"], options["source"])
            else:
                sequence = create_version(app_id, options["files_dir"], options["source"], current_sequence)
        except AppVersionError as exc:
            raise CommandError(str(exc)) from exc
        self.stdout.write(f"Created sequence {sequence}.")
