from django.core.management.base import BaseCommand, CommandError

from app_versions.deploy import deploy_version
from app_versions.errors import AppVersionError


class Command(BaseCommand):
    help = "Mark a version as deployed on an app's downstream clusters."

    def add_arguments(self, parser):
        parser.add_argument("--app-id", required=True)
        parser.add_argument("--sequence", required=True, type=int)
        parser.add_argument("--cluster-id", default=None)

    def handle(self, *args, **options):
        try:
            downstreams = deploy_version(options["app_id"], options["sequence"], options["cluster_id"])
        except AppVersionError as exc:
            raise CommandError(str(exc)) from exc
        for downstream in downstreams:
            self.stdout.write(f"{downstream.downstream_name}: sequence {downstream.current_sequence}")
