from django.core.management.base import BaseCommand, CommandError

from app_versions.errors import AppVersionError
from app_versions.versions import reconcile_gitops


class Command(BaseCommand):
    help = "Retry failed GitOps commits for a version."

    def add_arguments(self, parser):
        parser.add_argument("--app-id", required=True)
        parser.add_argument("--sequence", required=True, type=int)

    def handle(self, *args, **options):
        try:
            errors = reconcile_gitops(options["app_id"], options["sequence"])
        except AppVersionError as exc:
            raise CommandError(str(exc)) from exc
        if errors:
            for error in errors:
                self.stderr.write(error)
            raise CommandError(f"{len(errors)} gitops commit(s) still failing.")
        self.stdout.write("GitOps reconciled.")
