from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="App",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(blank=True, max_length=220, unique=True)),
                ("icon_uri", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Cluster",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=200)),
                ("slug", models.SlugField(blank=True, max_length=220, unique=True)),
                (
                    "cluster_type",
                    models.CharField(
                        choices=[("ship", "Ship"), ("gitops", "GitOps")],
                        default="ship",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="AppVersion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sequence", models.PositiveIntegerField()),
                ("update_cursor", models.BigIntegerField(blank=True, null=True)),
                ("version_label", models.CharField(blank=True, max_length=120)),
                ("release_notes", models.TextField(blank=True)),
                ("source", models.CharField(blank=True, max_length=120)),
                ("app_spec", models.TextField(blank=True)),
                ("kots_app_spec", models.TextField(blank=True)),
                ("installation_spec", models.TextField(blank=True)),
                ("files_json", models.JSONField(blank=True, null=True)),
                ("archive_json", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="versions",
                        to="app_versions.app",
                    ),
                ),
            ],
            options={
                "ordering": ["app", "sequence"],
                "unique_together": {("app", "sequence")},
            },
        ),
        migrations.CreateModel(
            name="AppDownstream",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("downstream_name", models.CharField(max_length=200)),
                ("current_sequence", models.PositiveIntegerField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="downstreams",
                        to="app_versions.app",
                    ),
                ),
                (
                    "cluster",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="app_downstreams",
                        to="app_versions.cluster",
                    ),
                ),
            ],
            options={"unique_together": {("app", "cluster")}},
        ),
        migrations.CreateModel(
            name="AppDownstreamVersion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sequence", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("pending_config", "Pending config"),
                            ("pending_preflight", "Pending preflight"),
                            ("deployed", "Deployed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=30,
                    ),
                ),
                ("applied_at", models.DateTimeField(blank=True, null=True)),
                ("diff_summary", models.JSONField(blank=True, null=True)),
                ("git_commit_url", models.TextField(blank=True)),
                ("gitops_error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="downstream_versions",
                        to="app_versions.app",
                    ),
                ),
                (
                    "cluster",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="app_downstream_versions",
                        to="app_versions.cluster",
                    ),
                ),
            ],
            options={
                "ordering": ["-sequence"],
                "unique_together": {("app", "cluster", "sequence")},
            },
        ),
        migrations.CreateModel(
            name="DownstreamGitOps",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(choices=[("github", "GitHub")], default="github", max_length=20)),
                ("repo", models.CharField(max_length=200)),
                ("branch", models.CharField(default="main", max_length=120)),
                ("path", models.CharField(blank=True, max_length=300)),
                ("token_ref", models.CharField(blank=True, max_length=300)),
                ("enabled", models.BooleanField(default=True)),
                ("last_error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="gitops_configs",
                        to="app_versions.app",
                    ),
                ),
                (
                    "cluster",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="gitops_configs",
                        to="app_versions.cluster",
                    ),
                ),
            ],
            options={"unique_together": {("app", "cluster")}},
        ),
    ]
