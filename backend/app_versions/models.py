import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.text import slugify


class App(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True, blank=True)
    icon_uri = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)[:220]
        super().save(*args, **kwargs)


class Cluster(models.Model):
    TYPE_CHOICES = [
        ("ship", "Ship"),
        ("gitops", "GitOps"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True, blank=True)
    cluster_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="ship")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.title

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.title)[:220]
        super().save(*args, **kwargs)


class AppVersion(models.Model):
    app = models.ForeignKey(App, related_name="versions", on_delete=models.CASCADE)
    sequence = models.PositiveIntegerField()
    update_cursor = models.BigIntegerField(null=True, blank=True)
    version_label = models.CharField(max_length=120, blank=True)
    release_notes = models.TextField(blank=True)
    source = models.CharField(max_length=120, blank=True)
    app_spec = models.TextField(blank=True)
    kots_app_spec = models.TextField(blank=True)
    installation_spec = models.TextField(blank=True)
    files_json = models.JSONField(null=True, blank=True)
    archive_json = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["app", "sequence"]
        unique_together = ("app", "sequence")

    def __str__(self) -> str:
        return f"{self.app.name} #{self.sequence}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("app versions are immutable once created")
        super().save(*args, **kwargs)


class AppDownstream(models.Model):
    app = models.ForeignKey(App, related_name="downstreams", on_delete=models.CASCADE)
    cluster = models.ForeignKey(Cluster, related_name="app_downstreams", on_delete=models.CASCADE)
    downstream_name = models.CharField(max_length=200)
    current_sequence = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("app", "cluster")

    def __str__(self) -> str:
        return f"{self.app.name} on {self.downstream_name}"


class AppDownstreamVersion(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("pending_config", "Pending config"),
        ("pending_preflight", "Pending preflight"),
        ("deployed", "Deployed"),
        ("failed", "Failed"),
    ]

    app = models.ForeignKey(App, related_name="downstream_versions", on_delete=models.CASCADE)
    cluster = models.ForeignKey(Cluster, related_name="app_downstream_versions", on_delete=models.CASCADE)
    sequence = models.PositiveIntegerField()
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default="pending")
    applied_at = models.DateTimeField(null=True, blank=True)
    diff_summary = models.JSONField(null=True, blank=True)
    git_commit_url = models.TextField(blank=True)
    gitops_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-sequence"]
        unique_together = ("app", "cluster", "sequence")

    def __str__(self) -> str:
        return f"{self.app.name} #{self.sequence} on {self.cluster.title} ({self.status})"


class DownstreamGitOps(models.Model):
    PROVIDER_CHOICES = [
        ("github", "GitHub"),
    ]

    app = models.ForeignKey(App, related_name="gitops_configs", on_delete=models.CASCADE)
    cluster = models.ForeignKey(Cluster, related_name="gitops_configs", on_delete=models.CASCADE)
    provider = models.CharField(max_length=20, choices=PROVIDER_CHOICES, default="github")
    repo = models.CharField(max_length=200)
    branch = models.CharField(max_length=120, default="main")
    path = models.CharField(max_length=300, blank=True)
    token_ref = models.CharField(max_length=300, blank=True)
    enabled = models.BooleanField(default=True)
    last_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("app", "cluster")

    def __str__(self) -> str:
        return f"GitOps {self.repo}@{self.branch} for {self.app_id}"
