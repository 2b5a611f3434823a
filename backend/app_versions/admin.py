from django.contrib import admin

from .models import App, AppDownstream, AppDownstreamVersion, AppVersion, Cluster, DownstreamGitOps


class AppVersionInline(admin.TabularInline):
    model = AppVersion
    extra = 0
    can_delete = False
    fields = ("sequence", "version_label", "source", "update_cursor", "created_at")
    readonly_fields = ("sequence", "version_label", "source", "update_cursor", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


class AppDownstreamInline(admin.TabularInline):
    model = AppDownstream
    extra = 0
    fields = ("cluster", "downstream_name", "current_sequence")
    readonly_fields = ("current_sequence",)


@admin.register(App)
class AppAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "updated_at")
    search_fields = ("name", "slug")
    inlines = [AppDownstreamInline, AppVersionInline]


@admin.register(Cluster)
class ClusterAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "cluster_type", "created_at")


@admin.register(AppVersion)
class AppVersionAdmin(admin.ModelAdmin):
    list_display = ("app", "sequence", "version_label", "source", "update_cursor", "created_at")
    list_filter = ("source",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False


@admin.register(AppDownstreamVersion)
class AppDownstreamVersionAdmin(admin.ModelAdmin):
    list_display = ("app", "cluster", "sequence", "status", "applied_at", "git_commit_url")
    list_filter = ("status",)
    readonly_fields = ("status", "applied_at", "diff_summary", "git_commit_url", "gitops_error")


@admin.register(DownstreamGitOps)
class DownstreamGitOpsAdmin(admin.ModelAdmin):
    list_display = ("app", "cluster", "provider", "repo", "branch", "enabled")
    readonly_fields = ("last_error",)
