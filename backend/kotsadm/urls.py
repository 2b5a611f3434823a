from django.contrib import admin
from django.urls import path

from app_versions import api

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/v1/apps/<uuid:app_id>/versions", api.app_versions_collection),
    path("api/v1/apps/<uuid:app_id>/versions/<int:sequence>", api.app_version_detail),
    path("api/v1/apps/<uuid:app_id>/versions/<int:sequence>/deploy", api.app_version_deploy),
    path("api/v1/apps/<uuid:app_id>/versions/<int:sequence>/links", api.app_version_links),
    path("api/v1/apps/<uuid:app_id>/versions/<int:sequence>/ports", api.app_version_ports),
    path("api/v1/apps/<uuid:app_id>/versions/<int:sequence>/gitops/reconcile", api.app_version_gitops_reconcile),
]
