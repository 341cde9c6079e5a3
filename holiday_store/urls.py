from django.contrib import admin
from django.urls import include, path

from pricing import views as pricing_views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz/", pricing_views.healthz, name="healthz"),
    path("api/", include("pricing.api_urls")),
]
