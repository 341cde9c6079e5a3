from django.urls import path

from pricing import api_views

app_name = "pricing-api"

urlpatterns = [
    path("catalog/products", api_views.CatalogProductsAPIView.as_view(), name="catalog-products"),
    path("catalog/cache-metadata", api_views.CatalogCacheMetadataAPIView.as_view(), name="catalog-cache-metadata"),
    path("catalog/refresh", api_views.CatalogRefreshAPIView.as_view(), name="catalog-refresh"),
    path("tours/<str:product_id>/flight-prices", api_views.TourFlightPricesAPIView.as_view(), name="tour-flight-prices"),
    path("packages/<int:package_id>/flight-prices", api_views.PackageFlightPricesAPIView.as_view(), name="package-flight-prices"),
    path("packages/<int:package_id>/sync-departures", api_views.PackageSyncDeparturesAPIView.as_view(), name="package-sync-departures"),
    path("packages/<int:package_id>/refresh-flights", api_views.PackageRefreshFlightsAPIView.as_view(), name="package-refresh-flights"),
]
