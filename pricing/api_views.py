from __future__ import annotations

from collections.abc import Mapping

from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework.views import APIView

from pricing.models import FlightPackage
from pricing.serializers import (
    CatalogListSerializer,
    CatalogRefreshSerializer,
    DepartureSerializer,
    FlightPackageSummarySerializer,
    TourFlightPricesQuerySerializer,
)
from pricing.services.catalog import list_catalog_page, refresh_catalog
from pricing.services.catalog_cache import CatalogCache
from pricing.services.departures import sync_package_departures
from pricing.services.providers.base import ConfigurationError, ProviderException
from pricing.services.refresh import refresh_package_flights
from pricing.services.tour_pricing import LandPriceUnavailable, PricingConfigNotFound, tour_flight_prices


class FlightPricingThrottle(UserRateThrottle):
    scope = "flight_pricing"


def compact_validation_errors(detail):  # noqa: ANN001, ANN201
    if isinstance(detail, list):
        if len(detail) == 1:
            return compact_validation_errors(detail[0])
        return [compact_validation_errors(item) for item in detail]
    if isinstance(detail, Mapping):
        return {str(key): compact_validation_errors(value) for key, value in detail.items()}
    return str(detail)


def _validation_error(errors) -> Response:  # noqa: ANN001
    return Response(
        {"detail": "validation_error", "errors": compact_validation_errors(errors)},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _upstream_error(exc: ProviderException) -> Response:
    return Response(
        {"detail": "upstream_error", "error": str(exc), "error_type": exc.error_type},
        status=status.HTTP_502_BAD_GATEWAY,
    )


def _configuration_error(exc: ConfigurationError) -> Response:
    return Response(
        {"detail": "configuration_error", "error": str(exc)},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


class CatalogProductsAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):  # noqa: ANN001, ANN201
        serializer = CatalogListSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer.errors)
        data = serializer.validated_data
        try:
            payload = list_catalog_page(page=data["page"], page_size=data["pageSize"], currency=data["currency"])
        except ProviderException as exc:
            return _upstream_error(exc)
        except ConfigurationError as exc:
            return _configuration_error(exc)
        return Response(payload)


class CatalogCacheMetadataAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    @method_decorator(never_cache)
    def get(self, request):  # noqa: ANN001, ANN201
        currency = str(request.query_params.get("currency") or "GBP").upper()
        metadata = CatalogCache().metadata(currency)
        if metadata is None:
            return Response({"lastRefreshAt": None, "totalProducts": 0})
        return Response(
            {
                "lastRefreshAt": metadata["last_refresh_at"],
                "totalProducts": metadata["total_products"],
            }
        )


class CatalogRefreshAPIView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request):  # noqa: ANN001, ANN201
        serializer = CatalogRefreshSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer.errors)
        try:
            result = refresh_catalog(serializer.validated_data["currency"])
        except ProviderException as exc:
            return _upstream_error(exc)
        except ConfigurationError as exc:
            return _configuration_error(exc)
        metadata = result["metadata"] or {}
        return Response(
            {
                "success": True,
                "productsRefreshed": result["products_refreshed"],
                "currency": result["currency"],
                "metadata": {
                    "lastRefreshAt": metadata.get("last_refresh_at"),
                    "totalProducts": metadata.get("total_products", 0),
                },
            }
        )


class TourFlightPricesAPIView(APIView):
    permission_classes = [permissions.AllowAny]
    throttle_classes = [FlightPricingThrottle]

    def get(self, request, product_id):  # noqa: ANN001, ANN201
        serializer = TourFlightPricesQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return _validation_error(serializer.errors)
        try:
            payload = tour_flight_prices(str(product_id), on_date=serializer.validated_data.get("date"))
        except PricingConfigNotFound as exc:
            return Response({"detail": "not_found", "error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except LandPriceUnavailable as exc:
            return Response({"detail": "land_price_unavailable", "error": str(exc)}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        except ProviderException as exc:
            return _upstream_error(exc)
        except ConfigurationError as exc:
            return _configuration_error(exc)
        return Response(payload)


class PackageFlightPricesAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, package_id):  # noqa: ANN001, ANN201
        package = get_object_or_404(FlightPackage, pk=package_id)
        departures = package.departures.prefetch_related("rates__flight_prices").order_by("departure_date")
        return Response(
            {
                "package": FlightPackageSummarySerializer(package).data,
                "departures": DepartureSerializer(departures, many=True).data,
            }
        )


class PackageSyncDeparturesAPIView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, package_id):  # noqa: ANN001, ANN201
        package = get_object_or_404(FlightPackage, pk=package_id)
        try:
            result = sync_package_departures(package)
        except ProviderException as exc:
            return _upstream_error(exc)
        except ConfigurationError as exc:
            return _configuration_error(exc)
        return Response(result)


class PackageRefreshFlightsAPIView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, package_id):  # noqa: ANN001, ANN201
        package = get_object_or_404(FlightPackage, pk=package_id)
        try:
            result = refresh_package_flights(package)
        except ProviderException as exc:
            return _upstream_error(exc)
        except ConfigurationError as exc:
            return _configuration_error(exc)
        return Response(
            {
                "success": result.success,
                "updated": result.updated,
                "error": result.error,
                "leadPrice": result.lead_price,
                "singleLeadPrice": result.single_lead_price,
            }
        )
