from __future__ import annotations

from rest_framework import serializers

from pricing.models import Departure, DepartureRate, FlightPackage, RateFlightPrice


def _currency(value: str) -> str:
    probe = str(value or "").strip().upper()
    if len(probe) != 3 or not probe.isalpha():
        raise serializers.ValidationError("Currency must be a three-letter code.")
    return probe


class CatalogListSerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    pageSize = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)
    currency = serializers.CharField(max_length=3, required=False, default="GBP")

    def validate_currency(self, value: str) -> str:
        return _currency(value)


class CatalogRefreshSerializer(serializers.Serializer):
    currency = serializers.CharField(max_length=3, required=False, default="GBP")

    def validate_currency(self, value: str) -> str:
        return _currency(value)


class TourFlightPricesQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False, allow_null=True)


class RateFlightPriceSerializer(serializers.ModelSerializer):
    class Meta:
        model = RateFlightPrice
        fields = ("airport_code", "flight_price", "combined_price", "markup_percent", "flight_source", "updated_at")


class DepartureRateSerializer(serializers.ModelSerializer):
    flight_prices = RateFlightPriceSerializer(many=True, read_only=True)

    class Meta:
        model = DepartureRate
        fields = (
            "id",
            "supplier_rate_id",
            "title",
            "room_category",
            "hotel_category",
            "min_per_booking",
            "max_per_booking",
            "price_gbp",
            "flight_prices",
        )


class DepartureSerializer(serializers.ModelSerializer):
    rates = DepartureRateSerializer(many=True, read_only=True)

    class Meta:
        model = Departure
        fields = (
            "departure_date",
            "start_time",
            "available_spots",
            "is_sold_out",
            "duration_nights",
            "rates",
        )


class FlightPackageSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = FlightPackage
        fields = ("id", "title", "slug", "price", "single_price", "currency", "last_flight_refresh_at")
