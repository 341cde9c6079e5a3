from django.contrib import admin

from pricing.models import (
    Departure,
    DepartureRate,
    FlightPackage,
    FlightTourPricingConfig,
    FxRate,
    RateFlightPrice,
)


class DepartureInline(admin.TabularInline):
    model = Departure
    extra = 0
    fields = ("departure_date", "start_time", "available_spots", "is_sold_out", "duration_nights")
    readonly_fields = fields
    can_delete = False
    show_change_link = True


class DepartureRateInline(admin.TabularInline):
    model = DepartureRate
    extra = 0
    fields = ("title", "room_category", "hotel_category", "min_per_booking", "original_price", "original_currency", "price_gbp")
    readonly_fields = fields
    can_delete = False


@admin.register(FlightPackage)
class FlightPackageAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "supplier_product_id",
        "price",
        "single_price",
        "auto_refresh_enabled",
        "flight_topology",
        "flight_source",
        "last_flight_refresh_at",
    )
    list_filter = ("auto_refresh_enabled", "flight_topology", "flight_source")
    search_fields = ("title", "slug", "supplier_product_id")
    prepopulated_fields = {"slug": ("title",)}
    readonly_fields = ("last_flight_refresh_at", "created_at", "updated_at")
    inlines = [DepartureInline]


@admin.register(Departure)
class DepartureAdmin(admin.ModelAdmin):
    list_display = ("package", "departure_date", "available_spots", "is_sold_out", "duration_nights")
    list_filter = ("is_sold_out",)
    search_fields = ("package__title", "package__supplier_product_id")
    date_hierarchy = "departure_date"
    inlines = [DepartureRateInline]


@admin.register(RateFlightPrice)
class RateFlightPriceAdmin(admin.ModelAdmin):
    list_display = ("rate", "airport_code", "flight_price", "combined_price", "markup_percent", "flight_source", "updated_at")
    list_filter = ("flight_source", "airport_code")
    search_fields = ("rate__title", "rate__departure__package__title", "airport_code")


@admin.register(FlightTourPricingConfig)
class FlightTourPricingConfigAdmin(admin.ModelAdmin):
    list_display = (
        "supplier_product_id",
        "arrive_airport_code",
        "duration_nights",
        "search_start_date",
        "search_end_date",
        "markup_percent",
        "flight_source",
        "is_enabled",
    )
    list_filter = ("is_enabled", "flight_source")
    search_fields = ("supplier_product_id", "arrive_airport_code")


@admin.register(FxRate)
class FxRateAdmin(admin.ModelAdmin):
    list_display = ("base_currency", "quote_currency", "rate", "as_of", "source")
    list_filter = ("base_currency", "quote_currency", "source")
