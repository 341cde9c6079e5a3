from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from pricing.services.airports import DEFAULT_DEPARTURE_AIRPORTS


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class FlightSource(models.TextChoices):
    SUNSHINE = "sunshine", "Sunshine"
    SERP = "serp", "SerpApi Google Flights"


class FlightPackage(TimeStampedModel):
    class Topology(models.TextChoices):
        ROUND_TRIP = "round_trip", "Round trip"
        OPEN_JAW = "open_jaw", "Open jaw"

    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    supplier_product_id = models.CharField(max_length=64, blank=True, db_index=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    single_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default="GBP")
    auto_refresh_enabled = models.BooleanField(default=False, db_index=True)
    destination_airport = models.CharField(max_length=3, blank=True)
    return_airport = models.CharField(max_length=3, blank=True)
    departure_airports = models.CharField(max_length=255, default=DEFAULT_DEPARTURE_AIRPORTS)
    flight_topology = models.CharField(max_length=16, choices=Topology.choices, default=Topology.ROUND_TRIP)
    flight_source = models.CharField(max_length=16, choices=FlightSource.choices, default=FlightSource.SUNSHINE)
    markup_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    last_flight_refresh_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["title"]

    def __str__(self) -> str:
        return self.title

    def departure_airport_codes(self) -> list[str]:
        return [code.strip().upper() for code in (self.departure_airports or "").split("|") if code.strip()]


class Departure(TimeStampedModel):
    package = models.ForeignKey(FlightPackage, on_delete=models.CASCADE, related_name="departures")
    departure_date = models.DateField()
    start_time = models.CharField(max_length=16, blank=True)
    total_capacity = models.PositiveIntegerField(null=True, blank=True)
    available_spots = models.PositiveIntegerField(null=True, blank=True)
    is_sold_out = models.BooleanField(default=False)
    duration_nights = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        ordering = ["departure_date"]
        constraints = [
            models.UniqueConstraint(fields=["package", "departure_date"], name="uniq_departure_per_package_date"),
        ]

    def __str__(self) -> str:
        return f"Departure<{self.package_id}:{self.departure_date}>"


class DepartureRate(TimeStampedModel):
    class RoomCategory(models.TextChoices):
        TWIN = "twin", "Twin"
        SINGLE = "single", "Single"
        TRIPLE = "triple", "Triple"
        STANDARD = "standard", "Standard"

    departure = models.ForeignKey(Departure, on_delete=models.CASCADE, related_name="rates")
    supplier_rate_id = models.CharField(max_length=64)
    title = models.CharField(max_length=255, blank=True)
    pricing_category_id = models.CharField(max_length=64, blank=True)
    room_category = models.CharField(max_length=16, choices=RoomCategory.choices, default=RoomCategory.STANDARD)
    hotel_category = models.CharField(max_length=64, null=True, blank=True)
    min_per_booking = models.PositiveIntegerField(default=1)
    max_per_booking = models.PositiveIntegerField(null=True, blank=True)
    original_price = models.DecimalField(max_digits=12, decimal_places=2)
    original_currency = models.CharField(max_length=3)
    price_gbp = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["departure_id", "price_gbp"]

    def __str__(self) -> str:
        return f"DepartureRate<{self.title or self.supplier_rate_id}>"


class RateFlightPrice(TimeStampedModel):
    rate = models.ForeignKey(DepartureRate, on_delete=models.CASCADE, related_name="flight_prices")
    airport_code = models.CharField(max_length=3)
    flight_price = models.DecimalField(max_digits=10, decimal_places=2)
    combined_price = models.DecimalField(max_digits=10, decimal_places=2)
    markup_percent = models.DecimalField(max_digits=5, decimal_places=2)
    flight_source = models.CharField(max_length=16, choices=FlightSource.choices, default=FlightSource.SUNSHINE)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["rate", "airport_code"], name="uniq_flight_price_per_rate_airport"),
        ]
        indexes = [models.Index(fields=["airport_code"])]

    def __str__(self) -> str:
        return f"RateFlightPrice<{self.rate_id}:{self.airport_code}>"


class FlightTourPricingConfig(TimeStampedModel):
    supplier_product_id = models.CharField(max_length=64, unique=True)
    arrive_airport_code = models.CharField(max_length=3)
    depart_airports = models.CharField(max_length=255, default=DEFAULT_DEPARTURE_AIRPORTS)
    duration_nights = models.PositiveIntegerField(
        default=7,
        validators=[MinValueValidator(1), MaxValueValidator(30)],
    )
    search_start_date = models.DateField()
    search_end_date = models.DateField()
    markup_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("15.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    flight_source = models.CharField(max_length=16, choices=FlightSource.choices, default=FlightSource.SUNSHINE)
    is_enabled = models.BooleanField(default=True)

    def __str__(self) -> str:
        return f"FlightTourPricingConfig<{self.supplier_product_id}>"

    def depart_airport_codes(self) -> list[str]:
        return [code.strip().upper() for code in (self.depart_airports or "").split("|") if code.strip()]


class FxRate(TimeStampedModel):
    base_currency = models.CharField(max_length=3)
    quote_currency = models.CharField(max_length=3)
    rate = models.DecimalField(max_digits=18, decimal_places=8)
    as_of = models.DateTimeField(default=timezone.now)
    source = models.CharField(max_length=32, default="fallback")

    class Meta:
        unique_together = ("base_currency", "quote_currency")
        ordering = ["-as_of"]

    def __str__(self) -> str:
        return f"FxRate<{self.base_currency}->{self.quote_currency}>"
