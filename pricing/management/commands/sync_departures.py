from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from pricing.models import FlightPackage
from pricing.services.departures import sync_package_departures
from pricing.services.providers.base import ConfigurationError, ProviderException


class Command(BaseCommand):
    help = "Replace a package's departures with the supplier's next 12 months of availability."

    def add_arguments(self, parser) -> None:  # noqa: ANN001
        parser.add_argument("--package", type=int, required=True, help="FlightPackage id.")

    def handle(self, *args, **options):  # noqa: ANN002, ANN003, ANN201
        package = FlightPackage.objects.filter(pk=options["package"]).first()
        if package is None:
            raise CommandError(f"Package not found: {options['package']}")
        try:
            result = sync_package_departures(package)
        except (ProviderException, ConfigurationError) as exc:
            raise CommandError(str(exc)) from exc
        self.stdout.write(
            self.style.SUCCESS(
                f"{result['departures']} departures, {result['total_rates']} rates, "
                f"duration {result['duration_nights']} nights"
            )
        )
