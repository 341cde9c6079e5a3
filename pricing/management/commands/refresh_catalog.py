from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from pricing.services.catalog import refresh_catalog
from pricing.services.config import catalog_currencies
from pricing.services.providers.base import ConfigurationError, ProviderException


class Command(BaseCommand):
    help = "Replace the cached supplier catalog for one or all configured currencies."

    def add_arguments(self, parser) -> None:  # noqa: ANN001
        parser.add_argument("--currency", help="Currency code, defaults to every configured currency.")

    def handle(self, *args, **options):  # noqa: ANN002, ANN003, ANN201
        currencies = [options["currency"].upper()] if options["currency"] else catalog_currencies()
        for currency in currencies:
            try:
                result = refresh_catalog(currency)
            except (ProviderException, ConfigurationError) as exc:
                raise CommandError(f"{currency}: {exc}") from exc
            self.stdout.write(self.style.SUCCESS(f"{currency}: {result['products_refreshed']} products cached"))
