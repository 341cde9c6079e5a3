from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from pricing.models import FlightPackage
from pricing.services.refresh import run_weekly_flight_refresh


class Command(BaseCommand):
    help = "Recompute combined flight + tour prices for auto-refresh packages."

    def add_arguments(self, parser) -> None:  # noqa: ANN001
        parser.add_argument(
            "--package",
            type=int,
            action="append",
            dest="packages",
            help="Only refresh this package id (repeatable).",
        )
        parser.add_argument(
            "--no-delay",
            action="store_true",
            help="Skip the pause between packages.",
        )

    def handle(self, *args, **options):  # noqa: ANN002, ANN003, ANN201
        packages = None
        if options["packages"]:
            packages = list(FlightPackage.objects.filter(pk__in=options["packages"]).order_by("id"))
            missing = set(options["packages"]) - {package.pk for package in packages}
            if missing:
                raise CommandError(f"Unknown package ids: {', '.join(str(pk) for pk in sorted(missing))}")

        summary = run_weekly_flight_refresh(
            packages=packages,
            package_delay_seconds=0 if options["no_delay"] else None,
        )
        for result in summary.results:
            label = "ok" if result.success else f"failed: {result.error}"
            self.stdout.write(f"package {result.package_id}: {result.updated} prices ({label})")
        self.stdout.write(
            self.style.SUCCESS(
                f"{summary.successes} successful, {summary.failures} failed, {summary.total_updated} total updates"
            )
        )
