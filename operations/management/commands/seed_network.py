from django.core.management.base import BaseCommand

from operations.services.reset import reset_network


class Command(BaseCommand):
    help = "Replace all hospitals, doctors, ambulances and beds with the demo network."

    def add_arguments(self, parser):
        parser.add_argument("--password", help="Password for every seeded account (default: DEFAULT_STAFF_PASSWORD)")

    def handle(self, *args, **opts):
        counts = reset_network(opts.get("password"))
        for name, n in counts.items():
            self.stdout.write(f"{name}: {n}")
        self.stdout.write(self.style.SUCCESS("Demo network seeded."))
