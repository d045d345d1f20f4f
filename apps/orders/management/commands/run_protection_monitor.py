from django.core.management.base import BaseCommand

from apps.orders.monitor import MonitorHandle


class Command(BaseCommand):
    help = "Run the gold-rate protection monitor (warnings, lapses and repricing) on a fixed interval."

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Run a single sweep and exit.")
        parser.add_argument("--interval", type=int, default=None, help="Seconds between sweeps.")
        parser.add_argument("--refresh-rate", action="store_true", help="Refresh the store gold rate before each sweep.")
        parser.add_argument("--no-drain", action="store_true", help="Leave queued notifications in the outbox.")

    def handle(self, *args, **options):
        handle = MonitorHandle(
            interval=options["interval"],
            drain=not options["no_drain"],
            refresh_rate=options["refresh_rate"],
        )

        if options["once"]:
            result = handle.run_once()
            self.stdout.write(
                self.style.SUCCESS(
                    f"Examined: {result.examined} Changed: {result.changed_count} "
                    f"Warnings: {result.warnings} Lapses: {result.lapses} Reinstated: {result.reinstatements}"
                )
            )
            return

        handle.start()
        self.stdout.write(self.style.SUCCESS(f"Protection monitor running every {handle.interval}s. Ctrl+C to stop."))
        try:
            while handle.running:
                handle.wait(1)
        except KeyboardInterrupt:
            pass
        finally:
            handle.stop()
        self.stdout.write(self.style.SUCCESS(f"Protection monitor stopped after {handle.iterations} sweeps"))
