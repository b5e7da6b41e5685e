from django.core.management.base import BaseCommand

from orders.cleanup import run_order_cleanup


class Command(BaseCommand):
    help = 'Cancel orders whose online payment was not received within 2 days'

    def handle(self, *args, **options):
        result = run_order_cleanup()
        self.stdout.write(f'Orders checked: {result.found}')
        self.stdout.write(self.style.SUCCESS(f'Cancelled: {result.cancelled}'))
        if result.failed:
            self.stdout.write(self.style.WARNING(f'Failed: {result.failed}'))
            for error in result.errors:
                self.stdout.write(f"  {error['order_number']}: {error['error']}")
