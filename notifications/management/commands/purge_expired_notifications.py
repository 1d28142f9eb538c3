from django.core.management.base import BaseCommand

from notifications.utils import purge_expired, cleanup_read


class Command(BaseCommand):
    help = 'Deletes notifications whose TTL has passed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--read-older-than',
            type=int,
            default=None,
            help='Also delete read notifications older than this many days'
        )

    def handle(self, *args, **options):
        customer_deleted, rider_deleted = purge_expired()

        days = options['read_older_than']
        if days:
            read_customer, read_rider = cleanup_read(days)
            customer_deleted += read_customer
            rider_deleted += read_rider

        if customer_deleted or rider_deleted:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Deleted {customer_deleted} customer and {rider_deleted} rider notifications'
                )
            )
        else:
            self.stdout.write("No expired notifications found")
