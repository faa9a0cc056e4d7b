"""Management command to recompute driver reliability status from the cancellation log"""
from django.core.management.base import BaseCommand, CommandError
from rideshare_main_app.models import DriverReliabilityRecord, CancellationEvent
from rideshare_main_app.services import ReliabilityService


class Command(BaseCommand):
    help = 'Rebuild driver account status from cancellation events'

    def add_arguments(self, parser):
        parser.add_argument('--driver', type=int, help='Only rebuild this driver id')

    def handle(self, *args, **options):
        service = ReliabilityService()

        if options['driver']:
            driver_ids = [options['driver']]
            if not CancellationEvent.objects.filter(driver_id=options['driver']).exists() and \
                    not DriverReliabilityRecord.objects.filter(driver_id=options['driver']).exists():
                raise CommandError(f"Driver {options['driver']} has no reliability history")
        else:
            driver_ids = sorted(
                set(DriverReliabilityRecord.objects.values_list('driver_id', flat=True))
                | set(CancellationEvent.objects.values_list('driver_id', flat=True))
            )

        if not driver_ids:
            self.stdout.write('No drivers to rebuild')
            return

        changed = 0
        for driver_id in driver_ids:
            if service.rebuild(driver_id):
                changed += 1
                self.stdout.write(f'Driver {driver_id}: status corrected')

        self.stdout.write(self.style.SUCCESS(f'Completed: {len(driver_ids)} drivers checked, {changed} corrected'))
