from django.core.management.base import BaseCommand, CommandError

from apps.pricing.application.tasks import refresh_exchange_rates
from apps.pricing.infrastructure.providers.registry import PROVIDER_REGISTRY


class Command(BaseCommand):
    help = 'Refresh USD/TRY and EUR/TRY exchange rates from a rate provider'

    def add_arguments(self, parser):
        parser.add_argument(
            '--provider',
            dest='provider',
            type=str,
            default=None,
            help=f'Provider name ({", ".join(PROVIDER_REGISTRY)}); defaults to PRICING_DEFAULT_RATE_PROVIDER'
        )
        parser.add_argument(
            '--sync',
            action='store_true',
            help='Execute synchronously instead of using Celery task queue'
        )

    def handle(self, **options):
        provider = options['provider']

        if provider and provider not in PROVIDER_REGISTRY:
            raise CommandError(f'Unknown provider "{provider}"')

        if options['sync']:
            self.stdout.write('Running in synchronous mode...')
            result = refresh_exchange_rates(provider)

            for currency, rate in result['rates_updated'].items():
                self.stdout.write(self.style.SUCCESS(f'{currency}/TRY = {rate}'))
            for error in result['errors']:
                self.stdout.write(self.style.WARNING(error))

            if not result['success']:
                raise CommandError('No exchange rate was updated')
        else:
            self.stdout.write('Dispatching Celery task...')
            task = refresh_exchange_rates.delay(provider)
            self.stdout.write(self.style.SUCCESS(f'Task dispatched with ID: {task.id}'))
