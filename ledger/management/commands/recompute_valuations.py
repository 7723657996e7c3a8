"""
Recompute the monthly valuation chain.
Usage: python manage.py recompute_valuations [--month=M --year=Y | --year=Y]
"""

from django.core.management.base import BaseCommand, CommandError

from ledger.exceptions import NoDataError, ValuationError
from ledger.services.valuation import compute_valuation, recompute_year


class Command(BaseCommand):
    help = 'Recompute monthly valuations and share prices up to a target month'

    def add_arguments(self, parser):
        parser.add_argument(
            '--month',
            type=int,
            help='Target month (1-12). Defaults to the current month'
        )
        parser.add_argument(
            '--year',
            type=int,
            help='Target year. Without --month, recomputes the whole year'
        )

    def handle(self, *args, **options):
        month = options.get('month')
        year = options.get('year')

        try:
            if year is not None and month is None:
                result = recompute_year(year)
            else:
                result = compute_valuation(month, year)
        except NoDataError as e:
            self.stdout.write(self.style.WARNING(str(e)))
            return
        except ValuationError as e:
            raise CommandError(str(e)) from e

        for valuation in result.history:
            self.stdout.write(
                f'  📅 {valuation.period}: valuation {valuation.terracotta_valuation}, '
                f'shares {valuation.total_shares_previous_month}, '
                f'price {valuation.terracotta_share_price}'
            )

        self.stdout.write(
            self.style.SUCCESS(
                f'Recomputed {len(result.history)} months through {result.current.period}'
            )
        )
