"""
Management command to collect draw data from agency sources.

Runs every registered source (or the ones named) sequentially, prints the
summary table, and exits non-zero when a source produced no units and no
draw history while reporting errors.

Usage:
    python manage.py collect_draw_data
    python manage.py collect_draw_data CO
    python manage.py collect_draw_data CO OR --delay 5
    python manage.py collect_draw_data --list
"""

import logging

from asgiref.sync import async_to_sync
from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from drawdata.services.batch_runner import BatchRunner, render_summary
from drawdata.services.store import RegulatoryStore
from drawdata.sources.registry import SOURCE_REGISTRY, UnknownSourceError

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Collect units, draw history, deadlines, fees, seasons, regulations and leftover tags."""

    help = 'Collect regulatory draw data from agency sources (all sources when none are named)'

    def add_arguments(self, parser):
        parser.add_argument(
            'sources',
            nargs='*',
            help='Source identifiers to collect, e.g. CO OR (default: all)',
        )
        parser.add_argument(
            '--delay',
            type=float,
            default=None,
            help='Seconds to wait between sources (default: DRAWDATA_INTER_SOURCE_DELAY)',
        )
        parser.add_argument(
            '--list',
            action='store_true',
            help='List registered sources and exit',
        )

    def handle(self, *args, **options):
        if options['list']:
            for source_id, source_class in SOURCE_REGISTRY.items():
                self.stdout.write(f'{source_id}  {source_class.source_name}  {source_class.source_url}')
            return

        try:
            store = RegulatoryStore()
        except ImproperlyConfigured as e:
            raise CommandError(f'Durable store is not configured: {e}')

        self.stdout.write('=== Draw Data Collection ===')
        self.stdout.write(f'Timestamp: {timezone.now().isoformat()}')
        self.stdout.write(f'Registered sources: {len(SOURCE_REGISTRY)}')

        runner = BatchRunner(store, delay=options['delay'])
        try:
            summary = async_to_sync(runner.run)(options['sources'])
        except UnknownSourceError as e:
            raise CommandError(str(e))

        self.stdout.write(render_summary(summary))

        if summary.failed:
            failed = [row.result.source for row in summary.rows if row.failed]
            raise CommandError(
                f'Sources produced no units or draw history and reported errors: {", ".join(failed)}'
            )

        self.stdout.write(self.style.SUCCESS('Collection complete'))
