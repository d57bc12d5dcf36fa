from django.core.management.base import BaseCommand, CommandError

from tracker.models import Site
from tracker.services import recalculate_site_funds


class Command(BaseCommand):
    help = "Rebuild each site's running funds total from its funds-received entries."

    def add_arguments(self, parser):
        parser.add_argument('--site', type=int, help='Only recalculate this site id.')
        parser.add_argument('--dry-run', action='store_true', help='Report drift without writing.')

    def handle(self, *args, **options):
        sites = Site.objects.order_by('pk')
        if options['site'] is not None:
            sites = sites.filter(pk=options['site'])
            if not sites.exists():
                raise CommandError(f"Site {options['site']} does not exist.")

        dry_run = options['dry_run']
        corrected = 0
        for site in sites:
            stored = site.funds
            total = recalculate_site_funds(site, save=not dry_run)
            if total == stored:
                continue
            corrected += 1
            self.stdout.write(f"{site.name}: {stored} -> {total}")

        verb = 'would be corrected' if dry_run else 'corrected'
        self.stdout.write(self.style.SUCCESS(f"{corrected} site(s) {verb}."))
