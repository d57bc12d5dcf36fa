"""Site ledger repository with a refetch-on-write cache.

A ledger is everything booked against one site, already mapped into
``tracker.records`` entries. Ledgers are cached per site in Django's cache;
any write touching a site must call ``invalidate`` (the signal handlers in
``tracker.signals`` and the funds services do this) so the next read refetches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from tracker.balance import AdvanceBucket, SiteSummary, calculate_site_summary
from tracker.models import Advance, Expense, FundsReceived, Invoice, Site
from tracker.records import AdvanceEntry, ExpenseEntry, FundsEntry, InvoiceEntry, SiteSnapshot

logger = logging.getLogger(__name__)

SITE_FIELDS = (
    'id',
    'name',
    'job_name',
    'pos_no',
    'location',
    'start_date',
    'completion_date',
    'supervisor_id',
    'is_completed',
    'funds',
)
EXPENSE_FIELDS = ('id', 'site_id', 'date', 'category', 'description', 'amount')
ADVANCE_FIELDS = (
    'id',
    'site_id',
    'date',
    'recipient_name',
    'recipient_type',
    'purpose',
    'amount',
    'remarks',
    'status',
)
FUNDS_FIELDS = ('id', 'site_id', 'date', 'amount', 'reference', 'method')
INVOICE_FIELDS = ('id', 'site_id', 'date', 'party_name', 'material', 'net_amount', 'payment_status', 'payment_by')


@dataclass(frozen=True)
class SiteLedger:
    site: SiteSnapshot
    expenses: tuple[ExpenseEntry, ...]
    advances: tuple[AdvanceEntry, ...]
    funds_received: tuple[FundsEntry, ...]
    invoices: tuple[InvoiceEntry, ...]

    def summary(self, purpose_buckets: Mapping[str, AdvanceBucket] | None = None) -> SiteSummary:
        return calculate_site_summary(
            self.site.id,
            sites=[self.site],
            expenses=self.expenses,
            advances=self.advances,
            funds_received=self.funds_received,
            invoices=self.invoices,
            purpose_buckets=purpose_buckets,
        )


class SiteLedgerRepository:
    key_prefix = 'site-ledger'

    def __init__(self, backend=None, timeout: int | None = None):
        self.cache = backend or cache
        self.timeout = timeout if timeout is not None else getattr(settings, 'SITE_LEDGER_CACHE_TIMEOUT', 300)

    def cache_key(self, site_id) -> str:
        return f"{self.key_prefix}:{site_id}"

    def get_ledger(self, site_id) -> SiteLedger | None:
        key = self.cache_key(site_id)
        ledger = self.cache.get(key)
        if ledger is not None:
            return ledger
        logger.debug("Ledger cache miss for site %s", site_id)
        ledger = self.fetch_ledger(site_id)
        if ledger is not None:
            self.cache.set(key, ledger, self.timeout)
        return ledger

    def fetch_ledger(self, site_id) -> SiteLedger | None:
        row = Site.objects.filter(pk=site_id).values(*SITE_FIELDS).first()
        if row is None:
            return None
        site = SiteSnapshot.from_row(row)
        return SiteLedger(
            site=site,
            expenses=tuple(
                ExpenseEntry.from_row(item) for item in Expense.objects.filter(site_id=site.id).values(*EXPENSE_FIELDS)
            ),
            advances=tuple(
                AdvanceEntry.from_row(item) for item in Advance.objects.filter(site_id=site.id).values(*ADVANCE_FIELDS)
            ),
            funds_received=tuple(
                FundsEntry.from_row(item) for item in FundsReceived.objects.filter(site_id=site.id).values(*FUNDS_FIELDS)
            ),
            invoices=tuple(
                InvoiceEntry.from_row(item) for item in Invoice.objects.filter(site_id=site.id).values(*INVOICE_FIELDS)
            ),
        )

    def invalidate(self, site_id) -> None:
        """Drop the cached ledger now and again once the current transaction commits.

        A reader in another transaction can re-cache the pre-commit ledger
        between the first drop and the commit; the second drop clears it.
        Outside a transaction ``on_commit`` runs immediately.
        """
        if site_id is None:
            return
        key = self.cache_key(site_id)
        self.cache.delete(key)
        transaction.on_commit(lambda: self.cache.delete(key))


site_ledgers = SiteLedgerRepository()
