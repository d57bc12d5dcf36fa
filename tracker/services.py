from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import transaction as db_transaction
from django.db.models import F, Sum

from tracker.models import FundsReceived, Site, User
from tracker.repository import site_ledgers

logger = logging.getLogger(__name__)

# Largest value Site.funds (max_digits=14, decimal_places=2) can hold.
MAX_SITE_FUNDS = Decimal('999999999999.99')


class FundsLimitError(ValueError):
    pass


@dataclass(frozen=True)
class FundsIncrement:
    site: Site
    previous_funds: Decimal
    new_funds: Decimal


def atomic_increments_enabled() -> bool:
    return bool(getattr(settings, 'SITEBOOK_ATOMIC_FUNDS_INCREMENT', False))


def apply_funds_increment(site: Site, amount: Decimal, *, atomic: bool | None = None) -> FundsIncrement:
    """Add ``amount`` to ``site.funds``.

    The default path is a read-modify-write over the caller's copy of the
    site: two concurrent increments can lose one of the updates. With
    ``atomic`` (or SITEBOOK_ATOMIC_FUNDS_INCREMENT) the addition happens in
    the database instead.
    """
    if atomic is None:
        atomic = atomic_increments_enabled()
    if (site.funds or Decimal('0')) + amount > MAX_SITE_FUNDS:
        raise FundsLimitError(f"Site {site.pk} funds would exceed {MAX_SITE_FUNDS}")
    if atomic:
        Site.objects.filter(pk=site.pk).update(funds=F('funds') + amount)
        site.refresh_from_db(fields=['funds'])
        new_funds = site.funds
        previous_funds = new_funds - amount
    else:
        previous_funds = site.funds or Decimal('0')
        new_funds = previous_funds + amount
        Site.objects.filter(pk=site.pk).update(funds=new_funds)
        site.funds = new_funds
    site_ledgers.invalidate(site.pk)
    logger.info(
        "Site %s funds %s -> %s (+%s, atomic=%s)", site.pk, previous_funds, new_funds, amount, atomic
    )
    return FundsIncrement(site=site, previous_funds=previous_funds, new_funds=new_funds)


def increment_site_funds(site_id, amount: Decimal, *, atomic: bool | None = None) -> FundsIncrement:
    site = Site.objects.get(pk=site_id)
    return apply_funds_increment(site, amount, atomic=atomic)


def record_funds_received(
    site: Site,
    *,
    amount: Decimal,
    date: dt.date,
    reference: str = '',
    method: str = '',
    created_by: User | None = None,
    atomic: bool | None = None,
) -> FundsReceived:
    """Book a funds-received entry and bump the site's running total."""
    with db_transaction.atomic():
        fund = FundsReceived.objects.create(
            site=site,
            date=date,
            amount=amount,
            reference=reference or '',
            method=method or '',
            created_by=created_by,
        )
        apply_funds_increment(site, amount, atomic=atomic)
    return fund


def recalculate_site_funds(site: Site, *, save: bool = True) -> Decimal:
    """Rebuild the running total from the funds_received rows."""
    total = FundsReceived.objects.filter(site=site).aggregate(total=Sum('amount'))['total'] or Decimal('0')
    if total != site.funds:
        logger.info("Site %s funds cache %s corrected to %s", site.pk, site.funds, total)
    site.funds = total
    if save:
        Site.objects.filter(pk=site.pk).update(funds=total)
        site_ledgers.invalidate(site.pk)
    return total
