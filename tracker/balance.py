"""Per-site balance computation.

Site balance = funds received - expenditure - cash advances - supervisor-paid invoices.

Advances are split into two buckets by purpose. Debit-type advances (safety
shoes, tools, other) are recovered from the recipient later, so they are
reported as ``debits_to_worker`` but do not reduce the balance. Invoices
settled by head office never touch the site's funds.

Everything here is pure: callers hand over records already scoped to one site.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from tracker.models import Advance, Invoice

ZERO = Decimal('0')


class AdvanceBucket(str, Enum):
    ADVANCE = 'advance'
    DEBIT = 'debit'


# Explicit allow-list of debit purposes. Anything not listed counts as a cash advance.
DEFAULT_PURPOSE_BUCKETS: Mapping[str, AdvanceBucket] = {
    Advance.Purpose.SAFETY_SHOES: AdvanceBucket.DEBIT,
    Advance.Purpose.TOOLS: AdvanceBucket.DEBIT,
    Advance.Purpose.OTHER: AdvanceBucket.DEBIT,
}


@dataclass(frozen=True)
class SiteSummary:
    funds_received: Decimal = ZERO
    total_expenditure: Decimal = ZERO
    total_advances: Decimal = ZERO
    debits_to_worker: Decimal = ZERO
    invoices_paid: Decimal = ZERO
    pending_invoices: Decimal = ZERO
    total_balance: Decimal = ZERO

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


def bucket_for_purpose(purpose: str, purpose_buckets: Mapping[str, AdvanceBucket] | None = None) -> AdvanceBucket:
    table = DEFAULT_PURPOSE_BUCKETS if purpose_buckets is None else purpose_buckets
    return table.get(purpose, AdvanceBucket.ADVANCE)


def _total(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def calculate_site_summary(
    site_id: Any,
    *,
    sites: Iterable[Any],
    expenses: Iterable[Any] = (),
    advances: Iterable[Any] = (),
    funds_received: Iterable[Any] = (),
    invoices: Iterable[Any] = (),
    purpose_buckets: Mapping[str, AdvanceBucket] | None = None,
) -> SiteSummary:
    """Compute the financial summary for ``site_id``.

    ``sites`` is only used to confirm the site exists; an unknown site yields
    an all-zero summary rather than an error. Records may be any objects
    exposing ``amount`` (``net_amount`` and ``payment_by`` for invoices,
    ``purpose`` for advances).
    """
    if site_id is None or not any(site.id == site_id for site in sites):
        return SiteSummary()

    advances = list(advances)
    total_funds = _total(fund.amount for fund in funds_received)
    total_expenses = _total(expense.amount for expense in expenses)
    total_advances = _total(
        advance.amount
        for advance in advances
        if bucket_for_purpose(advance.purpose, purpose_buckets) != AdvanceBucket.DEBIT
    )
    debits_to_worker = _total(
        advance.amount
        for advance in advances
        if bucket_for_purpose(advance.purpose, purpose_buckets) == AdvanceBucket.DEBIT
    )
    invoices_paid = _total(
        invoice.net_amount for invoice in invoices if invoice.payment_by == Invoice.PaymentBy.SUPERVISOR
    )

    return SiteSummary(
        funds_received=total_funds,
        total_expenditure=total_expenses,
        total_advances=total_advances,
        debits_to_worker=debits_to_worker,
        invoices_paid=invoices_paid,
        pending_invoices=ZERO,
        total_balance=total_funds - total_expenses - total_advances - invoices_paid,
    )
