"""Typed in-memory records built from persisted rows.

Rows come from ``QuerySet.values()`` (or any mapping keyed by column name).
Every monetary column is coerced to ``Decimal`` and every date column parsed,
because some backends hand numerics back as text. Optional text columns all
share one null-to-default policy so the balance engine never sees ``None``.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from django.utils.dateparse import parse_date as django_parse_date
from django.utils.dateparse import parse_datetime

from tracker.models import Invoice

OPTIONAL_TEXT_DEFAULT = ''


class RecordMappingError(ValueError):
    """A persisted value could not be mapped to its in-memory type."""


def coerce_amount(value: Any) -> Decimal:
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise RecordMappingError(f"Invalid amount: {value!r}")
    try:
        # str() keeps float inputs at their printed precision
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise RecordMappingError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise RecordMappingError(f"Invalid amount: {value!r}")
    return amount


def parse_date(value: Any, *, required: bool = True) -> dt.date | None:
    if value is None or value == '':
        if required:
            raise RecordMappingError('Missing date.')
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value).strip()
    try:
        parsed = django_parse_date(text)
        if parsed is None:
            stamp = parse_datetime(text.replace('Z', '+00:00'))
            parsed = stamp.date() if stamp else None
    except ValueError as exc:
        raise RecordMappingError(f"Invalid date: {value!r}") from exc
    if parsed is None:
        raise RecordMappingError(f"Invalid date: {value!r}")
    return parsed


def optional_text(value: Any) -> str:
    if value is None:
        return OPTIONAL_TEXT_DEFAULT
    return str(value)


@dataclass(frozen=True)
class SiteSnapshot:
    id: int
    name: str
    job_name: str
    pos_no: str
    location: str
    start_date: dt.date | None
    completion_date: dt.date | None
    supervisor_id: int | None
    is_completed: bool
    funds: Decimal

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'SiteSnapshot':
        return cls(
            id=row['id'],
            name=row['name'],
            job_name=optional_text(row.get('job_name')),
            pos_no=optional_text(row.get('pos_no')),
            location=optional_text(row.get('location')),
            start_date=parse_date(row.get('start_date'), required=False),
            completion_date=parse_date(row.get('completion_date'), required=False),
            supervisor_id=row.get('supervisor_id'),
            is_completed=bool(row.get('is_completed')),
            funds=coerce_amount(row.get('funds')),
        )


@dataclass(frozen=True)
class ExpenseEntry:
    id: int
    site_id: int
    date: dt.date
    category: str
    description: str
    amount: Decimal

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'ExpenseEntry':
        return cls(
            id=row['id'],
            site_id=row['site_id'],
            date=parse_date(row.get('date')),
            category=optional_text(row.get('category')),
            description=optional_text(row.get('description')),
            amount=coerce_amount(row.get('amount')),
        )


@dataclass(frozen=True)
class AdvanceEntry:
    id: int
    site_id: int
    date: dt.date
    recipient_name: str
    recipient_type: str
    purpose: str
    amount: Decimal
    remarks: str
    status: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'AdvanceEntry':
        return cls(
            id=row['id'],
            site_id=row['site_id'],
            date=parse_date(row.get('date')),
            recipient_name=optional_text(row.get('recipient_name')),
            recipient_type=optional_text(row.get('recipient_type')),
            purpose=optional_text(row.get('purpose')),
            amount=coerce_amount(row.get('amount')),
            remarks=optional_text(row.get('remarks')),
            status=optional_text(row.get('status')),
        )


@dataclass(frozen=True)
class FundsEntry:
    id: int
    site_id: int
    date: dt.date
    amount: Decimal
    reference: str
    method: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'FundsEntry':
        return cls(
            id=row['id'],
            site_id=row['site_id'],
            date=parse_date(row.get('date')),
            amount=coerce_amount(row.get('amount')),
            reference=optional_text(row.get('reference')),
            method=optional_text(row.get('method')),
        )


@dataclass(frozen=True)
class InvoiceEntry:
    id: int
    site_id: int
    date: dt.date
    party_name: str
    material: str
    net_amount: Decimal
    payment_status: str
    payment_by: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'InvoiceEntry':
        return cls(
            id=row['id'],
            site_id=row['site_id'],
            date=parse_date(row.get('date')),
            party_name=optional_text(row.get('party_name')),
            material=optional_text(row.get('material')),
            net_amount=coerce_amount(row.get('net_amount')),
            payment_status=optional_text(row.get('payment_status')),
            payment_by=str(row.get('payment_by') or Invoice.PaymentBy.HEAD_OFFICE),
        )
