from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

from dateutil.relativedelta import relativedelta

from backend.errors import ValidationError

OVERDUE = "overdue"
DUE_SOON = "due_soon"
UPCOMING = "upcoming"
PAID = "paid"
DUE_STATUSES = [OVERDUE, DUE_SOON, UPCOMING, PAID]

BILL_CATEGORIES = ["utilities", "rent", "insurance", "credit_card", "loan", "tax", "medical", "other"]
PERSISTED_STATUSES = ["pending", "paid"]
FREQUENCIES = ["monthly", "quarterly", "yearly"]
STATUS_FILTERS = ["all", "pending", "paid", "overdue"]

DEFAULT_NOTIFY_DAYS = 3

FREQUENCY_STEPS = {
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}


def field_value(bill, name, default=None):
    if isinstance(bill, dict):
        return bill.get(name, default)
    return getattr(bill, name, default)


def parse_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def coerce_amount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


def notify_window(bill) -> int:
    value = field_value(bill, "notify_days_before")
    try:
        days = int(value)
    except (TypeError, ValueError):
        return DEFAULT_NOTIFY_DAYS
    return days if days >= 0 else DEFAULT_NOTIFY_DAYS


def days_until(due_date, today: date) -> int:
    due = parse_date(due_date)
    if due is None:
        raise ValidationError("Bill is missing a due date", field="due_date")
    return (due - today).days


def classify(bill, today: date) -> str:
    """Urgency of a single bill on ``today``.

    Paid bills are always ``paid``. A pending bill is ``overdue`` once its due
    date has passed, ``due_soon`` from the due date back to ``notify_days_before``
    days ahead (both ends inclusive), and ``upcoming`` otherwise.
    """
    if field_value(bill, "status") == PAID:
        return PAID
    remaining = days_until(field_value(bill, "due_date"), today)
    if remaining < 0:
        return OVERDUE
    if remaining <= notify_window(bill):
        return DUE_SOON
    return UPCOMING


def to_money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def summarize(bills, today: date) -> dict:
    buckets = {status: {"count": 0, "total": Decimal("0")} for status in DUE_STATUSES}
    for bill in bills or []:
        bucket = buckets[classify(bill, today)]
        bucket["count"] += 1
        bucket["total"] += coerce_amount(field_value(bill, "amount"))
    return {
        status: {"count": bucket["count"], "total": to_money(bucket["total"])}
        for status, bucket in buckets.items()
    }


def group_by_status(bills, today: date) -> dict[str, list]:
    groups = {status: [] for status in DUE_STATUSES}
    for bill in bills or []:
        groups[classify(bill, today)].append(bill)
    return groups


def filter_by_status(bills, status: str, today: date) -> list:
    if status not in STATUS_FILTERS:
        raise ValidationError(f"Unknown status filter: {status}", field="status")
    if status == "all":
        return list(bills or [])
    if status == OVERDUE:
        return [bill for bill in bills or [] if classify(bill, today) == OVERDUE]
    return [bill for bill in bills or [] if field_value(bill, "status") == status]


def advance(bill) -> date:
    """Due date of the next occurrence of a recurring bill."""
    if not field_value(bill, "recurring"):
        raise ValidationError("Only recurring bills have a next occurrence", field="recurring")
    frequency = field_value(bill, "frequency") or "monthly"
    step = FREQUENCY_STEPS.get(frequency)
    if step is None:
        raise ValidationError(f"Unknown frequency: {frequency}", field="frequency")
    due = parse_date(field_value(bill, "due_date"))
    if due is None:
        raise ValidationError("Bill is missing a due date", field="due_date")
    return due + step


def next_occurrence_fields(bill) -> dict:
    fields = {
        key: field_value(bill, key)
        for key in ("name", "amount", "category", "recurring", "frequency", "notify_days_before", "notes")
    }
    fields["due_date"] = advance(bill).isoformat()
    fields["status"] = "pending"
    return fields


def bills_for_month(bills, year: int, month: int, today: date) -> list[dict]:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", field="month")
    first = date(year, month, 1)
    days_in_month = calendar.monthrange(year, month)[1]
    by_day: dict[date, list] = {}
    for bill in bills or []:
        due = parse_date(field_value(bill, "due_date"))
        if due is None or due.year != year or due.month != month:
            continue
        by_day.setdefault(due, []).append(bill)

    days = []
    for offset in range(days_in_month):
        day = first + timedelta(days=offset)
        day_bills = by_day.get(day, [])
        statuses = [classify(bill, today) for bill in day_bills]
        days.append(
            {
                "date": day.isoformat(),
                "is_today": day == today,
                "bills": day_bills,
                "total": to_money(sum((coerce_amount(field_value(b, "amount")) for b in day_bills), Decimal("0"))),
                "paid_count": statuses.count(PAID),
                "overdue_count": statuses.count(OVERDUE),
            }
        )
    return days
