from __future__ import annotations

from datetime import date
from decimal import Decimal

from backend.billing import coerce_amount, field_value, parse_date, to_money

INTERVALS = ["weekly", "monthly", "quarterly", "yearly"]
SUBSCRIPTION_STATUSES = ["active", "cancelled", "paused"]

# Only monthly and yearly charges feed the monthly-equivalent figure.
COUNTED_INTERVALS = {"monthly": Decimal("1"), "yearly": Decimal("12")}


def summarize_subscriptions(subscriptions, today: date | None = None) -> dict:
    active = [sub for sub in subscriptions or [] if field_value(sub, "status") == "active"]

    monthly_equivalent = Decimal("0")
    excluded: dict[str, dict] = {}
    for sub in active:
        interval = field_value(sub, "interval") or "monthly"
        amount = coerce_amount(field_value(sub, "amount"))
        divisor = COUNTED_INTERVALS.get(interval)
        if divisor is None:
            bucket = excluded.setdefault(interval, {"count": 0, "total": Decimal("0")})
            bucket["count"] += 1
            bucket["total"] += amount
            continue
        monthly_equivalent += amount / divisor

    renewals = sorted(
        due
        for due in (parse_date(field_value(sub, "next_renewal")) for sub in active)
        if due is not None and (today is None or due >= today)
    )
    return {
        "monthly_equivalent": to_money(monthly_equivalent),
        "annual_equivalent": to_money(monthly_equivalent * 12),
        "active_count": len(active),
        "next_renewal": renewals[0].isoformat() if renewals else None,
        "excluded_intervals": {
            interval: {"count": bucket["count"], "total": to_money(bucket["total"])}
            for interval, bucket in excluded.items()
        },
    }
