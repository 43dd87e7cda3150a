from __future__ import annotations

import logging
from datetime import date

from backend import billing
from backend.auth import Identity
from backend.errors import NotFoundError, ValidationError
from backend.notifications import BILL_DUE, list_unread, mark_read_batch, reconcile
from backend.settings import get_settings
from backend.store import BILL, NOTIFICATION, SUBSCRIPTION, EntityStore
from backend.subscriptions import INTERVALS, SUBSCRIPTION_STATUSES

logger = logging.getLogger(__name__)

BILL_FIELDS = {
    "name",
    "amount",
    "due_date",
    "category",
    "status",
    "recurring",
    "frequency",
    "notify_days_before",
    "notes",
}
SUBSCRIPTION_FIELDS = {"vendor", "amount", "interval", "next_renewal", "category", "status", "notes"}


def _clean_text(value, limit: int = 200) -> str:
    return " ".join(str(value or "").split()).strip()[:limit]


def _parse_amount(value, field: str = "amount") -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError("Amount is required", field=field)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number", field=field)
    if amount != amount or amount < 0:
        raise ValidationError("Amount cannot be negative", field=field)
    return round(amount, 2)


def _parse_required_date(value, field: str) -> str:
    parsed = billing.parse_date(value)
    if parsed is None:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required", field=field)
    return parsed.isoformat()


def _normalize_choice(value, choices: list[str], field: str) -> str:
    if value not in choices:
        raise ValidationError(f"Invalid {field}: {value}", field=field)
    return value


def normalize_bill_fields(fields: dict, partial: bool = False) -> dict:
    """Validate bill input. ``partial`` only checks the keys that are present."""
    clean = {key: value for key, value in (fields or {}).items() if key in BILL_FIELDS}
    if not partial:
        for key in ("name", "amount", "due_date"):
            if clean.get(key) in (None, ""):
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} is required", field=key)

    if "name" in clean:
        clean["name"] = _clean_text(clean["name"])
        if not clean["name"]:
            raise ValidationError("Name is required", field="name")
    if "amount" in clean:
        clean["amount"] = _parse_amount(clean["amount"])
    if "due_date" in clean:
        clean["due_date"] = _parse_required_date(clean["due_date"], "due_date")
    if "category" in clean:
        clean["category"] = _normalize_choice(clean["category"] or "other", billing.BILL_CATEGORIES, "category")
    if "status" in clean:
        status = clean["status"]
        if partial and status in (None, ""):
            raise ValidationError("Status cannot be empty", field="status")
        if partial and status == "overdue":
            # Overdue is derived from the due date, so it never changes the stored status.
            del clean["status"]
        else:
            status = "pending" if status in (None, "", "overdue") else status
            clean["status"] = _normalize_choice(status, billing.PERSISTED_STATUSES, "status")
    if "recurring" in clean:
        clean["recurring"] = bool(clean["recurring"])
    if "frequency" in clean:
        clean["frequency"] = _normalize_choice(clean["frequency"] or "monthly", billing.FREQUENCIES, "frequency")
    if "notify_days_before" in clean:
        value = clean["notify_days_before"]
        if value is None:
            clean["notify_days_before"] = get_settings().default_notify_days
        else:
            try:
                days = int(value)
            except (TypeError, ValueError):
                raise ValidationError("Reminder lead time must be a whole number of days", field="notify_days_before")
            if days < 0:
                raise ValidationError("Reminder lead time cannot be negative", field="notify_days_before")
            clean["notify_days_before"] = days
    if "notes" in clean:
        notes = clean["notes"]
        clean["notes"] = (str(notes).strip() or None) if notes is not None else None

    if not partial:
        clean.setdefault("category", "utilities")
        clean.setdefault("status", "pending")
        clean.setdefault("recurring", False)
        clean.setdefault("frequency", "monthly")
        clean.setdefault("notify_days_before", get_settings().default_notify_days)
        clean.setdefault("notes", None)
    return clean


def serialize_bill(record: dict, today: date) -> dict:
    if not record:
        return {}
    payload = dict(record)
    payload.setdefault("category", "utilities")
    payload.setdefault("recurring", False)
    payload["frequency"] = payload.get("frequency") or "monthly"
    payload["status"] = "paid" if payload.get("status") == "paid" else "pending"
    payload["amount"] = float(billing.coerce_amount(payload.get("amount")))
    payload["notify_days_before"] = billing.notify_window(payload)
    payload["due_status"] = billing.classify(payload, today)
    payload["days_until"] = billing.days_until(payload.get("due_date"), today)
    return payload


async def _owned(store: EntityStore, kind: str, identity: Identity, record_id: str) -> dict:
    record = await store.get(kind, record_id)
    if record.get("created_by") != identity.email:
        raise NotFoundError(kind, record_id)
    return record


async def list_bills(store: EntityStore, identity: Identity) -> list[dict]:
    return await store.filter(BILL, {"created_by": identity.email}, "-due_date")


async def get_bill(store: EntityStore, identity: Identity, bill_id: str) -> dict:
    return await _owned(store, BILL, identity, bill_id)


async def create_bill(store: EntityStore, identity: Identity, payload: dict) -> dict:
    record = normalize_bill_fields(payload)
    return await store.create(BILL, record, owner=identity.email)


async def _ensure_next_occurrence(store: EntityStore, identity: Identity, bill: dict) -> dict | None:
    """Return the pending follow-up of a recurring bill, creating it when it does not exist yet."""
    if not bill.get("recurring"):
        return None
    scheduled = await store.filter(BILL, {"created_by": identity.email, "previous_bill_id": bill["id"]})
    if scheduled:
        return scheduled[0]
    fields = billing.next_occurrence_fields(bill)
    fields["previous_bill_id"] = bill["id"]
    next_bill = await store.create(BILL, fields, owner=identity.email)
    logger.info("Scheduled next occurrence of bill %s on %s", bill.get("id"), next_bill.get("due_date"))
    return next_bill


async def _pay(store: EntityStore, identity: Identity, existing: dict, changes: dict) -> tuple[dict, dict | None, list[str]]:
    # Follow-up first: a failed write here leaves the bill pending.
    next_bill = await _ensure_next_occurrence(store, identity, {**existing, **changes})
    record = await store.update(BILL, existing["id"], {**changes, "status": "paid"})
    # Any unread bill_due notification for the user is cleared, not only this bill's.
    reconciled = await reconcile(store, identity.id, BILL_DUE)
    return record, next_bill, reconciled


async def update_bill(store: EntityStore, identity: Identity, bill_id: str, patch: dict) -> dict:
    existing = await _owned(store, BILL, identity, bill_id)
    clean = normalize_bill_fields(patch, partial=True)
    if not clean:
        return existing
    if existing.get("status") != "paid" and clean.get("status") == "paid":
        record, _, _ = await _pay(store, identity, existing, clean)
        return record
    return await store.update(BILL, bill_id, clean)


async def mark_paid(store: EntityStore, identity: Identity, bill_id: str) -> dict:
    existing = await _owned(store, BILL, identity, bill_id)
    if existing.get("status") == "paid":
        next_bill = await _ensure_next_occurrence(store, identity, existing)
        reconciled = await reconcile(store, identity.id, BILL_DUE)
        return {"bill": existing, "next_bill": next_bill, "reconciled": reconciled}
    record, next_bill, reconciled = await _pay(store, identity, existing, {})
    return {"bill": record, "next_bill": next_bill, "reconciled": reconciled}


async def delete_bill(store: EntityStore, identity: Identity, bill_id: str) -> None:
    await _owned(store, BILL, identity, bill_id)
    await store.delete(BILL, bill_id)


def normalize_subscription_fields(fields: dict, partial: bool = False) -> dict:
    clean = {key: value for key, value in (fields or {}).items() if key in SUBSCRIPTION_FIELDS}
    if not partial:
        for key in ("vendor", "amount"):
            if clean.get(key) in (None, ""):
                raise ValidationError(f"{key.capitalize()} is required", field=key)
    if "vendor" in clean:
        clean["vendor"] = _clean_text(clean["vendor"])
        if not clean["vendor"]:
            raise ValidationError("Vendor is required", field="vendor")
    if "amount" in clean:
        clean["amount"] = _parse_amount(clean["amount"])
    if "interval" in clean:
        clean["interval"] = _normalize_choice(clean["interval"] or "monthly", INTERVALS, "interval")
    if "status" in clean:
        clean["status"] = _normalize_choice(clean["status"] or "active", SUBSCRIPTION_STATUSES, "status")
    if "next_renewal" in clean:
        parsed = billing.parse_date(clean["next_renewal"])
        clean["next_renewal"] = parsed.isoformat() if parsed else None
    if "category" in clean:
        clean["category"] = _clean_text(clean["category"], 60) or None
    if not partial:
        clean.setdefault("interval", "monthly")
        clean.setdefault("status", "active")
        clean.setdefault("next_renewal", None)
    return clean


async def list_subscriptions(store: EntityStore, identity: Identity) -> list[dict]:
    return await store.filter(SUBSCRIPTION, {"created_by": identity.email}, "-next_renewal")


async def create_subscription(store: EntityStore, identity: Identity, payload: dict) -> dict:
    return await store.create(SUBSCRIPTION, normalize_subscription_fields(payload), owner=identity.email)


async def update_subscription(store: EntityStore, identity: Identity, subscription_id: str, patch: dict) -> dict:
    existing = await _owned(store, SUBSCRIPTION, identity, subscription_id)
    clean = normalize_subscription_fields(patch, partial=True)
    if not clean:
        return existing
    return await store.update(SUBSCRIPTION, subscription_id, clean)


async def delete_subscription(store: EntityStore, identity: Identity, subscription_id: str) -> None:
    await _owned(store, SUBSCRIPTION, identity, subscription_id)
    await store.delete(SUBSCRIPTION, subscription_id)


async def list_notifications(store: EntityStore, identity: Identity, unread_only: bool = False) -> list[dict]:
    if unread_only:
        return await list_unread(store, identity.id)
    return await store.filter(NOTIFICATION, {"user_id": identity.id}, "-created_date")


async def create_notification(store: EntityStore, user_id: str, notification_type: str, **fields) -> dict:
    payload = {
        "user_id": user_id,
        "type": notification_type,
        "read": False,
        "title": fields.get("title"),
        "message": fields.get("message"),
        "action_type": fields.get("action_type"),
        "action_url": fields.get("action_url"),
        "bill_id": fields.get("bill_id"),
        "due_date": fields.get("due_date"),
        "due_status": fields.get("due_status"),
    }
    return await store.create(NOTIFICATION, payload, owner=fields.get("owner"))


async def mark_notification_read(store: EntityStore, identity: Identity, notification_id: str) -> dict:
    record = await store.get(NOTIFICATION, notification_id)
    if record.get("user_id") != identity.id:
        raise NotFoundError(NOTIFICATION, notification_id)
    if record.get("read"):
        return record
    return await store.update(NOTIFICATION, notification_id, {"read": True})


async def mark_all_notifications_read(store: EntityStore, identity: Identity) -> list[str]:
    return await mark_read_batch(store, await list_unread(store, identity.id))
