from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from backend.errors import ReconciliationError, ValidationError
from backend.store import NOTIFICATION, EntityStore

logger = logging.getLogger(__name__)

BILL_DUE = "bill_due"
EVENT_REMINDER = "event_reminder"

PAGE_NOTIFICATION_TYPES = {
    "calendar": ["event_reminder"],
    "tasks": ["task_invite", "task_due"],
    "bills": ["bill_due"],
    "projects": ["project_invite"],
    "subscriptions": ["subscription_renewal"],
}


async def list_unread(store: EntityStore, user_id: str, notification_type: str | None = None) -> list[dict]:
    criteria = {"user_id": user_id, "read": False}
    if notification_type:
        criteria["type"] = notification_type
    return await store.filter(NOTIFICATION, criteria, "-created_date")


async def _mark_read(store: EntityStore, notification_id: str) -> str:
    try:
        await store.update(NOTIFICATION, notification_id, {"read": True})
    except Exception as exc:
        raise ReconciliationError(notification_id, exc) from exc
    return notification_id


async def mark_read_batch(store: EntityStore, notifications: list[dict]) -> list[str]:
    """Mark every notification read as independent tasks; failures are logged and skipped."""
    if not notifications:
        return []
    results = await asyncio.gather(
        *(_mark_read(store, item["id"]) for item in notifications),
        return_exceptions=True,
    )
    marked = []
    for result in results:
        if isinstance(result, ReconciliationError):
            logger.warning("%s", result.message)
            continue
        if isinstance(result, BaseException):
            logger.warning("Unexpected reconciliation failure: %s", result)
            continue
        marked.append(result)
    return marked


async def reconcile(
    store: EntityStore,
    user_id: str,
    notification_type: str,
    matcher: Optional[Callable[[dict], bool]] = None,
) -> list[str]:
    unread = await list_unread(store, user_id, notification_type)
    if matcher is not None:
        unread = [item for item in unread if matcher(item)]
    marked = await mark_read_batch(store, unread)
    if unread:
        logger.info(
            "Reconciled %s/%s %s notifications for %s",
            len(marked),
            len(unread),
            notification_type,
            user_id,
        )
    return marked


async def reconcile_page(store: EntityStore, user_id: str, page: str) -> list[str]:
    types = PAGE_NOTIFICATION_TYPES.get(str(page or "").lower())
    if types is None:
        raise ValidationError(f"Unknown page: {page}", field="page")
    marked = []
    for notification_type in types:
        marked.extend(await reconcile(store, user_id, notification_type))
    return marked


async def unread_counts(store: EntityStore, user_id: str) -> dict[str, int]:
    unread = await list_unread(store, user_id)
    counts = {page: 0 for page in PAGE_NOTIFICATION_TYPES}
    for item in unread:
        for page, types in PAGE_NOTIFICATION_TYPES.items():
            if item.get("type") in types:
                counts[page] += 1
    counts["total"] = len(unread)
    return counts
