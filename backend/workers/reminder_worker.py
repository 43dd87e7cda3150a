from __future__ import annotations

import asyncio
import logging
from datetime import date

from backend import billing, repositories
from backend.auth import identity_for_email
from backend.clock import Clock, get_clock
from backend.notifications import BILL_DUE
from backend.settings import get_settings
from backend.store import BILL, NOTIFICATION, EntityStore, SqlEntityStore

logger = logging.getLogger(__name__)

ATTENTION_STATUSES = {billing.DUE_SOON, billing.OVERDUE}


def _reminder_text(bill: dict, due_status: str, today: date) -> tuple[str, str]:
    name = bill.get("name") or "Bill"
    amount = float(billing.coerce_amount(bill.get("amount")))
    remaining = billing.days_until(bill.get("due_date"), today)
    if due_status == billing.OVERDUE:
        return f"{name} is overdue", f"${amount:.2f} was due {abs(remaining)} day(s) ago."
    if remaining == 0:
        return f"{name} is due today", f"${amount:.2f} is due today."
    return f"{name} is due soon", f"${amount:.2f} is due in {remaining} day(s)."


async def _reminded_keys(store: EntityStore, user_id: str) -> set:
    sent = await store.filter(NOTIFICATION, {"user_id": user_id, "type": BILL_DUE})
    return {(item.get("bill_id"), item.get("due_date"), item.get("due_status")) for item in sent}


async def _remind_bill(store: EntityStore, bill: dict, today: date, reminded_by_user: dict) -> bool:
    due_status = billing.classify(bill, today)
    if due_status not in ATTENTION_STATUSES:
        return False
    owner = bill.get("created_by")
    if not owner:
        return False
    user_id = identity_for_email(owner).id
    if user_id not in reminded_by_user:
        reminded_by_user[user_id] = await _reminded_keys(store, user_id)
    # Read reminders count too; a new due date or status earns a new one.
    key = (bill["id"], bill.get("due_date"), due_status)
    if key in reminded_by_user[user_id]:
        return False
    title, message = _reminder_text(bill, due_status, today)
    await repositories.create_notification(
        store,
        user_id,
        BILL_DUE,
        title=title,
        message=message,
        action_type="view_bill",
        action_url="/bills",
        bill_id=bill["id"],
        due_date=bill.get("due_date"),
        due_status=due_status,
        owner=owner,
    )
    reminded_by_user[user_id].add(key)
    return True


async def process_reminders_once(store: EntityStore, today: date) -> int:
    bills = await store.filter(BILL, {"status": "pending"}, "due_date")
    reminded_by_user: dict[str, set] = {}
    created = 0
    for bill in bills:
        try:
            if await _remind_bill(store, bill, today, reminded_by_user):
                created += 1
        except Exception as exc:
            logger.warning("Failed to create reminder for bill %s: %s", bill.get("id"), exc)
    if created:
        logger.info("Created %s bill_due notifications", created)
    return created


async def run_forever(store: EntityStore | None = None, clock: Clock | None = None) -> None:
    store = store or SqlEntityStore()
    clock = clock or get_clock()
    await store.init()
    interval = get_settings().reminder_interval_seconds
    while True:
        await process_reminders_once(store, clock.today())
        await asyncio.sleep(interval)


if __name__ == "__main__":
    logging.basicConfig(level="INFO", format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    asyncio.run(run_forever())
