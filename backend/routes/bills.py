from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder

from backend import billing, repositories
from backend.auth import Identity, require_identity
from backend.dependencies import get_store, get_today
from backend.errors import StoreError
from backend.schemas import BillCreate, BillPatch, BillSummaryResponse, MarkPaidResponse
from backend.store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/bills")
async def list_bills(
    status: str = Query("all"),
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    bills = await repositories.list_bills(store, identity)
    items = billing.filter_by_status(bills, status, today)
    return {"items": [repositories.serialize_bill(item, today) for item in items]}


@router.get("/v1/bills/grouped")
async def grouped_bills(
    include_paid: bool = Query(True),
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    bills = await repositories.list_bills(store, identity)
    groups = billing.group_by_status(bills, today)
    if not include_paid:
        groups[billing.PAID] = []
    return {
        status: [repositories.serialize_bill(item, today) for item in items]
        for status, items in groups.items()
    }


@router.get("/v1/bills/summary", response_model=BillSummaryResponse)
async def bill_summary(
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    bills = await repositories.list_bills(store, identity)
    return billing.summarize(bills, today)


@router.get("/v1/bills/calendar")
async def bill_calendar(
    year: int | None = Query(None),
    month: int | None = Query(None),
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    year = year or today.year
    month = month or today.month
    bills = await repositories.list_bills(store, identity)
    days = billing.bills_for_month(bills, year, month, today)
    for day in days:
        day["bills"] = [repositories.serialize_bill(item, today) for item in day["bills"]]
    return {"year": year, "month": month, "days": days}


@router.get("/v1/bills/{bill_id}")
async def get_bill(
    bill_id: str,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    record = await repositories.get_bill(store, identity, bill_id)
    return repositories.serialize_bill(record, today)


@router.post("/v1/bills")
async def create_bill(
    payload: BillCreate,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    try:
        record = await repositories.create_bill(store, identity, payload.model_dump())
    except StoreError as exc:
        logger.exception("Failed to create bill: %s", exc)
        raise
    return jsonable_encoder(repositories.serialize_bill(record, today))


@router.patch("/v1/bills/{bill_id}")
async def patch_bill(
    bill_id: str,
    payload: BillPatch,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    try:
        record = await repositories.update_bill(store, identity, bill_id, payload.model_dump(exclude_unset=True))
    except StoreError as exc:
        logger.exception("Failed to update bill: %s", exc)
        raise
    return jsonable_encoder(repositories.serialize_bill(record, today))


@router.post("/v1/bills/{bill_id}/pay", response_model=MarkPaidResponse)
async def pay_bill(
    bill_id: str,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    try:
        result = await repositories.mark_paid(store, identity, bill_id)
    except StoreError as exc:
        logger.exception("Failed to mark bill paid: %s", exc)
        raise
    next_bill = result["next_bill"]
    return {
        "bill": repositories.serialize_bill(result["bill"], today),
        "next_bill": repositories.serialize_bill(next_bill, today) if next_bill else None,
        "reconciled": result["reconciled"],
    }


@router.delete("/v1/bills/{bill_id}")
async def delete_bill(
    bill_id: str,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    try:
        await repositories.delete_bill(store, identity, bill_id)
    except StoreError as exc:
        logger.exception("Failed to delete bill: %s", exc)
        raise
    return {"ok": True}
