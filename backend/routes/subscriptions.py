from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends

from backend import repositories
from backend.auth import Identity, require_identity
from backend.dependencies import get_store, get_today
from backend.errors import StoreError
from backend.schemas import SubscriptionCreate, SubscriptionPatch, SubscriptionSummaryResponse
from backend.store import EntityStore
from backend.subscriptions import summarize_subscriptions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/subscriptions")
async def list_subscriptions(
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    items = await repositories.list_subscriptions(store, identity)
    return {"items": items}


@router.get("/v1/subscriptions/summary", response_model=SubscriptionSummaryResponse)
async def subscription_summary(
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    items = await repositories.list_subscriptions(store, identity)
    return summarize_subscriptions(items, today)


@router.post("/v1/subscriptions")
async def create_subscription(
    payload: SubscriptionCreate,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    try:
        return await repositories.create_subscription(store, identity, payload.model_dump())
    except StoreError as exc:
        logger.exception("Failed to create subscription: %s", exc)
        raise


@router.patch("/v1/subscriptions/{subscription_id}")
async def patch_subscription(
    subscription_id: str,
    payload: SubscriptionPatch,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    try:
        return await repositories.update_subscription(
            store, identity, subscription_id, payload.model_dump(exclude_unset=True)
        )
    except StoreError as exc:
        logger.exception("Failed to update subscription: %s", exc)
        raise


@router.delete("/v1/subscriptions/{subscription_id}")
async def delete_subscription(
    subscription_id: str,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    try:
        await repositories.delete_subscription(store, identity, subscription_id)
    except StoreError as exc:
        logger.exception("Failed to delete subscription: %s", exc)
        raise
    return {"ok": True}
