from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from backend import repositories
from backend.auth import Identity, require_identity
from backend.dependencies import get_store
from backend.notifications import reconcile_page, unread_counts
from backend.schemas import NotificationListResponse, NotificationResponse, ReconcileResponse
from backend.store import EntityStore

router = APIRouter()


@router.get("/v1/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread: bool = Query(False),
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    items = await repositories.list_notifications(store, identity, unread_only=unread)
    return {"items": items}


@router.get("/v1/notifications/counts")
async def notification_counts(
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    return await unread_counts(store, identity.id)


@router.post("/v1/notifications/read-all", response_model=ReconcileResponse)
async def read_all(
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    return {"marked": await repositories.mark_all_notifications_read(store, identity)}


@router.post("/v1/notifications/{notification_id}/read", response_model=NotificationResponse)
async def read_one(
    notification_id: str,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    return await repositories.mark_notification_read(store, identity, notification_id)


@router.post("/v1/pages/{page}/viewed", response_model=ReconcileResponse)
async def page_viewed(
    page: str,
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
):
    return {"marked": await reconcile_page(store, identity.id, page)}
