from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from backend import billing, repositories
from backend.auth import Identity, require_identity
from backend.dependencies import get_store, get_today
from backend.notifications import unread_counts
from backend.schemas import BootstrapResponse
from backend.store import EntityStore

router = APIRouter()


@router.get("/v1/bootstrap", response_model=BootstrapResponse)
async def bootstrap(
    identity: Identity = Depends(require_identity),
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
):
    bills = await repositories.list_bills(store, identity)
    return {
        "user_id": identity.id,
        "user_email": identity.email,
        "user_name": identity.name,
        "today": today.isoformat(),
        "bill_summary": billing.summarize(bills, today),
        "unread_counts": await unread_counts(store, identity.id),
    }
