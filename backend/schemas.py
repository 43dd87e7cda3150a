from __future__ import annotations

from datetime import date
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field


class BillCreate(BaseModel):
    name: str
    amount: float
    due_date: date
    category: str = "utilities"
    status: str = "pending"
    recurring: bool = False
    frequency: str = "monthly"
    notify_days_before: Optional[int] = None
    notes: Optional[str] = None


class BillPatch(BaseModel):
    name: Optional[str] = None
    amount: Optional[float] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    status: Optional[str] = None
    recurring: Optional[bool] = None
    frequency: Optional[str] = None
    notify_days_before: Optional[int] = None
    notes: Optional[str] = None


class BillResponse(BaseModel):
    id: str
    name: str
    amount: float
    due_date: str
    category: str
    status: str
    recurring: bool
    frequency: str
    notify_days_before: int
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_date: Optional[str] = None
    updated_date: Optional[str] = None
    due_status: str
    days_until: int


class StatusBucket(BaseModel):
    count: int
    total: float


class BillSummaryResponse(BaseModel):
    overdue: StatusBucket
    due_soon: StatusBucket
    upcoming: StatusBucket
    paid: StatusBucket


class MarkPaidResponse(BaseModel):
    bill: BillResponse
    next_bill: Optional[BillResponse] = None
    reconciled: List[str] = Field(default_factory=list)


class SubscriptionCreate(BaseModel):
    vendor: str
    amount: float
    interval: str = "monthly"
    next_renewal: Optional[date] = None
    category: Optional[str] = None
    status: str = "active"
    notes: Optional[str] = None


class SubscriptionPatch(BaseModel):
    vendor: Optional[str] = None
    amount: Optional[float] = None
    interval: Optional[str] = None
    next_renewal: Optional[date] = None
    category: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class SubscriptionSummaryResponse(BaseModel):
    monthly_equivalent: float
    annual_equivalent: float
    active_count: int
    next_renewal: Optional[str] = None
    excluded_intervals: Dict[str, StatusBucket] = Field(default_factory=dict)


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    read: bool
    title: Optional[str] = None
    message: Optional[str] = None
    action_type: Optional[str] = None
    action_url: Optional[str] = None
    bill_id: Optional[str] = None
    due_date: Optional[str] = None
    due_status: Optional[str] = None
    created_date: Optional[str] = None


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]


class ReconcileResponse(BaseModel):
    marked: List[str]


class CompletionRequest(BaseModel):
    prompt: str


class CompletionResponse(BaseModel):
    text: str
    ok: bool = True


class UploadResponse(BaseModel):
    file_url: str


class BootstrapResponse(BaseModel):
    user_id: str
    user_email: str
    user_name: str
    today: str
    bill_summary: Dict[str, Any]
    unread_counts: Dict[str, int]
