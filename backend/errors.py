from __future__ import annotations


class DashboardError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(DashboardError):
    """A required field is missing or a value is out of range. Raised before the store is touched."""

    status_code = 422

    def __init__(self, message: str = "", field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(DashboardError):
    status_code = 404

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class StoreError(DashboardError):
    """The entity store rejected a create/update/delete. Not retried."""

    status_code = 502


class ReconciliationError(DashboardError):
    """A single notification could not be marked read. Logged, never propagated."""

    def __init__(self, notification_id: str, cause: Exception | None = None):
        super().__init__(f"Failed to mark notification {notification_id} as read: {cause}")
        self.notification_id = notification_id
        self.cause = cause


class GenerativeServiceError(DashboardError):
    status_code = 503
