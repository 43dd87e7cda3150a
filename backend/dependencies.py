from __future__ import annotations

from datetime import date

from fastapi import Request

from backend.clock import Clock, get_clock
from backend.store import EntityStore


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_today(request: Request) -> date:
    clock: Clock = getattr(request.app.state, "clock", None) or get_clock()
    return clock.today()
