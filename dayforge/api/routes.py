"""API route definitions for dayforge."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from dayforge import __version__
from dayforge.logging_config import get_logger
from dayforge.modules.calendar.models import CalendarEvent, EventCreate, EventUpdate
from dayforge.modules.planner.models import ProposedEvent
from dayforge.modules.tasks.models import TaskCreate, TaskUpdate
from dayforge.modules.travel.service import normalize_travel_mode

logger = get_logger(__name__)

router = APIRouter()


# ── Request / Response Models ────────────────────────────────────────

class PlanRequest(BaseModel):
    """Propose a schedule for one day."""

    user_id: str = "default"
    date: Optional[dt.date] = None


class AcceptPlanRequest(BaseModel):
    """Persist the new blocks of a proposed schedule."""

    user_id: str = "default"
    proposed: list[ProposedEvent] = Field(default_factory=list)


class PreferencesRequest(BaseModel):
    """Partial preference update."""

    work_hours_start: Optional[int] = Field(None, ge=0, le=23)
    work_hours_end: Optional[int] = Field(None, ge=0, le=23)
    break_minutes: Optional[int] = Field(None, ge=0)
    buffer_minutes: Optional[int] = Field(None, ge=0)
    travel_mode: Optional[str] = None


class ProfileRequest(BaseModel):
    """Profile update."""

    home_address: Optional[str] = Field(None, max_length=200)


# ── Orchestrator accessor (set from main.py) ────────────────────────

_orchestrator = None


def set_orchestrator(orch: Any) -> None:
    """Inject the orchestrator instance."""
    global _orchestrator
    _orchestrator = orch


def get_orchestrator():
    """Get the orchestrator, raising if not initialized."""
    if _orchestrator is None:
        raise HTTPException(status_code=503, detail="System not initialized")
    return _orchestrator


def _event_payload(event: CalendarEvent) -> dict[str, Any]:
    return event.model_dump(mode="json")


# ── Health ───────────────────────────────────────────────────────────

@router.get("/health")
async def health() -> dict[str, Any]:
    """Liveness probe."""
    orch = get_orchestrator()
    return {
        "status": "ok",
        "version": __version__,
        "travel_configured": orch.travel.is_configured,
    }


# ── Calendar ─────────────────────────────────────────────────────────

@router.get("/calendar/events")
async def list_events(
    user_id: str = Query("default"),
    start: Optional[dt.datetime] = Query(None),
    end: Optional[dt.datetime] = Query(None),
    days: int = Query(7),
) -> list[dict[str, Any]]:
    """List calendar events starting in a window."""
    orch = get_orchestrator()
    start_dt = start.replace(tzinfo=None) if start else dt.datetime.combine(dt.date.today(), dt.time.min)
    end_dt = end.replace(tzinfo=None) if end else start_dt + dt.timedelta(days=days)
    events = await orch.calendar.list_events(user_id, start_dt, end_dt)
    return [_event_payload(e) for e in events]


@router.post("/calendar/events", status_code=201)
async def create_event(request: EventCreate, user_id: str = Query("default")) -> dict[str, Any]:
    """Create a primary event; a travel block is added when one can be computed."""
    orch = get_orchestrator()
    event = await orch.calendar.create_event(user_id, request)
    travel = await orch.calendar.get_travel_block(user_id, event.id) if event.travel_time else None
    return {
        "event": _event_payload(event),
        "travel_block": _event_payload(travel) if travel else None,
    }


@router.get("/calendar/events/{event_id}")
async def get_event(event_id: str, user_id: str = Query("default")) -> dict[str, Any]:
    orch = get_orchestrator()
    event = await orch.calendar.get_event(user_id, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"event": _event_payload(event)}


@router.patch("/calendar/events/{event_id}")
@router.put("/calendar/events/{event_id}")
async def update_event(
    event_id: str,
    request: EventUpdate,
    user_id: str = Query("default"),
) -> dict[str, Any]:
    """Partially update an event; its travel block follows."""
    orch = get_orchestrator()
    try:
        event = await orch.calendar.update_event(user_id, event_id, request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"event": _event_payload(event)}


@router.delete("/calendar/events/{event_id}")
async def delete_event(event_id: str, user_id: str = Query("default")) -> dict[str, Any]:
    orch = get_orchestrator()
    if not await orch.calendar.delete_event(user_id, event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return {"ok": True}


@router.post("/calendar/events/{event_id}/travel/resync")
async def resync_travel(event_id: str, user_id: str = Query("default")) -> dict[str, Any]:
    """Recompute the travel block of an event (no-op if the event is gone)."""
    orch = get_orchestrator()
    event = await orch.calendar.resync_travel(user_id, event_id)
    return {"event": _event_payload(event) if event else None}


@router.post("/calendar/plan")
async def propose_plan(request: PlanRequest) -> dict[str, Any]:
    """Propose a day schedule. Nothing is persisted."""
    orch = get_orchestrator()
    target = request.date or dt.date.today()
    plan = await orch.planner.plan_for_user(request.user_id, target)
    return {
        "date": plan.date.isoformat(),
        "schedule": [entry.model_dump(mode="json") for entry in plan.schedule],
        "proposed_count": plan.proposed_count,
    }


@router.put("/calendar/plan")
async def accept_plan(request: AcceptPlanRequest) -> dict[str, Any]:
    """Persist the entries of a proposal that have no ``id`` yet."""
    orch = get_orchestrator()
    try:
        created = await orch.planner.accept_plan(request.user_id, request.proposed)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "ok": True,
        "created": len(created),
        "events": [_event_payload(e) for e in created],
    }


@router.get("/calendar/travel")
async def travel_time(
    origin: Optional[str] = Query(None),
    destination: Optional[str] = Query(None),
    mode: Optional[str] = Query(None),
    user_id: str = Query("default"),
) -> dict[str, Any]:
    """Look up the travel time between two addresses."""
    if not origin or not destination:
        raise HTTPException(status_code=400, detail="origin and destination are required")
    orch = get_orchestrator()
    if not mode:
        prefs = await orch.users.get_preferences(user_id)
        mode = prefs.travel_mode
    canonical = normalize_travel_mode(mode)
    result = await orch.travel.calculate_travel_time(origin, destination, canonical)
    if result is None:
        raise HTTPException(
            status_code=502,
            detail="Could not calculate travel time. Check addresses and GOOGLE_MAPS_API_KEY.",
        )
    return {"mode": canonical.value, **result.model_dump()}


# ── Tasks ────────────────────────────────────────────────────────────

@router.get("/tasks")
async def list_tasks(
    user_id: str = Query("default"),
    include_completed: bool = Query(False),
) -> list[dict[str, Any]]:
    orch = get_orchestrator()
    tasks = await orch.tasks.list_tasks(user_id, include_completed=include_completed)
    return [t.model_dump(mode="json") for t in tasks]


@router.post("/tasks", status_code=201)
async def create_task(request: TaskCreate, user_id: str = Query("default")) -> dict[str, Any]:
    orch = get_orchestrator()
    task = await orch.tasks.create_task(user_id, request)
    return {"task": task.model_dump(mode="json")}


@router.patch("/tasks/{task_id}")
async def update_task(task_id: str, request: TaskUpdate, user_id: str = Query("default")) -> dict[str, Any]:
    orch = get_orchestrator()
    task = await orch.tasks.update_task(user_id, task_id, request)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"task": task.model_dump(mode="json")}


@router.post("/tasks/{task_id}/complete")
async def complete_task(task_id: str, user_id: str = Query("default")) -> dict[str, Any]:
    orch = get_orchestrator()
    task = await orch.tasks.complete_task(user_id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"task": task.model_dump(mode="json")}


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, user_id: str = Query("default")) -> dict[str, Any]:
    orch = get_orchestrator()
    if not await orch.tasks.delete_task(user_id, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"ok": True}


# ── Users ────────────────────────────────────────────────────────────

@router.get("/users/{user_id}/preferences")
async def get_preferences(user_id: str) -> dict[str, Any]:
    orch = get_orchestrator()
    prefs = await orch.users.get_preferences(user_id)
    return prefs.model_dump()


@router.put("/users/{user_id}/preferences")
async def update_preferences(user_id: str, request: PreferencesRequest) -> dict[str, Any]:
    orch = get_orchestrator()
    try:
        prefs = await orch.users.update_preferences(user_id, **request.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return prefs.model_dump()


@router.put("/users/{user_id}/profile")
async def update_profile(user_id: str, request: ProfileRequest) -> dict[str, Any]:
    orch = get_orchestrator()
    await orch.users.set_home_address(user_id, request.home_address)
    return {"ok": True, "home_address": await orch.users.get_home_address(user_id)}
