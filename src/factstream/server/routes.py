"""FastAPI routes for fact ingest, status and the event stream."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Header, HTTPException, Query, Request

from factstream.config import AppSettings
from factstream.hub.broadcast import BroadcastHub
from factstream.hub.errors import HubClosed, InvalidPayload, ResourceExhausted
from factstream.hub.ingress import FactIngress
from factstream.server.stream import EventStreamResponse

router = APIRouter()


def _hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


def _ingress(request: Request) -> FactIngress:
    return request.app.state.ingress


def _settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _parse_last_event_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    value = raw.strip()
    return int(value) if value.isdigit() else None


@router.post("/facts", status_code=201)
async def submit_fact(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=422, detail="request body must be valid JSON") from exc

    try:
        envelope = _ingress(request).submit(payload)
    except InvalidPayload as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except HubClosed as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return envelope.model_dump(mode="json")


@router.get("/facts")
def list_facts(request: Request, after: int | None = Query(None, ge=0)) -> list[dict[str, Any]]:
    return [envelope.model_dump(mode="json") for envelope in _hub(request).history(after_sequence=after)]


@router.get("/status")
def get_status(request: Request) -> dict[str, Any]:
    return _hub(request).stats()


@router.get("/events")
async def stream_events(
    request: Request,
    last_event_id: str | None = Header(None),
) -> EventStreamResponse:
    hub = _hub(request)
    stream_settings = _settings(request).stream
    try:
        hub.check_capacity()
    except (ResourceExhausted, HubClosed) as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return EventStreamResponse(
        hub,
        after_sequence=_parse_last_event_id(last_event_id),
        retry_ms=stream_settings.retry_ms,
        keepalive_seconds=stream_settings.keepalive_seconds,
    )
