from __future__ import annotations

import hmac
import time
from typing import NoReturn

from fastapi import FastAPI, Header, HTTPException, Query
from pydantic import BaseModel, Field

from .errors import InvalidTransition, NoActiveRound, PriceUnavailable, RoundError
from .runtime import get_cron_secret, get_or_create_round_service

app = FastAPI(title="MegaPredict Round API", version="0.1.0")


class ResolveRoundRequest(BaseModel):
    round_number: int | None = Field(default=None, ge=1)


def _raise_http(exc: RoundError) -> NoReturn:
    if isinstance(exc, PriceUnavailable):
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if isinstance(exc, (NoActiveRound, InvalidTransition)):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    raise HTTPException(status_code=500, detail=str(exc)) from exc


def _require_cron_token(authorization: str | None) -> None:
    secret = get_cron_secret()
    if secret is None:
        return
    expected = f"Bearer {secret}"
    if authorization is None or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="unauthorized")


@app.get("/healthz")
async def healthz() -> dict:
    return {"ok": True}


@app.get("/api/price")
async def price() -> dict:
    service = get_or_create_round_service()
    try:
        current = await service.current_price()
    except PriceUnavailable as exc:
        _raise_http(exc)
    return {"price": current, "timestamp": time.time()}


@app.get("/api/round")
async def current_round() -> dict:
    service = get_or_create_round_service()
    try:
        return await service.snapshot()
    except RoundError as exc:
        _raise_http(exc)


@app.post("/api/start-round")
async def start_round(authorization: str | None = Header(default=None)) -> dict:
    service = get_or_create_round_service()
    _require_cron_token(authorization)
    try:
        round_ = await service.start_round()
    except RoundError as exc:
        _raise_http(exc)
    return {"success": True, "round": round_.to_dict()}


@app.post("/api/resolve-round")
async def resolve_round(
    payload: ResolveRoundRequest | None = None,
    authorization: str | None = Header(default=None),
) -> dict:
    service = get_or_create_round_service()
    _require_cron_token(authorization)
    round_number = payload.round_number if payload is not None else None
    try:
        result = await service.resolve_round(round_number=round_number)
    except RoundError as exc:
        _raise_http(exc)
    return {"success": True, **result.to_dict()}


@app.get("/api/rounds")
async def list_rounds(
    limit: int = Query(default=50, ge=1, le=500),
    resolved: bool | None = Query(default=None),
) -> dict:
    service = get_or_create_round_service()
    if service.repository is None:
        return {"items": []}
    items = service.repository.list_rounds(limit=limit, resolved=resolved)
    return {"items": [item.to_dict() for item in items]}


@app.get("/api/rounds/{round_number}")
async def get_round(round_number: int) -> dict:
    service = get_or_create_round_service()
    round_ = service.repository.get_round(round_number) if service.repository else None
    if round_ is None:
        raise HTTPException(status_code=404, detail="round not found")
    return round_.to_dict()


@app.get("/api/stats")
async def stats() -> dict:
    service = get_or_create_round_service()
    if service.repository is None:
        raise HTTPException(status_code=404, detail="round history is not persisted")
    return service.repository.accuracy_stats()
