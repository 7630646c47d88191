from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from propwatch.config import get_settings
from propwatch.db import get_db
from propwatch.domain.errors import FetchFailed, MalformedPayload, StoreError
from propwatch.domain.types import Selection
from propwatch.services.aggregate import aggregate
from propwatch.services.normalize import parse_payload
from propwatch.services.poll import fetch_current_odds, list_games, poll_odds
from propwatch.services.quota import get_quota_state
from propwatch.services.store import SnapshotStore, SqlSnapshotStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["odds"])


def get_store(db: Session = Depends(get_db)) -> SnapshotStore:
    return SqlSnapshotStore(db)


@router.get("/odds/current", response_class=JSONResponse)
def current_odds() -> JSONResponse:
    try:
        payload = fetch_current_odds(get_settings())
    except FetchFailed as exc:
        logger.exception("Fetching current odds failed")
        raise HTTPException(status_code=500, detail="Failed to fetch odds") from exc
    # Passed through untouched, whatever shape the feed returned.
    return JSONResponse(content=payload)


@router.api_route("/odds/poll", methods=["GET", "POST"])
def poll(store: SnapshotStore = Depends(get_store)) -> dict:
    try:
        return poll_odds(store, get_settings())
    except (FetchFailed, MalformedPayload, StoreError) as exc:
        logger.exception("Odds poll failed")
        raise HTTPException(status_code=500, detail="Failed to poll odds") from exc


def _offset_timezone(tz_offset_minutes: int) -> tzinfo:
    # Same sign as JavaScript's Date.getTimezoneOffset(): minutes behind UTC.
    return timezone(-timedelta(minutes=tz_offset_minutes))


@router.get("/odds/games")
def games(
    on_date: date | None = Query(None, alias="date"),
    tz_offset_minutes: int | None = Query(None),
) -> list[dict[str, object]]:
    settings = get_settings()
    if tz_offset_minutes is None:
        tz = ZoneInfo(settings.display_timezone)
    else:
        try:
            tz = _offset_timezone(tz_offset_minutes)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid tz_offset_minutes: {tz_offset_minutes}") from exc
    try:
        parsed = parse_payload(fetch_current_odds(settings))
    except (FetchFailed, MalformedPayload) as exc:
        logger.exception("Listing games failed")
        raise HTTPException(status_code=500, detail="Failed to fetch odds") from exc
    return list_games(parsed, settings.odds_bookmaker, on_date=on_date, tz=tz)


@router.get("/odds/series")
def series(
    market: str = Query(""),
    selection: list[str] = Query(default=[]),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    store: SnapshotStore = Depends(get_store),
) -> dict[str, object]:
    try:
        selections = [Selection.parse(item) for item in selection]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    result = aggregate(
        selections,
        market,
        store,
        bookmaker=get_settings().odds_bookmaker,
        since=since,
        until=until,
    )
    return {"market": market, **result.to_dict()}


@router.get("/system/quota", tags=["system"])
def system_quota() -> dict:
    return get_quota_state()
