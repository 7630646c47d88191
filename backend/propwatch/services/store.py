from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from propwatch.domain.errors import QueryFailed, StoreError
from propwatch.domain.types import SnapshotRecord
from propwatch.models import OddsHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SnapshotFilter:
    game_id: str | None = None
    player_name: str | None = None
    market: str | None = None
    bookmaker: str | None = None
    outcome_names: Collection[str] | None = None
    observed_after: datetime | None = None
    observed_before: datetime | None = None


class SnapshotStore(Protocol):
    def insert_batch(self, records: Sequence[SnapshotRecord], observed_at: datetime | None = None) -> int:
        ...

    def query(self, snapshot_filter: SnapshotFilter) -> list[SnapshotRecord]:
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_record(row: OddsHistory) -> SnapshotRecord:
    return SnapshotRecord(
        game_id=row.game_id,
        home_team=row.home_team,
        away_team=row.away_team,
        commence_time=_as_utc(row.commence_time),
        player_name=row.player_name,
        bookmaker=row.bookmaker,
        market=row.market,
        outcome_name=row.outcome_name,
        price=row.price,
        point=float(row.point) if row.point is not None else None,
        observed_at=_as_utc(row.observed_at),
    )


class SqlSnapshotStore:
    """Append-only snapshot storage on the ``odds_history`` table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_batch(self, records: Sequence[SnapshotRecord], observed_at: datetime | None = None) -> int:
        if not records:
            return 0

        # One poll is one observation: every row in the batch shares the timestamp.
        stamp = _as_utc(observed_at) if observed_at is not None else datetime.now(timezone.utc)
        rows = [
            OddsHistory(
                game_id=record.game_id,
                home_team=record.home_team,
                away_team=record.away_team,
                commence_time=record.commence_time,
                player_name=record.player_name,
                bookmaker=record.bookmaker,
                market=record.market,
                outcome_name=record.outcome_name,
                point=Decimal(str(record.point)) if record.point is not None else None,
                price=record.price,
                observed_at=stamp,
            )
            for record in records
        ]
        try:
            self._session.add_all(rows)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(f"Failed to insert {len(rows)} odds_history rows: {exc}") from exc

        logger.debug("Inserted %d odds_history rows observed at %s", len(rows), stamp.isoformat())
        return len(rows)

    def query(self, snapshot_filter: SnapshotFilter) -> list[SnapshotRecord]:
        stmt = select(OddsHistory)
        if snapshot_filter.game_id is not None:
            stmt = stmt.where(OddsHistory.game_id == snapshot_filter.game_id)
        if snapshot_filter.player_name is not None:
            stmt = stmt.where(OddsHistory.player_name == snapshot_filter.player_name)
        if snapshot_filter.market is not None:
            stmt = stmt.where(OddsHistory.market == snapshot_filter.market)
        if snapshot_filter.bookmaker is not None:
            stmt = stmt.where(OddsHistory.bookmaker == snapshot_filter.bookmaker)
        if snapshot_filter.outcome_names is not None:
            stmt = stmt.where(OddsHistory.outcome_name.in_(sorted(snapshot_filter.outcome_names)))
        if snapshot_filter.observed_after is not None:
            stmt = stmt.where(OddsHistory.observed_at >= _as_utc(snapshot_filter.observed_after))
        if snapshot_filter.observed_before is not None:
            stmt = stmt.where(OddsHistory.observed_at <= _as_utc(snapshot_filter.observed_before))
        stmt = stmt.order_by(OddsHistory.observed_at.asc(), OddsHistory.id.asc())

        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise QueryFailed(f"odds_history query failed: {exc}") from exc
        return [_row_to_record(row) for row in rows]
