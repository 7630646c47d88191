from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from propwatch.domain.enums import positive_outcome_names
from propwatch.domain.errors import QueryFailed
from propwatch.domain.types import AggregationResult, Selection, Series, SeriesPoint, SnapshotRecord
from propwatch.services.store import SnapshotFilter, SnapshotStore

logger = logging.getLogger(__name__)


def format_point(point: float) -> str:
    # Shortest decimal form that round-trips the float, without an exponent.
    return format(Decimal(repr(point)).normalize(), "f")


def series_label(player: str, game_id: str, market: str, point: float | None) -> str:
    label = f"{player}@{game_id} {market}"
    if point is None:
        return label
    return f"{label} {format_point(point)}"


def _point_sort_key(point: float | None) -> float:
    return float("-inf") if point is None else point


def partition_by_point(records: Iterable[SnapshotRecord]) -> dict[float | None, list[SnapshotRecord]]:
    partitions: dict[float | None, list[SnapshotRecord]] = {}
    for record in records:
        partitions.setdefault(record.point, []).append(record)
    return partitions


def build_series(selection: Selection, market: str, records: list[SnapshotRecord]) -> list[Series]:
    partitions = partition_by_point(records)
    output: list[Series] = []
    for point in sorted(partitions, key=_point_sort_key):
        # sorted() is stable, so ties keep the store's insertion order.
        ordered = sorted(partitions[point], key=lambda record: record.observed_at)
        output.append(
            Series(
                label=series_label(selection.player, selection.game_id, market, point),
                player=selection.player,
                game_id=selection.game_id,
                market=market,
                point=point,
                points=tuple(
                    SeriesPoint(observed_at=record.observed_at, price=record.price, point=record.point)
                    for record in ordered
                ),
            )
        )
    return output


def aggregate(
    selections: Iterable[Selection],
    market: str,
    source: SnapshotStore,
    *,
    bookmaker: str,
    since: datetime | None = None,
    until: datetime | None = None,
) -> AggregationResult:
    result = AggregationResult()
    if not market or not market.strip():
        return result

    for selection in sorted(set(selections), key=lambda item: (item.game_id, item.player)):
        snapshot_filter = SnapshotFilter(
            game_id=selection.game_id,
            player_name=selection.player,
            market=market,
            bookmaker=bookmaker,
            outcome_names=positive_outcome_names(market, selection.player),
            observed_after=since,
            observed_before=until,
        )
        try:
            records = source.query(snapshot_filter)
        except QueryFailed as exc:
            logger.warning("Series query failed for %s on %s: %s", selection.key, market, exc)
            result.errors[selection.key] = str(exc)
            continue

        # Every charted point needs an observation time.
        missing = [record for record in records if record.observed_at is None]
        if missing:
            result.errors[selection.key] = f"{len(missing)} records without observed_at"
            continue

        result.series.extend(build_series(selection, market, records))
    return result
