from __future__ import annotations

from collections.abc import Callable, Collection, Iterable
from typing import Any

from pydantic import TypeAdapter, ValidationError

from propwatch.domain.enums import is_negative_outcome
from propwatch.domain.errors import MalformedPayload
from propwatch.domain.types import SnapshotRecord, UpstreamGame, UpstreamOutcome

OutcomePredicate = Callable[[str, UpstreamOutcome], bool]

_GAMES = TypeAdapter(list[UpstreamGame])
_MAX_REPORTED_ERRORS = 3


def include_all(market_key: str, outcome: UpstreamOutcome) -> bool:  # noqa: ARG001
    return True


def exclude_negative(market_key: str, outcome: UpstreamOutcome) -> bool:
    """Drop the complementary side of a market ("Under" or a scorer "No")."""
    return not is_negative_outcome(market_key, outcome.name)


def _describe(exc: ValidationError) -> str:
    errors = exc.errors()
    parts = [
        f"{'.'.join(str(part) for part in error['loc']) or 'payload'}: {error['msg']}"
        for error in errors[:_MAX_REPORTED_ERRORS]
    ]
    if len(errors) > _MAX_REPORTED_ERRORS:
        parts.append(f"and {len(errors) - _MAX_REPORTED_ERRORS} more")
    return "; ".join(parts)


def parse_payload(raw: Any) -> list[UpstreamGame]:
    if not isinstance(raw, list):
        raise MalformedPayload(f"odds payload must be a list of games, got {type(raw).__name__}")
    try:
        return _GAMES.validate_python(raw)
    except ValidationError as exc:
        raise MalformedPayload(f"odds payload invalid at {_describe(exc)}") from exc


def normalize_point(point: float | None, keep_zero: bool = False) -> float | None:
    if point is None:
        return None
    if point == 0 and not keep_zero:
        return None
    return point


def normalize(
    games: Iterable[UpstreamGame],
    bookmaker: str,
    *,
    markets: Collection[str] | None = None,
    include_outcome: OutcomePredicate = include_all,
    keep_zero_point: bool = False,
) -> list[SnapshotRecord]:
    """Flatten games into one snapshot record per market outcome at ``bookmaker``.

    Games the bookmaker does not price contribute nothing. ``markets`` limits the
    output to the given market keys and ``include_outcome`` filters individual
    outcomes. ``observed_at`` is left unset for the store to assign.
    """
    records: list[SnapshotRecord] = []
    for game in games:
        book = game.bookmaker(bookmaker)
        if book is None:
            continue

        for market in book.markets:
            if markets is not None and market.key not in markets:
                continue
            for outcome in market.outcomes:
                if not include_outcome(market.key, outcome):
                    continue
                records.append(
                    SnapshotRecord(
                        game_id=game.id,
                        home_team=game.home_team,
                        away_team=game.away_team,
                        commence_time=game.commence_time,
                        player_name=outcome.player_name,
                        bookmaker=book.key,
                        market=market.key,
                        outcome_name=outcome.name,
                        price=outcome.price,
                        point=normalize_point(outcome.point, keep_zero=keep_zero_point),
                    )
                )
    return records


def normalize_payload(
    raw: Any,
    bookmaker: str,
    *,
    markets: Collection[str] | None = None,
    include_outcome: OutcomePredicate = include_all,
    keep_zero_point: bool = False,
) -> list[SnapshotRecord]:
    # Parse everything first so a single malformed game rejects the whole payload.
    games = parse_payload(raw)
    return normalize(
        games,
        bookmaker,
        markets=markets,
        include_outcome=include_outcome,
        keep_zero_point=keep_zero_point,
    )
