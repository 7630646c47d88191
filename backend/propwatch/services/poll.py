from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Any

from propwatch.config import Settings
from propwatch.domain.types import UpstreamGame
from propwatch.integrations.odds_api import fetch_odds
from propwatch.services.normalize import exclude_negative, normalize, parse_payload
from propwatch.services.quota import record_quota
from propwatch.services.store import SnapshotStore

logger = logging.getLogger(__name__)


def fetch_current_odds(settings: Settings) -> Any:
    payload, quota_info = fetch_odds(
        settings=settings,
        sport_key=settings.odds_sport,
        markets=list(settings.odds_markets),
        bookmakers=[settings.odds_bookmaker],
        regions=settings.odds_regions,
    )
    record_quota(quota_info["headers"], quota_info["fetched_at"])
    return payload


def poll_odds(store: SnapshotStore, settings: Settings, observed_at: datetime | None = None) -> dict:
    """Fetch the feed once, flatten it and append the snapshots.

    The whole payload is validated before anything is written; a malformed game
    aborts the cycle with nothing inserted.
    """
    payload = fetch_current_odds(settings)
    games = parse_payload(payload)
    records = normalize(
        games,
        settings.odds_bookmaker,
        markets=set(settings.odds_markets),
        keep_zero_point=settings.point_zero_is_line,
    )
    inserted = store.insert_batch(records, observed_at=observed_at)

    summary = {
        "success": True,
        "inserted": inserted,
        "games": len(games),
        "games_matched": sum(1 for game in games if game.bookmaker(settings.odds_bookmaker) is not None),
    }
    logger.info(
        "Polled %s at %s: %d games, %d priced, %d snapshots inserted",
        settings.odds_sport,
        settings.odds_bookmaker,
        summary["games"],
        summary["games_matched"],
        inserted,
    )
    return summary


def list_games(
    games: list[UpstreamGame],
    bookmaker: str,
    on_date: date | None = None,
    tz: tzinfo = timezone.utc,
) -> list[dict[str, object]]:
    """Games kicking off on ``on_date`` as seen in ``tz``, with the players priced at ``bookmaker``.

    ``on_date`` defaults to today in ``tz``. Evening kickoffs in the Americas fall
    on the next UTC day, so callers pass the viewer's zone.
    """
    target = on_date or datetime.now(tz).date()
    output: list[dict[str, object]] = []
    for game in sorted(games, key=lambda item: (item.commence_time, item.id)):
        if game.commence_time.astimezone(tz).date() != target:
            continue

        book = game.bookmaker(bookmaker)
        markets = [market.key for market in book.markets] if book is not None else []
        players = sorted(
            {
                outcome.player_name
                for market in (book.markets if book is not None else ())
                for outcome in market.outcomes
                if exclude_negative(market.key, outcome)
            }
        )
        output.append(
            {
                "id": game.id,
                "home_team": game.home_team,
                "away_team": game.away_team,
                "commence_time": game.commence_time.isoformat(),
                "markets": markets,
                "players": players,
            }
        )
    return output
