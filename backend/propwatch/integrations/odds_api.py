from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import requests

from propwatch.config import Settings
from propwatch.domain.errors import FetchFailed


def fetch_odds(
    *,
    settings: Settings,
    sport_key: str,
    markets: list[str],
    bookmakers: list[str],
    regions: str,
) -> tuple[Any, dict]:
    if not settings.odds_api_key:
        raise FetchFailed("ODDS_API_KEY is required to fetch odds")

    try:
        response = requests.get(
            f"{settings.odds_api_base_url}/sports/{sport_key}/odds",
            params={
                "apiKey": settings.odds_api_key,
                "regions": regions,
                "markets": ",".join(markets),
                # Snapshot prices are integers, so only American odds are requested.
                "oddsFormat": "american",
                "bookmakers": ",".join(bookmakers),
            },
            timeout=settings.odds_request_timeout_sec,
        )
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        raise FetchFailed(f"Odds API request for '{sport_key}' failed: {exc}") from exc
    except ValueError as exc:
        raise FetchFailed(f"Odds API returned a non-JSON body for '{sport_key}'") from exc

    fetched_at = datetime.now(timezone.utc)
    quota_headers = {
        key: value
        for key, value in response.headers.items()
        if key.lower().startswith("x-requests-")
    }
    quota_info = {"headers": quota_headers, "fetched_at": fetched_at}
    return payload, quota_info
