from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from propwatch.api import odds as odds_api_routes
from propwatch.config import get_settings
from propwatch.domain.errors import FetchFailed, MalformedPayload
from propwatch.models import Base, OddsHistory
from propwatch.services import poll
from propwatch.services.normalize import parse_payload
from propwatch.services.quota import get_quota_state, reset_quota_state
from propwatch.services.store import SqlSnapshotStore

PAYLOAD = [
    {
        "id": "g1",
        "sport_key": "americanfootball_nfl",
        "commence_time": "2025-01-05T01:15:00Z",
        "home_team": "Kansas City Chiefs",
        "away_team": "Buffalo Bills",
        "bookmakers": [
            {
                "key": "draftkings",
                "markets": [
                    {
                        "key": "player_rush_yds",
                        "outcomes": [
                            {"name": "Over", "description": "James Cook", "price": -110, "point": 69.5},
                            {"name": "Under", "description": "James Cook", "price": -120, "point": 69.5},
                        ],
                    },
                    {
                        "key": "player_anytime_td",
                        "outcomes": [
                            {"name": "Yes", "description": "Isiah Pacheco", "price": 120},
                            {"name": "No", "description": "Isiah Pacheco", "price": -160},
                        ],
                    },
                ],
            }
        ],
    },
    {
        "id": "g2",
        "sport_key": "americanfootball_nfl",
        "commence_time": "2025-01-06T18:00:00Z",
        "home_team": "Detroit Lions",
        "away_team": "Green Bay Packers",
        "bookmakers": [],
    },
]

OBSERVED = datetime(2025, 1, 4, 15, 0, tzinfo=timezone.utc)


def _configure(monkeypatch, payload=PAYLOAD) -> None:
    monkeypatch.setenv("ODDS_API_KEY", "test-key")
    monkeypatch.setenv("ODDS_BOOKMAKER", "draftkings")
    monkeypatch.setenv("ODDS_MARKETS", "player_rush_yds,player_anytime_td")
    get_settings.cache_clear()
    reset_quota_state()

    def fake_fetch_odds(*, settings, sport_key, markets, bookmakers, regions):
        assert sport_key == "americanfootball_nfl"
        assert bookmakers == ["draftkings"]
        assert set(markets) == {"player_rush_yds", "player_anytime_td"}
        return payload, {
            "headers": {"x-requests-remaining": "499"},
            "fetched_at": datetime(2025, 1, 4, 15, 0, tzinfo=timezone.utc),
        }

    monkeypatch.setattr(poll, "fetch_odds", fake_fetch_odds)


def _session() -> Session:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    return Session(engine)


def test_poll_odds_inserts_every_outcome(monkeypatch) -> None:
    _configure(monkeypatch)

    with _session() as session:
        summary = poll.poll_odds(SqlSnapshotStore(session), get_settings(), observed_at=OBSERVED)
        rows = session.query(OddsHistory).order_by(OddsHistory.id).all()

    assert summary == {"success": True, "inserted": 4, "games": 2, "games_matched": 1}
    assert [(row.player_name, row.outcome_name, row.price) for row in rows] == [
        ("James Cook", "Over", -110),
        ("James Cook", "Under", -120),
        ("Isiah Pacheco", "Yes", 120),
        ("Isiah Pacheco", "No", -160),
    ]
    assert get_quota_state()["remaining"] == "499"
    get_settings.cache_clear()


def test_poll_odds_is_append_only(monkeypatch) -> None:
    _configure(monkeypatch)

    with _session() as session:
        store = SqlSnapshotStore(session)
        poll.poll_odds(store, get_settings(), observed_at=OBSERVED)
        poll.poll_odds(store, get_settings())
        assert session.query(OddsHistory).count() == 8
    get_settings.cache_clear()


def test_malformed_payload_inserts_nothing(monkeypatch) -> None:
    broken = [dict(PAYLOAD[0]), {key: value for key, value in PAYLOAD[1].items() if key != "commence_time"}]
    _configure(monkeypatch, payload=broken)

    with _session() as session:
        with pytest.raises(MalformedPayload):
            poll.poll_odds(SqlSnapshotStore(session), get_settings())
        assert session.query(OddsHistory).count() == 0
    get_settings.cache_clear()


def test_poll_route_converts_failures_to_500(monkeypatch) -> None:
    _configure(monkeypatch)

    def failing_fetch(**_kwargs):
        raise FetchFailed("503 Service Unavailable")

    monkeypatch.setattr(poll, "fetch_odds", failing_fetch)

    with _session() as session:
        with pytest.raises(HTTPException) as excinfo:
            odds_api_routes.poll(store=SqlSnapshotStore(session))

    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "Failed to poll odds"
    get_settings.cache_clear()


def test_current_odds_route_passes_payload_through(monkeypatch) -> None:
    _configure(monkeypatch)

    response = odds_api_routes.current_odds()

    assert response.status_code == 200
    assert json.loads(response.body) == PAYLOAD
    get_settings.cache_clear()


def test_current_odds_route_passes_non_list_payload_through(monkeypatch) -> None:
    _configure(monkeypatch, payload={"message": "You have exceeded your quota"})

    response = odds_api_routes.current_odds()

    assert json.loads(response.body) == {"message": "You have exceeded your quota"}
    get_settings.cache_clear()


def test_current_odds_route_failure(monkeypatch) -> None:
    _configure(monkeypatch)

    def failing_fetch(**_kwargs):
        raise FetchFailed("timeout")

    monkeypatch.setattr(poll, "fetch_odds", failing_fetch)

    with pytest.raises(HTTPException) as excinfo:
        odds_api_routes.current_odds()
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "Failed to fetch odds"
    get_settings.cache_clear()


def test_series_route_after_polls(monkeypatch) -> None:
    _configure(monkeypatch)

    with _session() as session:
        store = SqlSnapshotStore(session)
        poll.poll_odds(store, get_settings(), observed_at=OBSERVED)
        data = odds_api_routes.series(
            market="player_rush_yds",
            selection=["James Cook@g1", "Nobody@g2"],
            since=None,
            until=None,
            store=store,
        )

    assert data["market"] == "player_rush_yds"
    assert data["errors_count"] == 0
    assert [series["label"] for series in data["series"]] == ["James Cook@g1 player_rush_yds 69.5"]
    assert data["series"][0]["points"] == [
        {"observed_at": "2025-01-04T15:00:00+00:00", "price": -110, "point": 69.5}
    ]
    get_settings.cache_clear()


def test_series_route_rejects_bad_selection() -> None:
    with pytest.raises(HTTPException) as excinfo:
        odds_api_routes.series(market="player_rush_yds", selection=["no-separator"], since=None, until=None, store=None)
    assert excinfo.value.status_code == 400


def test_list_games_filters_to_date_and_excludes_complements() -> None:
    games = parse_payload(PAYLOAD)

    listed = poll.list_games(games, "draftkings", on_date=date(2025, 1, 5))

    assert listed == [
        {
            "id": "g1",
            "home_team": "Kansas City Chiefs",
            "away_team": "Buffalo Bills",
            "commence_time": "2025-01-05T01:15:00+00:00",
            "markets": ["player_rush_yds", "player_anytime_td"],
            "players": ["Isiah Pacheco", "James Cook"],
        }
    ]
    assert poll.list_games(games, "draftkings", on_date=date(2025, 1, 6))[0]["players"] == []
    assert poll.list_games(games, "draftkings", on_date=date(2025, 1, 7)) == []


PRIMETIME = [
    {
        "id": "snf",
        "commence_time": "2025-01-06T01:20:00Z",
        "home_team": "Detroit Lions",
        "away_team": "Minnesota Vikings",
        "bookmakers": [
            {
                "key": "draftkings",
                "markets": [
                    {
                        "key": "player_anytime_td",
                        "outcomes": [
                            {"name": "Jahmyr Gibbs", "price": -150},
                            {"name": "No", "description": "Justin Jefferson", "price": -110},
                        ],
                    }
                ],
            }
        ],
    }
]


def test_list_games_uses_the_local_calendar_day() -> None:
    games = parse_payload(PRIMETIME)
    eastern = timezone(timedelta(hours=-5))

    assert [game["id"] for game in poll.list_games(games, "draftkings", on_date=date(2025, 1, 5), tz=eastern)] == ["snf"]
    assert poll.list_games(games, "draftkings", on_date=date(2025, 1, 6), tz=eastern) == []
    assert poll.list_games(games, "draftkings", on_date=date(2025, 1, 5)) == []


def test_games_route_applies_browser_offset(monkeypatch) -> None:
    _configure(monkeypatch, payload=PRIMETIME)

    listed = odds_api_routes.games(on_date=date(2025, 1, 5), tz_offset_minutes=300)

    assert listed[0]["id"] == "snf"
    assert listed[0]["commence_time"] == "2025-01-06T01:20:00+00:00"
    assert listed[0]["players"] == ["Jahmyr Gibbs"]
    assert odds_api_routes.games(on_date=date(2025, 1, 6), tz_offset_minutes=300) == []
    get_settings.cache_clear()


def test_games_route_rejects_out_of_range_offset(monkeypatch) -> None:
    _configure(monkeypatch, payload=PRIMETIME)

    with pytest.raises(HTTPException) as excinfo:
        odds_api_routes.games(on_date=None, tz_offset_minutes=24 * 60)

    assert excinfo.value.status_code == 400
    get_settings.cache_clear()
