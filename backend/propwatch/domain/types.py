from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictInt, field_validator


def parse_commence_time_to_utc(commence_time: str) -> datetime:
    parsed = datetime.fromisoformat(commence_time.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class _UpstreamModel(BaseModel):
    # Unknown feed fields (sport_key, title, last_update, ...) are ignored.
    model_config = ConfigDict(frozen=True, extra="ignore")


def _none_as_empty(value: Any) -> Any:
    return [] if value is None else value


class UpstreamOutcome(_UpstreamModel):
    name: str = Field(min_length=1)
    price: StrictInt
    description: str | None = None
    point: float | None = None

    @property
    def player_name(self) -> str:
        if self.description and self.description.strip():
            return self.description
        return self.name


class UpstreamMarket(_UpstreamModel):
    key: str = Field(min_length=1)
    outcomes: Annotated[list[UpstreamOutcome], BeforeValidator(_none_as_empty)] = []


class UpstreamBookmaker(_UpstreamModel):
    key: str = Field(min_length=1)
    markets: Annotated[list[UpstreamMarket], BeforeValidator(_none_as_empty)] = []


class UpstreamGame(_UpstreamModel):
    id: str = Field(min_length=1)
    home_team: str = Field(min_length=1)
    away_team: str = Field(min_length=1)
    commence_time: datetime
    bookmakers: Annotated[list[UpstreamBookmaker], BeforeValidator(_none_as_empty)] = []

    @field_validator("commence_time", mode="before")
    @classmethod
    def _commence_time_utc(cls, value: Any) -> datetime:
        if isinstance(value, datetime):
            return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        if not isinstance(value, str):
            raise ValueError("commence_time must be an ISO-8601 string")
        return parse_commence_time_to_utc(value)

    @field_validator("commence_time")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return value.astimezone(timezone.utc)

    def bookmaker(self, key: str) -> UpstreamBookmaker | None:
        for book in self.bookmakers:
            if book.key == key:
                return book
        return None


@dataclass(frozen=True, slots=True)
class SnapshotRecord:
    game_id: str
    home_team: str
    away_team: str
    commence_time: datetime
    player_name: str
    bookmaker: str
    market: str
    outcome_name: str
    price: int
    point: float | None = None
    observed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.player_name.strip():
            raise ValueError("player_name must not be empty")
        if self.commence_time.tzinfo is None:
            raise ValueError("commence_time must be timezone-aware")

    def to_dict(self) -> dict[str, object]:
        return {
            "game_id": self.game_id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "commence_time": self.commence_time.isoformat(),
            "player_name": self.player_name,
            "bookmaker": self.bookmaker,
            "market": self.market,
            "outcome_name": self.outcome_name,
            "point": self.point,
            "price": self.price,
            "observed_at": self.observed_at.isoformat() if self.observed_at is not None else None,
        }


@dataclass(frozen=True, slots=True)
class Selection:
    player: str
    game_id: str

    def __post_init__(self) -> None:
        if not self.player.strip():
            raise ValueError("player must not be empty")
        if not self.game_id.strip():
            raise ValueError("game_id must not be empty")

    @property
    def key(self) -> str:
        return f"{self.player}@{self.game_id}"

    @classmethod
    def parse(cls, text: str) -> Selection:
        """Parse the ``player@gameId`` form used by the dashboard."""
        player, sep, game_id = text.rpartition("@")
        if not sep:
            raise ValueError(f"selection '{text}' must look like 'player@gameId'")
        return cls(player=player.strip(), game_id=game_id.strip())


@dataclass(frozen=True, slots=True)
class SeriesPoint:
    observed_at: datetime
    price: int
    point: float | None = None

    def to_dict(self) -> dict[str, object]:
        return {"observed_at": self.observed_at.isoformat(), "price": self.price, "point": self.point}


@dataclass(frozen=True, slots=True)
class Series:
    label: str
    player: str
    game_id: str
    market: str
    point: float | None
    points: tuple[SeriesPoint, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "label": self.label,
            "player": self.player,
            "game_id": self.game_id,
            "market": self.market,
            "point": self.point,
            "points": [point.to_dict() for point in self.points],
        }


@dataclass(slots=True)
class AggregationResult:
    series: list[Series] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "series": [item.to_dict() for item in self.series],
            "errors": dict(self.errors),
            "errors_count": len(self.errors),
        }
