from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class OddsHistory(Base):
    __tablename__ = "odds_history"
    __table_args__ = (
        Index(
            "ix_odds_history_lookup",
            "game_id",
            "player_name",
            "market",
            "bookmaker",
            "observed_at",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    game_id: Mapped[str] = mapped_column(Text, nullable=False)
    home_team: Mapped[str] = mapped_column(Text, nullable=False)
    away_team: Mapped[str] = mapped_column(Text, nullable=False)
    commence_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    player_name: Mapped[str] = mapped_column(Text, nullable=False)
    bookmaker: Mapped[str] = mapped_column(Text, nullable=False)
    market: Mapped[str] = mapped_column(String(64), nullable=False)
    outcome_name: Mapped[str] = mapped_column(Text, nullable=False)
    point: Mapped[Decimal | None] = mapped_column(Numeric(10, 3), nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    observed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
