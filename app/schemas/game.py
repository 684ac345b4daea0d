"""Game and player models shared by the engine, the store and the event wire."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.config import MAX_WIN_CONDITION, MIN_WIN_CONDITION


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Player(CamelModel):
    user_id: str
    name: str
    total_score: int = 0
    current_round_score: int = 0
    has_submitted: bool = False
    points_history: list[int] = Field(default_factory=list)


class Game(CamelModel):
    """Authoritative game record.

    Player order is turn order. The dealer and winner are referenced by
    user id.
    """

    id: str
    lobby_id: str | None = None
    players: list[Player] = Field(default_factory=list)
    current_dealer: str | None = None
    current_round: int = Field(1, ge=1)
    is_finished: bool = False
    winner: str | None = None
    win_condition: int = Field(1000, ge=MIN_WIN_CONDITION, le=MAX_WIN_CONDITION)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def find_player(self, user_id: str) -> Player | None:
        return next((p for p in self.players if p.user_id == user_id), None)

    def all_players_submitted(self) -> bool:
        return all(p.has_submitted for p in self.players)


class PlayerAttributes(BaseModel):
    """Identity of a lobby member joining a game."""

    user_id: str
    name: str


class PlayerSummary(CamelModel):
    user_id: str
    name: str
    score: int


class WinnerSummary(CamelModel):
    user_id: str
    name: str
    total_score: int
