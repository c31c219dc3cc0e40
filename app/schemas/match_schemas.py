from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime
from .team_schemas import TeamRef

MatchStatus = Literal["scheduled", "live", "completed", "postponed"]

class PenaltyOutcome(BaseModel):
    """Shoot-out score of a knockout match that ended level."""
    home_score: int
    away_score: int

    class Config:
        from_attributes = True

class MatchRead(BaseModel):
    id: int
    tournament_id: Optional[int] = None
    stage: str = "group"
    round: Optional[int] = None
    leg: int = 1
    group_number: Optional[int] = None
    bracket_position: Optional[int] = None
    home_team: Optional[TeamRef] = None
    away_team: Optional[TeamRef] = None
    home_team_source: Optional[str] = None
    away_team_source: Optional[str] = None
    status: str = "scheduled"
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    penalty: Optional[PenaltyOutcome] = None
    winner_team_id: Optional[int] = None
    loser_team_id: Optional[int] = None
    match_date: Optional[datetime] = None
    venue: Optional[str] = None

    class Config:
        from_attributes = True

class MatchResultUpdate(BaseModel):
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    home_penalty_score: Optional[int] = None
    away_penalty_score: Optional[int] = None
    status: Optional[MatchStatus] = None
