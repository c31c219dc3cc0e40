from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date

class TournamentBase(BaseModel):
    name: str
    type: str = "knockout" # "league", "knockout", "groups_knockout"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    number_of_groups: Optional[int] = Field(None, ge=1)
    teams_advancing_per_group: int = Field(2, ge=1)
    has_third_place_match: bool = True
    trophy_image_url: Optional[str] = None

class TournamentCreate(TournamentBase):
    pass

class TournamentRead(TournamentBase):
    id: int
    group_stage_complete: bool = False
    current_stage: str = "registration"

    class Config:
        from_attributes = True

class TournamentUpdate(TournamentBase):
    name: Optional[str] = None
    type: Optional[str] = None
    teams_advancing_per_group: Optional[int] = Field(None, ge=1)
    has_third_place_match: Optional[bool] = None
    current_stage: Optional[str] = None

class SeededKnockoutRequest(BaseModel):
    """Team ids in seed order: the first id is seed 1."""
    team_ids: List[int] = Field(..., min_length=2)
