from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from .match_schemas import PenaltyOutcome

class BracketSlot(BaseModel):
    name: str
    score: Optional[int] = None
    is_winner: bool = False
    # True when `name` is a derived label rather than a resolved team
    is_placeholder: bool = False

class BracketCard(BaseModel):
    match_id: Optional[int] = None # None for the placeholder final of the simple view
    stage: str
    label: str
    home: BracketSlot
    away: BracketSlot
    status: str = "scheduled"
    status_label: str = ""
    penalty: Optional[PenaltyOutcome] = None
    match_date: Optional[datetime] = None
    venue: Optional[str] = None

class BracketHalf(BaseModel):
    round_of_16: List[BracketCard] = Field(default_factory=list)
    quarter_final: List[BracketCard] = Field(default_factory=list)
    semi_final: List[BracketCard] = Field(default_factory=list)

class BracketCenter(BaseModel):
    final: Optional[BracketCard] = None
    third_place: Optional[BracketCard] = None

class BracketView(BaseModel):
    layout: str # "full_tree", "simple" or "empty"
    empty_message: Optional[str] = None
    stages: Dict[str, List[BracketCard]] = Field(default_factory=dict)
    left: BracketHalf = Field(default_factory=BracketHalf)
    right: BracketHalf = Field(default_factory=BracketHalf)
    center: BracketCenter = Field(default_factory=BracketCenter)
    match_list: List[BracketCard] = Field(default_factory=list)
    champion: Optional[str] = None
    trophy_image_url: Optional[str] = None
