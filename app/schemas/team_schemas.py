from pydantic import BaseModel
from typing import Optional

class TeamRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True

class TeamBase(BaseModel):
    name: str
    group_number: Optional[int] = None
    logo_url: Optional[str] = None

class TeamCreate(TeamBase):
    pass

class TeamRead(TeamBase):
    id: int
    tournament_id: int

    class Config:
        from_attributes = True
