from pydantic import BaseModel, Field
from typing import List

class GroupAssignment(BaseModel):
    team_id: int
    group_number: int = Field(..., ge=1)

class GroupAssignmentRequest(BaseModel):
    """Manual group draw. Leave `assignments` empty to spread the teams at random."""
    assignments: List[GroupAssignment] = Field(default_factory=list)

class TeamStanding(BaseModel):
    team_id: int
    name: str
    group_number: int
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0

class GroupStandings(BaseModel):
    group_number: int
    group_letter: str
    teams: List[TeamStanding] = Field(default_factory=list) # best first
