from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.services import bracket_service, match_service, tournament_service
from app.schemas import bracket_schemas, group_schemas, match_schemas, team_schemas, tournament_schemas
from app.api.dependencies import get_db

router = APIRouter()

@router.post("/", response_model=tournament_schemas.TournamentRead, status_code=status.HTTP_201_CREATED)
async def create_tournament_endpoint(
    tournament_in: tournament_schemas.TournamentCreate,
    db: Session = Depends(get_db),
):
    return tournament_service.create_tournament(db=db, tournament=tournament_in)

@router.get("/", response_model=List[tournament_schemas.TournamentRead])
async def list_tournaments_endpoint(db: Session = Depends(get_db)):
    return tournament_service.list_tournaments(db=db)

@router.get("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
async def get_tournament_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
):
    tournament = tournament_service.get_tournament(db=db, tournament_id=tournament_id)
    if not tournament:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")
    return tournament

@router.patch("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
async def update_tournament_endpoint(
    tournament_id: int,
    tournament_in: tournament_schemas.TournamentUpdate,
    db: Session = Depends(get_db),
):
    return tournament_service.update_tournament(db=db, tournament_id=tournament_id, tournament_update=tournament_in)

@router.post("/{tournament_id}/teams", response_model=team_schemas.TeamRead, status_code=status.HTTP_201_CREATED)
async def add_team_endpoint(
    tournament_id: int,
    team_in: team_schemas.TeamCreate,
    db: Session = Depends(get_db),
):
    return tournament_service.add_team(db=db, tournament_id=tournament_id, team=team_in)

@router.get("/{tournament_id}/teams", response_model=List[team_schemas.TeamRead])
async def list_teams_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_service.list_teams(db=db, tournament_id=tournament_id)

@router.get("/{tournament_id}/matches", response_model=List[match_schemas.MatchRead])
async def get_tournament_matches_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return match_service.get_tournament_matches(db=db, tournament_id=tournament_id)

@router.get("/{tournament_id}/bracket", response_model=bracket_schemas.BracketView)
async def get_bracket_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    tournament = tournament_service.get_tournament(db=db, tournament_id=tournament_id)
    if not tournament:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")
    matches = [
        match_schemas.MatchRead.model_validate(m)
        for m in match_service.get_tournament_matches(db=db, tournament_id=tournament_id)
    ]
    return bracket_service.build_bracket_view(
        matches,
        tournament=tournament_schemas.TournamentRead.model_validate(tournament),
        group_stage_complete=bool(tournament.group_stage_complete),
    )

@router.post("/{tournament_id}/knockout/placeholders", response_model=List[match_schemas.MatchRead], status_code=status.HTTP_201_CREATED)
async def generate_knockout_placeholders_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_service.generate_knockout_placeholders(db=db, tournament_id=tournament_id)

@router.post("/{tournament_id}/knockout/seeded", response_model=List[match_schemas.MatchRead], status_code=status.HTTP_201_CREATED)
async def generate_seeded_knockout_endpoint(
    tournament_id: int,
    seeding: tournament_schemas.SeededKnockoutRequest,
    db: Session = Depends(get_db),
):
    return tournament_service.generate_seeded_knockout(db=db, tournament_id=tournament_id, team_ids=seeding.team_ids)

@router.post("/{tournament_id}/complete-group-stage", response_model=tournament_schemas.TournamentRead)
async def complete_group_stage_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_service.complete_group_stage(db=db, tournament_id=tournament_id)

@router.post("/{tournament_id}/groups/assign", response_model=List[team_schemas.TeamRead])
async def assign_groups_endpoint(
    tournament_id: int,
    assignment_in: Optional[group_schemas.GroupAssignmentRequest] = None,
    db: Session = Depends(get_db),
):
    assignments = assignment_in.assignments if assignment_in else None
    return tournament_service.assign_teams_to_groups(db=db, tournament_id=tournament_id, assignments=assignments)

@router.post("/{tournament_id}/groups/matches", response_model=List[match_schemas.MatchRead], status_code=status.HTTP_201_CREATED)
async def generate_group_matches_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_service.generate_group_stage_matches(db=db, tournament_id=tournament_id)

@router.get("/{tournament_id}/groups/standings", response_model=List[group_schemas.GroupStandings])
async def group_standings_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_service.get_group_standings(db=db, tournament_id=tournament_id)

@router.post("/{tournament_id}/knockout/from-groups", response_model=List[match_schemas.MatchRead], status_code=status.HTTP_201_CREATED)
async def generate_knockout_from_groups_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_service.generate_knockout_from_groups(db=db, tournament_id=tournament_id)
