import logging
import random
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models import match as match_model
from app.models import team as team_model
from app.models import tournament as tournament_model
from app.schemas import group_schemas, team_schemas, tournament_schemas
from app.services.bracket_service import DEFAULT_NUMBER_OF_GROUPS, get_group_letter

logger = logging.getLogger(__name__)

KNOCKOUT_STAGES = ("round_of_16", "quarter_final", "semi_final", "final", "third_place")

# (smallest bracket size that needs the stage, stage, match count)
KNOCKOUT_STAGE_SIZES = (
    (16, "round_of_16", 8),
    (8, "quarter_final", 4),
    (4, "semi_final", 2),
)

SEEDED_BRACKET_SIZES = (2, 4, 8, 16)
MAX_BRACKET_SIZE = 16

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1


def next_power_of_2(n: int) -> int:
    size = 2
    while size < n:
        size *= 2
    return size


def create_tournament(db: Session, tournament: tournament_schemas.TournamentCreate) -> tournament_model.Tournament:
    db_tournament = tournament_model.Tournament(
        **tournament.model_dump(),
        group_stage_complete=False,
        current_stage="registration",
    )
    db.add(db_tournament)
    db.commit()
    db.refresh(db_tournament)
    return db_tournament

def get_tournament(db: Session, tournament_id: int) -> Optional[tournament_model.Tournament]:
    return db.query(tournament_model.Tournament).filter(tournament_model.Tournament.id == tournament_id).first()

def _get_tournament_or_404(db: Session, tournament_id: int) -> tournament_model.Tournament:
    db_tournament = get_tournament(db, tournament_id)
    if not db_tournament:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")
    return db_tournament

def list_tournaments(db: Session) -> List[tournament_model.Tournament]:
    return db.query(tournament_model.Tournament).order_by(tournament_model.Tournament.id).all()

def update_tournament(db: Session, tournament_id: int, tournament_update: tournament_schemas.TournamentUpdate) -> tournament_model.Tournament:
    db_tournament = _get_tournament_or_404(db, tournament_id)
    update_data = tournament_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(db_tournament, key, value)
    db.commit()
    db.refresh(db_tournament)
    return db_tournament

def add_team(db: Session, tournament_id: int, team: team_schemas.TeamCreate) -> team_model.Team:
    _get_tournament_or_404(db, tournament_id)
    db_team = team_model.Team(**team.model_dump(), tournament_id=tournament_id)
    db.add(db_team)
    db.commit()
    db.refresh(db_team)
    return db_team

def list_teams(db: Session, tournament_id: int) -> List[team_model.Team]:
    _get_tournament_or_404(db, tournament_id)
    return db.query(team_model.Team).filter(team_model.Team.tournament_id == tournament_id).order_by(team_model.Team.id).all()


def _delete_knockout_matches(db: Session, tournament_id: int) -> None:
    db.query(match_model.Match).filter(
        match_model.Match.tournament_id == tournament_id,
        match_model.Match.stage.in_(KNOCKOUT_STAGES),
    ).delete(synchronize_session=False)


def generate_knockout_placeholders(db: Session, tournament_id: int) -> List[match_model.Match]:
    """
    Create the empty knockout matches of a groups + knockout tournament so the
    bracket can be shown with position labels (A1, B2, ...) while the group
    stage is still being played. Existing knockout matches are replaced.
    """
    tournament = _get_tournament_or_404(db, tournament_id)
    if tournament.type != "groups_knockout":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Knockout placeholders are only generated for groups + knockout tournaments")

    num_groups = tournament.number_of_groups or DEFAULT_NUMBER_OF_GROUPS
    advancing = tournament.teams_advancing_per_group or 2
    bracket_size = next_power_of_2(num_groups * advancing)

    to_create = []
    for min_size, stage, match_count in KNOCKOUT_STAGE_SIZES:
        if bracket_size >= min_size:
            to_create.extend((stage, position) for position in range(1, match_count + 1))
    to_create.append(("final", 1))
    if bracket_size >= 4 and tournament.has_third_place_match:
        to_create.append(("third_place", 1))

    _delete_knockout_matches(db, tournament_id)
    new_matches = [
        match_model.Match(tournament_id=tournament_id, stage=stage, round=position, status="scheduled")
        for stage, position in to_create
    ]
    db.add_all(new_matches)
    db.commit()
    for match in new_matches:
        db.refresh(match)
    logger.info("Tournament %s: generated %d knockout placeholders for a bracket of %d",
                tournament_id, len(new_matches), bracket_size)
    return new_matches


def seeded_pairings(bracket_size: int) -> List[Tuple[int, int]]:
    """First-round seed pairs: 1 v B, 2 v B-1, ... in bracket position order."""
    return [(i + 1, bracket_size - i) for i in range(bracket_size // 2)]


def _fill_slot(match: match_model.Match, side: str, entry) -> None:
    # entry is a Match whose winner moves on, or (team_id, source) for a known team
    if isinstance(entry, match_model.Match):
        setattr(match, f"{side}_team_source", f"WINNER_OF:{entry.id}")
    else:
        team_id, source = entry
        setattr(match, f"{side}_team_id", team_id)
        setattr(match, f"{side}_team_source", source)


def _create_knockout_bracket(db: Session, tournament: tournament_model.Tournament, team_ids: List[int],
                             first_round_pairs: List[Tuple[int, int]]) -> List[match_model.Match]:
    """
    Replace the knockout matches of `tournament` with a single-elimination
    bracket for `team_ids` given in seed order.

    Seeds beyond len(team_ids) are byes: their opponent skips the first round
    and enters the next one directly under its SEED source. Every later match
    takes the winners of two consecutive matches of the previous round through
    WINNER_OF sources, and the third-place match takes the semi-final losers.
    """
    bracket_size = len(first_round_pairs) * 2
    stages = [stage for min_size, stage, _ in KNOCKOUT_STAGE_SIZES if bracket_size >= min_size] + ["final"]

    def seed_entry(seed: int):
        if seed > len(team_ids):
            return None
        return team_ids[seed - 1], f"SEED:{seed}"

    _delete_knockout_matches(db, tournament.id)

    created: List[match_model.Match] = []
    entries = []
    final_feeders = []
    for round_number, stage in enumerate(stages, start=1):
        if round_number == 1:
            slots = [(seed_entry(home), seed_entry(away)) for home, away in first_round_pairs]
        else:
            slots = [(entries[i], entries[i + 1]) for i in range(0, len(entries), 2)]
        if stage == "final":
            final_feeders = list(slots[0])

        round_matches = []
        entries = []
        for position, (home, away) in enumerate(slots, start=1):
            if home is None or away is None:
                entries.append(home or away)
                continue
            match = match_model.Match(
                tournament_id=tournament.id, stage=stage, round=1 if stage == "final" else round_number,
                bracket_position=position, status="scheduled",
            )
            _fill_slot(match, "home", home)
            _fill_slot(match, "away", away)
            round_matches.append(match)
            entries.append(match)
        db.add_all(round_matches)
        db.flush()
        created.extend(round_matches)

    semis_played = bracket_size >= 4 and all(isinstance(e, match_model.Match) for e in final_feeders)
    if tournament.has_third_place_match and semis_played:
        semi_1, semi_2 = final_feeders
        third_place = match_model.Match(
            tournament_id=tournament.id, stage="third_place", round=1, bracket_position=1, status="scheduled",
            home_team_source=f"LOSER_OF:{semi_1.id}", away_team_source=f"LOSER_OF:{semi_2.id}",
        )
        db.add(third_place)
        created.append(third_place)

    db.commit()
    for match in created:
        db.refresh(match)
    return created


def generate_seeded_knockout(db: Session, tournament_id: int, team_ids: List[int]) -> List[match_model.Match]:
    """Build a full single-elimination bracket from teams given in seed order."""
    tournament = _get_tournament_or_404(db, tournament_id)
    if tournament.type != "knockout":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="A seeded knockout is only generated for knockout tournaments")
    bracket_size = len(team_ids)
    if bracket_size not in SEEDED_BRACKET_SIZES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"A seeded knockout needs {', '.join(map(str, SEEDED_BRACKET_SIZES))} teams, got {bracket_size}")
    if len(set(team_ids)) != bracket_size:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate team in seeding")

    teams = db.query(team_model.Team).filter(
        team_model.Team.tournament_id == tournament_id,
        team_model.Team.id.in_(team_ids),
    ).all()
    if len(teams) != bracket_size:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Every seeded team must belong to the tournament")

    created = _create_knockout_bracket(db, tournament, list(team_ids), seeded_pairings(bracket_size))
    logger.info("Tournament %s: generated seeded knockout of %d teams (%d matches)",
                tournament_id, bracket_size, len(created))
    return created


# --- Group stage ---

def _get_groups_tournament_or_400(db: Session, tournament_id: int) -> tournament_model.Tournament:
    tournament = _get_tournament_or_404(db, tournament_id)
    if tournament.type != "groups_knockout":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Tournament doesn't have a group stage")
    return tournament


def assign_teams_to_groups(db: Session, tournament_id: int,
                           assignments: Optional[List[group_schemas.GroupAssignment]] = None) -> List[team_model.Team]:
    """Apply a manual group draw, or spread the teams evenly over the groups at random."""
    tournament = _get_groups_tournament_or_400(db, tournament_id)
    teams = list_teams(db, tournament_id)
    if not teams:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No teams in tournament")
    num_groups = tournament.number_of_groups or DEFAULT_NUMBER_OF_GROUPS

    if assignments:
        teams_by_id = {team.id: team for team in teams}
        for assignment in assignments:
            if assignment.team_id not in teams_by_id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                    detail=f"Team {assignment.team_id} is not part of this tournament")
            if assignment.group_number > num_groups:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                    detail=f"Tournament only has {num_groups} groups")
        for assignment in assignments:
            teams_by_id[assignment.team_id].group_number = assignment.group_number
    else:
        shuffled = list(teams)
        random.shuffle(shuffled)
        for i, team in enumerate(shuffled):
            team.group_number = (i % num_groups) + 1

    tournament.current_stage = "group_stage"
    db.commit()
    for team in teams:
        db.refresh(team)
    return teams


def round_robin_rounds(team_ids: List[int]) -> List[List[Tuple[int, int]]]:
    """
    Circle method: every team meets every other team once. With an odd
    number of teams one team rests in each round.
    """
    slots: List[Optional[int]] = list(team_ids)
    if len(slots) % 2:
        slots.append(None)
    half = len(slots) // 2

    rounds = []
    for _ in range(len(slots) - 1):
        pairs = zip(slots[:half], reversed(slots[half:]))
        rounds.append([(home, away) for home, away in pairs if home is not None and away is not None])
        # Keep the first slot fixed and rotate the rest
        slots = [slots[0], slots[-1]] + slots[1:-1]
    return rounds


def generate_group_stage_matches(db: Session, tournament_id: int) -> List[match_model.Match]:
    tournament = _get_groups_tournament_or_400(db, tournament_id)
    groups: Dict[int, List[int]] = {}
    for team in list_teams(db, tournament_id):
        if team.group_number:
            groups.setdefault(team.group_number, []).append(team.id)
    if not groups:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Teams have not been assigned to groups")

    db.query(match_model.Match).filter(
        match_model.Match.tournament_id == tournament_id,
        match_model.Match.stage == "group",
    ).delete(synchronize_session=False)

    new_matches = [
        match_model.Match(
            tournament_id=tournament_id, stage="group", group_number=group_number, round=round_number,
            leg=1, home_team_id=home, away_team_id=away, status="scheduled",
        )
        for group_number in sorted(groups)
        for round_number, pairs in enumerate(round_robin_rounds(groups[group_number]), start=1)
        for home, away in pairs
    ]
    db.add_all(new_matches)
    tournament.current_stage = "group_stage"
    db.commit()
    for match in new_matches:
        db.refresh(match)
    logger.info("Tournament %s: generated %d group matches in %d groups", tournament_id, len(new_matches), len(groups))
    return new_matches


def _standing_key(row: group_schemas.TeamStanding) -> Tuple[int, int, int]:
    return -row.points, -row.goal_difference, -row.goals_for


def get_group_standings(db: Session, tournament_id: int) -> List[group_schemas.GroupStandings]:
    """
    Group tables computed from the completed group matches: 3 points for a
    win, 1 for a draw, ranked by points, goal difference, then goals scored.
    """
    rows = {
        team.id: group_schemas.TeamStanding(team_id=team.id, name=team.name, group_number=team.group_number)
        for team in list_teams(db, tournament_id)
        if team.group_number
    }
    completed = db.query(match_model.Match).filter(
        match_model.Match.tournament_id == tournament_id,
        match_model.Match.stage == "group",
        match_model.Match.status == "completed",
    ).all()

    for match in completed:
        if match.home_score is None or match.away_score is None:
            continue
        for team_id, scored, conceded in ((match.home_team_id, match.home_score, match.away_score),
                                          (match.away_team_id, match.away_score, match.home_score)):
            row = rows.get(team_id)
            if row is None:
                continue
            row.played += 1
            row.goals_for += scored
            row.goals_against += conceded
            if scored > conceded:
                row.won += 1
            elif scored == conceded:
                row.drawn += 1
            else:
                row.lost += 1

    groups: Dict[int, List[group_schemas.TeamStanding]] = {}
    for row in rows.values():
        row.goal_difference = row.goals_for - row.goals_against
        row.points = row.won * POINTS_FOR_WIN + row.drawn * POINTS_FOR_DRAW
        groups.setdefault(row.group_number, []).append(row)

    return [
        group_schemas.GroupStandings(
            group_number=group_number,
            group_letter=get_group_letter(group_number),
            teams=sorted(groups[group_number], key=_standing_key),
        )
        for group_number in sorted(groups)
    ]


def _avoid_same_group_pairings(pairs: List[Tuple[int, int]], seed_groups: List[int]) -> List[Tuple[int, int]]:
    """Swap away seeds with a later first-round pair so group mates do not meet straight away."""
    def group_of(seed: int) -> Optional[int]:
        return seed_groups[seed - 1] if seed <= len(seed_groups) else None

    swapped = [list(pair) for pair in pairs]
    for i, pair in enumerate(swapped):
        home, away = pair
        if group_of(away) is None or group_of(home) != group_of(away):
            continue
        for other in swapped[i + 1:]:
            other_home, other_away = other
            if group_of(other_away) is None:
                continue
            if group_of(other_away) != group_of(home) and group_of(away) != group_of(other_home):
                pair[1], other[1] = other_away, away
                break
    return [tuple(pair) for pair in swapped]


def generate_knockout_from_groups(db: Session, tournament_id: int) -> List[match_model.Match]:
    """
    Seed the knockout bracket from the group tables.

    The best `teams_advancing_per_group` teams of every group qualify. Group
    winners take the top seeds, ordered by their record, and the other
    qualifiers follow. The bracket is padded with byes for the top seeds up
    to the next power of two.
    """
    tournament = _get_groups_tournament_or_400(db, tournament_id)
    advancing = tournament.teams_advancing_per_group or 2

    winners, others = [], []
    for group in get_group_standings(db, tournament_id):
        for position, row in enumerate(group.teams[:advancing], start=1):
            (winners if position == 1 else others).append(row)
    qualifiers = sorted(winners, key=_standing_key) + sorted(others, key=_standing_key)

    if len(qualifiers) < 2:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Not enough qualified teams for the knockout stage")
    bracket_size = next_power_of_2(len(qualifiers))
    if bracket_size > MAX_BRACKET_SIZE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"{len(qualifiers)} qualified teams do not fit a bracket of {MAX_BRACKET_SIZE}")

    pairs = _avoid_same_group_pairings(seeded_pairings(bracket_size), [row.group_number for row in qualifiers])
    created = _create_knockout_bracket(db, tournament, [row.team_id for row in qualifiers], pairs)
    logger.info("Tournament %s: seeded %d group qualifiers into a bracket of %d (%d matches)",
                tournament_id, len(qualifiers), bracket_size, len(created))
    return created


def complete_group_stage(db: Session, tournament_id: int) -> tournament_model.Tournament:
    """Close the group stage once every group match is played and draw the knockout bracket."""
    tournament = _get_groups_tournament_or_400(db, tournament_id)
    unfinished = db.query(match_model.Match).filter(
        match_model.Match.tournament_id == tournament_id,
        match_model.Match.stage == "group",
        match_model.Match.status != "completed",
    ).count()
    if unfinished:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"{unfinished} group matches have not been completed")

    generate_knockout_from_groups(db, tournament_id)
    tournament.group_stage_complete = True
    tournament.current_stage = "knockout_stage"
    db.commit()
    db.refresh(tournament)
    return tournament
