import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models import match as match_model
from app.models import tournament as tournament_model
from app.schemas import match_schemas

logger = logging.getLogger(__name__)

KNOCKOUT_STAGES = ("round_of_16", "quarter_final", "semi_final", "final", "third_place")
SCORE_FIELDS = ("home_score", "away_score", "home_penalty_score", "away_penalty_score")


def _decide_knockout_result(home_score: Optional[int], away_score: Optional[int],
                            home_penalty: Optional[int], away_penalty: Optional[int]
                            ) -> Tuple[Optional[str], bool]:
    """
    Returns the winning side ("home"/"away", or None when undecided) and
    whether penalties decided it. A level score needs a penalty winner.
    """
    if home_score is None or away_score is None:
        return None, False
    if home_score > away_score:
        return "home", False
    if away_score > home_score:
        return "away", False
    if home_penalty is None or away_penalty is None or home_penalty == away_penalty:
        return None, False
    return ("home" if home_penalty > away_penalty else "away"), True


def get_tournament_matches(db: Session, tournament_id: int) -> List[match_model.Match]:
    tournament = db.query(tournament_model.Tournament).filter(tournament_model.Tournament.id == tournament_id).first()
    if not tournament:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")
    return db.query(match_model.Match).filter(match_model.Match.tournament_id == tournament_id).all()

def get_match_details(db: Session, match_id: int) -> Optional[match_model.Match]:
    return db.query(match_model.Match).filter(match_model.Match.id == match_id).first()

def submit_match_result(db: Session, match_id: int, result: match_schemas.MatchResultUpdate) -> match_model.Match:
    db_match = get_match_details(db, match_id)
    if not db_match:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")

    update_data = result.model_dump(exclude_unset=True)
    scores = {key: update_data.get(key, getattr(db_match, key)) for key in SCORE_FIELDS}
    new_status = update_data.get("status") or db_match.status
    is_knockout = db_match.stage in KNOCKOUT_STAGES

    # Validate before assigning anything
    side, on_penalties = None, False
    if is_knockout and new_status == "completed":
        if db_match.home_team_id is None or db_match.away_team_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail="Both teams of a knockout match must be known before it can be completed")
        side, on_penalties = _decide_knockout_result(
            scores["home_score"], scores["away_score"],
            scores["home_penalty_score"], scores["away_penalty_score"],
        )
        if side is None:
            if scores["home_score"] is not None and scores["home_score"] == scores["away_score"]:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                    detail="A drawn knockout match needs a penalty winner before it can be completed")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail="A knockout match cannot be completed without a winner")

    reopened_slots = []
    if is_knockout and db_match.status == "completed" and new_status != "completed":
        reopened_slots = _dependent_slots(db, db_match)
        started = sorted({next_match.id for next_match, _, _ in reopened_slots if next_match.status != "scheduled"})
        if started:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail=f"Match cannot be reopened: matches {started} already depend on its result")

    for key, value in scores.items():
        setattr(db_match, key, value)
    db_match.status = new_status

    if side is not None:
        if side == "home":
            db_match.winner_team_id, db_match.loser_team_id = db_match.home_team_id, db_match.away_team_id
        else:
            db_match.winner_team_id, db_match.loser_team_id = db_match.away_team_id, db_match.home_team_id
        db_match.went_to_penalties = on_penalties
        if not on_penalties:
            db_match.home_penalty_score = None
            db_match.away_penalty_score = None
    elif is_knockout:
        # A leading side in a live match is not a winner yet
        db_match.winner_team_id = None
        db_match.loser_team_id = None
        db_match.went_to_penalties = False

    for next_match, team_attr, _ in reopened_slots:
        setattr(next_match, team_attr, None)

    db.commit()
    db.refresh(db_match)

    if reopened_slots:
        logger.info("Match %s reopened, cleared its slots in matches %s",
                    db_match.id, sorted({m.id for m, _, _ in reopened_slots}))
    if db_match.winner_team_id is not None:
        propagate_match_result(db, db_match)
    return db_match


def _dependent_slots(db: Session, source_match: match_model.Match) -> List[Tuple[match_model.Match, str, str]]:
    """(match, team attribute, source type) for every slot fed by `source_match`."""
    reference = str(source_match.id)
    candidates = db.query(match_model.Match).filter(
        match_model.Match.tournament_id == source_match.tournament_id,
        match_model.Match.id != source_match.id,
    ).all()

    slots = []
    for next_match in candidates:
        for source_attr, team_attr in (("home_team_source", "home_team_id"), ("away_team_source", "away_team_id")):
            source = getattr(next_match, source_attr)
            if not source:
                continue
            source_type, _, source_match_id = source.partition(":")
            if source_match_id == reference and source_type in ("WINNER_OF", "LOSER_OF"):
                slots.append((next_match, team_attr, source_type))
    return slots


def propagate_match_result(db: Session, finished_match: match_model.Match) -> List[match_model.Match]:
    """
    Fill the slots of every match whose source points at `finished_match`:
    WINNER_OF slots get the winner, LOSER_OF slots the loser.
    """
    updated: List[match_model.Match] = []
    for next_match, team_attr, source_type in _dependent_slots(db, finished_match):
        team_id = finished_match.winner_team_id if source_type == "WINNER_OF" else finished_match.loser_team_id
        if team_id is None:
            continue
        setattr(next_match, team_attr, team_id)
        if next_match not in updated:
            updated.append(next_match)

    if updated:
        db.commit()
        logger.info("Match %s result propagated to matches %s", finished_match.id, [m.id for m in updated])
    return updated
