"""
Knockout bracket derivation.

Everything here works on an already-fetched snapshot of matches and never
touches the database: the functions order knockout matches, label slots whose
teams are not known yet, turn WINNER_OF/LOSER_OF/SEED source references into
readable text and split the matches into the layout the bracket page renders.
Every function is total: bad or missing data degrades to a generic label.
"""
import logging
from types import MappingProxyType
from typing import List, Optional, Sequence, Tuple

from app.schemas.bracket_schemas import BracketCard, BracketCenter, BracketHalf, BracketSlot, BracketView
from app.schemas.match_schemas import MatchRead
from app.schemas.tournament_schemas import TournamentRead

logger = logging.getLogger(__name__)

DEFAULT_NUMBER_OF_GROUPS = 2

STAGE_LABELS = MappingProxyType({
    "group": "group stage",
    "league": "league",
    "round_of_16": "round of 16",
    "quarter_final": "quarter-final",
    "semi_final": "semi-final",
    "final": "final",
    "third_place": "third place",
})

STAGE_ORDER = ("round_of_16", "quarter_final", "semi_final", "final")
# Stages outside STAGE_ORDER (third_place, group, league) sort after it
UNRANKED_STAGE = len(STAGE_ORDER)

SINGLE_MATCH_STAGES = frozenset({"final", "third_place"})
NON_KNOCKOUT_STAGES = frozenset({"group", "league"})

GROUP_LETTERS = MappingProxyType({1: "A", 2: "B", 3: "C", 4: "D", 5: "E", 6: "F", 7: "G", 8: "H"})

MATCH_STATUS_LABELS = MappingProxyType({
    "scheduled": "upcoming",
    "live": "live",
    "completed": "finished",
    "postponed": "postponed",
})

WINNER_OF = "WINNER_OF"
LOSER_OF = "LOSER_OF"
SEED = "SEED"

EMPTY_GROUP_STAGE_RUNNING = "The knockout bracket will be drawn once the group stage is complete"
EMPTY_KNOCKOUT_NOT_STARTED = "The knockout stage has not started yet"


# --- Stage labels and ordering ---

def get_stage_label(stage: str) -> str:
    label = STAGE_LABELS.get(stage)
    if label is None:
        logger.warning("Unknown stage code %r, displaying it verbatim", stage)
        return stage
    return label


def get_stage_rank(stage: Optional[str]) -> int:
    try:
        return STAGE_ORDER.index(stage)
    except ValueError:
        return UNRANKED_STAGE


def _position_in_stage(match: MatchRead) -> int:
    if match.bracket_position is not None:
        return match.bracket_position
    if match.round is not None:
        return match.round
    return 0


def match_order_key(match: MatchRead) -> Tuple[int, int]:
    return get_stage_rank(match.stage), _position_in_stage(match)


def sort_matches(matches: Sequence[MatchRead]) -> List[MatchRead]:
    """Bracket order. sorted() is stable, so ties keep their input order."""
    return sorted(matches, key=match_order_key)


def get_knockout_match_label(stage: str, index: int) -> str:
    """"semi-final 2" for index 1; final and third place are always singletons."""
    label = get_stage_label(stage)
    if stage in SINGLE_MATCH_STAGES:
        return label
    return f"{label} {index + 1}"


# --- Group pairings and position labels ---

def get_group_letter(group_number: int) -> str:
    return GROUP_LETTERS.get(group_number, str(group_number))


def generate_group_pairings(num_groups: int) -> List[Tuple[str, str]]:
    """
    Pairings for the first knockout round fed by the group stage.

    Groups are taken two at a time: the winner of the first group meets the
    runner-up of the second, then the winner of the second meets the
    runner-up of the first. A trailing unpaired group gets no pairing.
    """
    pairings: List[Tuple[str, str]] = []
    for first in range(1, num_groups, 2):
        second = first + 1
        pairings.append((f"{get_group_letter(first)}1", f"{get_group_letter(second)}2"))
        pairings.append((f"{get_group_letter(second)}1", f"{get_group_letter(first)}2"))
    return pairings


def get_position_label(match_index: int, is_home: bool, stage: str,
                       num_groups: int = DEFAULT_NUMBER_OF_GROUPS) -> str:
    """Expected occupant of a slot whose team and source are both unknown."""
    if stage == "final":
        return "winner of semi-final 1" if is_home else "winner of semi-final 2"
    if stage == "third_place":
        return "loser 1" if is_home else "loser 2"

    pairings = generate_group_pairings(num_groups)
    if 0 <= match_index < len(pairings):
        home, away = pairings[match_index]
        return home if is_home else away

    # More matches than pairings (irregular group counts): guess the groups
    # from the index alone.
    fallback_group = (match_index // 2) * 2 + 1
    first = get_group_letter(fallback_group)
    second = get_group_letter(fallback_group + 1)
    if match_index % 2 == 0:
        return f"{first}1" if is_home else f"{second}2"
    return f"{second}1" if is_home else f"{first}2"


# --- Source references ---

def get_intelligent_source_text(source: Optional[str], matches: Sequence[MatchRead]) -> str:
    """
    Readable text for a WINNER_OF/LOSER_OF/SEED reference.

    Returns "" whenever the reference cannot be resolved so the caller can
    fall back to a position label.
    """
    if not source:
        return ""

    source_type, _, reference = source.partition(":")
    if source_type == SEED:
        return f"seed {reference}" if reference else ""
    if source_type not in (WINNER_OF, LOSER_OF) or not reference:
        return ""

    source_match = next((m for m in matches if str(m.id) == reference), None)
    if source_match is None:
        return ""

    if source_match.stage == "group":
        letter = get_group_letter(source_match.group_number or 1)
        return f"{letter}1" if source_type == WINNER_OF else f"{letter}2"

    same_stage = sorted((m for m in matches if m.stage == source_match.stage), key=_position_in_stage)
    index = next(i for i, m in enumerate(same_stage) if m.id == source_match.id)
    label = get_knockout_match_label(source_match.stage, index)
    return f"winner of {label}" if source_type == WINNER_OF else f"loser of {label}"


def _resolve_slot_name(match: MatchRead, is_home: bool, match_index: int,
                       matches: Sequence[MatchRead], num_groups: int) -> Tuple[str, bool]:
    team = match.home_team if is_home else match.away_team
    if team is not None and team.name:
        return team.name, False

    source = match.home_team_source if is_home else match.away_team_source
    if source:
        text = get_intelligent_source_text(source, matches)
        if text:
            return text, True

    return get_position_label(match_index, is_home, match.stage, num_groups), True


def get_team_display_name(match: MatchRead, is_home: bool, match_index: int,
                          matches: Sequence[MatchRead],
                          num_groups: int = DEFAULT_NUMBER_OF_GROUPS) -> str:
    """Resolved team name, else source text, else the expected position."""
    name, _ = _resolve_slot_name(match, is_home, match_index, matches, num_groups)
    return name


# --- Layout ---

def _winning_side(match: MatchRead) -> Optional[str]:
    if match.status != "completed" or match.home_score is None or match.away_score is None:
        return None
    if match.home_score > match.away_score:
        return "home"
    if match.away_score > match.home_score:
        return "away"
    if match.penalty is not None:
        if match.penalty.home_score > match.penalty.away_score:
            return "home"
        if match.penalty.away_score > match.penalty.home_score:
            return "away"
    return None


def build_bracket_card(match: MatchRead, match_index: int, matches: Sequence[MatchRead],
                       num_groups: int = DEFAULT_NUMBER_OF_GROUPS) -> BracketCard:
    winner = _winning_side(match)
    home_name, home_placeholder = _resolve_slot_name(match, True, match_index, matches, num_groups)
    away_name, away_placeholder = _resolve_slot_name(match, False, match_index, matches, num_groups)
    return BracketCard(
        match_id=match.id,
        stage=match.stage,
        label=get_knockout_match_label(match.stage, match_index),
        home=BracketSlot(name=home_name, score=match.home_score, is_winner=winner == "home",
                         is_placeholder=home_placeholder),
        away=BracketSlot(name=away_name, score=match.away_score, is_winner=winner == "away",
                         is_placeholder=away_placeholder),
        status=match.status,
        status_label=MATCH_STATUS_LABELS.get(match.status, match.status),
        penalty=match.penalty,
        match_date=match.match_date,
        venue=match.venue,
    )


def _placeholder_final_card() -> BracketCard:
    return BracketCard(
        match_id=None,
        stage="final",
        label=get_knockout_match_label("final", 0),
        home=BracketSlot(name=get_position_label(0, True, "final"), is_placeholder=True),
        away=BracketSlot(name=get_position_label(0, False, "final"), is_placeholder=True),
        status_label=MATCH_STATUS_LABELS["scheduled"],
    )


def get_champion(matches: Sequence[MatchRead]) -> Optional[str]:
    """Name of the team that won a completed final, if any."""
    for match in matches:
        if match.stage != "final":
            continue
        side = _winning_side(match)
        team = match.home_team if side == "home" else match.away_team if side == "away" else None
        if team is not None:
            return team.name
    return None


def partition_by_stage(matches: Sequence[MatchRead]) -> dict:
    """Knockout matches bucketed per stage, each bucket in bracket order."""
    buckets: dict = {}
    for match in sort_matches(matches):
        buckets.setdefault(match.stage, []).append(match)
    return buckets


def build_bracket_view(matches: Sequence[MatchRead], tournament: Optional[TournamentRead] = None,
                       group_stage_complete: bool = False) -> BracketView:
    """
    Derive everything the bracket page renders from one snapshot of matches.

    Layout is "full_tree" when round-of-16 or quarter-final matches exist,
    "simple" (two semi-finals around the final) otherwise, and "empty" when
    there are no knockout matches at all.
    """
    num_groups = DEFAULT_NUMBER_OF_GROUPS
    trophy_image_url = None
    if tournament is not None:
        num_groups = tournament.number_of_groups or DEFAULT_NUMBER_OF_GROUPS
        trophy_image_url = tournament.trophy_image_url

    knockout = [m for m in matches if m.stage and m.stage not in NON_KNOCKOUT_STAGES]
    if not knockout:
        message = EMPTY_KNOCKOUT_NOT_STARTED if group_stage_complete else EMPTY_GROUP_STAGE_RUNNING
        return BracketView(layout="empty", empty_message=message, trophy_image_url=trophy_image_url)

    buckets = partition_by_stage(knockout)
    stages = {
        stage: [build_bracket_card(m, i, matches, num_groups) for i, m in enumerate(bucket)]
        for stage, bucket in buckets.items()
    }

    def cards(stage: str) -> List[BracketCard]:
        return stages.get(stage, [])

    finals = cards("final")
    third_places = cards("third_place")
    view = BracketView(
        layout="simple",
        stages=stages,
        center=BracketCenter(
            final=finals[0] if finals else None,
            third_place=third_places[0] if third_places else None,
        ),
        match_list=[card for stage in buckets for card in stages[stage]],
        champion=get_champion(knockout),
        trophy_image_url=trophy_image_url,
    )

    if cards("round_of_16") or cards("quarter_final"):
        view.layout = "full_tree"
        view.left = BracketHalf(
            round_of_16=cards("round_of_16")[:4],
            quarter_final=cards("quarter_final")[:2],
            semi_final=cards("semi_final")[:1],
        )
        view.right = BracketHalf(
            round_of_16=cards("round_of_16")[4:8],
            quarter_final=cards("quarter_final")[2:4],
            semi_final=cards("semi_final")[1:2],
        )
    else:
        view.left = BracketHalf(semi_final=cards("semi_final")[:1])
        view.right = BracketHalf(semi_final=cards("semi_final")[1:2])
        if view.center.final is None:
            view.center.final = _placeholder_final_card()

    logger.debug("Built %s bracket view with %d knockout matches", view.layout, len(knockout))
    return view
