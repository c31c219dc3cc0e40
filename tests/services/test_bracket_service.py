import logging

import pytest

from app.schemas.match_schemas import MatchRead, PenaltyOutcome
from app.schemas.team_schemas import TeamRef
from app.schemas.tournament_schemas import TournamentRead
from app.services import bracket_service
from app.services.bracket_service import (
    build_bracket_view,
    generate_group_pairings,
    get_group_letter,
    get_intelligent_source_text,
    get_knockout_match_label,
    get_position_label,
    get_stage_label,
    get_team_display_name,
    sort_matches,
)


def make_match(match_id: int, stage: str, **kwargs) -> MatchRead:
    return MatchRead(id=match_id, stage=stage, **kwargs)


def team(team_id: int, name: str) -> TeamRef:
    return TeamRef(id=team_id, name=name)


@pytest.fixture
def eight_team_knockout():
    """4 quarter-finals, 2 semi-finals, final and third place, nothing resolved yet."""
    matches = [make_match(i, "quarter_final", round=i) for i in range(1, 5)]
    matches += [make_match(5, "semi_final", round=1), make_match(6, "semi_final", round=2)]
    matches += [make_match(7, "final", round=1), make_match(8, "third_place", round=1)]
    return matches


class TestStageLabels:

    def test_known_stage_labels(self):
        assert get_stage_label("round_of_16") == "round of 16"
        assert get_stage_label("quarter_final") == "quarter-final"
        assert get_stage_label("semi_final") == "semi-final"
        assert get_stage_label("final") == "final"
        assert get_stage_label("third_place") == "third place"

    def test_unknown_stage_passes_through_and_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="app.services.bracket_service"):
            assert get_stage_label("playoff_round") == "playoff_round"
        assert "playoff_round" in caplog.text

    def test_lookup_tables_are_read_only(self):
        with pytest.raises(TypeError):
            bracket_service.STAGE_LABELS["final"] = "grand final"

    def test_knockout_match_label(self):
        assert get_knockout_match_label("semi_final", 0) == "semi-final 1"
        assert get_knockout_match_label("quarter_final", 3) == "quarter-final 4"

    @pytest.mark.parametrize("index", [0, 1, 7])
    def test_single_match_stages_ignore_index(self, index):
        assert get_knockout_match_label("final", index) == "final"
        assert get_knockout_match_label("third_place", index) == "third place"

    def test_sort_matches_uses_stage_order_then_position(self):
        matches = [
            make_match(1, "third_place", round=1),
            make_match(2, "final", round=1),
            make_match(3, "semi_final", bracket_position=2),
            make_match(4, "quarter_final", round=1),
            make_match(5, "semi_final", bracket_position=1),
            make_match(6, "round_of_16", round=3),
        ]
        assert [m.id for m in sort_matches(matches)] == [6, 4, 5, 3, 2, 1]

    def test_sort_matches_is_stable_without_positions(self):
        matches = [make_match(9, "semi_final"), make_match(3, "semi_final")]
        assert [m.id for m in sort_matches(matches)] == [9, 3]


class TestGroupPairings:

    def test_four_groups(self):
        assert generate_group_pairings(4) == [("A1", "B2"), ("B1", "A2"), ("C1", "D2"), ("D1", "C2")]

    @pytest.mark.parametrize("num_groups", [2, 4, 6, 8])
    def test_even_group_counts_give_one_pairing_per_group(self, num_groups):
        assert len(generate_group_pairings(num_groups)) == num_groups

    def test_odd_group_count_drops_trailing_group(self):
        assert generate_group_pairings(3) == generate_group_pairings(2)
        assert generate_group_pairings(1) == []

    def test_no_groups(self):
        assert generate_group_pairings(0) == []

    def test_group_letters(self):
        assert get_group_letter(1) == "A"
        assert get_group_letter(8) == "H"
        assert get_group_letter(9) == "9"

    def test_groups_beyond_letters_use_numbers(self):
        assert generate_group_pairings(10)[-2:] == [("91", "102"), ("101", "92")]


class TestPositionLabels:

    def test_final_slots(self):
        assert get_position_label(0, True, "final") == "winner of semi-final 1"
        assert get_position_label(5, False, "final") == "winner of semi-final 2"

    def test_third_place_slots(self):
        assert get_position_label(0, True, "third_place") == "loser 1"
        assert get_position_label(0, False, "third_place") == "loser 2"

    def test_pairing_lookup(self):
        assert get_position_label(0, True, "quarter_final", 4) == "A1"
        assert get_position_label(0, False, "quarter_final", 4) == "B2"
        assert get_position_label(3, True, "quarter_final", 4) == "D1"
        assert get_position_label(3, False, "quarter_final", 4) == "C2"

    def test_default_two_groups(self):
        assert get_position_label(1, True, "semi_final") == "B1"
        assert get_position_label(1, False, "semi_final") == "A2"

    def test_fallback_when_index_exceeds_pairings(self):
        # Two groups give two pairings; indexes 2 and 3 are guessed
        assert get_position_label(2, True, "quarter_final", 2) == "C1"
        assert get_position_label(2, False, "quarter_final", 2) == "D2"
        assert get_position_label(3, True, "quarter_final", 2) == "D1"
        assert get_position_label(3, False, "quarter_final", 2) == "C2"

    def test_fallback_for_odd_group_count(self):
        assert get_position_label(2, True, "quarter_final", 3) == "C1"
        assert get_position_label(2, False, "quarter_final", 3) == "D2"


class TestIntelligentSourceText:

    def test_seed(self):
        assert get_intelligent_source_text("SEED:3", []) == "seed 3"

    def test_missing_source(self):
        assert get_intelligent_source_text(None, []) == ""
        assert get_intelligent_source_text("", []) == ""

    def test_unknown_match_id(self):
        matches = [make_match(1, "semi_final")]
        assert get_intelligent_source_text("WINNER_OF:999", matches) == ""

    @pytest.mark.parametrize("source", ["WINNER_OF:", "SOMETHING:1", "garbage"])
    def test_malformed_sources(self, source):
        assert get_intelligent_source_text(source, [make_match(1, "semi_final")]) == ""

    def test_group_match_source_gives_position_label(self):
        matches = [make_match(10, "group", group_number=2)]
        assert get_intelligent_source_text("WINNER_OF:10", matches) == "B1"
        assert get_intelligent_source_text("LOSER_OF:10", matches) == "B2"

    def test_group_match_without_group_number_defaults_to_first_group(self):
        matches = [make_match(10, "group")]
        assert get_intelligent_source_text("WINNER_OF:10", matches) == "A1"

    def test_knockout_source_describes_match(self):
        matches = [
            make_match(21, "semi_final", bracket_position=2),
            make_match(20, "semi_final", bracket_position=1),
        ]
        assert get_intelligent_source_text("WINNER_OF:21", matches) == "winner of semi-final 2"
        assert get_intelligent_source_text("LOSER_OF:20", matches) == "loser of semi-final 1"

    def test_knockout_source_falls_back_to_round(self):
        matches = [make_match(31, "quarter_final", round=2), make_match(30, "quarter_final", round=1)]
        assert get_intelligent_source_text("WINNER_OF:31", matches) == "winner of quarter-final 2"

    def test_final_source(self):
        matches = [make_match(40, "final")]
        assert get_intelligent_source_text("LOSER_OF:40", matches) == "loser of final"


class TestTeamDisplayName:

    def test_resolved_team_wins_over_source(self):
        semi = make_match(1, "semi_final", bracket_position=1)
        final = make_match(2, "final", home_team=team(5, "X"), home_team_source="WINNER_OF:1")
        assert get_team_display_name(final, True, 0, [semi, final]) == "X"

    def test_source_used_when_team_missing(self):
        semi = make_match(1, "semi_final", bracket_position=1)
        final = make_match(2, "final", away_team_source="WINNER_OF:1")
        assert get_team_display_name(final, False, 0, [semi, final]) == "winner of semi-final 1"

    def test_unresolvable_source_falls_back_to_position(self):
        qf = make_match(1, "quarter_final", home_team_source="WINNER_OF:404")
        assert get_team_display_name(qf, True, 0, [qf], num_groups=4) == "A1"

    def test_position_used_without_team_or_source(self):
        qf = make_match(1, "quarter_final")
        assert get_team_display_name(qf, False, 1, [qf], num_groups=4) == "A2"


class TestBracketView:

    def test_end_to_end_full_tree(self, eight_team_knockout):
        tournament = TournamentRead(id=1, name="Company Cup", type="groups_knockout", number_of_groups=4)
        view = build_bracket_view(eight_team_knockout, tournament=tournament)

        assert view.layout == "full_tree"
        first_qf = view.stages["quarter_final"][0]
        assert (first_qf.home.name, first_qf.away.name) == ("A1", "B2")
        assert first_qf.home.is_placeholder
        assert first_qf.label == "quarter-final 1"

        assert view.center.final.home.name == "winner of semi-final 1"
        assert view.center.final.away.name == "winner of semi-final 2"
        assert view.center.third_place.home.name == "loser 1"

        assert [c.match_id for c in view.left.quarter_final] == [1, 2]
        assert [c.match_id for c in view.right.quarter_final] == [3, 4]
        assert [c.match_id for c in view.left.semi_final] == [5]
        assert [c.match_id for c in view.right.semi_final] == [6]

    def test_round_of_16_split_in_halves(self):
        matches = [make_match(i, "round_of_16", bracket_position=i) for i in range(1, 9)]
        view = build_bracket_view(matches)
        assert view.layout == "full_tree"
        assert [c.match_id for c in view.left.round_of_16] == [1, 2, 3, 4]
        assert [c.match_id for c in view.right.round_of_16] == [5, 6, 7, 8]
        assert view.center.final is None

    def test_match_list_in_display_order(self, eight_team_knockout):
        view = build_bracket_view(list(reversed(eight_team_knockout)))
        assert [c.match_id for c in view.match_list] == [1, 2, 3, 4, 5, 6, 7, 8]

    def test_simple_view_with_placeholder_final(self):
        matches = [make_match(1, "semi_final", round=1), make_match(2, "semi_final", round=2)]
        view = build_bracket_view(matches)

        assert view.layout == "simple"
        assert view.left.semi_final[0].match_id == 1
        assert view.right.semi_final[0].match_id == 2
        assert view.center.final.match_id is None
        assert view.center.final.home.name == "winner of semi-final 1"
        assert view.center.final.away.name == "winner of semi-final 2"

    def test_simple_view_keeps_real_final(self):
        matches = [
            make_match(1, "semi_final", round=1),
            make_match(2, "semi_final", round=2),
            make_match(3, "final", home_team_source="WINNER_OF:1", away_team_source="WINNER_OF:2"),
        ]
        view = build_bracket_view(matches)
        assert view.center.final.match_id == 3
        assert view.center.final.home.name == "winner of semi-final 1"

    def test_empty_while_group_stage_running(self):
        view = build_bracket_view([make_match(1, "group", group_number=1)], group_stage_complete=False)
        assert view.layout == "empty"
        assert view.empty_message == bracket_service.EMPTY_GROUP_STAGE_RUNNING

    def test_empty_after_group_stage(self):
        view = build_bracket_view([], group_stage_complete=True)
        assert view.layout == "empty"
        assert view.empty_message == bracket_service.EMPTY_KNOCKOUT_NOT_STARTED

    def test_group_sources_resolve_against_group_matches(self):
        matches = [
            make_match(1, "group", group_number=1),
            make_match(2, "group", group_number=2),
            make_match(3, "semi_final", round=1, home_team_source="WINNER_OF:1", away_team_source="LOSER_OF:2"),
        ]
        view = build_bracket_view(matches)
        card = view.stages["semi_final"][0]
        assert (card.home.name, card.away.name) == ("A1", "B2")
        assert "group" not in view.stages

    def test_winner_and_champion(self):
        final = make_match(
            1, "final", status="completed", home_score=1, away_score=1,
            home_team=team(1, "Finance"), away_team=team(2, "Engineering"),
            penalty=PenaltyOutcome(home_score=3, away_score=4),
        )
        view = build_bracket_view([final])
        assert view.center.final.away.is_winner
        assert not view.center.final.home.is_winner
        assert view.center.final.status_label == "finished"
        assert view.champion == "Engineering"

    def test_no_champion_before_final_is_played(self, eight_team_knockout):
        assert build_bracket_view(eight_team_knockout).champion is None

    def test_trophy_image_comes_from_tournament(self):
        tournament = TournamentRead(id=1, name="Cup", trophy_image_url="/uploads/trophy.png")
        view = build_bracket_view([], tournament=tournament)
        assert view.trophy_image_url == "/uploads/trophy.png"

    def test_same_snapshot_gives_same_view(self, eight_team_knockout):
        before = [m.model_dump() for m in eight_team_knockout]
        first = build_bracket_view(eight_team_knockout, group_stage_complete=True)
        second = build_bracket_view(eight_team_knockout, group_stage_complete=True)
        assert first.model_dump() == second.model_dump()
        assert [m.model_dump() for m in eight_team_knockout] == before
