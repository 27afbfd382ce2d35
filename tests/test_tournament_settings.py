"""
Tests for tournament settings derivation and the settings registry.
"""

import pytest
from pydantic import ValidationError

from config import TournamentRules
from engine.errors import InvalidConfiguration
from engine.tournament_settings import (
    TournamentSettingsRegistry,
    derive_settings,
    is_power_of_two,
)
from models.schemas import TournamentSettings
from models.tournament import TournamentType


def log_settings(max_teams: int, legs: int = 1) -> TournamentSettings:
    return TournamentSettings(id="league", type=TournamentType.LOG,
                              max_teams=max_teams, num_face_each_other=legs)


def cup_settings(max_teams: int) -> TournamentSettings:
    return TournamentSettings(id="cup", type=TournamentType.SINGLE_ELIMINATION, max_teams=max_teams)


class TestLogDerivation:
    """Tests for round-robin constants."""

    def test_four_teams_one_leg(self):
        """4 teams play 6 matches in 3 rounds, plus the final."""
        derived = derive_settings(log_settings(4))

        assert derived.min_matches == 6
        assert derived.max_matches == 7
        assert derived.matches_per_round == 2
        assert derived.max_rounds == 3
        assert derived.min_rounds == 3
        assert derived.final_match_index == 6

    def test_two_legs_double_the_matches(self):
        derived = derive_settings(log_settings(4, legs=2))

        assert derived.min_matches == 6
        assert derived.max_matches == 13
        assert derived.max_rounds == 6
        # min_rounds covers a single leg
        assert derived.min_rounds == 3

    def test_odd_team_count(self):
        """5 teams: one team rests each round."""
        derived = derive_settings(log_settings(5))

        assert derived.min_matches == 10
        assert derived.max_matches == 11
        assert derived.matches_per_round == 2
        assert derived.min_rounds == 5

    def test_no_bracket_constants(self):
        derived = derive_settings(log_settings(6))

        assert derived.winner_next_match == ()
        assert derived.matches_in_round == ()

    def test_round_of_match(self):
        """Matches are grouped into rounds; the final is on the day after the last round."""
        derived = derive_settings(log_settings(4))

        assert [derived.round_of_match(i) for i in range(7)] == [0, 0, 1, 1, 2, 2, 3]


class TestSingleEliminationDerivation:
    """Tests for bracket constants."""

    def test_eight_teams(self):
        derived = derive_settings(cup_settings(8))

        assert derived.max_matches == 7
        assert derived.matches_in_first_round == 4
        assert derived.groups_in_first_round == 2
        assert derived.matches_in_round == (4, 2, 1)
        assert derived.winner_next_match == (4, 4, 5, 5, 6, 6)
        assert derived.max_rounds == 3

    def test_four_teams(self):
        derived = derive_settings(cup_settings(4))

        assert derived.max_matches == 3
        assert derived.matches_in_round == (2, 1)
        assert derived.winner_next_match == (2, 2)

    @pytest.mark.parametrize("max_teams", [4, 8, 16, 32])
    def test_winner_map_is_a_binary_tree(self, max_teams):
        """Every match except the final feeds exactly one later match, two per parent."""
        derived = derive_settings(cup_settings(max_teams))
        next_matches = derived.winner_next_match

        assert len(next_matches) == derived.max_matches - 1
        for child, parent in enumerate(next_matches):
            assert parent > child
            assert next_matches.count(parent) == 2
        assert next_matches[-1] == derived.final_match_index

    def test_round_of_match(self):
        derived = derive_settings(cup_settings(8))

        assert [derived.round_of_match(i) for i in range(7)] == [0, 0, 0, 0, 1, 1, 2]

    @pytest.mark.parametrize("max_teams", [6, 10, 12])
    def test_not_power_of_two_rejected(self, max_teams):
        with pytest.raises(InvalidConfiguration):
            derive_settings(cup_settings(max_teams))


class TestDerivationErrors:
    """Tests for invalid configurations."""

    def test_team_count_below_rules_minimum(self):
        rules = TournamentRules(min_teams=6)

        with pytest.raises(InvalidConfiguration):
            derive_settings(log_settings(4), rules)

    def test_team_count_above_schema_maximum(self):
        with pytest.raises(ValidationError):
            log_settings(51)

    def test_custom_type_has_no_built_in_schedule(self):
        settings = TournamentSettings(id="custom", type=TournamentType.CUSTOM, max_teams=4)

        with pytest.raises(InvalidConfiguration):
            derive_settings(settings)

    def test_is_power_of_two(self):
        assert is_power_of_two(1)
        assert is_power_of_two(16)
        assert not is_power_of_two(0)
        assert not is_power_of_two(12)


class TestSchemas:
    """Tests for TournamentSettings validation."""

    def test_blank_id_rejected(self):
        with pytest.raises(ValidationError):
            TournamentSettings(id="   ")

    def test_id_is_stripped(self):
        assert TournamentSettings(id=" league ").id == "league"

    def test_chance_out_of_range(self):
        with pytest.raises(ValidationError):
            TournamentSettings(id="cup", humans_in_same_group_chance=150)

    def test_frozen(self):
        settings = log_settings(4)

        with pytest.raises(ValidationError):
            settings.max_teams = 8

    def test_name_falls_back_to_id(self):
        assert log_settings(4).name == "league"
        assert TournamentSettings(id="x", display_name="Cup X").name == "Cup X"


class TestRegistry:
    """Tests for TournamentSettingsRegistry."""

    def test_get_registered(self):
        registry = TournamentSettingsRegistry([log_settings(4), cup_settings(8)])

        assert registry.get("cup").max_teams == 8
        assert "league" in registry
        assert len(registry) == 2

    def test_unknown_id(self):
        registry = TournamentSettingsRegistry()

        with pytest.raises(InvalidConfiguration):
            registry.get("missing")

    def test_register_replaces(self):
        registry = TournamentSettingsRegistry([log_settings(4)])
        registry.register(log_settings(6))

        assert registry.get("league").max_teams == 6
        assert [s.id for s in registry] == ["league"]
