"""
Tests for the World Cup match maker.
"""

import random
import sys
from itertools import combinations
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication

from app import create_memory_controller
from config import TournamentRules
from engine.catalogs import FieldRecord, InMemoryFieldCatalog, InMemoryTeamCatalog, TeamRecord
from engine.controller import CustomMatchMaker, TournamentController
from engine.errors import InvalidConfiguration, InvalidMatchResult
from engine.tournament_settings import TournamentSettingsRegistry
from engine.world_cup import WorldCupMatchMaker, WorldCupStage
from models.schemas import TournamentSettings
from models.tournament import TournamentType
from services.key_value_store import MemoryKeyValueStore
from services.persistence import TournamentStore
from services.tournament_config import load_registry


TEAM_IDS = list("ABCDEFGH")


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication instance for the test session."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv)
    yield app


def world_cup_settings(max_teams=16, same_group=0, same_match=0):
    return TournamentSettings(
        id="wc",
        type=TournamentType.CUSTOM,
        max_teams=max_teams,
        humans_in_same_group_chance=same_group,
        humans_in_same_match_chance=same_match,
    )


def make_controller(maker, store=None, same_group=0, same_match=0, seed=7):
    teams = [TeamRecord(id=t, name=f"Team {t}", home_field_id=f"{t}_park") for t in TEAM_IDS]
    fields = [FieldRecord(id=f"{t}_park", name=f"{t} Park") for t in TEAM_IDS]
    return TournamentController(
        registry=TournamentSettingsRegistry([world_cup_settings(8, same_group, same_match)]),
        team_catalog=InMemoryTeamCatalog(teams, random.Random(1)),
        field_catalog=InMemoryFieldCatalog.from_teams(fields, teams, random.Random(2)),
        store=store,
        seed=seed,
        custom_match_makers={"wc": maker},
    )


def play_human_wins(controller, team_id, until=None):
    """Play human matches, team_id winning 3-0, until the predicate holds or the tournament ends."""
    t = controller.tournament
    for _ in range(500):
        match = controller.start_next_match()
        if match is None or (until is not None and until(t)):
            return match
        if match.has_team(team_id):
            other = match.team_ids[1 - match.slot_of(team_id)]
            controller.end_match(team_id, 3, other, 0)
        else:
            controller.end_match(match.team_ids[0], 2, match.team_ids[1], 1)
    return None


class TestWorldCupLayout:
    """Tests for WorldCupMatchMaker.layout."""

    def setup_method(self):
        self.maker = WorldCupMatchMaker()

    def test_sixteen_teams(self):
        layout = self.maker.layout(16)

        assert layout.num_groups == 4
        assert layout.group_matches == 24
        assert layout.group_match_days == 3
        assert [r.stage for r in layout.rounds] == [
            WorldCupStage.QUARTER_FINALS,
            WorldCupStage.SEMI_FINALS,
            WorldCupStage.THIRD_PLACE,
            WorldCupStage.FINAL,
        ]
        assert layout.max_matches == 32
        assert layout.max_rounds == 7

    def test_stage_of_match(self):
        layout = self.maker.layout(16)

        assert layout.stage_of_match(0) == WorldCupStage.GROUP_STAGE
        assert layout.stage_of_match(23) == WorldCupStage.GROUP_STAGE
        assert layout.stage_of_match(24) == WorldCupStage.QUARTER_FINALS
        assert layout.stage_of_match(28) == WorldCupStage.SEMI_FINALS
        assert layout.stage_of_match(30) == WorldCupStage.THIRD_PLACE
        assert layout.stage_of_match(31) == WorldCupStage.FINAL
        assert layout.stage_of_match(32) is None

    def test_two_groups_go_straight_to_semi_finals(self):
        layout = self.maker.layout(8)

        assert layout.group_matches == 12
        assert [r.stage for r in layout.rounds] == [
            WorldCupStage.SEMI_FINALS, WorldCupStage.THIRD_PLACE, WorldCupStage.FINAL,
        ]
        assert layout.max_matches == 16

    def test_without_third_place(self):
        layout = WorldCupMatchMaker(play_for_third_place=False).layout(16)

        assert layout.max_matches == 31
        final = layout.rounds[-1]
        assert final.stage == WorldCupStage.FINAL
        assert layout.rounds[final.feeds_from].stage == WorldCupStage.SEMI_FINALS

    def test_groups_of_three(self):
        layout = WorldCupMatchMaker(teams_per_group=3).layout(12)

        assert layout.num_groups == 4
        assert layout.group_matches == 12
        assert layout.group_match_days == 3

    @pytest.mark.parametrize("teams_per_group,num_teams", [(4, 10), (4, 12), (4, 4), (2, 8)])
    def test_invalid_sizes(self, teams_per_group, num_teams):
        with pytest.raises(InvalidConfiguration):
            WorldCupMatchMaker(teams_per_group=teams_per_group).layout(num_teams)

    def test_derive_settings(self):
        derived = self.maker.derive_settings(world_cup_settings())

        assert derived.type == TournamentType.CUSTOM
        assert derived.max_matches == 32
        assert derived.final_match_index == 31
        assert derived.winner_next_match == ()

    def test_derive_settings_checks_team_limits(self):
        maker = WorldCupMatchMaker(rules=TournamentRules(max_teams=8))

        with pytest.raises(InvalidConfiguration):
            maker.derive_settings(world_cup_settings(16))

    def test_is_custom_match_maker(self):
        assert isinstance(self.maker, CustomMatchMaker)


class TestGroupDraw:
    """Tests for WorldCupMatchMaker.create_matches."""

    def setup_method(self):
        self.maker = WorldCupMatchMaker()
        self.teams = [f"T{i:02d}" for i in range(16)]

    def create(self, players=(), same_group=0, same_match=0, seed=1):
        derived = self.maker.derive_settings(world_cup_settings(16, same_group, same_match))
        return self.maker.create_matches(derived, self.teams, list(players), random.Random(seed))

    def test_groups_split_the_teams(self):
        schedule = self.create()

        assert [len(g.team_ids) for g in schedule.groups] == [4, 4, 4, 4]
        assert sorted(t for g in schedule.groups for t in g.team_ids) == self.teams

    def test_every_pair_meets_once_in_its_group(self):
        schedule = self.create()
        group_matches = schedule.matches[:24]

        for group in schedule.groups:
            pairs = [frozenset(m.team_ids) for m in group_matches if group.has_team(m.team_ids[0])]
            assert all(group.has_team(m.team_ids[1]) for m in group_matches if group.has_team(m.team_ids[0]))
            assert sorted(pairs, key=sorted) == sorted(
                (frozenset(p) for p in combinations(group.team_ids, 2)), key=sorted
            )

    def test_one_match_per_team_per_day(self):
        schedule = self.create()

        for day in range(3):
            playing = [t for m in schedule.matches[:24] if m.match_day == day for t in m.team_ids]
            assert sorted(playing) == self.teams

    def test_knockout_matches_start_empty(self):
        schedule = self.create()
        knockout = schedule.matches[24:]

        assert len(knockout) == 8
        assert not any(m.has_teams for m in knockout)
        assert all(m.needs_winner for m in knockout)
        assert [m.match_day for m in knockout] == [3, 3, 3, 3, 4, 4, 5, 6]

    def test_human_plays_first_match(self):
        schedule = self.create(players=["T05"])

        assert schedule.groups[0].team_ids[0] == "T05"
        assert schedule.matches[0].has_team("T05")

    def test_humans_in_same_match(self):
        schedule = self.create(players=["T05", "T09"], same_group=100, same_match=100)

        assert set(schedule.matches[0].team_ids) == {"T05", "T09"}
        assert schedule.report.humans_in_same_group
        assert schedule.report.humans_in_same_match

    def test_humans_in_same_group_only(self):
        schedule = self.create(players=["T05", "T09"], same_group=100, same_match=0)

        assert schedule.groups[0].has_team("T09")
        assert not schedule.matches[0].has_team("T09")
        assert not schedule.report.humans_in_same_match

    def test_humans_in_different_groups(self):
        schedule = self.create(players=["T05", "T09"])

        assert not schedule.groups[0].has_team("T09")
        assert not schedule.report.humans_in_same_group

    def test_same_seed_same_draw(self):
        first = self.create(seed=4)
        second = self.create(seed=4)

        assert [g.team_ids for g in first.groups] == [g.team_ids for g in second.groups]
        assert [m.team_ids for m in first.matches] == [m.team_ids for m in second.matches]

    def test_wrong_team_count(self):
        derived = self.maker.derive_settings(world_cup_settings(16))

        with pytest.raises(InvalidConfiguration):
            self.maker.create_matches(derived, self.teams[:12], [], random.Random(1))


class TestWorldCupTournament:
    """Tests for a World Cup run by the tournament controller."""

    def setup_method(self):
        self.maker = WorldCupMatchMaker()

    def test_start(self, qapp):
        controller = make_controller(self.maker)
        t = controller.start_new_tournament("wc", ["A"])

        assert t.type == TournamentType.CUSTOM
        assert len(t.match_infos) == 16
        assert len(t.groups) == 2
        assert t.current_match_index == 0
        assert t.current_match.has_team("A")

    def test_knockout_matches_need_a_winner(self, qapp):
        controller = make_controller(self.maker)
        t = controller.start_new_tournament("wc", ["A"])

        assert not any(m.needs_winner for m in t.match_infos[:12])
        assert all(m.needs_winner for m in t.match_infos[12:])

    def test_group_stage_seeds_semi_finals(self, qapp):
        controller = make_controller(self.maker)
        t = controller.start_new_tournament("wc", ["A"])

        match = play_human_wins(controller, "A", until=lambda t: t.current_match_index >= 12)

        first = self.maker.group_standings(t, 0)
        second = self.maker.group_standings(t, 1)
        assert first[0].team_id == "A"
        assert first[0].points == 9
        assert t.match_infos[12].team_ids == [first[0].team_id, second[1].team_id]
        assert t.match_infos[13].team_ids == [second[0].team_id, first[1].team_id]
        assert match is t.match_infos[12]
        assert match.is_player[0]

    def test_knockout_draw_rejected(self, qapp):
        controller = make_controller(self.maker)
        t = controller.start_new_tournament("wc", ["A"])
        match = play_human_wins(controller, "A", until=lambda t: t.current_match_index >= 12)

        with pytest.raises(InvalidMatchResult):
            controller.end_match(match.team_ids[0], 1, match.team_ids[1], 1)
        assert t.current_match_index == 12

    def test_play_through(self, qapp):
        controller = make_controller(self.maker)
        t = controller.start_new_tournament("wc", ["A"])

        play_human_wins(controller, "A")

        semi_a, semi_b, third, final = t.match_infos[12:]
        assert t.done
        assert controller.win_team_id == "A"
        assert set(final.team_ids) == {semi_a.winner_id, semi_b.winner_id}
        assert set(third.team_ids) == {semi_a.loser_id, semi_b.loser_id}
        assert third.is_done
        assert all(m.is_done for m in t.match_infos)

    def test_ai_only_world_cup_runs_to_the_end(self, qapp):
        controller = make_controller(self.maker)
        messages = MagicMock()
        controller.system_message.connect(messages)

        t = controller.start_new_tournament("wc", [])

        assert t.done
        assert controller.win_team_id in TEAM_IDS
        messages.assert_not_called()

    def test_humans_meet_in_first_match(self, qapp):
        controller = make_controller(self.maker, same_group=100, same_match=100)
        t = controller.start_new_tournament("wc", ["A", "B"])

        assert t.current_match_index == 0
        assert set(t.current_match.team_ids) == {"A", "B"}
        assert t.current_match.is_player == [True, True]

    @pytest.mark.parametrize("stop_at", [4, 12])
    def test_load_and_finish(self, qapp, stop_at):
        store = TournamentStore(MemoryKeyValueStore())
        first = make_controller(self.maker, store=store)
        first.start_new_tournament("wc", ["A"])
        play_human_wins(first, "A", until=lambda t: t.current_match_index >= stop_at)

        second = make_controller(WorldCupMatchMaker(), store=store, seed=99)
        assert second.load()
        t = second.tournament
        assert [m.team_ids for m in t.match_infos] == [m.team_ids for m in first.tournament.match_infos]
        assert all(m.needs_winner for m in t.match_infos[12:])

        play_human_wins(second, "A")

        assert t.done
        assert second.win_team_id == "A"
        assert t.match_infos[12].has_team("A")


class TestDefaultWorldCup:
    """Tests for the built-in world_cup tournament."""

    def test_sixteen_team_world_cup(self, qapp, tmp_path):
        controller = create_memory_controller(seed=3, registry=load_registry(tmp_path / "tournaments.json"))
        t = controller.start_new_tournament("world_cup", ["lions"])

        assert len(t.match_infos) == 32
        assert len(t.groups) == 4
        assert t.current_match.has_team("lions")

        play_human_wins(controller, "lions")

        assert t.done
        assert controller.win_team_id == "lions"
        assert all(m.has_teams for m in t.match_infos[24:])
