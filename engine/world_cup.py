"""
World Cup Match Maker

A group stage followed by a knockout bracket, registered as a custom
tournament type.

Teams are drawn into groups that play a single round-robin. The top two
of every group go through: the winner of each group meets the runner-up
of its neighbouring group, and neighbours are placed in opposite halves
of the bracket so they can only meet again in the final. The semi-final
losers play for third place before the final.

16 teams in groups of 4:
    24 group matches over 3 match days,
    quarter-finals 4, semi-finals 2, third place 1, final 1 (32 matches)

Usage:
    maker = WorldCupMatchMaker()
    controller = TournamentController(..., custom_match_makers={"world_cup": maker})
    controller.start_new_tournament("world_cup", ["lions"])
    table = maker.group_standings(controller.tournament, 0)
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import TOURNAMENT_RULES, TournamentRules
from engine.errors import InvalidConfiguration
from engine.match_info import GroupInfo, MatchInfo
from engine.match_maker import Schedule, ScheduleReport
from engine.standings import StandingsEngine, TeamStats
from engine.tournament import Tournament
from engine.tournament_settings import DerivedSettings, is_power_of_two
from models.schemas import TournamentSettings
from services.logger import get_logger


log = get_logger("engine.world_cup")


class WorldCupStage(Enum):
    GROUP_STAGE = "group_stage"
    ROUND_OF_32 = "round_of_32"
    ROUND_OF_16 = "round_of_16"
    QUARTER_FINALS = "quarter_finals"
    SEMI_FINALS = "semi_finals"
    THIRD_PLACE = "third_place"
    FINAL = "final"


# Knockout round named by its number of matches
_STAGE_BY_SIZE = {
    16: WorldCupStage.ROUND_OF_32,
    8: WorldCupStage.ROUND_OF_16,
    4: WorldCupStage.QUARTER_FINALS,
    2: WorldCupStage.SEMI_FINALS,
}


@dataclass(frozen=True)
class KnockoutRound:
    """
    One knockout round.

    Match j of the round is fed by matches 2j and 2j+1 of the round at
    feeds_from (winners, or losers for the third place match). The first
    round has feeds_from -1 and is filled from the group tables.
    """
    stage: WorldCupStage
    first_match: int
    num_matches: int
    match_day: int
    feeds_from: int = -1
    losers: bool = False


@dataclass(frozen=True)
class WorldCupLayout:
    """Where every stage sits in the schedule."""
    num_groups: int
    teams_per_group: int
    group_matches: int
    group_match_days: int
    rounds: tuple[KnockoutRound, ...]

    @property
    def max_matches(self) -> int:
        return self.group_matches + sum(r.num_matches for r in self.rounds)

    @property
    def max_rounds(self) -> int:
        return self.group_match_days + len(self.rounds)

    def stage_of_match(self, index: int) -> Optional[WorldCupStage]:
        """Stage a match index belongs to, or None if out of range."""
        if 0 <= index < self.group_matches:
            return WorldCupStage.GROUP_STAGE
        for knockout in self.rounds:
            if knockout.first_match <= index < knockout.first_match + knockout.num_matches:
                return knockout.stage
        return None


def _group_days(team_ids: list[str]) -> list[list[tuple[str, str]]]:
    """
    Single round-robin of one group, one list of pairs per match day.

    The first team stays in place while the others rotate, so it plays on
    the first day against the last team. Odd groups get a rest slot right
    after the first team.
    """
    slots: list[Optional[str]] = list(team_ids)
    if len(slots) % 2:
        slots.insert(1, None)
    fixed, rest = slots[0], slots[1:]
    size = len(slots)

    days = []
    for _ in range(size - 1):
        order = [fixed] + rest
        pairs = []
        for i in range(size // 2):
            a, b = order[i], order[size - 1 - i]
            if a is not None and b is not None:
                pairs.append((a, b))
        days.append(pairs)
        rest = rest[-1:] + rest[:-1]
    return days


class WorldCupMatchMaker:
    """
    Schedule provider for group stage plus knockout tournaments.

    Group tables are not stored; they are recomputed from the group
    matches whenever they are needed.
    """

    def __init__(
        self,
        teams_per_group: int = 4,
        play_for_third_place: bool = True,
        rules: TournamentRules = TOURNAMENT_RULES,
    ):
        self.teams_per_group = teams_per_group
        self.play_for_third_place = play_for_third_place
        self.rules = rules
        self._standings = StandingsEngine(rules)

    def layout(self, num_teams: int) -> WorldCupLayout:
        """
        Lay out the stages for a number of teams.

        Raises:
            InvalidConfiguration: If the teams cannot be split into a power of two groups
        """
        n = self.teams_per_group
        if n < 3:
            raise InvalidConfiguration(f"World cup groups need at least 3 teams, got {n}")
        if num_teams % n:
            raise InvalidConfiguration(
                f"World cup with groups of {n} cannot take {num_teams} teams"
            )
        num_groups = num_teams // n
        if num_groups < 2 or not is_power_of_two(num_groups):
            raise InvalidConfiguration(
                f"World cup needs a power of two groups (at least 2), got {num_groups}"
            )

        group_days = n - 1 if n % 2 == 0 else n
        group_matches = num_groups * n * (n - 1) // 2

        rounds = []
        first = group_matches
        day = group_days
        size = num_groups
        while size >= 2:
            rounds.append(KnockoutRound(
                stage=_STAGE_BY_SIZE.get(size, WorldCupStage.ROUND_OF_32),
                first_match=first,
                num_matches=size,
                match_day=day,
                feeds_from=len(rounds) - 1,
            ))
            first += size
            day += 1
            size //= 2

        semi_finals = len(rounds) - 1
        if self.play_for_third_place:
            rounds.append(KnockoutRound(
                stage=WorldCupStage.THIRD_PLACE,
                first_match=first,
                num_matches=1,
                match_day=day,
                feeds_from=semi_finals,
                losers=True,
            ))
            first += 1
            day += 1
        rounds.append(KnockoutRound(
            stage=WorldCupStage.FINAL,
            first_match=first,
            num_matches=1,
            match_day=day,
            feeds_from=semi_finals,
        ))

        return WorldCupLayout(
            num_groups=num_groups,
            teams_per_group=n,
            group_matches=group_matches,
            group_match_days=group_days,
            rounds=tuple(rounds),
        )

    # ============ CustomMatchMaker ============

    def derive_settings(self, settings: TournamentSettings) -> DerivedSettings:
        max_teams = settings.max_teams
        if not self.rules.min_teams <= max_teams <= self.rules.max_teams:
            raise InvalidConfiguration(
                f"Tournament '{settings.id}' needs {self.rules.min_teams}-{self.rules.max_teams} teams, "
                f"got {max_teams}"
            )
        layout = self.layout(max_teams)
        return DerivedSettings(
            settings=settings,
            max_matches=layout.max_matches,
            max_rounds=layout.max_rounds,
        )

    def create_matches(
        self,
        derived: DerivedSettings,
        team_ids: list[str],
        player_team_ids: list[str],
        rng: random.Random,
    ) -> Schedule:
        """
        Draw the groups and lay out every match.

        Knockout matches start empty and are filled as the tournament
        progresses.

        Raises:
            InvalidConfiguration: Wrong number of teams, or a human team not in play
        """
        if len(team_ids) != derived.max_teams:
            raise InvalidConfiguration(
                f"Tournament '{derived.id}' needs {derived.max_teams} teams, got {len(team_ids)}"
            )
        for team_id in player_team_ids:
            if team_id not in team_ids:
                raise InvalidConfiguration(f"Human team {team_id} is not in the tournament")

        layout = self.layout(len(team_ids))
        report = ScheduleReport(
            tournament_type=derived.type,
            team_ids=list(team_ids),
            player_team_ids=list(player_team_ids),
        )
        groups = self._draw_groups(derived.settings, layout, team_ids, player_team_ids, rng, report)

        matches = []
        group_days = [_group_days(g) for g in groups]
        for day in range(layout.group_match_days):
            day_pairs = []
            for days in group_days:
                for a, b in days[day]:
                    matches.append(MatchInfo(team_ids=[a, b], match_day=day))
                    day_pairs.append((a, b))
            report.rounds.append(day_pairs)

        for knockout in layout.rounds:
            for _ in range(knockout.num_matches):
                matches.append(MatchInfo(match_day=knockout.match_day, needs_winner=True))

        log.debug("World cup groups drawn: %s", groups)
        return Schedule(
            matches=matches,
            report=report,
            groups=[GroupInfo(team_ids=g) for g in groups],
        )

    def on_new_or_loaded(self, tournament: Tournament) -> None:
        layout = self.layout(len(tournament.team_ids))
        for index, match in enumerate(tournament.match_infos):
            match.needs_winner = index >= layout.group_matches

    def on_match_ended(self, tournament: Tournament) -> None:
        """Move qualifiers into the knockout matches once their places are decided."""
        layout = self.layout(len(tournament.team_ids))
        if tournament.current_match_index < layout.group_matches:
            return

        tables = None
        for knockout in layout.rounds:
            for j in range(knockout.num_matches):
                match = tournament.match_infos[knockout.first_match + j]
                for slot in (0, 1):
                    if match.team_ids[slot]:
                        continue
                    if knockout.feeds_from < 0:
                        if tables is None:
                            tables = [self.group_standings(tournament, g) for g in range(layout.num_groups)]
                        team_id = self._group_qualifier(tables, j, slot)
                    else:
                        feeder = layout.rounds[knockout.feeds_from]
                        source = tournament.match_infos[feeder.first_match + 2 * j + slot]
                        team_id = source.loser_id if knockout.losers else source.winner_id
                    if team_id:
                        match.set_slot(slot, team_id,
                                       tournament.is_player_team(team_id),
                                       tournament.get_player_team_index(team_id))

    # ============ Groups ============

    def group_standings(self, tournament: Tournament, group_index: int) -> list[TeamStats]:
        """
        The table of one group, best team first.

        Only the group's own matches count. Ties are broken the same way
        every time for a given tournament seed.
        """
        group = tournament.groups[group_index]
        layout = self.layout(len(tournament.team_ids))
        matches = [
            m for m in tournament.match_infos[:layout.group_matches]
            if group.has_team(m.team_ids[0]) and group.has_team(m.team_ids[1])
        ]
        stats = {
            team_id: TeamStats(team_id=team_id, human_index=tournament.get_player_team_index(team_id))
            for team_id in group.team_ids
        }
        rng = random.Random(f"{tournament.random_seed}-group-{group_index}")
        return self._standings.recompute(
            matches, len(matches), group.team_ids, stats, rng, final_match_index=len(matches),
        )

    @staticmethod
    def _group_qualifier(tables: list[list[TeamStats]], match: int, slot: int) -> Optional[str]:
        # Match k: winner of group 2k vs runner-up of 2k+1, then the mirrored pairs
        half = len(tables) // 2
        pair = match % half
        winner_group, runner_up_group = 2 * pair, 2 * pair + 1
        if match >= half:
            winner_group, runner_up_group = runner_up_group, winner_group
        if slot == 0:
            table, position = tables[winner_group], 0
        else:
            table, position = tables[runner_up_group], 1
        return table[position].team_id if len(table) > position else None

    def _draw_groups(
        self,
        settings: TournamentSettings,
        layout: WorldCupLayout,
        team_ids: list[str],
        player_team_ids: list[str],
        rng: random.Random,
        report: ScheduleReport,
    ) -> list[list[str]]:
        """Place the humans, then fill the groups with the shuffled AI teams."""
        n = layout.teams_per_group
        groups: list[list[Optional[str]]] = [[None] * n for _ in range(layout.num_groups)]

        if player_team_ids:
            groups[0][0] = player_team_ids[0]
        if len(player_team_ids) > 1:
            same_group = rng.random() * 100.0 < settings.humans_in_same_group_chance
            same_match = (rng.random() * 100.0 < settings.humans_in_same_match_chance) and same_group
            report.humans_in_same_group = same_group
            report.humans_in_same_match = same_match
            if same_match:
                # Plays the first team on the first day
                groups[0][n - 1] = player_team_ids[1]
            elif same_group:
                groups[0][1] = player_team_ids[1]
            else:
                groups[rng.randrange(1, layout.num_groups)][0] = player_team_ids[1]

        others = [t for t in team_ids if t not in player_team_ids]
        rng.shuffle(others)
        remaining = iter(others)
        for group in groups:
            for position in range(n):
                if group[position] is None:
                    group[position] = next(remaining)
        return groups
