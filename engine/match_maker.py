"""
Match Maker

Builds the ordered match list of a new tournament.

Log tournament (round-robin):
    1. Every unordered pair of teams is a possible match of a leg.
    2. Each leg shuffles the pairs, seeds its first match with a pair that
       contains a human team, then fills round after round with disjoint
       pairs. A round that cannot be completed backtracks into the previous
       choices. A leg gets a bounded number of attempts, and the whole
       schedule is regenerated a bounded number of times before giving up.
    3. Every round starts with a match that shares no team with the last
       match of the previous round.
    4. Teams alternate between the left and right column from match to
       match, the first human team first.
    5. A final match between the top two teams of the log is appended.

Single elimination:
    The first round is seeded so the human teams are kept apart (or
    together) according to the tournament's chances; later rounds are
    filled as winners advance.
"""

import enum
import random
from dataclasses import dataclass, field
from typing import Iterator, Optional

from config import TOURNAMENT_RULES, TournamentRules
from engine.errors import InvalidConfiguration, SchedulingFailed
from engine.match_info import GroupInfo, MatchInfo, mark_players
from engine.tournament_settings import DerivedSettings
from models.tournament import TournamentType
from services.logger import VERBOSE, get_logger


log = get_logger("engine.match_maker")


class SortState(enum.Enum):
    """Post-processing state of a scheduled match."""
    UNSORTED = "unsorted"
    SORTED = "sorted"


@dataclass
class ScheduledPair:
    """A pairing while the schedule is being built."""
    left: str
    right: str
    state: SortState = SortState.UNSORTED
    key: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # Unordered, unaffected by swap()
        self.key = frozenset((self.left, self.right))

    def has_team(self, team_id: Optional[str]) -> bool:
        return team_id is not None and (self.left == team_id or self.right == team_id)

    def other(self, team_id: str) -> str:
        return self.right if self.left == team_id else self.left

    def swap(self) -> None:
        self.left, self.right = self.right, self.left


@dataclass
class ScheduleReport:
    """
    Explanation of how a schedule was built.

    Returned alongside the matches so callers can inspect or display the
    scheduling decisions without the engine printing anything.
    """
    tournament_type: TournamentType
    team_ids: list[str] = field(default_factory=list)
    player_team_ids: list[str] = field(default_factory=list)

    # Log tournament
    leg_attempts: list[int] = field(default_factory=list)
    regenerations: int = 0
    search_steps: int = 0
    first_match_swaps: int = 0
    column_swaps: int = 0
    rounds: list[list[tuple[str, str]]] = field(default_factory=list)

    # Single elimination and group stages
    humans_in_same_group: bool = False
    humans_in_same_match: bool = False

    def to_dict(self) -> dict:
        return {
            "tournament_type": self.tournament_type.value,
            "team_ids": list(self.team_ids),
            "player_team_ids": list(self.player_team_ids),
            "leg_attempts": list(self.leg_attempts),
            "regenerations": self.regenerations,
            "search_steps": self.search_steps,
            "first_match_swaps": self.first_match_swaps,
            "column_swaps": self.column_swaps,
            "rounds": [[list(p) for p in r] for r in self.rounds],
            "humans_in_same_group": self.humans_in_same_group,
            "humans_in_same_match": self.humans_in_same_match,
        }


@dataclass
class Schedule:
    """Result of MatchMaker.create_matches."""
    matches: list[MatchInfo]
    report: ScheduleReport
    groups: list[GroupInfo] = field(default_factory=list)


class _SearchBudget:
    """Counts backtracking steps for one leg attempt."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    def spend(self) -> bool:
        self.used += 1
        return self.used <= self.limit

    @property
    def exhausted(self) -> bool:
        return self.used > self.limit


class MatchMaker:
    """
    Generates the match list for a tournament.

    The only source of randomness is the injected random.Random, so the
    same seed always produces the same schedule.

    Usage:
        maker = MatchMaker(random.Random(seed))
        schedule = maker.create_matches(derived, team_ids, player_team_ids)
    """

    def __init__(self, rng: random.Random, rules: TournamentRules = TOURNAMENT_RULES):
        self._rng = rng
        self._rules = rules

    def create_matches(
        self,
        derived: DerivedSettings,
        team_ids: list[str],
        player_team_ids: list[str],
    ) -> Schedule:
        """
        Create all matches of a new tournament.

        Args:
            derived: Settings of the tournament
            team_ids: Teams in play order, human teams first
            player_team_ids: Human teams, in player slot order

        Returns:
            The schedule and its explain report

        Raises:
            InvalidConfiguration: If the team list does not fit the settings
            SchedulingFailed: If no valid schedule was found in the retry budget
        """
        if len(team_ids) != derived.max_teams or len(set(team_ids)) != len(team_ids):
            raise InvalidConfiguration(
                f"Tournament '{derived.id}' needs {derived.max_teams} distinct teams, "
                f"got {len(set(team_ids))}"
            )
        if any(not tid for tid in team_ids):
            raise InvalidConfiguration("Team ids cannot be empty")
        players = [pid for pid in player_team_ids if pid]
        for pid in players:
            if pid not in team_ids:
                raise InvalidConfiguration(f"Player team {pid} is not in the tournament")

        report = ScheduleReport(
            tournament_type=derived.type,
            team_ids=list(team_ids),
            player_team_ids=list(players),
        )

        if derived.type == TournamentType.LOG:
            schedule = self._create_log(derived, team_ids, players, report)
        elif derived.type == TournamentType.SINGLE_ELIMINATION:
            schedule = self._create_single_elimination(derived, team_ids, players, report)
        else:
            raise InvalidConfiguration(
                f"Tournament type {derived.type.value!r} has no built-in schedule"
            )

        for index, match in enumerate(schedule.matches):
            match.match_day = derived.round_of_match(index)
            mark_players(match, players)
        return schedule

    # ============ Log Tournament ============

    def _create_log(
        self,
        derived: DerivedSettings,
        team_ids: list[str],
        player_team_ids: list[str],
        report: ScheduleReport,
    ) -> Schedule:
        legs = derived.settings.num_face_each_other
        possible = [(a, b) for i, a in enumerate(team_ids) for b in team_ids[i + 1:]]

        all_rounds: Optional[list[list[ScheduledPair]]] = None
        for generation in range(self._rules.schedule_regenerations + 1):
            if generation > 0:
                report.regenerations += 1
                log.warning("Regenerating schedule for '%s' (attempt %d)", derived.id, generation + 1)
            all_rounds = self._create_legs(derived, team_ids, player_team_ids, possible, legs, report)
            if all_rounds is not None:
                break

        if all_rounds is None:
            raise SchedulingFailed(
                f"Could not build a round-robin schedule for '{derived.id}' "
                f"after {self._rules.schedule_regenerations + 1} generations"
            )

        report.rounds = [[(p.left, p.right) for p in r] for r in all_rounds]
        pairs = [p for r in all_rounds for p in r]
        per_round = derived.matches_per_round

        first_human = self._first_human(pairs[0], player_team_ids)

        for start in range(0, len(pairs), per_round):
            if self._set_round_first_match(pairs, start, start + per_round - 1):
                report.first_match_swaps += 1

        for p in pairs:
            p.state = SortState.UNSORTED

        if first_human is not None:
            for start in range(0, len(pairs), per_round):
                if self._alternate_team_in_round(pairs, start, start + per_round - 1, first_human):
                    report.column_swaps += 1

        for index in range(len(pairs)):
            if self._alternate_columns(pairs, index):
                report.column_swaps += 1

        matches = [MatchInfo(team_ids=[p.left, p.right]) for p in pairs]
        # Final: top two of the log, filled in when the last round is done
        matches.append(MatchInfo(needs_winner=True))

        log.debug(
            "Log schedule for '%s': %d matches, leg attempts %s, %d search steps",
            derived.id, len(matches), report.leg_attempts, report.search_steps,
        )
        return Schedule(matches=matches, report=report)

    def _create_legs(
        self,
        derived: DerivedSettings,
        team_ids: list[str],
        player_team_ids: list[str],
        possible: list[tuple[str, str]],
        legs: int,
        report: ScheduleReport,
    ) -> Optional[list[list[ScheduledPair]]]:
        all_rounds: list[list[ScheduledPair]] = []
        for leg in range(legs):
            leg_rounds = None
            attempts = 0
            for attempt in range(self._rules.leg_retry_limit):
                attempts = attempt + 1
                leg_rounds = self._create_leg(derived, team_ids, player_team_ids, possible, report)
                if leg_rounds is not None:
                    break
                log.log(VERBOSE, "Leg %d of '%s' failed, retry %d", leg + 1, derived.id, attempts)
            report.leg_attempts.append(attempts)
            if leg_rounds is None:
                log.warning("Failed to create leg %d of '%s' after %d attempts",
                            leg + 1, derived.id, attempts)
                return None
            all_rounds.extend(leg_rounds)
        return all_rounds

    def _create_leg(
        self,
        derived: DerivedSettings,
        team_ids: list[str],
        player_team_ids: list[str],
        possible: list[tuple[str, str]],
        report: ScheduleReport,
    ) -> Optional[list[list[ScheduledPair]]]:
        """Build one leg as a list of rounds, or None if the search ran out of budget."""
        pool = [ScheduledPair(a, b) for a, b in possible]
        self._rng.shuffle(pool)

        first = self._pick_first_pair(pool, player_team_ids)
        # Each team's candidate pairs, in shuffled order
        adjacency = {t: [p for p in pool if p.has_team(t)] for t in team_ids}
        used: set[frozenset] = {first.key}
        rested: set[str] = set()
        num_rounds = derived.min_rounds
        per_round = derived.matches_per_round
        budget = _SearchBudget(self._rules.round_search_budget)

        rounds: list[tuple[list[ScheduledPair], Optional[str]]] = []
        stack: list[Iterator[tuple[list[ScheduledPair], Optional[str]]]] = [
            self._round_options(team_ids, adjacency, used, rested, [first], per_round, budget)
        ]

        while stack:
            if budget.exhausted:
                break
            option = next(stack[-1], None)
            if option is None:
                stack.pop()
                if rounds:
                    self._undo_round(rounds.pop(), used, rested, first)
                continue

            pairs, rest = option
            for p in pairs:
                used.add(p.key)
            if rest is not None:
                rested.add(rest)
            rounds.append(option)

            if len(rounds) == num_rounds:
                report.search_steps += budget.used
                return [[ScheduledPair(p.left, p.right) for p in r] for r, _ in rounds]

            stack.append(
                self._round_options(team_ids, adjacency, used, rested, [], per_round, budget)
            )

        report.search_steps += budget.used
        return None

    @staticmethod
    def _undo_round(
        option: tuple[list[ScheduledPair], Optional[str]],
        used: set[frozenset],
        rested: set[str],
        first: ScheduledPair,
    ) -> None:
        pairs, rest = option
        for p in pairs:
            if p is not first:
                used.discard(p.key)
        if rest is not None:
            rested.discard(rest)

    def _round_options(
        self,
        team_ids: list[str],
        adjacency: dict[str, list[ScheduledPair]],
        used: set[frozenset],
        rested: set[str],
        seed: list[ScheduledPair],
        per_round: int,
        budget: _SearchBudget,
    ) -> Iterator[tuple[list[ScheduledPair], Optional[str]]]:
        """Yield every way of completing a round, in the shuffled pool order."""
        seeded = {t for p in seed for t in (p.left, p.right)}
        uncovered = [t for t in team_ids if t not in seeded]
        # Teams beyond a full round sit the round out (odd team counts)
        rest_slots = len(team_ids) - 2 * per_round
        for pairs, rest in self._cover(uncovered, adjacency, used, rested, rest_slots, budget):
            yield seed + pairs, rest

    def _cover(
        self,
        uncovered: list[str],
        adjacency: dict[str, list[ScheduledPair]],
        used: set[frozenset],
        rested: set[str],
        rest_slots: int,
        budget: _SearchBudget,
    ) -> Iterator[tuple[list[ScheduledPair], Optional[str]]]:
        # Depth is bounded by the number of matches in a round
        if not uncovered:
            yield [], None
            return
        if not budget.spend():
            return

        open_set = set(uncovered)
        best_team = None
        best_options: list[ScheduledPair] = []
        for team in uncovered:
            options = [p for p in adjacency[team]
                       if p.key not in used and p.other(team) in open_set]
            if best_team is None or len(options) < len(best_options):
                best_team, best_options = team, options
                if not options:
                    break

        can_rest = rest_slots > 0 and best_team not in rested
        if not best_options and not can_rest:
            return

        for pair in best_options:
            other = pair.other(best_team)
            remaining = [t for t in uncovered if t != best_team and t != other]
            for pairs, rest in self._cover(remaining, adjacency, used, rested, rest_slots, budget):
                yield [pair] + pairs, rest
            if budget.exhausted:
                return

        if can_rest:
            remaining = [t for t in uncovered if t != best_team]
            for pairs, rest in self._cover(remaining, adjacency, used, rested | {best_team},
                                           rest_slots - 1, budget):
                yield pairs, best_team

    def _pick_first_pair(
        self,
        pool: list[ScheduledPair],
        player_team_ids: list[str],
    ) -> ScheduledPair:
        """Pick a random pair with a human team, or any pair if there are no humans."""
        human = [p for p in pool if any(p.has_team(pid) for pid in player_team_ids)]
        first = self._rng.choice(human or pool)
        # Human on the left of the first match
        if player_team_ids and first.right in player_team_ids and first.left not in player_team_ids:
            first.swap()
        return first

    @staticmethod
    def _first_human(pair: ScheduledPair, player_team_ids: list[str]) -> Optional[str]:
        for side in (pair.left, pair.right):
            if side in player_team_ids:
                return side
        return None

    @staticmethod
    def _set_round_first_match(pairs: list[ScheduledPair], start: int, end: int) -> bool:
        """Move the first match sharing no team with the previous match to the round's start."""
        if start == 0:
            return False
        last = pairs[start - 1]
        for i in range(start, min(end, len(pairs) - 1) + 1):
            if not last.has_team(pairs[i].left) and not last.has_team(pairs[i].right):
                if i != start:
                    pairs[start], pairs[i] = pairs[i], pairs[start]
                    return True
                return False
        return False

    @staticmethod
    def count_team_columns(pairs: list[ScheduledPair], start_bottom: int, team_id: str) -> tuple[int, int]:
        """
        Count a team's consecutive appearances in the same column.

        Scans backward from start_bottom and stops when the team's column changes.

        Returns:
            (left_count, right_count), at most one of them is non-zero
        """
        left_count = 0
        right_count = 0
        if start_bottom < 0 or start_bottom >= len(pairs):
            return left_count, right_count

        for i in range(start_bottom, -1, -1):
            pair = pairs[i]
            if not pair.has_team(team_id):
                continue
            if (left_count > 0 and pair.right == team_id) or (right_count > 0 and pair.left == team_id):
                break
            if pair.left == team_id:
                left_count += 1
            else:
                right_count += 1
        return left_count, right_count

    def _alternate_team_in_round(
        self,
        pairs: list[ScheduledPair],
        start: int,
        end: int,
        team_id: str,
    ) -> bool:
        """Flip the team's match in the round if it stayed in the same column."""
        if start == 0:
            pairs[0].state = SortState.SORTED
            return False

        found = next((i for i in range(start, min(end, len(pairs) - 1) + 1)
                      if pairs[i].has_team(team_id)), -1)
        if found < 0:
            return False

        left_count, right_count = self.count_team_columns(pairs, found - 1, team_id)
        pair = pairs[found]
        swapped = False
        if (pair.left == team_id and left_count > 0) or (pair.right == team_id and right_count > 0):
            pair.swap()
            swapped = True
        pair.state = SortState.SORTED
        return swapped

    def _alternate_columns(self, pairs: list[ScheduledPair], index: int) -> bool:
        """Flip an unsorted match if its teams would otherwise keep their columns."""
        pair = pairs[index]
        if pair.state != SortState.UNSORTED:
            return False

        left_left, left_right = self.count_team_columns(pairs, index - 1, pair.left)
        right_left, right_right = self.count_team_columns(pairs, index - 1, pair.right)

        swap = False
        if left_left <= 0 and right_right <= 0:
            # Both teams are already in a new column (or play their first match)
            pass
        elif left_left > 0 and right_right > 0:
            swap = True
        elif left_left > 0:
            # Right team came from the left column, swap if it stays behind the left team
            swap = left_left >= right_left + 1
        elif right_right > 0:
            swap = right_right >= left_right + 1

        if swap:
            pair.swap()
        pair.state = SortState.SORTED
        return swap

    # ============ Single Elimination ============

    def _create_single_elimination(
        self,
        derived: DerivedSettings,
        team_ids: list[str],
        player_team_ids: list[str],
        report: ScheduleReport,
    ) -> Schedule:
        remaining = list(team_ids)
        settings = derived.settings
        two_humans = len(player_team_ids) >= 2

        same_group = False
        same_match = False
        if two_humans:
            same_group = self._rng.random() * 100.0 < settings.humans_in_same_group_chance
            same_match = (self._rng.random() * 100.0 < settings.humans_in_same_match_chance) and same_group
        report.humans_in_same_group = same_group
        report.humans_in_same_match = same_match

        # Anchor match 0 with a human team
        unused_player: Optional[str] = None
        if two_humans:
            i = self._rng.randrange(2)
            left = player_team_ids[i]
            unused_player = player_team_ids[1 - i]
        elif player_team_ids:
            left = player_team_ids[0]
        else:
            left = self._random_team(remaining)
        remaining.remove(left)

        if same_match:
            right = unused_player
            unused_player = None
        else:
            right = self._random_team(remaining, exclude=unused_player)
        remaining.remove(right)

        first_round = [(left, right)]
        last_group = derived.groups_in_first_round - 1
        group_index = 0
        for i in range(1, derived.matches_in_first_round):
            if i % 2 == 0:
                group_index += 1

            if i == 1 and same_group and not same_match and unused_player:
                # Second human in the same group, next match
                left, unused_player = unused_player, None
            elif group_index == last_group and unused_player:
                # Second human in the last group, so the humans can only meet in the final
                left, unused_player = unused_player, None
            else:
                left = self._random_team(remaining, exclude=unused_player)
            remaining.remove(left)

            right = self._random_team(remaining, exclude=unused_player)
            remaining.remove(right)
            first_round.append((left, right))

        matches = [MatchInfo(team_ids=[a, b], needs_winner=True) for a, b in first_round]
        for _ in range(derived.max_matches - len(matches)):
            matches.append(MatchInfo(needs_winner=True))

        groups = [
            GroupInfo(team_ids=[*first_round[g * 2], *first_round[g * 2 + 1]])
            for g in range(derived.groups_in_first_round)
        ]
        report.rounds = [first_round]

        log.debug("Elimination schedule for '%s': first round %s", derived.id, first_round)
        return Schedule(matches=matches, report=report, groups=groups)

    def _random_team(self, team_ids: list[str], exclude: Optional[str] = None) -> str:
        candidates = [t for t in team_ids if t and t != exclude]
        if not candidates:
            raise SchedulingFailed("Ran out of teams while seeding the bracket")
        return self._rng.choice(candidates)
