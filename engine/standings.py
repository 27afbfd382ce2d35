"""
Standings Engine

Computes the log (standings) of a tournament from its played matches.

Teams are ordered by points, then goal difference. Teams that are tied
on both are ordered as they are inserted: a human team always goes above
a tied AI team, and two tied AI teams are ordered by a coin flip from the
supplied random source.
"""

import random
from dataclasses import dataclass
from typing import Optional

from config import TOURNAMENT_RULES, TournamentRules
from engine.match_info import MatchInfo


@dataclass
class TeamStats:
    """A team's tournament-scoped statistics."""
    team_id: str
    points: int = 0
    goal_difference: int = 0
    goals_for: int = 0
    goals_against: int = 0
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0

    # Position in the log (0 = top), -1 if not in a log
    log_position: int = -1

    # AI skill level assigned at tournament start
    ai: int = 0

    # Player slot of a human team, -1 for AI teams
    human_index: int = -1

    @property
    def is_human(self) -> bool:
        return self.human_index >= 0

    def reset_log(self) -> None:
        """Clear the values accumulated from matches."""
        self.points = 0
        self.goal_difference = 0
        self.goals_for = 0
        self.goals_against = 0
        self.played = 0
        self.won = 0
        self.drawn = 0
        self.lost = 0
        self.log_position = -1

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "position": self.log_position + 1,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
            "is_human": self.is_human,
        }


class StandingsEngine:
    """
    Builds the ordered log.

    Usage:
        engine = StandingsEngine()
        log = engine.recompute(matches, current_index, team_ids, stats, rng)
    """

    def __init__(self, rules: TournamentRules = TOURNAMENT_RULES):
        self.rules = rules

    def recompute(
        self,
        match_infos: list[MatchInfo],
        up_to_index: int,
        team_ids: list[str],
        stats: dict[str, TeamStats],
        rng: random.Random,
        final_match_index: Optional[int] = None,
    ) -> list[TeamStats]:
        """
        Recompute points and positions from the played matches.

        Only matches before up_to_index count, the final match never does,
        and counting stops at the first unplayed match.

        Args:
            match_infos: The tournament's schedule
            up_to_index: Index of the current match
            team_ids: Teams in tournament order
            stats: Team stats by team id, updated in place
            rng: Random source for ties between two AI teams
            final_match_index: Index of the final, defaults to the last match

        Returns:
            The log, best team first
        """
        if final_match_index is None:
            final_match_index = len(match_infos) - 1

        for team_id in team_ids:
            if team_id in stats:
                stats[team_id].reset_log()

        found_played = False
        for i in range(min(up_to_index, final_match_index, len(match_infos))):
            match = match_infos[i]
            if not match.is_done:
                break
            if not match.has_teams:
                continue
            home = stats.get(match.team_ids[0])
            away = stats.get(match.team_ids[1])
            if home is None or away is None:
                continue
            found_played = True
            self._apply_result(home, away, match.team_scores[0], match.team_scores[1])

        ordered = [stats[t] for t in team_ids if t in stats]
        if found_played:
            log: list[TeamStats] = []
            for team in ordered:
                self._insert(log, team, rng)
        else:
            log = ordered

        for position, team in enumerate(log):
            team.log_position = position
        return log

    def _apply_result(self, home: TeamStats, away: TeamStats, home_score: int, away_score: int) -> None:
        rules = self.rules
        home.played += 1
        away.played += 1
        home.goals_for += home_score
        home.goals_against += away_score
        away.goals_for += away_score
        away.goals_against += home_score

        diff = home_score - away_score
        if diff > 0:
            home.won += 1
            home.points += rules.win_points
            away.lost += 1
            away.points += rules.lose_points
        elif diff < 0:
            away.won += 1
            away.points += rules.win_points
            home.lost += 1
            home.points += rules.lose_points
        else:
            home.drawn += 1
            away.drawn += 1
            home.points += rules.draw_points
            away.points += rules.draw_points
        home.goal_difference += diff
        away.goal_difference -= diff

    @staticmethod
    def _insert(log: list[TeamStats], team: TeamStats, rng: random.Random) -> None:
        """Insert a team into the partially built log."""
        found_index = -1
        found_goal_difference = -1
        found_same = -1

        for n, other in enumerate(log):
            if team.points > other.points:
                found_index = n
                break
            if found_goal_difference < 0 and team.points == other.points \
                    and team.goal_difference > other.goal_difference:
                found_goal_difference = n
            elif found_same < 0 and team.points == other.points \
                    and team.goal_difference == other.goal_difference:
                found_same = n

        # Use the smallest of the three candidate positions
        if found_index >= 0 \
                and (found_same < 0 or found_same > found_index) \
                and (found_goal_difference < 0 or found_goal_difference > found_index):
            log.insert(found_index, team)
            return

        if found_same >= 0 and (found_goal_difference < 0 or found_goal_difference > found_same):
            if team.is_human:
                log.insert(found_same, team)
                return
            # AI teams go below every tied human team
            n = found_same
            while n < len(log) and log[n].is_human \
                    and log[n].points == team.points \
                    and log[n].goal_difference == team.goal_difference:
                n += 1
            if n == found_same and rng.randrange(100) < 50:
                log.insert(n, team)
            elif n == found_same:
                log.insert(n + 1, team)
            else:
                log.insert(n, team)
            return

        if found_goal_difference >= 0:
            log.insert(found_goal_difference, team)
            return

        log.append(team)
