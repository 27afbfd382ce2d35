"""
AI Resolver

Fast-forwards the run of matches at the current position of a tournament
that have no human team in them. Results are drawn from the teams' AI
skill levels: the stronger team usually wins, and scorelines stay in a
believable range.
"""

import random
from dataclasses import dataclass, field
from typing import Callable

from config import AI_RESOLVE_SETTINGS, AiResolveSettings
from engine.match_info import MatchInfo
from engine.standings import TeamStats
from engine.tournament import Tournament
from services.logger import get_logger


log = get_logger("engine.ai_resolver")

# Callback that records a result: (team_a, score_a, team_b, score_b)
RecordResult = Callable[[str, int, str, int], None]


@dataclass
class AiResolveReport:
    """Outcome of one fast-forward run."""
    resolved: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    stopped_at: int = -1

    @property
    def had_error(self) -> bool:
        return bool(self.errors)


class AiResolver:
    """
    Resolves AI-only matches.

    Random draws are made in a fixed order per match so a seeded
    random.Random always reproduces the same results.
    """

    def __init__(self, rng: random.Random, settings: AiResolveSettings = AI_RESOLVE_SETTINGS):
        self._rng = rng
        self.settings = settings

    def resolve_ai_only_prefix(
        self,
        tournament: Tournament,
        stats: dict[str, TeamStats],
        record_result: RecordResult,
        include_final_match: bool = False,
        use_log_positions: bool = False,
    ) -> AiResolveReport:
        """
        Resolve matches from the current match until one involves a human.

        Args:
            tournament: The active tournament
            stats: Team stats by team id
            record_result: Called with each result; must advance the tournament
            include_final_match: Also resolve the final if it is AI-only
            use_log_positions: Equal-skill matches may be decided by log position

        Returns:
            The resolved match indices and any soft errors
        """
        report = AiResolveReport()

        # Each pass either advances the current match or stops
        for _ in range(len(tournament.match_infos)):
            if tournament.done:
                break
            index = tournament.current_match_index
            match = tournament.current_match
            if match is None:
                break
            if index == tournament.final_match_index and not include_final_match:
                break
            if match.has_human or match.is_done:
                break
            if not match.has_teams:
                report.errors.append(f"Match {index} has no teams yet")
                log.warning("Cannot resolve match %d: teams not set", index)
                break

            team0 = stats.get(match.team_ids[0])
            team1 = stats.get(match.team_ids[1])
            if team0 is None or team1 is None:
                missing = match.team_ids[0] if team0 is None else match.team_ids[1]
                report.errors.append(f"No stats for team {missing} in match {index}")
                log.warning("Cannot resolve match %d: no stats for team %s", index, missing)
                break

            score0, score1 = self.pick_result(match, team0, team1, use_log_positions)
            record_result(team0.team_id, score0, team1.team_id, score1)
            report.resolved.append(index)

            if tournament.current_match_index == index:
                # The result was not accepted
                report.errors.append(f"Match {index} did not advance")
                break

        report.stopped_at = tournament.current_match_index
        if report.resolved:
            log.debug("Resolved AI matches %s", report.resolved)
        return report

    def pick_result(
        self,
        match: MatchInfo,
        team0: TeamStats,
        team1: TeamStats,
        use_log_positions: bool = False,
    ) -> tuple[int, int]:
        """
        Pick the scores of an AI-only match.

        Returns:
            (score of slot 0, score of slot 1)
        """
        s = self.settings
        rng = self._rng
        winner = -1
        one_goal_win = False

        if rng.randrange(100) < s.upset_chance:
            winner = rng.randrange(2)
        elif team0.ai == team1.ai:
            if rng.randrange(100) < s.equal_skill_draw_chance:
                if match.needs_winner:
                    winner = rng.randrange(2)
            else:
                winner = self._winner_by_position(team0, team1, use_log_positions)
                if winner < 0 and match.needs_winner:
                    winner = rng.randrange(2)
        else:
            stronger = 0 if team0.ai > team1.ai else 1
            gap = abs(team0.ai - team1.ai)
            chances = s.stronger_win_chances
            if rng.randrange(100) < chances[min(gap, len(chances)) - 1]:
                winner = stronger
            elif rng.randrange(100) < s.weaker_win_chance:
                winner = 1 - stronger
                one_goal_win = True
            elif match.needs_winner:
                winner = rng.randrange(2)

        if winner < 0:
            score = rng.randint(s.draw_score_min, s.draw_score_max)
            return score, score

        if one_goal_win:
            win_score = rng.randint(s.win_low_score_min, s.win_low_score_min + 1)
            lose_score = win_score - 1
        else:
            skill_gap = (team0.ai - team1.ai) if winner == 0 else (team1.ai - team0.ai)
            win_score, lose_score = self._scoreline(skill_gap)

        return (win_score, lose_score) if winner == 0 else (lose_score, win_score)

    @staticmethod
    def _winner_by_position(team0: TeamStats, team1: TeamStats, use_log_positions: bool) -> int:
        """The better placed team, or -1 if positions cannot decide."""
        if not use_log_positions:
            return -1
        p0, p1 = team0.log_position, team1.log_position
        if p0 < 0 or p1 < 0 or p0 == p1:
            return -1
        return 0 if p0 < p1 else 1

    def _scoreline(self, skill_gap: int) -> tuple[int, int]:
        """Sample (winner score, loser score) for a win."""
        s = self.settings
        rng = self._rng

        adjust_min = 0
        if skill_gap > 0:
            bonus_cap = min(skill_gap, s.win_high_score_real_max - s.win_high_score_max)
            r = rng.randrange(100)
            if r < s.score_adjust_chance:
                adjust_min = rng.randint(0, bonus_cap)
            elif r < s.score_adjust_max_chance:
                adjust_min = bonus_cap

        # e.g. 1-3 without adjustment
        min_win = rng.randrange(s.win_low_score_min, s.win_low_score_max + 1 + adjust_min)
        # e.g. up to 2 more
        max_win = rng.randrange(min_win, min_win + (s.win_high_score_max - s.win_low_score_max + 1))

        if min_win > s.win_low_score_max:
            if rng.randrange(100) < s.loser_close_chance:
                max_lose = min_win - 1
            else:
                max_lose = s.win_low_score_max - 1
        else:
            max_lose = min_win - 1

        return rng.randint(min_win, max_win), rng.randint(0, max_lose)
