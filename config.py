"""
Matchday Configuration

Centralized settings, paths, and constants for the tournament engine.
"""

from pathlib import Path
from dataclasses import dataclass
import appdirs


# Application info
APP_NAME = "Matchday"
APP_AUTHOR = "Matchday"
APP_VERSION = "1.0.0"


@dataclass(frozen=True)
class Paths:
    """Application paths."""
    # Data directory (stores database, saved tournament state)
    data_dir: Path = Path(appdirs.user_data_dir(APP_NAME, APP_AUTHOR))

    # Config directory (stores tournament definitions)
    config_dir: Path = Path(appdirs.user_config_dir(APP_NAME, APP_AUTHOR))

    # Cache directory (stores temporary files)
    cache_dir: Path = Path(appdirs.user_cache_dir(APP_NAME, APP_AUTHOR))

    # Log directory
    log_dir: Path = Path(appdirs.user_log_dir(APP_NAME, APP_AUTHOR))

    @property
    def database(self) -> Path:
        return self.data_dir / "matchday.db"

    @property
    def tournaments(self) -> Path:
        return self.config_dir / "tournaments.json"

    @property
    def exports(self) -> Path:
        return self.data_dir / "exports"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        for dir_path in [self.data_dir, self.config_dir, self.cache_dir,
                         self.log_dir, self.exports]:
            dir_path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class TournamentRules:
    """Tournament engine constants."""
    # Team count limits
    min_teams: int = 4
    max_teams: int = 50

    # Log points
    win_points: int = 3
    lose_points: int = 0
    draw_points: int = 1

    # Schedule generation: attempts per leg, then whole-schedule regenerations
    leg_retry_limit: int = 20
    schedule_regenerations: int = 1

    # Backtracking steps allowed for a single leg attempt
    round_search_budget: int = 50_000

    # Forfeit scoreline
    forfeit_win_score: int = 3
    forfeit_lose_score: int = 0


@dataclass(frozen=True)
class AiResolveSettings:
    """Odds and scoreline bounds for matches between two AI teams (percent)."""
    # Chance of a completely random winner
    upset_chance: int = 5

    # Chance of a draw when both teams have the same skill
    equal_skill_draw_chance: int = 50

    # Stronger team's win chance for a skill gap of 1, 2 and 3+
    stronger_win_chances: tuple[int, ...] = (70, 80, 95)

    # Chance the weaker team sneaks a one goal win instead of a draw
    weaker_win_chance: int = 30

    # Chance the winner's minimum score is raised by the skill gap
    score_adjust_chance: int = 50
    score_adjust_max_chance: int = 55

    # Chance the loser scores close to the winner in a high scoring match
    loser_close_chance: int = 30

    # Scorelines
    win_low_score_min: int = 1
    win_low_score_max: int = 3
    win_high_score_max: int = 5
    win_high_score_real_max: int = 8
    draw_score_min: int = 0
    draw_score_max: int = 3


@dataclass(frozen=True)
class MatchSettings:
    """Match-level settings chosen by the user."""
    # Configured AI difficulty (0 = easiest)
    difficulty: int = 1

    # Highest difficulty the game offers
    max_difficulty: int = 3


# Singleton instances
PATHS = Paths()
TOURNAMENT_RULES = TournamentRules()
AI_RESOLVE_SETTINGS = AiResolveSettings()
MATCH_SETTINGS = MatchSettings()


def init_config() -> None:
    """Initialize configuration and create required directories."""
    PATHS.ensure_directories()
