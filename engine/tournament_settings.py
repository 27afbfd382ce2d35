"""
Tournament Settings

Derives the scheduling constants of a tournament from its static
configuration. The derived values are computed once when a tournament
starts (or is loaded) and never change afterwards.

Log tournament (round-robin), 4 teams, 1 leg:
    min_matches = 6, max_matches = 7 (6 + final),
    matches_per_round = 2, max_rounds = 3, min_rounds = 3

Single elimination, 8 teams:
    max_matches = 7, matches_in_round = [4, 2, 1],
    winner_next_match = [4, 4, 5, 5, 6, 6]
"""

from dataclasses import dataclass, field
from typing import Optional

from config import TOURNAMENT_RULES, TournamentRules
from engine.errors import InvalidConfiguration
from models.schemas import TournamentSettings
from models.tournament import TournamentType


@dataclass(frozen=True)
class DerivedSettings:
    """A tournament's configuration plus its derived scheduling constants."""
    settings: TournamentSettings

    # Both formats
    max_matches: int = 0
    max_rounds: int = 0

    # Log tournament
    min_matches: int = 0
    matches_per_round: int = 0
    min_rounds: int = 0

    # Single elimination
    matches_in_first_round: int = 0
    groups_in_first_round: int = 0
    matches_in_round: tuple[int, ...] = field(default_factory=tuple)
    winner_next_match: tuple[int, ...] = field(default_factory=tuple)

    @property
    def id(self) -> str:
        return self.settings.id

    @property
    def type(self) -> TournamentType:
        return self.settings.type

    @property
    def max_teams(self) -> int:
        return self.settings.max_teams

    @property
    def final_match_index(self) -> int:
        """Index of the last match of the tournament."""
        return self.max_matches - 1

    def round_of_match(self, match_index: int) -> int:
        """
        Get the round (match day) a match belongs to.

        The log tournament's final is placed on the day after the last round.
        """
        if match_index < 0:
            return 0
        if self.type == TournamentType.SINGLE_ELIMINATION:
            first = 0
            for round_index, count in enumerate(self.matches_in_round):
                if match_index < first + count:
                    return round_index
                first += count
            return max(len(self.matches_in_round) - 1, 0)
        if self.matches_per_round <= 0:
            return 0
        if match_index >= self.final_match_index:
            return self.max_rounds
        return match_index // self.matches_per_round


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def derive_settings(
    settings: TournamentSettings,
    rules: TournamentRules = TOURNAMENT_RULES,
) -> DerivedSettings:
    """
    Compute the derived constants for a tournament.

    Args:
        settings: Static tournament configuration
        rules: Engine constants (team count limits)

    Returns:
        The derived settings

    Raises:
        InvalidConfiguration: If the team count is out of range, not a power
            of two for an elimination bracket, or the type has no built-in
            schedule
    """
    max_teams = settings.max_teams
    if not rules.min_teams <= max_teams <= rules.max_teams:
        raise InvalidConfiguration(
            f"Tournament '{settings.id}' needs {rules.min_teams}-{rules.max_teams} teams, "
            f"got {max_teams}"
        )

    if settings.type == TournamentType.LOG:
        return _derive_log(settings)
    if settings.type == TournamentType.SINGLE_ELIMINATION:
        return _derive_single_elimination(settings)

    raise InvalidConfiguration(
        f"Tournament type {settings.type.value!r} has no built-in schedule"
    )


def _derive_log(settings: TournamentSettings) -> DerivedSettings:
    max_teams = settings.max_teams
    legs = settings.num_face_each_other
    if legs < 1:
        raise InvalidConfiguration("A log tournament needs at least one leg")

    # Every team plays every other team once per leg
    min_matches = (max_teams * (max_teams - 1)) // 2
    # +1 for the final
    max_matches = min_matches * legs + 1
    matches_per_round = max_teams // 2

    return DerivedSettings(
        settings=settings,
        min_matches=min_matches,
        max_matches=max_matches,
        matches_per_round=matches_per_round,
        max_rounds=(max_matches - 1) // matches_per_round,
        min_rounds=min_matches // matches_per_round,
    )


def _derive_single_elimination(settings: TournamentSettings) -> DerivedSettings:
    max_teams = settings.max_teams
    if not is_power_of_two(max_teams):
        raise InvalidConfiguration(
            f"Single elimination needs a power of two teams, got {max_teams}"
        )

    max_matches = max_teams - 1
    matches_in_first_round = max_teams // 2

    matches_in_round = []
    remaining = max_matches
    n = matches_in_first_round
    while remaining > 0 and n > 0:
        matches_in_round.append(n)
        remaining -= n
        n //= 2

    # Each pair of matches feeds the next free match of the following round
    winner_next_match = []
    if len(matches_in_round) > 1:
        n = matches_in_round[0]
        for i in range(max_matches - 1):
            winner_next_match.append(n)
            if i % 2 == 1:
                n += 1

    return DerivedSettings(
        settings=settings,
        max_matches=max_matches,
        max_rounds=len(matches_in_round),
        matches_in_first_round=matches_in_first_round,
        groups_in_first_round=matches_in_first_round // 2,
        matches_in_round=tuple(matches_in_round),
        winner_next_match=tuple(winner_next_match),
    )


class TournamentSettingsRegistry:
    """
    Lookup of the tournament definitions known to the application.

    Usage:
        registry = TournamentSettingsRegistry(DEFAULT_TOURNAMENTS)
        settings = registry.get("league")
    """

    def __init__(self, settings: Optional[list[TournamentSettings]] = None):
        self._settings: dict[str, TournamentSettings] = {}
        for s in settings or []:
            self.register(s)

    def register(self, settings: TournamentSettings) -> None:
        """Add or replace a tournament definition."""
        self._settings[settings.id] = settings

    def get(self, tournament_id: str) -> TournamentSettings:
        """
        Get a tournament definition.

        Raises:
            InvalidConfiguration: If no tournament has the id
        """
        settings = self._settings.get(tournament_id)
        if settings is None:
            raise InvalidConfiguration(f"Unknown tournament: {tournament_id}")
        return settings

    def __contains__(self, tournament_id: str) -> bool:
        return tournament_id in self._settings

    def __iter__(self):
        return iter(self._settings.values())

    def __len__(self) -> int:
        return len(self._settings)
