"""
Tournament

The state of the active tournament. Only TournamentController mutates it;
everything else reads it.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional

from engine.match_info import GroupInfo, MatchInfo
from models.tournament import TournamentType


class TournamentState(enum.Enum):
    """Tournament lifecycle states."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass
class Tournament:
    """The schedule, progress and result of a tournament."""
    tournament_id: Optional[str] = None
    type: TournamentType = TournamentType.NONE

    # Teams in play order; human teams first
    team_ids: list[str] = field(default_factory=list)
    # Human teams, in player slot order
    player_team_ids: list[str] = field(default_factory=list)

    match_infos: list[MatchInfo] = field(default_factory=list)
    groups: list[GroupInfo] = field(default_factory=list)
    current_match_index: int = 0
    done: bool = False
    random_seed: int = 0
    difficulty: int = 0

    # Result of the final, set when the tournament is done
    win_team_id: Optional[str] = None
    lose_team_id: Optional[str] = None
    win_score: int = -1
    lose_score: int = -1

    @property
    def state(self) -> TournamentState:
        if not self.tournament_id or self.type == TournamentType.NONE:
            return TournamentState.NOT_STARTED
        if self.done:
            return TournamentState.DONE
        return TournamentState.IN_PROGRESS

    @property
    def is_active(self) -> bool:
        return self.state != TournamentState.NOT_STARTED

    @property
    def final_match_index(self) -> int:
        return len(self.match_infos) - 1

    @property
    def is_final_match(self) -> bool:
        return bool(self.match_infos) and self.current_match_index == self.final_match_index

    @property
    def current_match(self) -> Optional[MatchInfo]:
        return self.get_match(self.current_match_index)

    @property
    def final_match(self) -> Optional[MatchInfo]:
        return self.get_match(self.final_match_index)

    def get_match(self, index: int) -> Optional[MatchInfo]:
        """Get a match by index, or None if out of range."""
        if 0 <= index < len(self.match_infos):
            return self.match_infos[index]
        return None

    def is_player_team(self, team_id: Optional[str]) -> bool:
        return bool(team_id) and team_id in self.player_team_ids

    def get_player_team_index(self, team_id: Optional[str]) -> int:
        """Player slot of a human team, or -1."""
        if not self.is_player_team(team_id):
            return -1
        return self.player_team_ids.index(team_id)

    def get_group_index(self, team_id: Optional[str]) -> int:
        """Index of the group that contains the team, or -1."""
        for index, group in enumerate(self.groups):
            if group.has_team(team_id):
                return index
        return -1

    def clear(self) -> None:
        """Reset to the not-started state."""
        self.tournament_id = None
        self.type = TournamentType.NONE
        self.team_ids = []
        self.player_team_ids = []
        self.match_infos = []
        self.groups = []
        self.current_match_index = 0
        self.done = False
        self.random_seed = 0
        self.difficulty = 0
        self.win_team_id = None
        self.lose_team_id = None
        self.win_score = -1
        self.lose_score = -1
