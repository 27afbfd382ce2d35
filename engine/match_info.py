"""
Match Info

One scheduled match of a tournament. Slot 0 is the left column of the
schedule, slot 1 the right column.
"""

from dataclasses import dataclass, field
from typing import Optional


UNPLAYED = -1


@dataclass
class MatchInfo:
    """A scheduled match and its result."""
    team_ids: list[Optional[str]] = field(default_factory=lambda: [None, None])
    team_scores: list[int] = field(default_factory=lambda: [UNPLAYED, UNPLAYED])
    match_day: int = 0

    # -1 = neither team plays at home, 0/1 = slot of the home team
    home_team: int = -1

    # Derived from the player team list; recomputed on load
    is_player: list[bool] = field(default_factory=lambda: [False, False])
    human_index: list[int] = field(default_factory=lambda: [-1, -1])
    needs_winner: bool = False

    @property
    def is_done(self) -> bool:
        return self.team_scores[0] >= 0 and self.team_scores[1] >= 0

    @property
    def has_teams(self) -> bool:
        return bool(self.team_ids[0]) and bool(self.team_ids[1])

    @property
    def has_human(self) -> bool:
        return self.is_player[0] or self.is_player[1]

    @property
    def winner_slot(self) -> int:
        """Slot of the winning team, or -1 if unplayed or drawn."""
        if not self.is_done or self.team_scores[0] == self.team_scores[1]:
            return -1
        return 0 if self.team_scores[0] > self.team_scores[1] else 1

    @property
    def winner_id(self) -> Optional[str]:
        slot = self.winner_slot
        return self.team_ids[slot] if slot >= 0 else None

    @property
    def loser_id(self) -> Optional[str]:
        slot = self.winner_slot
        return self.team_ids[1 - slot] if slot >= 0 else None

    def slot_of(self, team_id: Optional[str]) -> int:
        """Slot of a team in this match, or -1."""
        if not team_id:
            return -1
        if self.team_ids[0] == team_id:
            return 0
        if self.team_ids[1] == team_id:
            return 1
        return -1

    def has_team(self, team_id: Optional[str]) -> bool:
        return self.slot_of(team_id) >= 0

    def set_slot(self, slot: int, team_id: Optional[str],
                 is_player: bool = False, human_index: int = -1) -> None:
        """Place a team in a slot, clearing that slot's score."""
        self.team_ids[slot] = team_id
        self.team_scores[slot] = UNPLAYED
        self.is_player[slot] = is_player
        self.human_index[slot] = human_index

    def swap_slots(self) -> None:
        """Swap the left and right teams."""
        self.team_ids.reverse()
        self.team_scores.reverse()
        self.is_player.reverse()
        self.human_index.reverse()
        if self.home_team >= 0:
            self.home_team = 1 - self.home_team

    def clear_result(self) -> None:
        self.team_scores = [UNPLAYED, UNPLAYED]


@dataclass
class GroupInfo:
    """A group of teams, e.g. two neighbouring first-round matches of a bracket."""
    team_ids: list[str] = field(default_factory=list)

    def has_team(self, team_id: Optional[str]) -> bool:
        return bool(team_id) and team_id in self.team_ids


def mark_players(match: MatchInfo, player_team_ids: list[str]) -> None:
    """Refresh a match's human flags from the player team list."""
    for slot in (0, 1):
        team_id = match.team_ids[slot]
        if team_id and team_id in player_team_ids:
            match.is_player[slot] = True
            match.human_index[slot] = player_team_ids.index(team_id)
        else:
            match.is_player[slot] = False
            match.human_index[slot] = -1
