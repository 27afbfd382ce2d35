"""
Tournament Persistence

Saves the active tournament to a key-value store and restores it.

Only the state that cannot be recomputed is stored: the tournament id and
type, progress, seed, teams, and each match's teams, scores and match
day. Standings, derived settings, human flags, home teams and fields are
rebuilt by the controller after a load.

Keys:
    tnt_id, tnt_type, tnt_done, tnt_match, tnt_difficulty, tnt_rseed
    tnt_numPlayers, tnt_playerId_NN
    tnt_numTeams, tnt_teamId_NN
    tnt_numMatches, tnt_match_NNN_matchDay, tnt_match_NNN_teamId_NN,
        tnt_match_NNN_teamScore_NN
    tnt_numGroups, tnt_group_NNN_numTeams, tnt_group_NNN_teamId_NN
"""

from dataclasses import dataclass, field
from typing import ContextManager, Optional, Protocol, runtime_checkable

from engine.match_info import GroupInfo, MatchInfo, UNPLAYED
from engine.tournament import Tournament
from models.tournament import TournamentType
from services.logger import get_logger


log = get_logger("services.persistence")

KEY_PREFIX = "tnt_"


@runtime_checkable
class KeyValueStore(Protocol):
    """Scalar storage used to save a tournament."""

    def set_string(self, key: str, value: str) -> None: ...

    def set_int(self, key: str, value: int) -> None: ...

    def set_bool(self, key: str, value: bool) -> None: ...

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def get_int(self, key: str, default: int = 0) -> int: ...

    def get_bool(self, key: str, default: bool = False) -> bool: ...

    def has_key(self, key: str) -> bool: ...

    def delete_prefix(self, prefix: str) -> int: ...

    def transaction(self) -> ContextManager[None]: ...


@dataclass
class TournamentSnapshot:
    """The stored state of a tournament."""
    tournament_id: str
    type: TournamentType
    done: bool = False
    current_match_index: int = 0
    difficulty: int = 0
    random_seed: int = 0
    player_team_ids: list[str] = field(default_factory=list)
    team_ids: list[str] = field(default_factory=list)
    match_infos: list[MatchInfo] = field(default_factory=list)
    groups: list[GroupInfo] = field(default_factory=list)


def _player_key(i: int) -> str:
    return f"tnt_playerId_{i:02d}"


def _team_key(i: int) -> str:
    return f"tnt_teamId_{i:02d}"


def _match_key(i: int, name: str) -> str:
    return f"tnt_match_{i:03d}_{name}"


def _group_key(i: int, name: str) -> str:
    return f"tnt_group_{i:03d}_{name}"


class TournamentStore:
    """
    Saves and loads the active tournament.

    Usage:
        store = TournamentStore(SqlKeyValueStore())
        store.save(controller.tournament)
        snapshot = store.load()
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def save(self, tournament: Tournament) -> None:
        """
        Replace the saved tournament with this one.

        The old tournament is only replaced if every value is written.
        """
        with self.kv.transaction():
            self.clear()
            if tournament.is_active:
                self._write(tournament)

    def _write(self, tournament: Tournament) -> None:
        kv = self.kv
        kv.set_string("tnt_id", tournament.tournament_id)
        kv.set_string("tnt_type", tournament.type.value)
        kv.set_bool("tnt_done", tournament.done)
        kv.set_int("tnt_match", tournament.current_match_index)
        kv.set_int("tnt_difficulty", tournament.difficulty)
        kv.set_int("tnt_rseed", tournament.random_seed)

        kv.set_int("tnt_numPlayers", len(tournament.player_team_ids))
        for i, team_id in enumerate(tournament.player_team_ids):
            kv.set_string(_player_key(i), team_id)

        kv.set_int("tnt_numTeams", len(tournament.team_ids))
        for i, team_id in enumerate(tournament.team_ids):
            kv.set_string(_team_key(i), team_id)

        kv.set_int("tnt_numMatches", len(tournament.match_infos))
        for i, match in enumerate(tournament.match_infos):
            kv.set_int(_match_key(i, "matchDay"), match.match_day)
            for n in (0, 1):
                # Empty slots are not stored
                if match.team_ids[n]:
                    kv.set_string(_match_key(i, f"teamId_{n:02d}"), match.team_ids[n])
                kv.set_int(_match_key(i, f"teamScore_{n:02d}"), match.team_scores[n])

        kv.set_int("tnt_numGroups", len(tournament.groups))
        for i, group in enumerate(tournament.groups):
            kv.set_int(_group_key(i, "numTeams"), len(group.team_ids))
            for n, team_id in enumerate(group.team_ids):
                kv.set_string(_group_key(i, f"teamId_{n:02d}"), team_id)

        log.debug("Saved tournament '%s' at match %d",
                  tournament.tournament_id, tournament.current_match_index)

    def load(self) -> Optional[TournamentSnapshot]:
        """
        Read the saved tournament.

        Returns:
            The snapshot, or None if nothing usable is saved
        """
        kv = self.kv
        tournament_id = kv.get_string("tnt_id")
        if not tournament_id:
            return None

        type_value = kv.get_string("tnt_type", "")
        try:
            tournament_type = TournamentType(type_value)
        except ValueError:
            log.warning("Saved tournament '%s' has unknown type %r", tournament_id, type_value)
            return None
        if tournament_type == TournamentType.NONE:
            return None

        snapshot = TournamentSnapshot(
            tournament_id=tournament_id,
            type=tournament_type,
            done=kv.get_bool("tnt_done"),
            current_match_index=kv.get_int("tnt_match"),
            difficulty=kv.get_int("tnt_difficulty"),
            random_seed=kv.get_int("tnt_rseed"),
        )

        for i in range(kv.get_int("tnt_numPlayers")):
            team_id = kv.get_string(_player_key(i))
            if team_id:
                snapshot.player_team_ids.append(team_id)

        for i in range(kv.get_int("tnt_numTeams")):
            team_id = kv.get_string(_team_key(i))
            if not team_id:
                log.warning("Saved tournament '%s' is missing team %d", tournament_id, i)
                return None
            snapshot.team_ids.append(team_id)

        for i in range(kv.get_int("tnt_numMatches")):
            match = MatchInfo(match_day=kv.get_int(_match_key(i, "matchDay")))
            for n in (0, 1):
                match.team_ids[n] = kv.get_string(_match_key(i, f"teamId_{n:02d}"))
                match.team_scores[n] = kv.get_int(_match_key(i, f"teamScore_{n:02d}"), UNPLAYED)
            snapshot.match_infos.append(match)

        for i in range(kv.get_int("tnt_numGroups")):
            group = GroupInfo()
            for n in range(kv.get_int(_group_key(i, "numTeams"))):
                team_id = kv.get_string(_group_key(i, f"teamId_{n:02d}"))
                if team_id:
                    group.team_ids.append(team_id)
            snapshot.groups.append(group)

        return snapshot

    def clear(self) -> None:
        """Delete the saved tournament."""
        self.kv.delete_prefix(KEY_PREFIX)

    def has_saved_tournament(self) -> bool:
        return bool(self.kv.get_string("tnt_id"))
