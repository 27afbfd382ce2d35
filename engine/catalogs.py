"""
Team and Field Catalogs

The tournament engine never owns team or field data. It looks them up
through the narrow catalog interfaces below. The in-memory catalogs are
used by the command-line simulation and the tests; the database-backed
ones live in services.catalog.
"""

import random
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class TeamRecord:
    """A team that can be entered into a tournament."""
    id: str
    name: str
    ai_skill: int = 1
    home_field_id: Optional[str] = None


@dataclass(frozen=True)
class FieldRecord:
    """A field (stadium) a match can be played on."""
    id: str
    name: str


@runtime_checkable
class TeamCatalog(Protocol):
    """Team lookup and random team selection."""

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        ...

    def get_random_team(
        self,
        exclude_id: Optional[str] = None,
        from_ids: Optional[Iterable[str]] = None,
    ) -> Optional[TeamRecord]:
        """Pick a random team other than exclude_id, optionally limited to from_ids."""
        ...

    def team_ids(self) -> list[str]:
        ...


@runtime_checkable
class FieldCatalog(Protocol):
    """Field lookup and random field selection."""

    def get_field(self, field_id: str) -> Optional[FieldRecord]:
        ...

    def get_home_field(self, team_id: str) -> Optional[FieldRecord]:
        ...

    def get_random_field(self, exclude_team_ids: Iterable[str] = ()) -> Optional[FieldRecord]:
        """Pick a random field that is not the home field of any excluded team."""
        ...


class InMemoryTeamCatalog:
    """Team catalog backed by a list of records."""

    def __init__(self, teams: Iterable[TeamRecord], rng: Optional[random.Random] = None):
        self._teams: dict[str, TeamRecord] = {t.id: t for t in teams}
        self._rng = rng or random.Random()

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        if not team_id:
            return None
        return self._teams.get(team_id)

    def get_random_team(
        self,
        exclude_id: Optional[str] = None,
        from_ids: Optional[Iterable[str]] = None,
    ) -> Optional[TeamRecord]:
        if from_ids is None:
            candidates = [t for t in self._teams.values() if t.id != exclude_id]
        else:
            candidates = [self._teams[tid] for tid in from_ids
                          if tid in self._teams and tid != exclude_id]
        if not candidates:
            return None
        return self._rng.choice(candidates)

    def team_ids(self) -> list[str]:
        return list(self._teams)

    def __len__(self) -> int:
        return len(self._teams)


class InMemoryFieldCatalog:
    """Field catalog backed by a list of records and a team -> home field map."""

    def __init__(
        self,
        fields: Iterable[FieldRecord],
        home_fields: Optional[dict[str, str]] = None,
        rng: Optional[random.Random] = None,
    ):
        self._fields: dict[str, FieldRecord] = {f.id: f for f in fields}
        self._home_fields = dict(home_fields or {})
        self._rng = rng or random.Random()

    @classmethod
    def from_teams(
        cls,
        fields: Iterable[FieldRecord],
        teams: Iterable[TeamRecord],
        rng: Optional[random.Random] = None,
    ) -> "InMemoryFieldCatalog":
        """Build a field catalog using each team's home_field_id."""
        home_fields = {t.id: t.home_field_id for t in teams if t.home_field_id}
        return cls(fields, home_fields, rng)

    def get_field(self, field_id: str) -> Optional[FieldRecord]:
        if not field_id:
            return None
        return self._fields.get(field_id)

    def get_home_field(self, team_id: str) -> Optional[FieldRecord]:
        field_id = self._home_fields.get(team_id)
        return self._fields.get(field_id) if field_id else None

    def get_random_field(self, exclude_team_ids: Iterable[str] = ()) -> Optional[FieldRecord]:
        excluded = {self._home_fields.get(tid) for tid in exclude_team_ids if tid}
        candidates = [f for f in self._fields.values() if f.id not in excluded]
        if not candidates:
            # Every field is a home field of an excluded team
            candidates = list(self._fields.values())
        if not candidates:
            return None
        return self._rng.choice(candidates)
