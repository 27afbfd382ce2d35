"""
Database-backed team and field catalogs.
"""

import random
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from engine.catalogs import FieldRecord, TeamRecord
from models.base import SessionLocal, get_session
from models.field import Field
from models.schemas import FieldCreate, TeamCreate
from models.team import Team
from services.logger import get_logger


log = get_logger("services.catalog")


def _team_record(team: Team) -> TeamRecord:
    return TeamRecord(id=team.id, name=team.name, ai_skill=team.ai_skill,
                      home_field_id=team.home_field_id)


class SqlTeamCatalog:
    """
    Team catalog that reads the teams table.

    Usage:
        catalog = SqlTeamCatalog(rng=random.Random(seed))
        catalog.add_team(TeamCreate(id="lions", name="Lions"))
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        rng: Optional[random.Random] = None,
    ):
        self._session_factory = session_factory
        self._rng = rng or random.Random()

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        if not team_id:
            return None
        with self._session_factory() as session:
            team = session.get(Team, team_id)
            return _team_record(team) if team else None

    def get_random_team(
        self,
        exclude_id: Optional[str] = None,
        from_ids: Optional[Iterable[str]] = None,
    ) -> Optional[TeamRecord]:
        with self._session_factory() as session:
            query = select(Team).order_by(Team.id)
            if from_ids is not None:
                query = query.where(Team.id.in_(list(from_ids)))
            teams = [_team_record(t) for t in session.scalars(query) if t.id != exclude_id]
        if not teams:
            return None
        return self._rng.choice(teams)

    def team_ids(self) -> list[str]:
        with self._session_factory() as session:
            return list(session.scalars(select(Team.id).order_by(Team.id)))

    def add_team(self, data: TeamCreate) -> TeamRecord:
        """Add or update a team."""
        with get_session(self._session_factory) as session:
            team = session.get(Team, data.id)
            if team is None:
                team = Team(id=data.id)
                session.add(team)
            team.name = data.name
            team.ai_skill = data.ai_skill
            team.home_field_id = data.home_field_id
            record = _team_record(team)
        log.debug("Saved team %s", data.id)
        return record


class SqlFieldCatalog:
    """Field catalog that reads the fields table and each team's home field."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        rng: Optional[random.Random] = None,
    ):
        self._session_factory = session_factory
        self._rng = rng or random.Random()

    def get_field(self, field_id: str) -> Optional[FieldRecord]:
        if not field_id:
            return None
        with self._session_factory() as session:
            field = session.get(Field, field_id)
            return FieldRecord(id=field.id, name=field.name) if field else None

    def get_home_field(self, team_id: str) -> Optional[FieldRecord]:
        with self._session_factory() as session:
            team = session.get(Team, team_id)
            if team is None or team.home_field is None:
                return None
            return FieldRecord(id=team.home_field.id, name=team.home_field.name)

    def get_random_field(self, exclude_team_ids: Iterable[str] = ()) -> Optional[FieldRecord]:
        exclude_team_ids = [tid for tid in exclude_team_ids if tid]
        with self._session_factory() as session:
            fields = [FieldRecord(id=f.id, name=f.name)
                      for f in session.scalars(select(Field).order_by(Field.id))]
            excluded = set()
            if exclude_team_ids:
                excluded = set(session.scalars(
                    select(Team.home_field_id).where(Team.id.in_(exclude_team_ids))
                ))
        candidates = [f for f in fields if f.id not in excluded] or fields
        if not candidates:
            return None
        return self._rng.choice(candidates)

    def add_field(self, data: FieldCreate) -> FieldRecord:
        """Add or update a field."""
        with get_session(self._session_factory) as session:
            field = session.get(Field, data.id)
            if field is None:
                field = Field(id=data.id)
                session.add(field)
            field.name = data.name
        return FieldRecord(id=data.id, name=data.name)


# ============ Demo Data ============

DEMO_FIELDS = [
    FieldCreate(id="harbour", name="Harbour Park"),
    FieldCreate(id="northgate", name="Northgate Stadium"),
    FieldCreate(id="riverside", name="Riverside Ground"),
    FieldCreate(id="summit", name="Summit Arena"),
    FieldCreate(id="valley", name="Valley Road"),
    FieldCreate(id="westfield", name="Westfield Oval"),
]

DEMO_TEAMS = [
    TeamCreate(id="lions", name="Lions", ai_skill=3, home_field_id="harbour"),
    TeamCreate(id="tigers", name="Tigers", ai_skill=2, home_field_id="northgate"),
    TeamCreate(id="eagles", name="Eagles", ai_skill=2, home_field_id="riverside"),
    TeamCreate(id="sharks", name="Sharks", ai_skill=1, home_field_id="summit"),
    TeamCreate(id="wolves", name="Wolves", ai_skill=3, home_field_id="valley"),
    TeamCreate(id="bears", name="Bears", ai_skill=1, home_field_id="westfield"),
    TeamCreate(id="falcons", name="Falcons", ai_skill=2, home_field_id="harbour"),
    TeamCreate(id="rhinos", name="Rhinos", ai_skill=0, home_field_id="northgate"),
    TeamCreate(id="cobras", name="Cobras", ai_skill=1, home_field_id="riverside"),
    TeamCreate(id="panthers", name="Panthers", ai_skill=2, home_field_id="summit"),
    TeamCreate(id="stallions", name="Stallions", ai_skill=3, home_field_id="valley"),
    TeamCreate(id="hornets", name="Hornets", ai_skill=0, home_field_id="westfield"),
    TeamCreate(id="bulls", name="Bulls", ai_skill=1, home_field_id="harbour"),
    TeamCreate(id="owls", name="Owls", ai_skill=2, home_field_id="northgate"),
    TeamCreate(id="foxes", name="Foxes", ai_skill=1, home_field_id="riverside"),
    TeamCreate(id="ravens", name="Ravens", ai_skill=2, home_field_id="summit"),
]


def demo_team_records() -> list[TeamRecord]:
    return [TeamRecord(id=t.id, name=t.name, ai_skill=t.ai_skill, home_field_id=t.home_field_id)
            for t in DEMO_TEAMS]


def demo_field_records() -> list[FieldRecord]:
    return [FieldRecord(id=f.id, name=f.name) for f in DEMO_FIELDS]


def seed_demo_catalog(teams: SqlTeamCatalog, fields: SqlFieldCatalog) -> None:
    """Fill empty catalog tables with the demo teams and fields."""
    if teams.team_ids():
        return
    for f in DEMO_FIELDS:
        fields.add_field(f)
    for t in DEMO_TEAMS:
        teams.add_team(t)
    log.info("Added %d demo teams and %d demo fields", len(DEMO_TEAMS), len(DEMO_FIELDS))
