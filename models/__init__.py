"""
Matchday Database Models

SQLAlchemy ORM models, pydantic schemas and the enums shared with the engine.
"""

from models.base import (
    Base,
    engine,
    SessionLocal,
    create_db_engine,
    create_session_factory,
    get_session,
    init_db,
)
from models.team import Team
from models.field import Field
from models.key_value import KeyValueEntry, ValueType
from models.tournament import TournamentType, FieldSelectSequence
from models.schemas import TournamentSettings, TeamCreate, FieldCreate

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "create_db_engine",
    "create_session_factory",
    "get_session",
    "init_db",
    "Team",
    "Field",
    "KeyValueEntry",
    "ValueType",
    "TournamentType",
    "FieldSelectSequence",
    "TournamentSettings",
    "TeamCreate",
    "FieldCreate",
]
