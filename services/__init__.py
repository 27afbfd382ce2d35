"""
Matchday Services

Application services for events, persistence, catalogs, export and logging.
"""

from services.event_bus import EventBus
from services.export import TournamentExporter
from services.key_value_store import MemoryKeyValueStore, SqlKeyValueStore
from services.persistence import TournamentStore, TournamentSnapshot

__all__ = [
    "EventBus",
    "TournamentExporter",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
    "TournamentStore",
    "TournamentSnapshot",
]
