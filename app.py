"""
Matchday Application Controller

Top-level controller that wires together all application components.
"""

import random
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject

from config import MATCH_SETTINGS, PATHS, MatchSettings
from engine.ai_resolver import AiResolveReport
from engine.catalogs import InMemoryFieldCatalog, InMemoryTeamCatalog
from engine.controller import TournamentController
from engine.match_info import MatchInfo
from engine.tournament_settings import TournamentSettingsRegistry
from models.base import create_db_engine, create_session_factory, engine as default_engine, init_db
from services.catalog import (
    SqlFieldCatalog,
    SqlTeamCatalog,
    demo_field_records,
    demo_team_records,
    seed_demo_catalog,
)
from services.event_bus import EventBus
from services.export import TournamentExporter, export_all
from services.key_value_store import MemoryKeyValueStore, SqlKeyValueStore
from services.logger import get_logger
from services.persistence import TournamentStore
from services.tournament_config import custom_match_makers, load_registry


log = get_logger("app")


def create_memory_controller(
    seed: Optional[int] = None,
    registry: Optional[TournamentSettingsRegistry] = None,
    match_settings: MatchSettings = MATCH_SETTINGS,
) -> TournamentController:
    """
    Build a controller over the demo teams with in-memory storage.

    Every random source is derived from seed, so the same seed replays
    the same tournament.
    """
    rng = random.Random(seed)
    teams = demo_team_records()
    registry = registry or load_registry()
    return TournamentController(
        registry=registry,
        team_catalog=InMemoryTeamCatalog(teams, random.Random(rng.randrange(2 ** 31))),
        field_catalog=InMemoryFieldCatalog.from_teams(demo_field_records(), teams,
                                                      random.Random(rng.randrange(2 ** 31))),
        store=TournamentStore(MemoryKeyValueStore()),
        match_settings=match_settings,
        seed=rng.randrange(2 ** 31),
        custom_match_makers=custom_match_makers(registry),
    )


class MatchdayApp(QObject):
    """
    Top-level application controller.
    Wires the tournament controller to the database, the catalogs and the event bus.

    Usage:
        matchday = MatchdayApp(database=Path("matchday.db"))
        if not matchday.resume():
            matchday.start_tournament("league", ["lions"])
        matchday.close()
    """

    def __init__(
        self,
        registry: Optional[TournamentSettingsRegistry] = None,
        database: Optional[Path] = None,
        seed: Optional[int] = None,
    ):
        super().__init__()

        # Initialize database; the default one lives in the user data directory
        self._engine = create_db_engine(database) if database else None
        bind = self._engine or default_engine
        init_db(bind)
        session_factory = create_session_factory(bind)

        # Core services
        rng = random.Random(seed)
        self.event_bus = EventBus()
        self.team_catalog = SqlTeamCatalog(session_factory, random.Random(rng.randrange(2 ** 31)))
        self.field_catalog = SqlFieldCatalog(session_factory, random.Random(rng.randrange(2 ** 31)))
        seed_demo_catalog(self.team_catalog, self.field_catalog)

        registry = registry or load_registry()
        self.store = TournamentStore(SqlKeyValueStore(session_factory))
        self.controller = TournamentController(
            registry=registry,
            team_catalog=self.team_catalog,
            field_catalog=self.field_catalog,
            store=self.store,
            seed=rng.randrange(2 ** 31),
            custom_match_makers=custom_match_makers(registry),
        )
        self.event_bus.connect_controller(self.controller)

    def close(self) -> None:
        """Release the database opened for this app."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def resume(self) -> bool:
        """Load the saved tournament, if there is one."""
        loaded = self.controller.load()
        if not loaded:
            log.info("No saved tournament to resume")
        else:
            self.event_bus.emit_message("info", f"Resumed {self.controller.tournament.tournament_id}")
        return loaded

    def start_tournament(self, tournament_id: str, player_team_ids: list[str]) -> None:
        """Start a new tournament and announce its first match."""
        self.controller.start_new_tournament(tournament_id, player_team_ids)
        self.play_next()

    def play_next(self) -> Optional[MatchInfo]:
        """
        Fast-forward AI matches and announce the next match to the match executor.

        Returns:
            The next match, or None if the tournament is over
        """
        match = self.controller.start_next_match()
        if match is None:
            if self.controller.is_tournament_done:
                self.event_bus.emit_message("info", f"Tournament won by {self.controller.win_team_id}")
            return None

        self.event_bus.emit_next_match(
            self.controller.tournament.current_match_index,
            match.team_ids,
            self.controller.field_id,
            match.match_day,
        )
        return match

    def report_result(self, team_a: str, score_a: int, team_b: str, score_b: int,
                      forfeit_team: Optional[str] = None) -> AiResolveReport:
        """Record the result of the match that was played."""
        report = self.controller.end_match(team_a, score_a, team_b, score_b, forfeit_team)
        self.play_next()
        return report

    def export(self, directory: Optional[Path] = None) -> list[Path]:
        """
        Export the schedule and standings.

        Returns:
            The files written
        """
        if not self.controller.is_tournament_active:
            return []

        def team_name(team_id: str) -> str:
            team = self.team_catalog.get_team(team_id)
            return team.name if team else team_id

        return export_all(
            TournamentExporter(team_name),
            self.controller.tournament,
            self.controller.log,
            directory or PATHS.exports,
        )
