"""
Matchday Tournament Engine

Scheduling, standings and progression of soccer tournaments.
This module contains no GUI dependencies.
"""

from engine.errors import (
    TournamentError,
    InvalidConfiguration,
    SchedulingFailed,
    InvalidMatchResult,
    MissingDependency,
)
from engine.tournament_settings import DerivedSettings, TournamentSettingsRegistry, derive_settings
from engine.match_info import MatchInfo, GroupInfo
from engine.match_maker import MatchMaker, Schedule, ScheduleReport
from engine.standings import StandingsEngine, TeamStats
from engine.ai_resolver import AiResolver, AiResolveReport
from engine.tournament import Tournament, TournamentState
from engine.controller import TournamentController, CustomMatchMaker
from engine.world_cup import WorldCupMatchMaker, WorldCupLayout, WorldCupStage

__all__ = [
    "TournamentError",
    "InvalidConfiguration",
    "SchedulingFailed",
    "InvalidMatchResult",
    "MissingDependency",
    "DerivedSettings",
    "TournamentSettingsRegistry",
    "derive_settings",
    "MatchInfo",
    "GroupInfo",
    "MatchMaker",
    "Schedule",
    "ScheduleReport",
    "StandingsEngine",
    "TeamStats",
    "AiResolver",
    "AiResolveReport",
    "Tournament",
    "TournamentState",
    "TournamentController",
    "CustomMatchMaker",
    "WorldCupMatchMaker",
    "WorldCupLayout",
    "WorldCupStage",
]
