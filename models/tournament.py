"""
Tournament enumerations shared by the engine, schemas and persistence.
"""

import enum


class TournamentType(enum.Enum):
    """Supported tournament formats."""
    NONE = "none"
    LOG = "log"
    SINGLE_ELIMINATION = "single_elimination"
    CUSTOM = "custom"


class FieldSelectSequence(enum.Enum):
    """How the home field is chosen for each match."""
    ALTERNATE_HOME_AWAY = "alternate_home_away"
    HOME_ONLY = "home_only"
    AWAY_ONLY = "away_only"
    RANDOM = "random"
