"""
Tournament definitions

Loads and saves the tournament definitions (TournamentSettings) from a
JSON file in the config directory. The built-in definitions are used
when the file does not exist. Custom definitions are played as a World
Cup (group stage plus knockout).
"""

from pathlib import Path
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from config import PATHS
from engine.errors import InvalidConfiguration
from engine.tournament_settings import TournamentSettingsRegistry
from engine.world_cup import WorldCupMatchMaker
from models.schemas import TournamentSettings
from models.tournament import FieldSelectSequence, TournamentType
from services.logger import get_logger


log = get_logger("services.tournament_config")

_SETTINGS_LIST = TypeAdapter(list[TournamentSettings])


DEFAULT_TOURNAMENTS = [
    TournamentSettings(
        id="league",
        display_name="League",
        type=TournamentType.LOG,
        max_teams=8,
        num_face_each_other=1,
        field_select_sequence=FieldSelectSequence.ALTERNATE_HOME_AWAY,
    ),
    TournamentSettings(
        id="double_league",
        display_name="Home and Away League",
        type=TournamentType.LOG,
        max_teams=6,
        num_face_each_other=2,
        field_select_sequence=FieldSelectSequence.ALTERNATE_HOME_AWAY,
    ),
    TournamentSettings(
        id="mini_league",
        display_name="Mini League",
        type=TournamentType.LOG,
        max_teams=5,
        num_face_each_other=1,
        field_select_sequence=FieldSelectSequence.RANDOM,
    ),
    TournamentSettings(
        id="cup",
        display_name="Cup",
        type=TournamentType.SINGLE_ELIMINATION,
        max_teams=8,
        humans_in_same_group_chance=10,
        humans_in_same_match_chance=10,
        field_select_sequence=FieldSelectSequence.AWAY_ONLY,
    ),
    TournamentSettings(
        id="big_cup",
        display_name="Big Cup",
        type=TournamentType.SINGLE_ELIMINATION,
        max_teams=16,
        humans_in_same_group_chance=0,
        humans_in_same_match_chance=0,
        field_select_sequence=FieldSelectSequence.HOME_ONLY,
    ),
    TournamentSettings(
        id="world_cup",
        display_name="World Cup",
        type=TournamentType.CUSTOM,
        max_teams=16,
        humans_in_same_group_chance=30,
        humans_in_same_match_chance=20,
        field_select_sequence=FieldSelectSequence.ALTERNATE_HOME_AWAY,
    ),
]


def load_tournaments(path: Optional[Path] = None) -> list[TournamentSettings]:
    """
    Load tournament definitions from a JSON file.

    Args:
        path: JSON file, defaults to the config directory's tournaments.json

    Returns:
        The definitions, or the built-in ones if the file does not exist

    Raises:
        InvalidConfiguration: If the file is not a valid list of definitions
    """
    path = path or PATHS.tournaments
    if not path.exists():
        return list(DEFAULT_TOURNAMENTS)

    try:
        settings = _SETTINGS_LIST.validate_json(path.read_bytes())
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid tournament file {path}: {e}") from e

    log.info("Loaded %d tournament definitions from %s", len(settings), path)
    return settings


def save_tournaments(settings: list[TournamentSettings], path: Optional[Path] = None) -> Path:
    """Write tournament definitions to a JSON file."""
    path = path or PATHS.tournaments
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_SETTINGS_LIST.dump_json(settings, indent=2))
    return path


def load_registry(path: Optional[Path] = None) -> TournamentSettingsRegistry:
    """Build a registry from the tournament file (or the built-ins)."""
    return TournamentSettingsRegistry(load_tournaments(path))


def custom_match_makers(settings: Iterable[TournamentSettings]) -> dict[str, WorldCupMatchMaker]:
    """
    Match makers for the custom tournament definitions, by tournament id.

    Every custom definition is played as a group stage plus knockout.
    """
    return {s.id: WorldCupMatchMaker() for s in settings if s.type == TournamentType.CUSTOM}
