"""
Tests for loading and saving tournament definitions.
"""

import pytest

from engine.errors import InvalidConfiguration
from engine.tournament_settings import derive_settings
from engine.world_cup import WorldCupMatchMaker
from models.schemas import TournamentSettings
from models.tournament import FieldSelectSequence, TournamentType
from services.tournament_config import (
    DEFAULT_TOURNAMENTS,
    custom_match_makers,
    load_registry,
    load_tournaments,
    save_tournaments,
)


class TestTournamentConfig:
    """Tests for the tournament definition file."""

    def test_defaults_when_file_missing(self, tmp_path):
        settings = load_tournaments(tmp_path / "tournaments.json")

        assert [s.id for s in settings] == [s.id for s in DEFAULT_TOURNAMENTS]

    def test_defaults_are_valid(self):
        makers = custom_match_makers(DEFAULT_TOURNAMENTS)
        for settings in DEFAULT_TOURNAMENTS:
            maker = makers.get(settings.id)
            derived = maker.derive_settings(settings) if maker else derive_settings(settings)
            assert derived.max_matches > 0

    def test_custom_match_makers(self):
        makers = custom_match_makers(DEFAULT_TOURNAMENTS)

        assert list(makers) == ["world_cup"]
        assert isinstance(makers["world_cup"], WorldCupMatchMaker)

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config" / "tournaments.json"
        custom = [
            TournamentSettings(id="derby", type=TournamentType.LOG, max_teams=6, num_face_each_other=2,
                               field_select_sequence=FieldSelectSequence.HOME_ONLY),
            TournamentSettings(id="knockout", type=TournamentType.SINGLE_ELIMINATION, max_teams=16,
                               humans_in_same_group_chance=25.5),
        ]

        assert save_tournaments(custom, path) == path
        loaded = load_tournaments(path)

        assert loaded == custom

    def test_registry_from_file(self, tmp_path):
        path = tmp_path / "tournaments.json"
        save_tournaments([TournamentSettings(id="derby", max_teams=6)], path)

        registry = load_registry(path)

        assert registry.get("derby").max_teams == 6
        assert "league" not in registry

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "tournaments.json"
        path.write_text('[{"id": "broken", "max_teams": 2}]', encoding="utf-8")

        with pytest.raises(InvalidConfiguration):
            load_tournaments(path)

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "tournaments.json"
        path.write_text("not json", encoding="utf-8")

        with pytest.raises(InvalidConfiguration):
            load_tournaments(path)
