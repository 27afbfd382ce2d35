"""
Tests for the command-line interface.
"""

import pytest
from typer.testing import CliRunner

import main
from services.tournament_config import load_registry

runner = CliRunner()


@pytest.fixture(autouse=True)
def default_tournaments(tmp_path, monkeypatch):
    """Use the built-in tournament definitions, never the user's config file."""
    missing = tmp_path / "tournaments.json"
    monkeypatch.setattr(main, "load_registry", lambda: load_registry(missing))


class TestCli:
    """Tests for the matchday commands."""

    def test_tournaments(self):
        result = runner.invoke(main.app, ["tournaments"])

        assert result.exit_code == 0
        assert "big_cup" in result.output

    def test_schedule(self):
        result = runner.invoke(main.app, ["schedule", "league", "--player", "lions", "--seed", "3"])

        assert result.exit_code == 0
        assert "Leg attempts" in result.output

    def test_simulate(self):
        result = runner.invoke(main.app, ["simulate", "cup", "-p", "lions", "-p", "tigers", "--seed", "3"])

        assert result.exit_code == 0
        assert "Winner:" in result.output

    def test_unknown_tournament(self):
        result = runner.invoke(main.app, ["simulate", "ladder", "--seed", "3"])

        assert result.exit_code == 1
        assert "Unknown tournament" in result.output

    def test_bad_log_level(self):
        result = runner.invoke(main.app, ["--log-level", "LOUD", "tournaments"])

        assert result.exit_code == 1

    def test_export(self, tmp_path):
        out = tmp_path / "exports"

        result = runner.invoke(main.app, ["export", "mini_league", "--seed", "5", "--output", str(out)])

        assert result.exit_code == 0
        assert (out / "mini_league_schedule.csv").exists()
        assert (out / "mini_league_standings.csv").exists()
        assert (out / "mini_league_report.pdf").exists()

    def test_simulate_world_cup(self):
        result = runner.invoke(main.app, ["simulate", "world_cup", "-p", "lions", "--seed", "3"])

        assert result.exit_code == 0
        assert "Group A" in result.output
        assert "Group D" in result.output
        assert "Winner:" in result.output


class TestSavedTournamentCli:
    """Tests for the commands that work on the tournament saved in a database."""

    @pytest.fixture(autouse=True)
    def database(self, tmp_path):
        self.db = tmp_path / "matchday.db"
        self.registry_path = tmp_path / "tournaments.json"

    def saved_tournament(self):
        from app import MatchdayApp

        matchday = MatchdayApp(registry=load_registry(self.registry_path), database=self.db)
        try:
            assert matchday.resume()
            return matchday.controller.tournament
        finally:
            matchday.close()

    def test_start(self):
        result = runner.invoke(main.app, ["start", "league", "-p", "lions", "--seed", "3",
                                          "--database", str(self.db)])

        assert result.exit_code == 0
        assert "Next match" in result.output
        assert "lions" in result.output
        assert self.db.exists()

    def test_status_after_start(self):
        runner.invoke(main.app, ["start", "league", "-p", "lions", "--seed", "3", "--database", str(self.db)])

        result = runner.invoke(main.app, ["status", "--database", str(self.db)])

        assert result.exit_code == 0
        assert "league schedule" in result.output
        assert "Standings" in result.output
        assert "Next match" in result.output

    def test_result_advances_saved_tournament(self):
        runner.invoke(main.app, ["start", "league", "-p", "lions", "--seed", "3", "--database", str(self.db)])
        before = self.saved_tournament()
        index = before.current_match_index
        match = before.current_match

        result = runner.invoke(main.app, ["result", match.team_ids[0], "2", match.team_ids[1], "1",
                                          "--database", str(self.db)])

        assert result.exit_code == 0
        after = self.saved_tournament()
        assert after.current_match_index > index
        assert after.match_infos[index].team_scores == [2, 1]

    def test_invalid_result(self):
        runner.invoke(main.app, ["start", "league", "-p", "lions", "--seed", "3", "--database", str(self.db)])
        before = self.saved_tournament().current_match_index

        result = runner.invoke(main.app, ["result", "nobody", "1", "lions", "0", "--database", str(self.db)])

        assert result.exit_code == 1
        assert "Error" in result.output
        assert self.saved_tournament().current_match_index == before

    def test_status_without_saved_tournament(self):
        result = runner.invoke(main.app, ["status", "--database", str(self.db)])

        assert result.exit_code == 0
        assert "No saved tournament" in result.output

    def test_result_without_saved_tournament(self):
        result = runner.invoke(main.app, ["result", "lions", "1", "tigers", "0", "--database", str(self.db)])

        assert result.exit_code == 1

    def test_status_exports(self, tmp_path):
        runner.invoke(main.app, ["start", "mini_league", "--seed", "5", "--database", str(self.db)])
        out = tmp_path / "exports"

        result = runner.invoke(main.app, ["status", "--database", str(self.db), "--output", str(out)])

        assert result.exit_code == 0
        assert (out / "mini_league_schedule.csv").exists()
